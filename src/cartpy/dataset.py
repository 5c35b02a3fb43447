# -*- coding: utf-8 -*-
"""
cartpy.dataset
==============

Minimal tabular containers consumed by :class:`cartpy.ClassificationTree`.

A :class:`Dataset` is an ordered collection of rows whose column types are
inferred from the values: strings are *categorical*, real numbers are
*continuous*.  Every row must have the same width and every column a single
type.  :class:`Labeled` pairs each row with a categorical label and adds the
subset and split operations used by hold-out style validation.
"""
from __future__ import annotations

import numbers
from collections import Counter
from typing import Literal

import numpy as np
from sklearn.utils import check_random_state

from .exceptions import InvalidInputError

ColumnType = Literal["categorical", "continuous", "other"]

CATEGORICAL: ColumnType = "categorical"
CONTINUOUS: ColumnType = "continuous"
OTHER: ColumnType = "other"


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------
def type_of(value) -> ColumnType:
    """Return the column type tag of a single value."""
    if isinstance(value, str):
        return CATEGORICAL
    if isinstance(value, (bool, np.bool_)):
        return OTHER
    if isinstance(value, numbers.Real):
        return CONTINUOUS
    return OTHER


def _as_rows(samples) -> np.ndarray:
    if isinstance(samples, Dataset):
        return samples.samples()
    rows = [list(row) for row in samples]
    if not rows:
        return np.empty((0, 0), dtype=object)
    width = len(rows[0])
    for i, row in enumerate(rows):
        if len(row) != width:
            raise InvalidInputError(
                f"Row {i} has {len(row)} columns, expected {width}.")
    out = np.empty((len(rows), width), dtype=object)
    for i, row in enumerate(rows):
        out[i, :] = row
    return out


def _infer_types(rows: np.ndarray) -> tuple:
    types = []
    for j in range(rows.shape[1]):
        kinds = {type_of(v) for v in rows[:, j]}
        if len(kinds) > 1:
            raise InvalidInputError(
                f"Column {j} mixes value types {sorted(kinds)}.")
        types.append(kinds.pop())
    return tuple(types)


# -----------------------------------------------------------------------------
# Dataset
# -----------------------------------------------------------------------------
class Dataset:
    """Unlabeled collection of feature rows.

    Parameters
    ----------
    samples : array-like of shape (n_samples, n_features)
        Rows of feature values.  Each column must hold either strings
        (categorical) or real numbers (continuous).
    """

    def __init__(self, samples):
        self._samples = _as_rows(samples)
        self._types = _infer_types(self._samples)

    def samples(self) -> np.ndarray:
        return self._samples

    def num_rows(self) -> int:
        return int(self._samples.shape[0])

    def num_columns(self) -> int:
        return int(self._samples.shape[1])

    def empty(self) -> bool:
        return self.num_rows() == 0

    def types(self) -> tuple:
        return self._types

    def column_type(self, index: int) -> ColumnType:
        return self._types[index]

    def column(self, index: int) -> np.ndarray:
        """Return column ``index``; float dtype for continuous columns."""
        col = self._samples[:, index]
        if self._types[index] == CONTINUOUS:
            return col.astype(float)
        return col

    def __len__(self) -> int:
        return self.num_rows()

    def __iter__(self):
        return iter(self._samples)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(rows={self.num_rows()}, columns={self.num_columns()})"


class Labeled(Dataset):
    """Dataset whose rows each carry a categorical label.

    Parameters
    ----------
    samples : array-like of shape (n_samples, n_features)
        Rows of feature values.
    labels : array-like of shape (n_samples,)
        One label per row.  Classification labels are strings.
    """

    def __init__(self, samples, labels):
        super().__init__(samples)
        labels = list(labels)
        if len(labels) != self.num_rows():
            raise InvalidInputError(
                f"Number of labels ({len(labels)}) must equal number of rows ({self.num_rows()}).")
        self._labels = np.empty(len(labels), dtype=object)
        self._labels[:] = labels
        kinds = {type_of(v) for v in labels}
        if len(kinds) > 1:
            raise InvalidInputError(f"Labels mix value types {sorted(kinds)}.")
        self._label_type = kinds.pop() if kinds else OTHER

    @classmethod
    def _from_arrays(cls, samples: np.ndarray, labels: np.ndarray, types: tuple,
                     label_type: ColumnType) -> Labeled:
        # skips validation; callers pass slices of an already validated dataset
        obj = cls.__new__(cls)
        obj._samples = samples
        obj._types = types
        obj._labels = labels
        obj._label_type = label_type
        return obj

    def labels(self) -> np.ndarray:
        return self._labels

    def label(self, index: int):
        return self._labels[index]

    def label_type(self) -> ColumnType:
        return self._label_type

    def possible_outcomes(self) -> list:
        """Distinct labels in order of first occurrence."""
        return list(dict.fromkeys(self._labels.tolist()))

    def take(self, indices) -> Labeled:
        """Return the rows at ``indices`` (array of positions or boolean mask)."""
        indices = np.asarray(indices)
        return Labeled._from_arrays(self._samples[indices], self._labels[indices],
                                    self._types, self._label_type)

    def randomize(self, random_state=None) -> Labeled:
        """Return a copy with the rows shuffled."""
        rng = check_random_state(random_state)
        return self.take(rng.permutation(self.num_rows()))

    def split(self, ratio: float = 0.5) -> tuple[Labeled, Labeled]:
        """Split into the first ``ratio`` of rows and the remainder."""
        _check_ratio(ratio)
        n = int(ratio * self.num_rows())
        order = np.arange(self.num_rows())
        return self.take(order[:n]), self.take(order[n:])

    def stratified_split(self, ratio: float = 0.5) -> tuple[Labeled, Labeled]:
        """
        Split each class by ``ratio`` so both halves keep the class balance.

        Rows keep their relative order inside each class; classes are
        emitted in order of first occurrence.
        """
        _check_ratio(ratio)
        left, right = [], []
        for outcome in self.possible_outcomes():
            idx = np.flatnonzero(self._labels == outcome)
            n = int(ratio * len(idx))
            left.extend(idx[:n])
            right.extend(idx[n:])
        return (self.take(np.array(left, dtype=int)),
                self.take(np.array(right, dtype=int)))

    def label_counts(self) -> Counter:
        return Counter(self._labels.tolist())


def _check_ratio(ratio: float) -> None:
    if not 0.0 < ratio < 1.0:
        raise InvalidInputError(f"Ratio must be between 0 and 1, {ratio} given.")
