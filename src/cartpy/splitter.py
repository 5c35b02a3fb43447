# -*- coding: utf-8 -*-
"""
cartpy.splitter
===============

Exhaustive search for the best binary partition of a labeled dataset.

Every distinct value of every examined column is tried as a split point:
``<= value`` against ``> value`` for continuous columns and ``== value``
against ``!= value`` for categorical ones.  Candidates are scored by the
size-weighted Gini impurity of the two halves; the lowest score wins and
ties keep the first candidate found (columns in ascending order, values in
order of first occurrence).
"""
from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .dataset import CONTINUOUS, Labeled
from .impurity import gini_from_counts


@dataclass(frozen=True)
class Partition:
    """Best split found for a dataset."""

    column: int
    value: object
    impurity: float
    left: Labeled
    right: Labeled


def sample_columns(n_columns: int, max_features: int | None, rng) -> np.ndarray:
    """
    Draw up to ``max_features`` distinct column indices without replacement.

    The draw is returned in ascending order.  When ``max_features`` is
    ``None`` or covers every column, all columns are returned and ``rng`` is
    left untouched.
    """
    if max_features is None or max_features >= n_columns:
        return np.arange(n_columns)
    return np.sort(rng.choice(n_columns, size=max_features, replace=False))


def split_mask(column: np.ndarray, value, column_type) -> np.ndarray:
    """Boolean mask of the rows routed to the left child."""
    if column_type == CONTINUOUS:
        return column <= value
    return column == value


def _label_codes(labels) -> tuple[np.ndarray, int]:
    idx_map: dict = {}
    codes = np.fromiter((idx_map.setdefault(c, len(idx_map)) for c in labels),
                        count=len(labels), dtype=int)
    return codes, len(idx_map)


def _continuous_left_counts(col: np.ndarray, codes: np.ndarray, k: int):
    """Class counts left of every distinct value, via cumulative sums."""
    values = list(dict.fromkeys(col.tolist()))
    n = col.shape[0]
    order = np.argsort(col, kind="mergesort")
    onehot = np.zeros((n, k), dtype=float)
    onehot[np.arange(n), codes[order]] = 1.0
    cum = np.vstack([np.zeros((1, k)), onehot.cumsum(axis=0)])
    # NaN sorts last, so searchsorted counts only the comparable rows
    positions = np.searchsorted(col[order], np.asarray(values, dtype=float), side="right")
    positions[np.isnan(np.asarray(values, dtype=float))] = 0
    return values, cum[positions]


def _categorical_left_counts(col: np.ndarray, codes: np.ndarray, k: int):
    values = list(dict.fromkeys(col.tolist()))
    left = np.array([np.bincount(codes[col == v], minlength=k) for v in values], dtype=float)
    return values, left.reshape(len(values), k)


def find_best_split(dataset: Labeled, max_features: int | None, rng) -> Partition | None:
    """
    Return the partition of ``dataset`` minimizing weighted child impurity.

    Parameters
    ----------
    dataset : Labeled
        Rows reaching the node; at least one row.
    max_features : int or None
        Number of randomly drawn columns to examine.  ``None`` examines all.
    rng : numpy.random.RandomState
        Source of the column draw.

    Returns
    -------
    Partition or None
        ``None`` only when there is no column to split on.  Either half of
        the returned partition may be empty.
    """
    n = dataset.num_rows()
    codes, k = _label_codes(dataset.labels().tolist())
    total = np.bincount(codes, minlength=k).astype(float)
    best = None
    best_impurity = np.inf

    for column in sample_columns(dataset.num_columns(), max_features, rng):
        column = int(column)
        col = dataset.column(column)
        ctype = dataset.column_type(column)
        if ctype == CONTINUOUS:
            values, left = _continuous_left_counts(col, codes, k)
        else:
            values, left = _categorical_left_counts(col, codes, k)
        n_left = left.sum(axis=1)
        scores = (n_left / n) * gini_from_counts(left) \
            + ((n - n_left) / n) * gini_from_counts(total - left)
        i = int(np.argmin(scores))
        if scores[i] < best_impurity:
            best_impurity = float(scores[i])
            best = (column, values[i], col, ctype)

    if best is None:
        return None
    column, value, col, ctype = best
    mask = split_mask(col, value, ctype)
    return Partition(column=column, value=value, impurity=best_impurity,
                     left=dataset.take(mask), right=dataset.take(~mask))
