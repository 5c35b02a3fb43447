# -*- coding: utf-8 -*-
"""Gini impurity of a label multiset."""
from __future__ import annotations

from collections import Counter

import numpy as np


def label_counts(labels) -> Counter:
    """Count labels, keyed in order of first occurrence."""
    return Counter(labels)


def gini_from_counts(counts) -> np.ndarray:
    """
    Gini impurity of each row of a class count matrix.

    Parameters
    ----------
    counts : array-like of shape (n_sets, n_classes) or (n_classes,)
        Per-class counts; zero entries are classes not observed in the set.

    Returns
    -------
    ndarray of shape (n_sets,)
    """
    counts = np.atleast_2d(np.asarray(counts, dtype=float))
    n = counts.sum(axis=1, keepdims=True)
    with np.errstate(divide="ignore", invalid="ignore"):
        p = counts / n
    terms = np.where(counts > 0, 1.0 - p ** 2, 0.0)
    return np.where(n[:, 0] > 1, terms.sum(axis=1), 0.0)


def gini(labels) -> float:
    """
    Gini impurity ``sum_c (1 - (n_c / n) ** 2)`` over the observed classes.

    Zero for a pure multiset.  Defined as zero for ``n <= 1``.
    """
    counts = list(label_counts(labels).values())
    if not counts:
        return 0.0
    return float(gini_from_counts(counts)[0])
