# -*- coding: utf-8 -*-
"""
cartpy.nodes
============

The two node variants of a classification tree.

``Split`` nodes route a row left or right by testing one column; ``Outcome``
nodes end the traversal.  Both are frozen dataclasses and carry a ``kind``
tag so traversal code can dispatch on the variant without isinstance
chains.  A node owns its children exclusively; trees are built bottom-up
and never mutated afterwards.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Union

from .dataset import CONTINUOUS, ColumnType, type_of


@dataclass(frozen=True)
class Outcome:
    """Terminal node.

    Attributes
    ----------
    outcome : str
        Majority class among the training rows that reached this node.
    probabilities : dict
        Relative frequency of every class observed at this node, in order
        of first occurrence.
    impurity : float
        Gini impurity of the training labels at this node.
    n : int
        Number of training rows that reached this node.
    """

    outcome: str
    probabilities: dict
    impurity: float
    n: int
    kind: Literal["outcome"] = field(default="outcome", init=False)


@dataclass(frozen=True)
class Split:
    """Internal node.

    Attributes
    ----------
    column : int
        Index of the feature tested at this node.
    value : float or str
        Threshold for continuous columns, match value for categorical ones.
    column_type : {"continuous", "categorical"}
        Decides between ``<=`` and ``==`` when routing a row.
    impurity : float
        Gini impurity of the training labels at this node.
    n : int
        Number of training rows that reached this node.
    left, right : Node
        Children; rows passing the test go left.
    """

    column: int
    value: object
    column_type: ColumnType
    impurity: float
    n: int
    left: Node
    right: Node
    kind: Literal["split"] = field(default="split", init=False)

    def goes_left(self, row) -> bool:
        """Does ``row`` pass the test?  Non-numeric values fail a threshold."""
        value = row[self.column]
        if self.column_type == CONTINUOUS:
            return type_of(value) == CONTINUOUS and bool(value <= self.value)
        return bool(value == self.value)

    def describe(self, name: str, left: bool = True) -> str:
        if self.column_type == CONTINUOUS:
            return f"{name} {'<=' if left else '>'} {self.value}"
        return f"{name} {'==' if left else '!='} {self.value}"


Node = Union[Split, Outcome]
