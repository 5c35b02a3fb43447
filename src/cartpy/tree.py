# -*- coding: utf-8 -*-
"""
cartpy.tree
===========

This module implements a CART-style binary classification tree.  The tree
is grown greedily: at every node the split minimizing the size-weighted
Gini impurity of the two children is chosen, optionally from a random
subset of the columns.  Growth stops on depth, leaf size, purity or
insufficient impurity decrease (pre-pruning).  Both categorical and
continuous features are supported without encoding.

The learner follows the scikit-learn estimator conventions (``fit``,
``predict``, ``predict_proba``, ``get_params``) and additionally exposes the
dataset oriented ``train``/``predict``/``probability`` interface used by
ensembles and validation harnesses built on :mod:`cartpy.dataset`.

Beyond training and prediction the classifier provides introspection
(height, leaf count, feature importances) and rendering helpers (rule
export, pretty printing and Graphviz export).
"""

# -----------------------------------------------------------------------------

from __future__ import annotations

import numbers
from dataclasses import dataclass

import numpy as np
from loguru import logger
from sklearn.base import BaseEstimator, ClassifierMixin
from sklearn.utils import check_random_state

from .dataset import CATEGORICAL, CONTINUOUS, Labeled, _as_rows
from .exceptions import ConfigurationError, InvalidInputError, NotTrainedError
from .impurity import gini, label_counts
from .nodes import Node, Outcome, Split
from .splitter import find_best_split

COMPATIBILITY = (CATEGORICAL, CONTINUOUS)


# -----------------------------------------------------------------------------
# Hyper-parameters
# -----------------------------------------------------------------------------
def _is_int(v) -> bool:
    return isinstance(v, numbers.Integral) and not isinstance(v, bool)


@dataclass(frozen=True)
class TreeParams:
    """Immutable snapshot of the tree's hyper-parameters.

    Construction validates every field and raises
    :class:`~cartpy.exceptions.ConfigurationError` on the first value out of
    its domain.
    """

    max_depth: int | None = None
    max_leaf_size: int = 3
    max_features: int | None = None
    min_purity_increase: float = 1e-7

    def __post_init__(self):
        if self.max_depth is not None and (not _is_int(self.max_depth) or self.max_depth < 1):
            raise ConfigurationError("max_depth", self.max_depth, "an integer greater than 0 or None")
        if not _is_int(self.max_leaf_size) or self.max_leaf_size < 1:
            raise ConfigurationError("max_leaf_size", self.max_leaf_size, "an integer greater than 0")
        if self.max_features is not None and (not _is_int(self.max_features) or self.max_features < 1):
            raise ConfigurationError("max_features", self.max_features, "an integer greater than 0 or None")
        if not isinstance(self.min_purity_increase, numbers.Real) or isinstance(self.min_purity_increase, bool) \
                or not self.min_purity_increase >= 0.0:
            raise ConfigurationError("min_purity_increase", self.min_purity_increase, "a number greater than or equal to 0")

    def as_dict(self) -> dict:
        return {
            "max_depth": self.max_depth,
            "max_leaf_size": self.max_leaf_size,
            "max_features": self.max_features,
            "min_purity_increase": self.min_purity_increase,
        }


# -----------------------------------------------------------------------------
# Classifier
# -----------------------------------------------------------------------------
class ClassificationTree(ClassifierMixin, BaseEstimator):
    """
    Binary decision tree classifier minimizing Gini impurity.

    The tree is grown depth first, left subtree before right.  A branch is
    terminated as soon as one of the following holds, checked in order:

    1. the node is at ``max_depth``;
    2. the node holds at most ``max_leaf_size`` rows;
    3. the node's labels are pure;
    4. the best split decreases impurity by less than
       ``min_purity_increase``;
    5. the best split leaves one side empty.

    Leaves predict the majority class of their rows (first class seen wins
    ties) and estimate class probabilities by relative frequency.

    Parameters
    ----------
    max_depth : int or None, default=None
        Maximum depth of the tree.  ``None`` leaves the depth unbounded.
    max_leaf_size : int, default=3
        A node holding this many rows or fewer becomes a leaf.
    max_features : int or None, default=None
        Number of columns drawn at random (without replacement) and searched
        at each split.  ``None`` searches every column.  Values below the
        number of columns decorrelate trees grown on the same data.
    min_purity_increase : float, default=1e-7
        Minimum decrease in impurity a split must achieve.
    random_state : int, RandomState instance or None, default=None
        Seed for the column draw.  Training twice with the same integer
        seed and data yields identical trees.

    Attributes
    ----------
    root : Split, Outcome or None
        Root of the fitted tree; ``None`` before training.
    classes_ : ndarray of shape (n_classes,)
        Class labels seen during training, in order of first occurrence.
    n_features_ : int
        Number of columns seen during training.

    Raises
    ------
    ConfigurationError
        If a hyper-parameter is out of its domain.
    """

    def __init__(
        self,
        *,
        max_depth: int | None = None,
        max_leaf_size: int = 3,
        max_features: int | None = None,
        min_purity_increase: float = 1e-7,
        random_state=None,
    ):
        TreeParams(max_depth, max_leaf_size, max_features, min_purity_increase)

        self.max_depth = max_depth
        self.max_leaf_size = max_leaf_size
        self.max_features = max_features
        self.min_purity_increase = min_purity_increase
        self.random_state = random_state

        self.root = None
        self.classes_ = None
        self.n_features_ = None
        self._classes = None

    def set_params(self, **params):
        # re-check the merged configuration before touching the estimator
        merged = {**self.params().as_dict(), **{k: v for k, v in params.items() if k != "random_state"}}
        TreeParams(**{k: merged[k] for k in TreeParams.__dataclass_fields__})
        return super().set_params(**params)

    def params(self) -> TreeParams:
        """Return an immutable snapshot of the hyper-parameters."""
        return TreeParams(
            max_depth=self.max_depth,
            max_leaf_size=self.max_leaf_size,
            max_features=self.max_features,
            min_purity_increase=self.min_purity_increase,
        )

    def trained(self) -> bool:
        """Has the learner been trained?"""
        return self.root is not None

    def __sklearn_is_fitted__(self) -> bool:
        return self.trained()

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------
    def fit(self, X, y):
        """
        Fit the tree on ``X`` and ``y``.

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
            Training rows.  String columns are categorical, numeric columns
            continuous.
        y : array-like of shape (n_samples,)
            String class labels.

        Returns
        -------
        self
        """
        self.train(Labeled(X, y))
        return self

    def train(self, dataset: Labeled) -> None:
        """
        Grow a new tree from ``dataset``, discarding any previous one.

        All validation happens before the learner is modified, so a call
        that raises leaves the previously trained tree intact.

        Parameters
        ----------
        dataset : Labeled
            Non-empty labeled dataset with categorical or continuous
            columns and categorical labels.

        Raises
        ------
        InvalidInputError
            If the dataset is unlabeled, empty, or has an unsupported column
            or label type.
        """
        if not isinstance(dataset, Labeled):
            raise InvalidInputError("Learner requires a labeled training set.")
        if dataset.empty():
            raise InvalidInputError("Training set must contain at least one sample.")
        for j, ctype in enumerate(dataset.types()):
            if ctype not in COMPATIBILITY:
                raise InvalidInputError(
                    f"Column {j} has type {ctype!r}, learner is compatible with {list(COMPATIBILITY)}.")
        if dataset.label_type() != CATEGORICAL:
            raise InvalidInputError(
                f"Classification requires categorical labels, {dataset.label_type()!r} given.")

        rng = check_random_state(self.random_state)
        classes = dataset.possible_outcomes()

        logger.info("Training classification tree", rows=dataset.num_rows(),
                    columns=dataset.num_columns(), classes=len(classes))

        root = self._grow(dataset, rng)

        self._classes = dict.fromkeys(classes, 0.0)
        self.classes_ = np.array(classes, dtype=object)
        self.n_features_ = dataset.num_columns()
        self.root = root

        logger.info("Training complete", nodes=self.node_count(), leaves=self.leaf_count(),
                    height=self.height())

    def _grow(self, dataset: Labeled, rng) -> Node:
        """
        Build the tree for ``dataset`` depth first, left subtree before right.

        Growth runs on an explicit work stack, so tree depth is not limited
        by the interpreter recursion limit.  Frozen ``Split`` nodes are
        assembled bottom-up once both children exist.
        """
        built: list[Node] = []
        stack: list[tuple] = [("grow", dataset, 0)]
        while stack:
            frame = stack.pop()
            if frame[0] == "assemble":
                _, column, value, column_type, impurity, n = frame
                right = built.pop()
                left = built.pop()
                built.append(Split(column=column, value=value, column_type=column_type,
                                   impurity=impurity, n=n, left=left, right=right))
                continue

            _, subset, depth = frame
            node = self._expand(subset, depth, rng)
            if isinstance(node, Outcome):
                built.append(node)
                continue
            partition, impurity = node
            stack.append(("assemble", partition.column, partition.value,
                          subset.column_type(partition.column), impurity, subset.num_rows()))
            stack.append(("grow", partition.right, depth + 1))
            stack.append(("grow", partition.left, depth + 1))

        return built.pop()

    def _expand(self, dataset: Labeled, depth: int, rng):
        """Return a leaf for ``dataset``, or the partition to split it on."""
        n = dataset.num_rows()
        impurity = gini(dataset.labels().tolist())

        if self.max_depth is not None and depth >= self.max_depth:
            return self._terminate(dataset, impurity, depth, "max_depth")
        if n <= self.max_leaf_size:
            return self._terminate(dataset, impurity, depth, "max_leaf_size")
        if impurity == 0.0:
            return self._terminate(dataset, impurity, depth, "pure")

        partition = find_best_split(dataset, self.max_features, rng)
        if partition is None:
            return self._terminate(dataset, impurity, depth, "no_columns")
        if impurity - partition.impurity < self.min_purity_increase:
            return self._terminate(dataset, impurity, depth, "min_purity_increase")
        if partition.left.empty() or partition.right.empty():
            return self._terminate(dataset, impurity, depth, "empty_partition")

        logger.debug("Splitting node", depth=depth, n=n, column=partition.column,
                     value=partition.value, impurity=impurity, score=partition.impurity)
        return partition, impurity

    def _terminate(self, dataset: Labeled, impurity: float, depth: int, reason: str) -> Outcome:
        n = dataset.num_rows()
        counts = label_counts(dataset.labels().tolist())
        outcome = max(counts, key=counts.get)
        probabilities = {c: count / n for c, count in counts.items()}

        logger.debug("Terminating branch", reason=reason, depth=depth, n=n, outcome=outcome)

        return Outcome(outcome=outcome, probabilities=probabilities, impurity=impurity, n=n)

    # ------------------------------------------------------------------
    # Inference
    # ------------------------------------------------------------------
    def predict(self, X) -> np.ndarray:
        """
        Predict the class label of every row.

        Parameters
        ----------
        X : Dataset or array-like of shape (n_samples, n_features)
            Rows to classify.

        Returns
        -------
        ndarray of shape (n_samples,)
            Predicted labels in row order.

        Raises
        ------
        NotTrainedError
            If the learner has not been trained.
        """
        self._check_trained()
        rows = self._inference_set(X)
        return np.array([self.search(row).outcome for row in rows], dtype=object)

    def probability(self, X) -> list[dict]:
        """
        Estimate the probability of every training class for every row.

        Each mapping covers all classes seen during training, in the same
        order (``classes_``); classes absent from the reached leaf get 0.0.

        Parameters
        ----------
        X : Dataset or array-like of shape (n_samples, n_features)

        Returns
        -------
        list[dict]
            One ``{class: probability}`` mapping per row.
        """
        if not self.trained() or not self._classes:
            raise NotTrainedError()
        rows = self._inference_set(X)
        probabilities = []
        for row in rows:
            dist = dict(self._classes)
            dist.update(self.search(row).probabilities)
            probabilities.append(dist)
        return probabilities

    def predict_proba(self, X) -> np.ndarray:
        """
        Predict class probabilities as an array.

        Returns
        -------
        ndarray of shape (n_samples, n_classes)
            Columns follow ``classes_``.
        """
        probabilities = self.probability(X)
        if not probabilities:
            return np.empty((0, len(self.classes_)), dtype=float)
        return np.array([list(dist.values()) for dist in probabilities], dtype=float)

    def search(self, row) -> Outcome:
        """Follow ``row`` from the root down to the leaf that receives it."""
        self._check_trained()
        node = self.root
        while node.kind == "split":
            node = node.left if node.goes_left(row) else node.right
        return node

    def _check_trained(self) -> None:
        if not self.trained():
            raise NotTrainedError()

    def _inference_set(self, X) -> np.ndarray:
        # only the width is checked; values a split cannot compare go right
        rows = _as_rows(X)
        if rows.shape[0] == 0:
            return rows
        if rows.shape[1] != self.n_features_:
            raise InvalidInputError(
                f"Learner was trained on {self.n_features_} columns, {rows.shape[1]} given.")
        return rows

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    def height(self) -> int:
        """Number of edges on the longest root-to-leaf path."""
        self._check_trained()
        height, stack = 0, [(self.root, 0)]
        while stack:
            node, depth = stack.pop()
            if node.kind == "outcome":
                height = max(height, depth)
            else:
                stack.extend(((node.right, depth + 1), (node.left, depth + 1)))
        return height

    def leaves(self) -> list[Outcome]:
        """Leaves from left to right."""
        self._check_trained()
        out, stack = [], [self.root]
        while stack:
            node = stack.pop()
            if node.kind == "outcome":
                out.append(node)
            else:
                stack.extend((node.right, node.left))
        return out

    def leaf_count(self) -> int:
        return len(self.leaves())

    def node_count(self) -> int:
        return 2 * self.leaf_count() - 1

    def feature_importances(self) -> np.ndarray:
        """
        Normalized total impurity decrease contributed by each column.

        The decrease of a split is ``n * impurity - n_left * impurity_left
        - n_right * impurity_right``.  Returns zeros for a single-leaf tree.
        """
        self._check_trained()
        importances = np.zeros(self.n_features_, dtype=float)
        stack = [self.root]
        while stack:
            node = stack.pop()
            if node.kind == "outcome":
                continue
            importances[node.column] += node.n * node.impurity \
                - node.left.n * node.left.impurity - node.right.n * node.right.impurity
            stack.extend((node.left, node.right))
        total = importances.sum()
        if total > 0:
            importances /= total
        return importances

    @property
    def feature_importances_(self) -> np.ndarray:
        return self.feature_importances()

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    def export_rules(self, *, feature_names=None) -> list[str]:
        """
        Export one ``"<antecedent> => <label>"`` rule per leaf.

        Rules are listed left to right.  A tree consisting of a single leaf
        yields ``["<root> => <label>"]``.
        """
        self._check_trained()
        rules: list[str] = []
        self._collect_rules(self.root, [], rules, feature_names)
        return rules

    def print_tree(self, feature_names=None) -> None:
        """Pretty-print the tree to ``stdout``."""
        self._check_trained()
        self._print_node(self.root, "", feature_names)

    def export_graphviz(self, filename: str | None = None, *, feature_names=None,
                        format: str = "dot") -> str:
        """
        Export the tree in Graphviz format.

        Parameters
        ----------
        filename : str or None, default=None
            Basename of the output file.  If ``None`` the DOT source is
            returned and nothing is written.
        feature_names : list[str], optional
            Names used in place of ``X[j]``.
        format : str, default="dot"
            ``"dot"`` writes the DOT source directly; any other format is
            rendered with the system ``dot`` executable.

        Returns
        -------
        str
            DOT source, or the path of the written file.
        """
        self._check_trained()
        try:
            import graphviz
        except ImportError:
            raise RuntimeError("Graphviz is required for export_graphviz but not installed.")
        dot = graphviz.Digraph(format=format)
        self._add_graph_nodes(dot, self.root, "0", feature_names)

        if filename is None:
            return dot.source
        if format.lower() == "dot":
            path = f"{filename}.dot"
            dot.save(path)
            return path
        return dot.render(filename, cleanup=True)

    @staticmethod
    def _name(column: int, fn) -> str:
        if fn is not None and 0 <= column < len(fn):
            return str(fn[column])
        return f"X[{column}]"

    def _collect_rules(self, node: Node, parts, rules, fn):
        stack = [(node, parts)]
        while stack:
            node, parts = stack.pop()
            if node.kind == "outcome":
                body = " AND ".join(parts) if parts else "<root>"
                rules.append(f"{body} => {node.outcome}")
                continue
            name = self._name(node.column, fn)
            stack.append((node.right, parts + [node.describe(name, left=False)]))
            stack.append((node.left, parts + [node.describe(name, left=True)]))

    def _print_node(self, node: Node, indent="", fn=None):
        # str entries are literal lines queued between the two branches
        stack = [(node, indent)]
        while stack:
            node, indent = stack.pop()
            if isinstance(node, str):
                print(f"{indent}{node}")
            elif node.kind == "outcome":
                dist = {c: round(p, 4) for c, p in node.probabilities.items()}
                print(f"{indent}Predict {node.outcome} | n={node.n} | dist={dist}")
            else:
                print(f"{indent}if {node.describe(self._name(node.column, fn))}:")
                stack.extend(((node.right, indent + "  "), ("else:", indent), (node.left, indent + "  ")))

    def _add_graph_nodes(self, dot, node: Node, name: str, fn):
        stack = [(node, name)]
        while stack:
            node, name = stack.pop()
            if node.kind == "outcome":
                dot.node(name, f"{node.outcome}\nn={node.n}\nimpurity={node.impurity:.4f}",
                         shape="box", style="filled", color="lightgrey")
                continue
            dot.node(name, node.describe(self._name(node.column, fn)),
                     shape="ellipse", style="filled", color="lightblue")
            l_id, r_id = name + "L", name + "R"
            dot.edge(name, l_id, label="True")
            dot.edge(name, r_id, label="False")
            stack.extend(((node.right, r_id), (node.left, l_id)))
