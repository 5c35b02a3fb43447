import dataclasses

import numpy as np
import pytest
from sklearn.exceptions import NotFittedError

from cartpy import (
    ClassificationTree,
    ConfigurationError,
    Dataset,
    InvalidInputError,
    Labeled,
    NotTrainedError,
    Outcome,
    Split,
)


def _tiny_dataset():
    """Two identical 'a' rows and one 'b' row."""
    return Labeled([[1, 5], [1, 5], [9, 1]], ['a', 'a', 'b'])


def _colors_dataset():
    """Label depends only on whether the color is red."""
    X = [['red', 1.0], ['blue', 1.0], ['red', 2.0], ['green', 2.0]]
    y = ['x', 'y', 'x', 'y']
    return Labeled(X, y)


def _ladder_dataset():
    return Labeled([[1], [2], [3], [4]], ['a', 'a', 'b', 'c'])


def _random_dataset(seed=0, n=80):
    rng = np.random.RandomState(seed)
    X = rng.rand(n, 4)
    y = np.where(X[:, 0] + 0.3 * X[:, 2] > 0.6, 'pos', 'neg')
    flip = rng.rand(n) < 0.1
    y = np.where(flip, np.where(y == 'pos', 'neg', 'pos'), y)
    return Labeled(X, y)


def _walk(node, depth=0):
    yield node, depth
    if node.kind == "split":
        yield from _walk(node.left, depth + 1)
        yield from _walk(node.right, depth + 1)


def test_two_column_scenario():
    clf = ClassificationTree(max_leaf_size=1, min_purity_increase=0.0)
    clf.train(_tiny_dataset())
    assert isinstance(clf.root, Split)
    assert list(clf.predict([[1, 5]])) == ['a']
    assert list(clf.predict([[9, 1]])) == ['b']
    assert clf.height() == 1
    assert clf.export_rules() == ['X[0] <= 1.0 => a', 'X[0] > 1.0 => b']


def test_single_label_is_single_leaf():
    dataset = Labeled([[1.0], [2.0], [3.0], [4.0], [5.0]], ['a'] * 5)
    clf = ClassificationTree(max_leaf_size=1, min_purity_increase=0.0)
    clf.train(dataset)
    assert isinstance(clf.root, Outcome)
    assert clf.root.outcome == 'a'
    assert clf.root.impurity == 0.0
    assert clf.root.n == 5
    assert clf.height() == 0
    assert clf.export_rules() == ['<root> => a']


def test_huge_min_purity_increase_gives_single_leaf():
    clf = ClassificationTree(max_leaf_size=1, min_purity_increase=1e6)
    clf.train(_ladder_dataset())
    assert clf.root.kind == "outcome"
    assert clf.root.outcome == 'a'
    assert clf.root.probabilities == {'a': 0.5, 'b': 0.25, 'c': 0.25}


def test_majority_tie_keeps_first_label_seen():
    clf = ClassificationTree(max_leaf_size=5)
    clf.train(Labeled([[1.0], [2.0]], ['b', 'a']))
    assert clf.root.outcome == 'b'


def test_split_node_records_impurity_and_count():
    clf = ClassificationTree(max_leaf_size=1, min_purity_increase=0.0)
    clf.train(_tiny_dataset())
    root = clf.root
    assert root.column == 0
    assert root.value == 1.0
    assert root.n == 3
    assert root.impurity == pytest.approx(13 / 9)
    assert root.left.n == 2 and root.right.n == 1


def test_categorical_split_uses_equality():
    clf = ClassificationTree(max_leaf_size=1, min_purity_increase=0.0)
    clf.train(_colors_dataset())
    assert clf.root.column == 0
    assert clf.root.value == 'red'
    assert clf.root.column_type == 'categorical'
    assert list(clf.predict([['red', 5.0], ['purple', 1.0]])) == ['x', 'y']
    assert clf.export_rules(feature_names=['color', 'size']) == [
        'color == red => x',
        'color != red => y',
    ]


def test_probability_is_densified_over_training_classes():
    clf = ClassificationTree(max_depth=1, max_leaf_size=1, min_purity_increase=0.0)
    clf.train(_ladder_dataset())
    probs = clf.probability(Dataset([[1], [4]]))
    assert probs[0] == {'a': 1.0, 'b': 0.0, 'c': 0.0}
    assert probs[1] == {'a': 0.0, 'b': 0.5, 'c': 0.5}
    for dist in probs:
        assert list(dist) == ['a', 'b', 'c']


def test_predict_proba_rows_sum_to_one():
    dataset = _random_dataset()
    clf = ClassificationTree(max_depth=3).fit(dataset.samples(), dataset.labels())
    proba = clf.predict_proba(dataset.samples())
    assert proba.shape == (dataset.num_rows(), len(clf.classes_))
    assert np.allclose(proba.sum(axis=1), 1.0)


def test_training_rows_are_classified_perfectly_when_grown_fully():
    dataset = _random_dataset()
    clf = ClassificationTree(max_leaf_size=1, min_purity_increase=0.0)
    clf.fit(dataset.samples(), dataset.labels())
    assert clf.score(dataset.samples(), dataset.labels()) == 1.0


def test_same_seed_gives_identical_trees():
    dataset = _random_dataset(seed=3)
    a = ClassificationTree(max_features=2, random_state=7)
    b = ClassificationTree(max_features=2, random_state=7)
    a.train(dataset)
    b.train(dataset)
    assert a.root == b.root
    assert a.export_rules() == b.export_rules()


def test_retraining_same_learner_is_reproducible():
    dataset = _random_dataset(seed=5)
    clf = ClassificationTree(max_features=1, random_state=11)
    clf.train(dataset)
    first = clf.root
    clf.train(dataset)
    assert clf.root == first


def test_max_depth_bounds_height():
    dataset = _random_dataset()
    for max_depth in (1, 2, 3):
        clf = ClassificationTree(max_depth=max_depth, max_leaf_size=1, min_purity_increase=0.0)
        clf.train(dataset)
        assert clf.height() <= max_depth
        assert max(depth for _, depth in _walk(clf.root)) <= max_depth


def test_leaves_respect_max_leaf_size_unless_pure():
    dataset = _random_dataset(seed=1)
    clf = ClassificationTree(max_leaf_size=4, min_purity_increase=0.0)
    clf.train(dataset)
    for leaf in clf.leaves():
        assert leaf.n <= 4 or leaf.impurity == 0.0


def test_split_nodes_have_two_children():
    clf = ClassificationTree(max_leaf_size=2)
    clf.train(_random_dataset())
    for node, _ in _walk(clf.root):
        if node.kind == "split":
            assert node.left is not None and node.right is not None
            assert node.left.n + node.right.n == node.n
    assert clf.node_count() == sum(1 for _ in _walk(clf.root))


def test_training_rows_follow_the_split_rules():
    dataset = _random_dataset(seed=2)
    clf = ClassificationTree(max_depth=4)
    clf.train(dataset)
    predictions = clf.predict(dataset)
    for row, predicted in zip(dataset.samples(), predictions):
        node = clf.root
        while node.kind == "split":
            if row[node.column] <= node.value:
                node = node.left
            else:
                node = node.right
        assert node.outcome == predicted


def test_retrain_discards_previous_tree():
    clf = ClassificationTree(max_leaf_size=1, min_purity_increase=0.0)
    clf.train(_tiny_dataset())
    clf.train(_colors_dataset())
    assert list(clf.classes_) == ['x', 'y']
    assert clf.n_features_ == 2
    assert clf.root.value == 'red'


def test_feature_importances():
    clf = ClassificationTree(max_leaf_size=1, min_purity_increase=0.0)
    clf.train(_colors_dataset())
    assert np.allclose(clf.feature_importances_, [1.0, 0.0])

    leaf_only = ClassificationTree(max_leaf_size=10).fit([[1.0], [2.0]], ['a', 'b'])
    assert np.allclose(leaf_only.feature_importances(), [0.0])


def test_params_snapshot_is_immutable():
    clf = ClassificationTree(max_depth=4, max_leaf_size=2, max_features=3, min_purity_increase=0.01)
    params = clf.params()
    assert params.as_dict() == {
        'max_depth': 4,
        'max_leaf_size': 2,
        'max_features': 3,
        'min_purity_increase': 0.01,
    }
    with pytest.raises(dataclasses.FrozenInstanceError):
        params.max_depth = 10


@pytest.mark.parametrize("kwargs", [
    {'max_depth': 0},
    {'max_depth': 2.5},
    {'max_leaf_size': -1},
    {'max_leaf_size': 0},
    {'max_features': 0},
    {'min_purity_increase': -0.1},
])
def test_invalid_configuration_raises(kwargs):
    with pytest.raises(ConfigurationError):
        ClassificationTree(**kwargs)


def test_set_params_validates():
    clf = ClassificationTree()
    with pytest.raises(ConfigurationError):
        clf.set_params(max_leaf_size=0)
    assert clf.max_leaf_size == 3
    clf.set_params(max_leaf_size=5, random_state=1)
    assert clf.params().max_leaf_size == 5


def test_classifier_not_trained_raises():
    clf = ClassificationTree()
    assert not clf.trained()
    with pytest.raises(NotTrainedError):
        clf.predict([[1, 5]])
    with pytest.raises(NotTrainedError):
        clf.probability([[1, 5]])
    with pytest.raises(NotFittedError):
        clf.predict_proba([[1, 5]])
    with pytest.raises(NotTrainedError):
        clf.export_rules()


def test_train_rejects_unlabeled_dataset():
    with pytest.raises(InvalidInputError):
        ClassificationTree().train(Dataset([[1.0], [2.0]]))


def test_train_rejects_empty_dataset():
    with pytest.raises(InvalidInputError):
        ClassificationTree().train(Labeled([], []))


def test_train_rejects_incompatible_column_type():
    with pytest.raises(InvalidInputError):
        ClassificationTree().train(Labeled([[True], [False]], ['a', 'b']))


def test_train_rejects_continuous_labels():
    with pytest.raises(InvalidInputError):
        ClassificationTree().fit([[1.0], [2.0]], [0.5, 1.5])


def test_failed_train_keeps_previous_tree():
    clf = ClassificationTree(max_leaf_size=1, min_purity_increase=0.0)
    clf.train(_tiny_dataset())
    root = clf.root
    with pytest.raises(InvalidInputError):
        clf.train(Dataset([[1, 5]]))
    assert clf.root is root
    assert list(clf.predict([[9, 1]])) == ['b']


def test_predict_rejects_wrong_width():
    clf = ClassificationTree(max_leaf_size=1).fit([[1, 5], [9, 1]], ['a', 'b'])
    with pytest.raises(InvalidInputError):
        clf.predict([[1, 5, 3]])


def test_predict_empty_dataset():
    clf = ClassificationTree(max_leaf_size=1).fit([[1, 5], [9, 1]], ['a', 'b'])
    assert len(clf.predict([])) == 0
    assert clf.predict_proba([]).shape == (0, 2)


def test_out_of_domain_values_route_right():
    clf = ClassificationTree(max_leaf_size=1, min_purity_increase=0.0)
    clf.train(_colors_dataset())
    # root tests color == red; a number is never equal to a category
    assert list(clf.predict([[5, 1.0]])) == ['y']
    assert list(clf.predict([['red', None]])) == ['x']

    clf.train(_tiny_dataset())
    # root tests X[0] <= 1.0; None and strings cannot pass a threshold
    assert list(clf.predict([[None, 5], ['red', 5], [1, 5]])) == ['b', 'b', 'a']
    assert list(clf.predict([[float('nan'), 5]])) == ['b']
    assert clf.probability([[None, 5]]) == [{'a': 0.0, 'b': 1.0}]


def test_search_requires_trained_tree():
    with pytest.raises(NotTrainedError):
        ClassificationTree().search([1, 5])


def test_deep_ladder_does_not_hit_recursion_limit(capsys):
    n = 1100
    X = [[float(i)] for i in range(n)]
    y = ['a' if i % 2 else 'b' for i in range(n)]
    clf = ClassificationTree()
    clf.train(Labeled(X, y))

    # every split peels off a single row until max_leaf_size rows remain
    assert clf.height() == n - 3
    assert clf.leaf_count() == n - 2
    assert list(clf.predict(X[:10])) == y[:10]
    assert len(clf.export_rules()) == n - 2
    clf.print_tree()
    assert capsys.readouterr().out.count('Predict') == n - 2


def test_print_tree(capsys):
    clf = ClassificationTree(max_leaf_size=1, min_purity_increase=0.0)
    clf.train(_colors_dataset())
    clf.print_tree(feature_names=['color', 'size'])
    out = capsys.readouterr().out
    assert 'if color == red:' in out
    assert 'Predict x' in out
    assert 'else:' in out


def test_classifier_graphviz_export(tmp_path):
    pytest.importorskip("graphviz")
    clf = ClassificationTree(max_leaf_size=1, min_purity_increase=0.0)
    clf.train(_tiny_dataset())
    source = clf.export_graphviz()
    assert 'digraph' in source
    out_path = clf.export_graphviz(str(tmp_path / 'tree'), feature_names=['f0', 'f1'], format='dot')
    assert out_path.endswith('.dot')
    assert (tmp_path / 'tree.dot').exists()
