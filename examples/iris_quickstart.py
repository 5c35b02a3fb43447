import numpy as np
from sklearn.datasets import load_iris
from sklearn.tree import DecisionTreeClassifier

from cartpy import ClassificationTree, Labeled, enable_logging

data = load_iris()
labels = data.target_names[data.target]

# Hold out a stratified 30% for testing
dataset = Labeled(data.data, labels).randomize(0)
testing, training = dataset.stratified_split(0.3)

tree = ClassificationTree(max_depth=4, max_leaf_size=2, random_state=0)
with enable_logging(level="INFO"):
    tree.train(training)

predictions = tree.predict(testing)
accuracy = np.mean(predictions == testing.labels())
print(f"cartpy accuracy:  {accuracy:.4f}  (height={tree.height()}, leaves={tree.leaf_count()})")

sk = DecisionTreeClassifier(max_depth=4, random_state=0)
sk.fit(training.samples().astype(float), training.labels().astype(str))
sk_accuracy = np.mean(sk.predict(testing.samples().astype(float)) == testing.labels())
print(f"sklearn accuracy: {sk_accuracy:.4f}")

tree.print_tree(feature_names=data.feature_names)
for name, importance in zip(data.feature_names, tree.feature_importances_):
    print(f"{name:>20}: {importance:.3f}")
