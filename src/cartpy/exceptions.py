# -*- coding: utf-8 -*-
"""
cartpy.exceptions
=================

Errors raised by the classification tree and its dataset glue.

- ``InvalidInputError``: the training or inference data cannot be used
  (unlabeled, empty, ragged rows or an unsupported column type).
- ``NotTrainedError``: inference was requested before ``train``/``fit``.
- ``ConfigurationError``: a hyper-parameter is outside its valid domain.
"""
from __future__ import annotations

from sklearn.exceptions import NotFittedError


class InvalidInputError(ValueError):
    """Raised when a dataset is rejected before training or inference."""


class NotTrainedError(NotFittedError):
    """Raised when a learner is queried before it has been trained.

    Subclasses scikit-learn's ``NotFittedError`` so callers that already
    guard against unfitted estimators keep working.
    """

    def __init__(self, message: str = "Estimator has not been trained. Call train(...) or fit(...) first."):
        super().__init__(message)


class ConfigurationError(ValueError):
    """Raised when a hyper-parameter is out of its valid domain.

    Attributes
    ----------
    param : str
        Name of the offending hyper-parameter.
    value : object
        The rejected value.
    """

    def __init__(self, param: str, value, expected: str):
        super().__init__(f"{param} must be {expected}, {value!r} given.")
        self.param = param
        self.value = value
