# cartpy/__init__.py
"""
cartpy: CART-style classification trees in pure Python (scikit-learn style).

Exports:
    - ClassificationTree, TreeParams
    - Dataset, Labeled
    - InvalidInputError, NotTrainedError, ConfigurationError
    - enable_logging
"""
from loguru import logger

from .dataset import Dataset, Labeled
from .exceptions import ConfigurationError, InvalidInputError, NotTrainedError
from .logging import PACKAGE_NAME, enable_logging
from .nodes import Outcome, Split
from .tree import ClassificationTree, TreeParams

logger.disable(PACKAGE_NAME)

__all__ = [
    "ClassificationTree",
    "TreeParams",
    "Dataset",
    "Labeled",
    "Split",
    "Outcome",
    "InvalidInputError",
    "NotTrainedError",
    "ConfigurationError",
    "enable_logging",
]
__version__ = "0.1.0"
