"""Training set preparation helpers."""

from .loaders import read_training_csv
from .utils import (
    OneHot,
    calc_min_max,
    feature_scaling,
    normalize_data,
    train_test_split,
)

__all__ = [
    "OneHot",
    "calc_min_max",
    "feature_scaling",
    "normalize_data",
    "read_training_csv",
    "train_test_split",
]
