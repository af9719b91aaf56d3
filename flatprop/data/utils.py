"""Helpers for preparing training sets: splitting, scaling and encoding."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

import numpy as np
from sklearn.preprocessing import LabelEncoder

from ..core.errors import ConfigurationError
from ..core.types import Array

ROUND_PRECISION = 7


@dataclass(frozen=True)
class Split:
    """Ordered train/test partition of a dataset."""

    train: Any
    test: Any


def train_test_split(dataset: Sequence[Any] | Array, test_size: float = 0.2) -> Split:
    """Split ``dataset`` in order: the head trains, the tail tests."""

    if not 0 < test_size < 1:
        raise ConfigurationError("Test size should be between 0 and 1")
    cut = int(len(dataset) * (1 - test_size))
    return Split(train=dataset[:cut], test=dataset[cut:])


@dataclass(frozen=True)
class MinMax:
    min: float
    max: float


def calc_min_max(values: Array) -> List[MinMax]:
    """Return the per-column minimum and maximum of ``values``."""

    array = np.asarray(values, dtype=np.float64)
    return [MinMax(float(lo), float(hi)) for lo, hi in zip(array.min(axis=0), array.max(axis=0))]


def feature_scaling(
    value: float,
    min_value: float,
    max_value: float,
    min_range: float = -1.0,
    max_range: float = 1.0,
) -> float:
    """Rescale ``value`` from ``[min_value, max_value]`` to the target range."""

    if min_value >= max_value:
        raise ConfigurationError("Min value should be smaller than Max value")
    if min_range >= max_range:
        raise ConfigurationError("Min range should be smaller than Max range")
    scaled = min_range + (max_range - min_range) * ((value - min_value) / (max_value - min_value))
    return round(scaled, ROUND_PRECISION)


def normalize_data(values: Array, min_range: float = -1.0, max_range: float = 1.0) -> Array:
    """Min-max scale every column of ``values``; NaNs count as zero.

    Constant columns cannot be scaled and raise :class:`ConfigurationError`.
    """

    array = np.nan_to_num(np.asarray(values, dtype=np.float64), nan=0.0)
    if min_range >= max_range:
        raise ConfigurationError("Min range should be smaller than Max range")
    lo = array.min(axis=0)
    hi = array.max(axis=0)
    if np.any(lo >= hi):
        raise ConfigurationError("Min value should be smaller than Max value")
    scaled = min_range + (max_range - min_range) * (array - lo) / (hi - lo)
    return np.round(scaled, ROUND_PRECISION)


@dataclass
class OneHot:
    """One-hot encoder over the distinct labels of a column."""

    encoder: LabelEncoder = field(default_factory=LabelEncoder, repr=False)

    def fit(self, values: Sequence[Any]) -> "OneHot":
        self.encoder.fit(list(values))
        return self

    @property
    def classes(self) -> List[Any]:
        return self.encoder.classes_.tolist()

    def transform(self, values: Sequence[Any]) -> List[List[int]]:
        indices = self.encoder.transform(list(values))
        return np.eye(len(self.encoder.classes_), dtype=int)[indices].tolist()

    def columns(self, prefix: str = "") -> List[str]:
        return [f"{prefix}_{label}" for label in self.classes]

    def fit_transform(self, values: Sequence[Any], prefix: str = "") -> Dict[str, List[Any]]:
        self.fit(values)
        return {"columns": self.columns(prefix), "values": self.transform(values)}

    def inverse_transform(self, rows: Array) -> List[Any]:
        indices = np.argmax(np.asarray(rows), axis=1)
        return self.encoder.inverse_transform(indices).tolist()


__all__ = [
    "MinMax",
    "OneHot",
    "Split",
    "calc_min_max",
    "feature_scaling",
    "normalize_data",
    "train_test_split",
]
