"""Evaluation metrics for trained networks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Mapping

import numpy as np

from ..core.errors import ConfigurationError
from ..core.network import FlatNetwork
from ..core.types import Array


@dataclass(frozen=True)
class MetricResult:
    name: str
    value: float


def _class_indices(values: Array, threshold: float = 0.5) -> Array:
    if values.ndim == 2 and values.shape[1] > 1:
        return np.argmax(values, axis=1)
    return (values.reshape(-1) >= threshold).astype(int)


def compute_metric(name: str, predictions: Array, targets: Array) -> MetricResult:
    """Compute ``name`` for network outputs ``predictions``.

    ``accuracy`` and ``macro_f1`` take the argmax of multi-column outputs and
    threshold single-column outputs at 0.5.
    """

    key = name.lower()
    preds = np.asarray(predictions, dtype=np.float64)
    targs = np.asarray(targets, dtype=np.float64)
    if key == "mae":
        value = float(np.mean(np.abs(preds - targs)))
    elif key == "rmse":
        value = float(np.sqrt(np.mean((preds - targs) ** 2)))
    elif key == "r2":
        mean = np.mean(targs, axis=0, keepdims=True)
        ss_res = float(np.sum((targs - preds) ** 2))
        ss_tot = float(np.sum((targs - mean) ** 2))
        value = 1.0 if ss_tot == 0 else float(1 - ss_res / (ss_tot + 1e-9))
    elif key == "accuracy":
        value = float(np.mean(_class_indices(preds) == _class_indices(targs)))
    elif key == "macro_f1":
        pred_idx = _class_indices(preds)
        targ_idx = _class_indices(targs)
        num_classes = max(2, targs.shape[1] if targs.ndim == 2 else 1)
        f1_scores = []
        for cls in range(num_classes):
            tp = np.sum((pred_idx == cls) & (targ_idx == cls))
            fp = np.sum((pred_idx == cls) & (targ_idx != cls))
            fn = np.sum((pred_idx != cls) & (targ_idx == cls))
            precision = tp / (tp + fp + 1e-9)
            recall = tp / (tp + fn + 1e-9)
            f1_scores.append(2 * precision * recall / (precision + recall + 1e-9))
        value = float(np.mean(f1_scores))
    else:
        raise ConfigurationError(f"Unknown metric: {name}")
    return MetricResult(name=key, value=value)


def compute_metrics(names: Iterable[str], predictions: Array, targets: Array) -> Mapping[str, float]:
    results: Dict[str, float] = {}
    for name in names:
        metric = compute_metric(name, predictions, targets)
        results[metric.name] = metric.value
    return results


def validate_network(network: FlatNetwork, inputs: Array, targets: Array) -> float:
    """Return the classification accuracy of ``network`` in percent."""

    outputs = network.compute(inputs)
    return 100.0 * compute_metric("accuracy", outputs, targets).value


__all__ = ["MetricResult", "compute_metric", "compute_metrics", "validate_network"]
