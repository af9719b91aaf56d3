"""Loss registry used by the gradient computation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable

import numpy as np

from ..core.errors import ConfigurationError
from ..core.types import Array

LossFn = Callable[[Array, Array], tuple[float, Array]]


@dataclass(frozen=True)
class Loss:
    """Loss wrapper returning both the scalar loss and dL/dy.

    dL/dy is scaled so that averaging ``source.T @ delta`` over the batch
    yields the exact gradient of the batch-averaged loss.
    """

    name: str
    fn: LossFn

    def __call__(self, predictions: Array, targets: Array) -> tuple[float, Array]:
        return self.fn(predictions, targets)


class LossRegistry:
    """Central registry for loss functions."""

    def __init__(self) -> None:
        self._registry: Dict[str, Loss] = {}

    def register(self, name: str, fn: LossFn) -> None:
        self._registry[name] = Loss(name, fn)

    def names(self) -> Iterable[str]:
        return sorted(self._registry)

    def get(self, name: str) -> Loss:
        try:
            return self._registry[name]
        except KeyError as exc:
            available = ", ".join(sorted(self._registry))
            raise ConfigurationError(
                f"Unknown loss {name!r}. Available losses: {available}"
            ) from exc


REGISTRY = LossRegistry()


def _mse(pred: Array, target: Array) -> tuple[float, Array]:
    diff = pred - target
    loss = float(np.mean(np.square(diff)))
    return loss, 2.0 * diff / diff.shape[1]


def _mae(pred: Array, target: Array) -> tuple[float, Array]:
    diff = pred - target
    loss = float(np.mean(np.abs(diff)))
    return loss, np.sign(diff) / diff.shape[1]


def _huber(pred: Array, target: Array, delta: float = 1.0) -> tuple[float, Array]:
    diff = pred - target
    abs_diff = np.abs(diff)
    quadratic = np.minimum(abs_diff, delta)
    linear = abs_diff - quadratic
    loss = float(np.mean(0.5 * quadratic**2 + delta * linear))
    grad = np.where(abs_diff <= delta, diff, delta * np.sign(diff))
    return loss, grad / diff.shape[1]


def _softmax(logits: Array) -> Array:
    shifted = logits - np.max(logits, axis=1, keepdims=True)
    exp = np.exp(shifted)
    return exp / np.sum(exp, axis=1, keepdims=True)


def _cross_entropy(logits: Array, target: Array) -> tuple[float, Array]:
    probs = _softmax(logits)
    eps = 1e-9
    loss = float(-np.mean(np.sum(target * np.log(probs + eps), axis=1)))
    return loss, probs - target


def _sigmoid(x: Array) -> Array:
    return 1.0 / (1.0 + np.exp(-x))


def _bce_with_logits(logits: Array, target: Array) -> tuple[float, Array]:
    probs = _sigmoid(logits)
    eps = 1e-9
    loss = float(-np.mean(target * np.log(probs + eps) + (1 - target) * np.log(1 - probs + eps)))
    return loss, (probs - target) / logits.shape[1]


REGISTRY.register("mse", _mse)
REGISTRY.register("mae", _mae)
REGISTRY.register("huber", _huber)
# ce and bce expect raw logits, i.e. a linear output layer
REGISTRY.register("ce", _cross_entropy)
REGISTRY.register("bce", _bce_with_logits)

__all__ = ["Loss", "LossRegistry", "REGISTRY"]
