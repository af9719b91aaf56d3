"""Activation functions for flatprop."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable

import numpy as np

from .errors import ConfigurationError
from .types import Array


@dataclass(frozen=True)
class Activation:
    """Named activation with its derivative.

    ``derivative`` receives both the pre-activation ``z`` and the activated
    value ``y`` so that functions such as the sigmoid can reuse ``y``.
    """

    name: str
    fn: Callable[[Array], Array]
    derivative: Callable[[Array, Array], Array]

    def __call__(self, z: Array) -> Array:
        return self.fn(z)


def linear(x: Array) -> Array:
    return x


def sigmoid(x: Array) -> Array:
    """Return the logistic sigmoid of ``x``."""

    return 1.0 / (1.0 + np.exp(-np.clip(x, -500.0, 500.0)))


def tanh(x: Array) -> Array:
    return np.tanh(x)


def relu(x: Array) -> Array:
    """Return the ReLU activation."""

    return np.maximum(x, 0.0)


_ACTIVATIONS: Dict[str, Activation] = {
    "linear": Activation("linear", linear, lambda z, y: np.ones_like(z)),
    "sigmoid": Activation("sigmoid", sigmoid, lambda z, y: y * (1.0 - y)),
    "tanh": Activation("tanh", tanh, lambda z, y: 1.0 - y**2),
    "relu": Activation("relu", relu, lambda z, y: (z > 0).astype(z.dtype)),
}


def get_activation(name: str) -> Activation:
    try:
        return _ACTIVATIONS[name.lower()]
    except KeyError as exc:
        available = ", ".join(sorted(_ACTIVATIONS))
        raise ConfigurationError(
            f"Unknown activation {name!r}. Available activations: {available}"
        ) from exc


def names() -> Iterable[str]:
    return sorted(_ACTIVATIONS)


__all__ = ["Activation", "get_activation", "linear", "names", "relu", "sigmoid", "tanh"]
