"""Optimizer plugins for stochastic gradient descent.

Each optimizer implements :class:`~flatprop.core.strategies.WeightUpdateStrategy`
and owns its per-weight state, allocated once by :meth:`init`.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable

import numpy as np

from .errors import ConfigurationError
from .types import Array


def _empty() -> Array:
    return np.zeros(0)


@dataclass
class Momentum:
    """Classic momentum: ``v = mu * v - lr * g``."""

    learning_rate: float = 0.01
    momentum: float = 0.9
    velocity: Array = field(default_factory=_empty, init=False, repr=False)

    def init(self, weight_count: int) -> None:
        self.velocity = np.zeros(weight_count)

    def begin_iteration(self, error: float, last_error: float) -> None:
        return None

    def update_weight(self, gradients: Array, last_gradient: Array, index: int, dropout_rate: float = 0.0) -> float:
        if dropout_rate > 0:
            return 0.0
        self.velocity[index] = self.momentum * self.velocity[index] - self.learning_rate * gradients[index]
        return float(self.velocity[index])


@dataclass
class Nesterov:
    """Nesterov accelerated gradient.

    The look-ahead is folded into the update: the returned change corrects
    the new velocity with the previous one, ``-mu * v_prev + (1 + mu) * v``.
    """

    learning_rate: float = 0.01
    momentum: float = 0.9
    velocity: Array = field(default_factory=_empty, init=False, repr=False)

    def init(self, weight_count: int) -> None:
        self.velocity = np.zeros(weight_count)

    def begin_iteration(self, error: float, last_error: float) -> None:
        return None

    def update_weight(self, gradients: Array, last_gradient: Array, index: int, dropout_rate: float = 0.0) -> float:
        if dropout_rate > 0:
            return 0.0
        previous = self.velocity[index]
        current = self.momentum * previous - self.learning_rate * gradients[index]
        self.velocity[index] = current
        return float(-self.momentum * previous + (1.0 + self.momentum) * current)


@dataclass
class AdaGrad:
    """Per-weight rate scaled by the root of all squared gradients so far."""

    learning_rate: float = 0.01
    epsilon: float = 1e-8
    cache: Array = field(default_factory=_empty, init=False, repr=False)

    def init(self, weight_count: int) -> None:
        self.cache = np.zeros(weight_count)

    def begin_iteration(self, error: float, last_error: float) -> None:
        return None

    def update_weight(self, gradients: Array, last_gradient: Array, index: int, dropout_rate: float = 0.0) -> float:
        if dropout_rate > 0:
            return 0.0
        gradient = gradients[index]
        self.cache[index] += gradient * gradient
        return float(-self.learning_rate * gradient / (math.sqrt(self.cache[index]) + self.epsilon))


@dataclass
class RMSProp:
    """Like AdaGrad with an exponentially decaying squared-gradient average."""

    learning_rate: float = 0.001
    decay: float = 0.9
    epsilon: float = 1e-8
    cache: Array = field(default_factory=_empty, init=False, repr=False)

    def init(self, weight_count: int) -> None:
        self.cache = np.zeros(weight_count)

    def begin_iteration(self, error: float, last_error: float) -> None:
        return None

    def update_weight(self, gradients: Array, last_gradient: Array, index: int, dropout_rate: float = 0.0) -> float:
        if dropout_rate > 0:
            return 0.0
        gradient = gradients[index]
        self.cache[index] = self.decay * self.cache[index] + (1.0 - self.decay) * gradient * gradient
        return float(-self.learning_rate * gradient / (math.sqrt(self.cache[index]) + self.epsilon))


@dataclass
class Adam:
    """Adam with bias-corrected first and second moment estimates.

    ``timestep`` advances once per iteration, not once per weight.
    """

    learning_rate: float = 0.001
    beta1: float = 0.9
    beta2: float = 0.999
    epsilon: float = 1e-8
    m: Array = field(default_factory=_empty, init=False, repr=False)
    v: Array = field(default_factory=_empty, init=False, repr=False)
    timestep: int = field(default=0, init=False)

    def init(self, weight_count: int) -> None:
        self.m = np.zeros(weight_count)
        self.v = np.zeros(weight_count)
        self.timestep = 0

    def begin_iteration(self, error: float, last_error: float) -> None:
        self.timestep += 1

    def update_weight(self, gradients: Array, last_gradient: Array, index: int, dropout_rate: float = 0.0) -> float:
        if dropout_rate > 0:
            return 0.0
        gradient = gradients[index]
        self.m[index] = self.beta1 * self.m[index] + (1.0 - self.beta1) * gradient
        self.v[index] = self.beta2 * self.v[index] + (1.0 - self.beta2) * gradient * gradient
        t = max(self.timestep, 1)
        m_hat = self.m[index] / (1.0 - self.beta1**t)
        v_hat = self.v[index] / (1.0 - self.beta2**t)
        return float(-self.learning_rate * m_hat / (math.sqrt(v_hat) + self.epsilon))


OPTIMIZERS: Dict[str, Callable[..., object]] = {
    "momentum": Momentum,
    "nesterov": Nesterov,
    "adagrad": AdaGrad,
    "rmsprop": RMSProp,
    "adam": Adam,
}


def make_optimizer(name: str, **options: float):
    """Instantiate the optimizer registered under ``name``."""

    try:
        factory = OPTIMIZERS[name.lower()]
    except KeyError as exc:
        available = ", ".join(sorted(OPTIMIZERS))
        raise ConfigurationError(
            f"Unknown optimizer {name!r}. Available optimizers: {available}"
        ) from exc
    try:
        return factory(**options)
    except TypeError as exc:
        raise ConfigurationError(f"Invalid options for optimizer {name!r}: {exc}") from exc


def names() -> Iterable[str]:
    return sorted(OPTIMIZERS)


__all__ = ["AdaGrad", "Adam", "Momentum", "Nesterov", "OPTIMIZERS", "RMSProp", "make_optimizer", "names"]
