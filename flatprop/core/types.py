"""Core typing contracts for flatprop."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Tuple

import numpy as np

Array = np.ndarray


@dataclass(frozen=True)
class Batch:
    """A single batch of training pairs."""

    inputs: Array
    targets: Array

    def __len__(self) -> int:
        return int(self.inputs.shape[0])


@dataclass
class ForwardState:
    """Intermediate values captured during the forward pass.

    ``sources[k]`` is the input matrix of connection block ``k`` (layer
    outputs, then context values, then the bias column), ``pre_activations[k]``
    and ``outputs[k]`` belong to layer ``k + 1``.
    """

    sources: List[Array]
    pre_activations: List[Array]
    outputs: List[Array]


@dataclass(frozen=True)
class TrainResult:
    """Summary returned by :func:`flatprop.training.trainer.train`."""

    iterations: int
    error: float
    history: Tuple[float, ...] = field(default_factory=tuple)
