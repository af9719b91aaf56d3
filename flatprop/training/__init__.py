"""Propagation trainers and the training loop."""

from .gradient import GradientComputation
from .propagation import Propagation, ResilientPropagation, StochasticGradientDescent
from .trainer import Trainer, train

__all__ = [
    "GradientComputation",
    "Propagation",
    "ResilientPropagation",
    "StochasticGradientDescent",
    "Trainer",
    "train",
]
