"""flatprop public API."""

from .core import activations, optimizers, strategies, types  # noqa: F401
from .core.errors import ConfigurationError, FlatPropError
from .core.network import FlatNetwork, Layer
from .core.patterns import ElmanPattern, FeedForwardPattern, JordanPattern
from .core.serialization import load_network, save_network
from .core.strategies import RPROPType
from .training.propagation import Propagation, ResilientPropagation, StochasticGradientDescent
from .training.trainer import Trainer, train

__all__ = [
    "ConfigurationError",
    "ElmanPattern",
    "FeedForwardPattern",
    "FlatNetwork",
    "FlatPropError",
    "JordanPattern",
    "Layer",
    "Propagation",
    "RPROPType",
    "ResilientPropagation",
    "StochasticGradientDescent",
    "Trainer",
    "activations",
    "load_network",
    "optimizers",
    "save_network",
    "strategies",
    "train",
    "types",
]
