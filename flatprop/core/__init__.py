"""Core numerical primitives for flatprop."""

from . import activations, errors, network, optimizers, patterns, serialization, strategies, types

__all__ = [
    "activations",
    "errors",
    "network",
    "optimizers",
    "patterns",
    "serialization",
    "strategies",
    "types",
]
