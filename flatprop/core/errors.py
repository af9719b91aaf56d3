"""Exceptions raised by flatprop."""

from __future__ import annotations


class FlatPropError(Exception):
    """Base class for flatprop errors."""


class ConfigurationError(FlatPropError, ValueError):
    """Raised when a network, training set or trainer is misconfigured.

    These are fatal: they surface at construction time (or on first use)
    and training never starts.
    """


__all__ = ["FlatPropError", "ConfigurationError"]
