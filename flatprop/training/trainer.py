"""Training loop driving a propagation trainer until a stop condition holds."""

from __future__ import annotations

import logging
from typing import List, Mapping, Sequence

from ..core.errors import ConfigurationError
from ..core.types import TrainResult
from .propagation import Propagation

logger = logging.getLogger(__name__)

DEFAULT_MIN_ERROR = 0.01
DEFAULT_MAX_ITERATIONS = 10_000


class Trainer:
    """Repeatedly call :meth:`Propagation.iteration` and watch the error.

    Training stops once the error is at or below ``min_error`` and at least
    ``min_iterations`` iterations ran, or when ``max_iterations`` is reached.
    Callbacks receive ``on_step(iteration, {"error": ...})`` after every
    iteration and ``close()`` (when they define it) at the end.
    """

    def __init__(
        self,
        propagation: Propagation,
        callbacks: Sequence[object] | None = None,
    ) -> None:
        self.propagation = propagation
        self.callbacks = list(callbacks or [])

    def run(
        self,
        *,
        min_error: float = DEFAULT_MIN_ERROR,
        min_iterations: int = 0,
        max_iterations: int | None = DEFAULT_MAX_ITERATIONS,
    ) -> TrainResult:
        if min_iterations < 0:
            raise ConfigurationError("min_iterations must be non-negative")
        if max_iterations is not None and max_iterations < max(1, min_iterations):
            raise ConfigurationError("max_iterations must be at least max(1, min_iterations)")
        if max_iterations is None and min_error <= 0:
            raise ConfigurationError("Training without max_iterations needs a positive min_error")

        history: List[float] = []
        start = self.propagation.iteration_count
        while True:
            error = self.propagation.iteration()
            iterations = self.propagation.iteration_count - start
            history.append(error)
            self._emit_step(iterations, {"error": error})

            if iterations >= min_iterations and error <= min_error:
                logger.info("Reached error %.6f after %d iterations", error, iterations)
                break
            if max_iterations is not None and iterations >= max_iterations:
                logger.info(
                    "Stopped at max_iterations=%d with error %.6f", max_iterations, error
                )
                break

        for callback in self.callbacks:
            if hasattr(callback, "close"):
                callback.close()  # type: ignore[attr-defined]
        return TrainResult(iterations=iterations, error=error, history=tuple(history))

    def _emit_step(self, iteration: int, metrics: Mapping[str, float]) -> None:
        for callback in self.callbacks:
            if hasattr(callback, "on_step"):
                callback.on_step(iteration, metrics)  # type: ignore[attr-defined]
            elif callable(callback):
                callback(iteration, metrics)


def train(
    propagation: Propagation,
    *,
    min_error: float = DEFAULT_MIN_ERROR,
    min_iterations: int = 0,
    max_iterations: int | None = DEFAULT_MAX_ITERATIONS,
    callbacks: Sequence[object] | None = None,
) -> TrainResult:
    """Shortcut for ``Trainer(propagation, callbacks).run(...)``."""

    return Trainer(propagation, callbacks).run(
        min_error=min_error,
        min_iterations=min_iterations,
        max_iterations=max_iterations,
    )


__all__ = ["Trainer", "train", "DEFAULT_MIN_ERROR", "DEFAULT_MAX_ITERATIONS"]
