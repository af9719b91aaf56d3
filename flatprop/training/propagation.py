"""Propagation trainers: one gradient step over a batch per iteration."""

from __future__ import annotations

import logging

import numpy as np

from ..core.errors import ConfigurationError
from ..core.network import FlatNetwork
from ..core.optimizers import Adam
from ..core.strategies import (
    DEFAULT_INITIAL_UPDATE,
    DEFAULT_MAX_STEP,
    DEFAULT_ZERO_TOLERANCE,
    ResilientUpdate,
    RPROPType,
    WeightUpdateStrategy,
    make_rprop,
)
from ..core.types import Array, Batch
from .gradient import GradientComputation
from .losses import Loss

logger = logging.getLogger(__name__)


class Propagation:
    """Drive training iterations of ``network`` with a weight update strategy.

    Each call to :meth:`iteration` computes the gradients of the current
    batch, asks ``strategy`` for the change of every weight, applies the
    changes in place and finally records the batch error as ``last_error``.

    ``batch_size=0`` trains on the full training set every iteration; a
    positive size walks consecutive windows of that many samples.
    """

    def __init__(
        self,
        network: FlatNetwork,
        inputs,
        targets,
        strategy: WeightUpdateStrategy,
        *,
        loss: str | Loss = "mse",
        batch_size: int = 0,
    ) -> None:
        if network.weight_count == 0:
            raise ConfigurationError("Cannot train a network without weights")
        if batch_size < 0:
            raise ConfigurationError("batch_size must be zero (full set) or positive")
        self.network = network
        self.gradient = GradientComputation(network, inputs, targets, loss=loss)
        self.batch_size = int(batch_size)
        self.strategy = strategy

        count = network.weight_count
        self.gradients: Array = np.zeros(count)
        self.last_gradient: Array = np.zeros(count)
        self.last_delta: Array = np.zeros(count)
        self.dropout_rates: Array = network.weight_dropout_rates()
        self.strategy.init(count)

        self.error = float("inf")
        self.last_error = float("inf")
        self.iteration_count = 0
        self._cursor = 0
        logger.debug(
            "%s ready: %d weights, %d training pairs",
            type(self).__name__,
            count,
            self.training_size,
        )

    @property
    def training(self) -> Batch:
        return self.gradient.training

    @property
    def training_size(self) -> int:
        return len(self.gradient.training)

    @property
    def trained(self) -> bool:
        return self.iteration_count > 0

    def iteration(self, count: int = 1) -> float:
        """Run ``count`` training iterations and return the latest error."""

        for _ in range(count):
            self._iteration()
        return self.error

    def post_iteration(self) -> None:
        self.last_error = self.error

    def next_batch(self) -> Batch:
        training = self.gradient.training
        size = len(training)
        if self.batch_size == 0 or self.batch_size >= size:
            return training
        start = self._cursor
        indices = np.arange(start, start + self.batch_size) % size
        self._cursor = (start + self.batch_size) % size
        return Batch(inputs=training.inputs[indices], targets=training.targets[indices])

    def _iteration(self) -> None:
        gradients, error = self.gradient.compute(self.next_batch())
        self.gradients[:] = gradients
        self.error = error
        self.strategy.begin_iteration(error, self.last_error)

        weights = self.network.weights
        for index in range(weights.size):
            change = self.strategy.update_weight(
                self.gradients, self.last_gradient, index, self.dropout_rates[index]
            )
            weights[index] += change
            self.last_delta[index] = change

        self.iteration_count += 1
        self.post_iteration()


class ResilientPropagation(Propagation):
    """Train with one of the RPROP variants.

    The defaults (initial update 0.1, max step 50, RPROP+) suit nearly all
    problems. RPROP does not work well with online training: prefer the full
    training set (``batch_size=0``) or large batches.
    """

    def __init__(
        self,
        network: FlatNetwork,
        inputs,
        targets,
        *,
        initial_update: float = DEFAULT_INITIAL_UPDATE,
        max_step: float = DEFAULT_MAX_STEP,
        zero_tolerance: float = DEFAULT_ZERO_TOLERANCE,
        rprop_type: RPROPType | str = RPROPType.RPROPp,
        loss: str | Loss = "mse",
        batch_size: int = 0,
    ) -> None:
        strategy = make_rprop(
            rprop_type,
            initial_update=initial_update,
            max_step=max_step,
            zero_tolerance=zero_tolerance,
        )
        super().__init__(network, inputs, targets, strategy, loss=loss, batch_size=batch_size)

    @property
    def rprop_type(self) -> RPROPType:
        return self.strategy.rprop_type

    @rprop_type.setter
    def rprop_type(self, value: RPROPType | str) -> None:
        current: ResilientUpdate = self.strategy
        replacement = make_rprop(
            value,
            initial_update=current.initial_update,
            max_step=current.max_step,
            zero_tolerance=current.zero_tolerance,
        )
        replacement.adopt(current)
        self.strategy = replacement

    @property
    def update_values(self) -> Array:
        return self.strategy.update_values


class StochasticGradientDescent(Propagation):
    """Mini-batch gradient descent with a pluggable optimizer.

    Every iteration draws ``batch_size`` distinct samples at random (kept in
    their original order so recurrent context stays meaningful). ``update``
    defaults to :class:`~flatprop.core.optimizers.Adam`.
    """

    def __init__(
        self,
        network: FlatNetwork,
        inputs,
        targets,
        update: WeightUpdateStrategy | None = None,
        *,
        batch_size: int = 25,
        seed: int | None = 0,
        loss: str | Loss = "mse",
    ) -> None:
        if batch_size <= 0:
            raise ConfigurationError("Stochastic gradient descent needs a positive batch_size")
        super().__init__(
            network,
            inputs,
            targets,
            update if update is not None else Adam(),
            loss=loss,
            batch_size=batch_size,
        )
        self._rng = np.random.default_rng(seed)

    @property
    def update(self) -> WeightUpdateStrategy:
        return self.strategy

    def next_batch(self) -> Batch:
        training = self.gradient.training
        size = len(training)
        if self.batch_size >= size:
            return training
        indices = np.sort(self._rng.choice(size, size=self.batch_size, replace=False))
        return Batch(inputs=training.inputs[indices], targets=training.targets[indices])


__all__ = ["Propagation", "ResilientPropagation", "StochasticGradientDescent"]
