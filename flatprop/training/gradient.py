"""Forward and backward pass producing one gradient per weight."""

from __future__ import annotations

import numpy as np

from ..core.errors import ConfigurationError
from ..core.network import FlatNetwork
from ..core.types import Array, Batch
from .losses import REGISTRY as LOSS_REGISTRY
from .losses import Loss


def as_training_set(network: FlatNetwork, inputs, targets) -> Batch:
    """Validate ``inputs``/``targets`` against ``network`` and wrap them."""

    x = np.asarray(inputs, dtype=np.float64)
    y = np.asarray(targets, dtype=np.float64)
    if x.ndim != 2 or y.ndim != 2:
        raise ConfigurationError("Inputs and targets must be two-dimensional (samples, values)")
    if x.shape[0] == 0:
        raise ConfigurationError("The training set is empty")
    if x.shape[0] != y.shape[0]:
        raise ConfigurationError(
            f"Got {x.shape[0]} input rows but {y.shape[0]} target rows"
        )
    if x.shape[1] != network.input_count:
        raise ConfigurationError(
            f"Inputs have {x.shape[1]} columns, the network expects {network.input_count}"
        )
    if y.shape[1] != network.output_count:
        raise ConfigurationError(
            f"Targets have {y.shape[1]} columns, the network produces {network.output_count}"
        )
    return Batch(inputs=x, targets=y)


class GradientComputation:
    """Compute loss gradients of a :class:`FlatNetwork` over a batch.

    The training set is validated when the computation is built, so a shape
    mismatch never surfaces halfway through an iteration. ``compute`` leaves
    the weights untouched; recurrent context neurons do advance.
    """

    def __init__(self, network: FlatNetwork, inputs, targets, loss: str | Loss = "mse") -> None:
        self.network = network
        self.training = as_training_set(network, inputs, targets)
        self.loss = LOSS_REGISTRY.get(loss) if isinstance(loss, str) else loss

    def compute(self, batch: Batch | None = None) -> tuple[Array, float]:
        """Return ``(gradients, error)`` for ``batch`` (default: the full set)."""

        network = self.network
        batch = batch if batch is not None else self.training
        outputs, state = network.forward(batch.inputs)
        error, delta = self.loss(outputs, batch.targets)

        gradients = np.empty(network.weight_count)
        samples = batch.inputs.shape[0]
        last = len(state.sources) - 1
        delta = delta * network.activation(last + 1).derivative(
            state.pre_activations[last], state.outputs[last]
        )
        for k in reversed(range(last + 1)):
            start, end = network.weight_index[k], network.weight_index[k + 1]
            gradients[start:end] = (state.sources[k].T @ delta / samples).ravel()
            if k == 0:
                break
            # context and bias rows have no upstream neurons
            neurons = network.layers[k].neurons
            delta = (delta @ network.matrix(k)[:neurons].T) * network.activation(k).derivative(
                state.pre_activations[k - 1], state.outputs[k - 1]
            )
        return gradients, float(error)


__all__ = ["GradientComputation", "as_training_set"]
