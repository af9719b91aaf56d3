"""Flattened network representation used by the propagation trainers."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Mapping, Sequence

import numpy as np

from .activations import Activation, get_activation
from .errors import ConfigurationError
from .types import Array, ForwardState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Layer:
    """Description of one layer of a :class:`FlatNetwork`.

    Attributes
    ----------
    neurons:
        Number of regular neurons (bias and context neurons excluded).
    activation:
        Name of the activation applied to the layer's pre-activations. The
        input layer passes its values through unchanged.
    bias:
        Whether the layer carries a bias neuron feeding the next layer.
    context_fed_by:
        Index of the layer whose previous output is fed back into this layer
        as extra context neurons. The relation is resolved by index only.
    dropout_rate:
        Connections leaving this layer are frozen while the rate is
        positive.
    """

    neurons: int
    activation: str = "sigmoid"
    bias: bool = True
    context_fed_by: int | None = None
    dropout_rate: float = 0.0


class FlatNetwork:
    """All trainable weights of a layered network in one contiguous vector.

    Connection block ``k`` joins layer ``k`` to layer ``k + 1``. Its source
    rows are the neurons of layer ``k``, followed by its context neurons and
    finally its bias neuron. The block is stored row-major as a
    ``(source, target)`` matrix starting at ``weight_index[k]``.
    """

    def __init__(self, layers: Sequence[Layer], seed: int | None = None) -> None:
        self.layers = tuple(layers)
        self._validate()
        self._activations: List[Activation] = [
            get_activation(layer.activation) for layer in self.layers
        ]
        self.context_counts = tuple(
            self.layers[layer.context_fed_by].neurons
            if layer.context_fed_by is not None
            else 0
            for layer in self.layers
        )
        self.source_sizes = tuple(
            layer.neurons + ctx + int(layer.bias)
            for layer, ctx in zip(self.layers[:-1], self.context_counts[:-1])
        )
        offsets = [0]
        for k, source in enumerate(self.source_sizes):
            offsets.append(offsets[-1] + source * self.layers[k + 1].neurons)
        self.weight_index = tuple(offsets)
        self.weights: Array = np.zeros(offsets[-1], dtype=np.float64)
        self.context: List[Array] = [np.zeros(count) for count in self.context_counts]
        self.reset(seed)
        logger.debug(
            "Built flat network %s with %d weights",
            [layer.neurons for layer in self.layers],
            self.weight_count,
        )

    # ------------------------------------------------------------------
    # Structure

    @property
    def input_count(self) -> int:
        return self.layers[0].neurons

    @property
    def output_count(self) -> int:
        return self.layers[-1].neurons

    @property
    def weight_count(self) -> int:
        return int(self.weights.size)

    @property
    def has_context(self) -> bool:
        return any(self.context_counts)

    def matrix(self, block: int) -> Array:
        """Return connection block ``block`` as a view into the weights."""

        start, end = self.weight_index[block], self.weight_index[block + 1]
        return self.weights[start:end].reshape(
            self.source_sizes[block], self.layers[block + 1].neurons
        )

    def weight_dropout_rates(self) -> Array:
        rates = np.zeros(self.weight_count)
        for k in range(len(self.source_sizes)):
            start, end = self.weight_index[k], self.weight_index[k + 1]
            rates[start:end] = self.layers[k].dropout_rate
        return rates

    def reset(self, seed: int | None = None) -> None:
        """Randomise the weights in place and clear the context neurons."""

        rng = np.random.default_rng(seed)
        self.weights[:] = rng.uniform(-1.0, 1.0, size=self.weights.size)
        self.clear_context()

    def clear_context(self) -> None:
        for values in self.context:
            values[:] = 0.0

    # ------------------------------------------------------------------
    # Evaluation

    def forward(self, inputs: Array) -> tuple[Array, ForwardState]:
        """Evaluate ``inputs`` and return the outputs with the forward state.

        Networks with context neurons are evaluated one sample at a time, in
        order, so that each sample sees the previous sample's output.
        """

        x = np.atleast_2d(np.asarray(inputs, dtype=np.float64))
        if x.shape[1] != self.input_count:
            raise ConfigurationError(
                f"Expected {self.input_count} input values, got {x.shape[1]}"
            )
        if not self.has_context:
            state = self._forward_block(x)
            return state.outputs[-1], state

        states = []
        for row in range(x.shape[0]):
            state = self._forward_block(x[row : row + 1])
            self._advance_context(x[row], state)
            states.append(state)
        blocks = range(len(self.source_sizes))
        merged = ForwardState(
            sources=[np.vstack([s.sources[k] for s in states]) for k in blocks],
            pre_activations=[np.vstack([s.pre_activations[k] for s in states]) for k in blocks],
            outputs=[np.vstack([s.outputs[k] for s in states]) for k in blocks],
        )
        return merged.outputs[-1], merged

    def compute(self, inputs: Array) -> Array:
        outputs, _ = self.forward(inputs)
        return outputs

    def activation(self, layer: int) -> Activation:
        return self._activations[layer]

    def _forward_block(self, x: Array) -> ForwardState:
        batch = x.shape[0]
        sources: List[Array] = []
        pre_activations: List[Array] = []
        outputs: List[Array] = []
        layer_out = x
        for k, layer in enumerate(self.layers[:-1]):
            parts = [layer_out]
            if self.context_counts[k]:
                parts.append(np.repeat(self.context[k][None, :], batch, axis=0))
            if layer.bias:
                parts.append(np.ones((batch, 1)))
            src = np.hstack(parts) if len(parts) > 1 else layer_out
            z = src @ self.matrix(k)
            layer_out = self._activations[k + 1](z)
            sources.append(src)
            pre_activations.append(z)
            outputs.append(layer_out)
        return ForwardState(sources=sources, pre_activations=pre_activations, outputs=outputs)

    def _advance_context(self, row: Array, state: ForwardState) -> None:
        for k, layer in enumerate(self.layers):
            source = layer.context_fed_by
            if source is None:
                continue
            value = row if source == 0 else state.outputs[source - 1][0]
            self.context[k][:] = value

    # ------------------------------------------------------------------
    # Persistence helpers

    def describe(self) -> Dict[str, Any]:
        return {"layers": [asdict(layer) for layer in self.layers]}

    @classmethod
    def from_description(cls, description: Mapping[str, Any]) -> "FlatNetwork":
        try:
            layers = [Layer(**entry) for entry in description["layers"]]
        except (KeyError, TypeError) as exc:
            raise ConfigurationError(f"Invalid network description: {exc}") from exc
        return cls(layers)

    def _validate(self) -> None:
        if len(self.layers) < 2:
            raise ConfigurationError("A network needs at least an input and an output layer")
        for idx, layer in enumerate(self.layers):
            if layer.neurons <= 0:
                raise ConfigurationError(f"Layer {idx} must have at least one neuron")
            if not 0.0 <= layer.dropout_rate < 1.0:
                raise ConfigurationError(f"Layer {idx} dropout rate must be in [0, 1)")
            source = layer.context_fed_by
            if source is None:
                continue
            if idx == len(self.layers) - 1:
                raise ConfigurationError("The output layer cannot receive context neurons")
            if not 0 <= source < len(self.layers):
                raise ConfigurationError(
                    f"Layer {idx} is fed context by unknown layer {source}"
                )


__all__ = ["FlatNetwork", "Layer"]
