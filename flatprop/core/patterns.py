"""Layer pattern generators producing :class:`FlatNetwork` instances."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from .errors import ConfigurationError
from .network import FlatNetwork, Layer


@dataclass
class _LayerDef:
    neurons: int
    activation: str


@dataclass
class FeedForwardPattern:
    """Build a plain feed-forward network one layer at a time."""

    seed: int | None = None
    input_layer: _LayerDef | None = field(default=None, init=False)
    hidden_layers: List[_LayerDef] = field(default_factory=list, init=False)
    output_layer: _LayerDef | None = field(default=None, init=False)

    def set_input_layer(self, neurons: int) -> "FeedForwardPattern":
        self.input_layer = _LayerDef(neurons, "linear")
        return self

    def add_hidden_layer(self, neurons: int, activation: str = "sigmoid") -> "FeedForwardPattern":
        self.hidden_layers.append(_LayerDef(neurons, activation))
        return self

    def set_output_layer(self, neurons: int, activation: str = "sigmoid") -> "FeedForwardPattern":
        self.output_layer = _LayerDef(neurons, activation)
        return self

    def generate(self) -> FlatNetwork:
        self._require_layers()
        layers = [Layer(self.input_layer.neurons, self.input_layer.activation)]
        layers.extend(Layer(h.neurons, h.activation) for h in self.hidden_layers)
        layers.append(Layer(self.output_layer.neurons, self.output_layer.activation, bias=False))
        return FlatNetwork(layers, seed=self.seed)

    def _require_layers(self) -> None:
        if self.input_layer is None or self.output_layer is None:
            raise ConfigurationError(
                f"The {self._kind} pattern needs input and output layers"
            )

    @property
    def _kind(self) -> str:
        return "feed-forward"


@dataclass
class ElmanPattern(FeedForwardPattern):
    """Elman recurrent network.

    Three regular layers (input, hidden, output) plus a context layer that
    accepts the hidden layer's output and feeds it back into the input
    layer on the next sample. Useful for temporal input data.
    """

    def add_hidden_layer(self, neurons: int, activation: str = "sigmoid") -> "ElmanPattern":
        if self.hidden_layers:
            raise ConfigurationError(f"The {self._kind} pattern allows only one hidden layer")
        super().add_hidden_layer(neurons, activation)
        return self

    def generate(self) -> FlatNetwork:
        self._require_layers()
        if not self.hidden_layers:
            raise ConfigurationError(
                f"The {self._kind} pattern needs input, hidden and output layers"
            )
        hidden = self.hidden_layers[0]
        layers = [
            Layer(self.input_layer.neurons, "linear", context_fed_by=self._context_source),
            Layer(hidden.neurons, hidden.activation),
            Layer(self.output_layer.neurons, self.output_layer.activation, bias=False),
        ]
        return FlatNetwork(layers, seed=self.seed)

    @property
    def _context_source(self) -> int:
        return 1

    @property
    def _kind(self) -> str:
        return "Elman"


@dataclass
class JordanPattern(ElmanPattern):
    """Jordan recurrent network: the context is fed by the output layer."""

    @property
    def _context_source(self) -> int:
        return 2

    @property
    def _kind(self) -> str:
        return "Jordan"


__all__ = ["FeedForwardPattern", "ElmanPattern", "JordanPattern"]
