"""Configuration for assembling and running a training job."""

from __future__ import annotations

import json
import logging
from copy import deepcopy
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence

import yaml

from ..core.errors import ConfigurationError
from ..core.network import FlatNetwork
from ..core.optimizers import make_optimizer
from ..core.patterns import ElmanPattern, FeedForwardPattern, JordanPattern
from ..core.types import Array, TrainResult
from .propagation import Propagation, ResilientPropagation, StochasticGradientDescent
from .trainer import Trainer

logger = logging.getLogger(__name__)

_PATTERNS = {
    "feedforward": FeedForwardPattern,
    "elman": ElmanPattern,
    "jordan": JordanPattern,
}


@dataclass
class NetworkConfig:
    """Layer layout of the network to train."""

    input: int = 2
    hidden: List[int] = field(default_factory=lambda: [3])
    output: int = 1
    activation: str = "sigmoid"
    output_activation: str = "sigmoid"
    pattern: str = "feedforward"
    seed: int | None = 0


@dataclass
class TrainConfig:
    """Training algorithm and stop conditions.

    ``batch_size`` defaults to the full set for ``rprop`` and to 25 samples
    for ``sgd``.
    """

    algorithm: str = "rprop"
    rprop_type: str = "RPROPp"
    initial_update: float = 0.1
    max_step: float = 50.0
    zero_tolerance: float = 1e-17
    optimizer: str = "adam"
    optimizer_options: Dict[str, float] = field(default_factory=dict)
    batch_size: int | None = None
    seed: int | None = 0
    loss: str = "mse"
    min_error: float = 0.01
    min_iterations: int = 0
    max_iterations: int | None = 10_000


@dataclass
class RunConfig:
    network: NetworkConfig = field(default_factory=NetworkConfig)
    train: TrainConfig = field(default_factory=TrainConfig)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "RunConfig":
        unknown = set(data) - {"network", "train"}
        if unknown:
            raise ConfigurationError(f"Unknown config sections: {', '.join(sorted(unknown))}")
        return cls(
            network=_section(NetworkConfig, data.get("network") or {}),
            train=_section(TrainConfig, data.get("train") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _section(kind, values: Mapping[str, Any]):
    allowed = {f.name for f in fields(kind)}
    unknown = set(values) - allowed
    if unknown:
        raise ConfigurationError(
            f"Unknown {kind.__name__} keys: {', '.join(sorted(unknown))}"
        )
    return kind(**dict(values))


_PRESETS: Dict[str, Mapping[str, Any]] = {
    "xor-rprop": {
        "network": {"input": 2, "hidden": [4], "output": 1, "seed": 7},
        "train": {"algorithm": "rprop", "min_error": 0.01, "max_iterations": 500},
    },
    "xor-adam": {
        "network": {"input": 2, "hidden": [4], "output": 1, "seed": 7},
        "train": {
            "algorithm": "sgd",
            "optimizer": "adam",
            "optimizer_options": {"learning_rate": 0.05},
            "batch_size": 4,
            "min_error": 0.01,
            "max_iterations": 2000,
        },
    },
}


def presets() -> Mapping[str, Mapping[str, Any]]:
    return {name: deepcopy(cfg) for name, cfg in _PRESETS.items()}


def load_preset(name: str) -> RunConfig:
    try:
        return RunConfig.from_mapping(deepcopy(_PRESETS[name]))
    except KeyError as exc:
        raise ConfigurationError(f"Unknown preset: {name}") from exc


def read_config_file(path: str | Path) -> Mapping[str, Any]:
    path = Path(path)
    text = path.read_text()
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        data = yaml.safe_load(text) or {}
    elif suffix == ".json":
        data = json.loads(text or "{}")
    else:
        raise ConfigurationError(f"Unsupported config file type: {path.suffix}")

    if not isinstance(data, Mapping):
        raise ConfigurationError(f"Config {path.name} must decode to a mapping")
    return data


def merge(base: Dict[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(base.get(key), dict):
            base[key] = merge(dict(base[key]), value)
        else:
            base[key] = value
    return base


def load_config(path: str | Path, base: RunConfig | None = None) -> RunConfig:
    """Read a JSON/YAML config and merge it over ``base`` (or the defaults)."""

    merged = merge((base or RunConfig()).to_dict(), read_config_file(path))
    logger.debug("Loaded config from %s", path)
    return RunConfig.from_mapping(merged)


def build_network(config: NetworkConfig) -> FlatNetwork:
    try:
        pattern = _PATTERNS[config.pattern.lower()](seed=config.seed)
    except KeyError as exc:
        available = ", ".join(sorted(_PATTERNS))
        raise ConfigurationError(
            f"Unknown network pattern {config.pattern!r}. Available patterns: {available}"
        ) from exc
    pattern.set_input_layer(config.input)
    for neurons in config.hidden:
        pattern.add_hidden_layer(neurons, config.activation)
    pattern.set_output_layer(config.output, config.output_activation)
    return pattern.generate()


def build_propagation(config: TrainConfig, network: FlatNetwork, inputs: Array, targets: Array) -> Propagation:
    algorithm = config.algorithm.lower()
    if algorithm == "rprop":
        return ResilientPropagation(
            network,
            inputs,
            targets,
            initial_update=config.initial_update,
            max_step=config.max_step,
            zero_tolerance=config.zero_tolerance,
            rprop_type=config.rprop_type,
            loss=config.loss,
            batch_size=config.batch_size or 0,
        )
    if algorithm == "sgd":
        return StochasticGradientDescent(
            network,
            inputs,
            targets,
            make_optimizer(config.optimizer, **config.optimizer_options),
            batch_size=config.batch_size or 25,
            seed=config.seed,
            loss=config.loss,
        )
    raise ConfigurationError(f"Unknown training algorithm {config.algorithm!r}. Use 'rprop' or 'sgd'")


def run(
    config: RunConfig,
    inputs: Array,
    targets: Array,
    callbacks: Sequence[object] | None = None,
) -> tuple[FlatNetwork, TrainResult]:
    """Build the network and trainer described by ``config`` and train."""

    network = build_network(config.network)
    propagation = build_propagation(config.train, network, inputs, targets)
    result = Trainer(propagation, callbacks).run(
        min_error=config.train.min_error,
        min_iterations=config.train.min_iterations,
        max_iterations=config.train.max_iterations,
    )
    return network, result


__all__ = [
    "NetworkConfig",
    "RunConfig",
    "TrainConfig",
    "build_network",
    "build_propagation",
    "load_config",
    "load_preset",
    "presets",
    "read_config_file",
    "run",
]
