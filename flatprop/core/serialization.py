"""Save and load :class:`FlatNetwork` instances."""

from __future__ import annotations

import json
from pathlib import Path

import numpy as np

from .errors import ConfigurationError
from .network import FlatNetwork


def save_network(network: FlatNetwork, path: str | Path) -> Path:
    """Write the structure and weights of ``network`` to ``path`` (``.npz``)."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "structure": np.array(json.dumps(network.describe())),
        "weights": network.weights,
    }
    with path.open("wb") as handle:
        np.savez_compressed(handle, **payload)
    return path


def load_network(path: str | Path) -> FlatNetwork:
    with np.load(Path(path), allow_pickle=False) as archive:
        missing = {"structure", "weights"} - set(archive.files)
        if missing:
            raise ConfigurationError(
                f"Network file {path} is missing: {', '.join(sorted(missing))}"
            )
        description = json.loads(archive["structure"].item())
        weights = np.array(archive["weights"], dtype=np.float64)

    network = FlatNetwork.from_description(description)
    if weights.size != network.weight_count:
        raise ConfigurationError(
            f"Network file {path} holds {weights.size} weights, "
            f"structure expects {network.weight_count}"
        )
    network.weights[:] = weights
    return network


__all__ = ["save_network", "load_network"]
