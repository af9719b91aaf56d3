"""CSV loading for training sets."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

import numpy as np
import pandas as pd

from ..core.errors import ConfigurationError
from ..core.types import Array

logger = logging.getLogger(__name__)


def read_training_csv(
    path: str | Path,
    output_columns: Sequence[str],
    ignore_columns: Sequence[str] = (),
    **csv_options,
) -> tuple[Array, Array]:
    """Read a CSV with a header row and split it into inputs and outputs.

    Columns listed in ``ignore_columns`` are dropped, ``output_columns``
    become the targets and every remaining column is an input. Extra keyword
    arguments go to :func:`pandas.read_csv`.
    """

    path = Path(path)
    logger.debug("Reading %s", path)
    df = pd.read_csv(path, **csv_options)
    missing = [col for col in [*output_columns, *ignore_columns] if col not in df.columns]
    if missing:
        raise ConfigurationError(f"Columns {missing!r} not found in {path.name}")
    if not output_columns:
        raise ConfigurationError("At least one output column is required")

    df = df.drop(columns=list(ignore_columns))
    outputs = df[list(output_columns)]
    inputs = df.drop(columns=list(output_columns))
    logger.debug("%d rows loaded", len(df))
    return inputs.to_numpy(dtype=np.float64), outputs.to_numpy(dtype=np.float64)


__all__ = ["read_training_csv"]
