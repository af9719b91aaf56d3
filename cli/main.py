"""Command line entry point for flatprop training runs."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Iterable

import numpy as np

from flatprop.core.serialization import save_network
from flatprop.data import normalize_data, read_training_csv, train_test_split
from flatprop.reporting import CsvSink, JsonlSink, PlotAdapter
from flatprop.training import config as run_config
from flatprop.training.metrics import validate_network

XOR_INPUTS = np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0], [1.0, 1.0]])
XOR_TARGETS = np.array([[0.0], [1.0], [1.0], [0.0]])


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--preset",
        choices=sorted(run_config.presets().keys()),
        default="xor-rprop",
        help="Preset configuration to start from",
    )
    parser.add_argument("--config", type=Path, help="Optional JSON/YAML config override")
    parser.add_argument("--csv", type=Path, help="Training CSV; defaults to the XOR truth table")
    parser.add_argument(
        "--output-cols", default="", help="Comma separated target columns of the CSV"
    )
    parser.add_argument("--ignore-cols", default="", help="Comma separated columns to drop")
    parser.add_argument(
        "--normalize",
        action="store_true",
        help="Min-max scale the CSV inputs to [-1, 1]",
    )
    parser.add_argument(
        "--test-size",
        type=float,
        help="Hold out this tail fraction of the rows for validation",
    )
    parser.add_argument("--run-dir", type=Path, default=Path("runs/flatprop"))
    parser.add_argument("--enable-plots", action="store_true", help="Write error.png")
    parser.add_argument("--save-network", type=Path, help="Write the trained network here")
    parser.add_argument("--seed", type=int, help="Seed for weights and mini-batches")
    parser.add_argument(
        "--list-presets", action="store_true", help="List available presets and exit"
    )
    parser.add_argument(
        "--dump-config", type=Path, help="Dump the resolved config to a JSON file"
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    return parser.parse_args(argv)


def _columns(value: str) -> list[str]:
    return [col.strip() for col in value.split(",") if col.strip()]


def _load_data(args: argparse.Namespace) -> tuple[np.ndarray, np.ndarray]:
    if args.csv is None:
        return XOR_INPUTS, XOR_TARGETS
    inputs, targets = read_training_csv(
        args.csv, _columns(args.output_cols), _columns(args.ignore_cols)
    )
    if args.normalize:
        inputs = normalize_data(inputs)
    return inputs, targets


def main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.list_presets:
        for name in sorted(run_config.presets().keys()):
            print(name)
        raise SystemExit(0)

    config = run_config.load_preset(args.preset)
    if args.config:
        config = run_config.load_config(args.config, base=config)
    if args.seed is not None:
        config.network.seed = args.seed
        config.train.seed = args.seed

    inputs, targets = _load_data(args)
    if args.csv is not None:
        config.network.input = int(inputs.shape[1])
        config.network.output = int(targets.shape[1])

    train_x, train_y, test_x, test_y = inputs, targets, None, None
    if args.test_size:
        x_split = train_test_split(inputs, args.test_size)
        y_split = train_test_split(targets, args.test_size)
        train_x, test_x = x_split.train, x_split.test
        train_y, test_y = y_split.train, y_split.test

    if args.dump_config:
        args.dump_config.parent.mkdir(parents=True, exist_ok=True)
        args.dump_config.write_text(json.dumps(config.to_dict(), indent=2))

    run_dir = args.run_dir
    plots = PlotAdapter(run_dir, enable_plots=args.enable_plots)
    callbacks = [
        JsonlSink(run_dir / "metrics.jsonl", run=args.preset, seed=config.train.seed),
        CsvSink(run_dir / "metrics.csv"),
        plots,
    ]
    network, result = run_config.run(config, train_x, train_y, callbacks=callbacks)

    payload = {
        "iterations": result.iterations,
        "error": result.error,
        "metrics": str(run_dir / "metrics.jsonl"),
    }
    if test_x is not None and len(test_x):
        payload["accuracy"] = validate_network(network, test_x, test_y)
    if args.save_network:
        payload["network"] = str(save_network(network, args.save_network))
    print(json.dumps(payload, sort_keys=True))


if __name__ == "__main__":
    main()
