"""Headless-safe plotting of the training error curve."""

from __future__ import annotations

from pathlib import Path
from typing import List, Tuple


class PlotAdapter:
    """Collect the error per iteration and optionally write ``error.png``."""

    def __init__(self, run_dir: str | Path, enable_plots: bool = False, log_scale: bool = True):
        self.enable_plots = enable_plots
        self.log_scale = log_scale
        self.run_dir = Path(run_dir)
        self._history: List[Tuple[int, float]] = []
        if self.enable_plots:
            self.run_dir.mkdir(parents=True, exist_ok=True)

    def on_step(self, step: int, metrics):
        if not self.enable_plots:
            return
        self._history.append((step, float(metrics.get("error", 0.0))))

    def close(self) -> None:
        if not self.enable_plots or not self._history:
            return
        import matplotlib

        matplotlib.use("Agg", force=True)
        import matplotlib.pyplot as plt  # imported lazily for headless safety

        steps, errors = zip(*self._history)
        fig, ax = plt.subplots()
        ax.plot(steps, errors)
        if self.log_scale and min(errors) > 0:
            ax.set_yscale("log")
        ax.set_xlabel("Iteration")
        ax.set_ylabel("Error")
        ax.set_title("Training Error")
        fig.savefig(self.run_dir / "error.png")
        plt.close(fig)

    __call__ = on_step
