"""Headless-safe plotting adapters."""

from __future__ import annotations

from pathlib import Path
from typing import List, Tuple


class PlotAdapter:
    """Collect per-epoch test error and optionally emit a matplotlib figure."""

    def __init__(self, run_dir: str | Path, enable_plots: bool = False, filename: str = "error.png"):
        self.enable_plots = enable_plots
        self.run_dir = Path(run_dir)
        self.filename = filename
        self._history: List[Tuple[int, float]] = []
        if self.enable_plots:
            self.run_dir.mkdir(parents=True, exist_ok=True)

    @property
    def history(self) -> List[Tuple[int, float]]:
        return list(self._history)

    def on_epoch(self, epoch: int, metrics):
        if not self.enable_plots:
            return
        self._history.append((epoch, float(metrics.get("error", float("nan")))))

    def close(self) -> Path | None:
        if not self.enable_plots or not self._history:
            return None
        import matplotlib

        matplotlib.use("Agg", force=True)
        import matplotlib.pyplot as plt  # imported lazily for headless safety

        epochs, errors = zip(*self._history)
        fig, ax = plt.subplots()
        ax.plot(epochs, errors)
        ax.set_xlabel("Epoch")
        ax.set_ylabel("Mean squared error")
        ax.set_title("Test Error")
        plot_path = self.run_dir / self.filename
        fig.savefig(plot_path)
        plt.close(fig)
        return plot_path

    __call__ = on_epoch
