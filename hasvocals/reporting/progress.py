"""Console progress bar driven by trainer callbacks."""

from __future__ import annotations

import sys
from typing import IO, Mapping

BAR_WIDTH = 80


def render_bar(fraction: float, width: int = BAR_WIDTH) -> str:
    """``|====    |`` spanning ``width`` columns including both edges."""

    inner = max(width - 2, 0)
    fraction = min(max(fraction, 0.0), 1.0)
    filled = int(round(fraction * inner))
    return "|" + "=" * filled + " " * (inner - filled) + "|"


class ConsoleProgress:
    """Redraw a single progress line per phase and print epoch summaries."""

    def __init__(self, stream: IO[str] | None = None, width: int = BAR_WIDTH) -> None:
        self.stream = stream or sys.stdout
        self.width = width
        self._phase: str | None = None

    def on_progress(self, phase: str, fraction: float, state) -> None:
        if phase != self._phase:
            if self._phase is not None:
                self.stream.write("\n")
            self.stream.write(f"Epoch {state.epoch} {phase}\n")
            self._phase = phase
        self.stream.write("\r" + render_bar(fraction, self.width))
        self.stream.flush()

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        if self._phase is not None:
            self.stream.write("\n")
            self._phase = None
        self.stream.write(
            f"Epoch {epoch}: error {metrics.get('error', float('nan')):.6g}, "
            f"delta {metrics.get('delta_error', float('nan')):.3g}\n"
        )
        self.stream.flush()


__all__ = ["ConsoleProgress", "render_bar", "BAR_WIDTH"]
