"""Error measures used by the trainer's evaluation phase."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable

from ..core.types import Array, as_vector
from ..core.vector import dot, sub


@dataclass(frozen=True)
class ResidualTally:
    """Partial sums gathered by one testing task."""

    squared_error: float = 0.0
    trials: int = 0
    width: int = 0

    def __add__(self, other: "ResidualTally") -> "ResidualTally":
        return ResidualTally(
            self.squared_error + other.squared_error,
            self.trials + other.trials,
            max(self.width, other.width),
        )


def squared_residual(outputs: Array, targets: Array) -> float:
    diff = sub(as_vector(targets), as_vector(outputs))
    return dot(diff, diff)


def mean_squared_residual(tallies: Iterable[ResidualTally]) -> float:
    """Sum of squared residuals over ``trials * target_width``; NaN if empty."""

    total = sum(tallies, ResidualTally())
    if total.trials == 0 or total.width == 0:
        return float("nan")
    return total.squared_error / (total.trials * total.width)


def epoch_metrics(epoch: int, error: float, delta_error: float, learning_rate: float, examples: int) -> Dict[str, float]:
    return {
        "epoch": float(epoch),
        "error": float(error),
        "delta_error": float(delta_error),
        "learning_rate": float(learning_rate),
        "examples": float(examples),
    }


__all__ = ["ResidualTally", "squared_residual", "mean_squared_residual", "epoch_metrics"]
