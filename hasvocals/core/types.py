"""Core typing contracts for hasvocals."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Sequence

import numpy as np

Array = np.ndarray


def as_vector(values: Sequence[float] | Array) -> Array:
    """Return ``values`` as a flat float64 array (copying when needed)."""

    return np.asarray(values, dtype=np.float64).reshape(-1)


class FeatureFrame:
    """A labeled feature vector, optionally carrying appended derivatives.

    ``features`` holds ``base_feature_length`` base values followed by one
    block of the same length per appended derivative order.  Pad frames
    (``is_pad``) only exist to give boundary frames derivative context and
    are never handed to a consumer as real data.
    """

    __slots__ = ("features", "labels", "base_feature_length", "highest_derivative", "is_pad")

    def __init__(
        self,
        features: Sequence[float] | Array,
        labels: Sequence[float] | Array,
        base_feature_length: int | None = None,
        highest_derivative: int = 0,
        is_pad: bool = False,
    ) -> None:
        self.labels = as_vector(labels)
        self.is_pad = bool(is_pad)
        self.set_features(features, base_feature_length, highest_derivative)

    def set_features(
        self,
        features: Sequence[float] | Array,
        base_feature_length: int | None = None,
        highest_derivative: int = 0,
    ) -> None:
        features = as_vector(features)
        if base_feature_length is None:
            base_feature_length = features.size
        if highest_derivative not in (0, 1, 2):
            raise ValueError(f"highest_derivative must be 0, 1 or 2, got {highest_derivative}")
        expected = base_feature_length * (highest_derivative + 1)
        if features.size != expected:
            raise ValueError(
                f"Expected {expected} features for base length {base_feature_length} "
                f"and derivative order {highest_derivative}, got {features.size}"
            )
        self.features = features
        self.base_feature_length = int(base_feature_length)
        self.highest_derivative = int(highest_derivative)

    def copy(self) -> "FeatureFrame":
        return FeatureFrame(
            self.features.copy(),
            self.labels.copy(),
            base_feature_length=self.base_feature_length,
            highest_derivative=self.highest_derivative,
            is_pad=self.is_pad,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FeatureFrame):
            return NotImplemented
        return (
            self.base_feature_length == other.base_feature_length
            and self.highest_derivative == other.highest_derivative
            and self.is_pad == other.is_pad
            and np.array_equal(self.features, other.features)
            and np.array_equal(self.labels, other.labels)
        )

    def __repr__(self) -> str:
        return (
            f"FeatureFrame(base={self.base_feature_length}, "
            f"derivative={self.highest_derivative}, pad={self.is_pad}, "
            f"labels={self.labels.tolist()})"
        )


@dataclass(frozen=True)
class ModelDescription:
    """Description of the feed-forward network architecture."""

    layer_sizes: List[int]
    activations: List[str]
    input_dim: int | None = None


@dataclass
class TrainingState:
    """Mutable bookkeeping threaded through the epoch loop."""

    epoch: int = 0
    learning_rate: float = 1.0
    error: float = float("nan")
    previous_error: float = float("nan")
    delta_error: float = float("inf")
    examples_seen: int = 0
    converged: bool = False
    exceeded_max_epochs: bool = False
    history: List[Dict[str, float]] = field(default_factory=list)

    def record(self, metrics: Dict[str, float]) -> None:
        self.history.append(dict(metrics))

