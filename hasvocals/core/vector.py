"""Small vector helpers used by the network and trainer.

All helpers operate on 1-D float64 numpy arrays.  Functions ending in
``_to``/``_from`` and :func:`scale` mutate their destination argument;
everything else returns a fresh array.
"""

from __future__ import annotations

from typing import Callable

import numpy as np

from .types import Array


def _check_lengths(v1: Array, v2: Array) -> None:
    if v1.shape != v2.shape:
        raise ValueError(f"Vector length mismatch: {v1.shape} vs {v2.shape}")


def dot(v1: Array, v2: Array) -> float:
    _check_lengths(v1, v2)
    return float(np.dot(v1, v2))


def scaled(v: Array, alpha: float) -> Array:
    return alpha * v


def scale(v: Array, alpha: float) -> None:
    v *= alpha


def add(v1: Array, v2: Array) -> Array:
    _check_lengths(v1, v2)
    return v1 + v2


def sub(v1: Array, v2: Array) -> Array:
    _check_lengths(v1, v2)
    return v1 - v2


def add_to(src: Array | float, dest: Array) -> None:
    """Add ``src`` (vector or scalar) into ``dest`` in place."""

    dest += src


def sub_from(src: Array | float, dest: Array) -> None:
    """Subtract ``src`` (vector or scalar) from ``dest`` in place."""

    dest -= src


def combine(v1: Array, v2: Array, fn: Callable[[Array, Array], Array]) -> Array:
    """Elementwise combination of two equal-length vectors."""

    _check_lengths(v1, v2)
    return np.asarray(fn(v1, v2), dtype=np.float64)


def vmax(v: Array) -> float:
    if v.size == 0:
        raise ValueError("vmax() of an empty vector")
    return float(np.max(v))


__all__ = ["dot", "scaled", "scale", "add", "sub", "add_to", "sub_from", "combine", "vmax"]
