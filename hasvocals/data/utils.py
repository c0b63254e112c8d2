"""Utility helpers shared by the data containers and the trainer."""

from __future__ import annotations

from pathlib import Path
from typing import List, Sequence, Tuple, TypeVar

T = TypeVar("T")


def split_containers(
    containers: Sequence[T], train_fraction: float = 0.75
) -> Tuple[List[T], List[T]]:
    """Split into a leading training slice and a trailing testing slice.

    The training size is ``int(train_fraction * len(containers))``; callers
    shuffle beforehand when they want a random split.
    """

    if not 0 < train_fraction <= 1:
        raise ValueError("train_fraction must be in (0, 1]")
    train_size = int(train_fraction * len(containers))
    items = list(containers)
    return items[:train_size], items[train_size:]


def partition(items: Sequence[T], parts: int) -> List[List[T]]:
    """Contiguous slices of ``len(items) // parts``; the last takes the rest."""

    if parts <= 0:
        raise ValueError("parts must be positive")
    size = len(items) // parts
    slices: List[List[T]] = []
    for idx in range(parts):
        start = idx * size
        end = len(items) if idx == parts - 1 else start + size
        slices.append(list(items[start:end]))
    return slices


def ensure_dir(path: str | Path) -> Path:
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


__all__ = ["split_containers", "partition", "ensure_dir"]
