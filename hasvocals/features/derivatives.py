"""First and second order regression deltas over a sliding frame queue."""

from __future__ import annotations

from collections import deque
from typing import Iterator, MutableSequence

import numpy as np

from ..core.errors import DataUnavailable
from ..core.types import FeatureFrame

DERIV_T = 2
MAX_ORDER = 2
QUEUE_BOUND = 3 * DERIV_T + 1

_DENOMINATOR = 2.0 * sum(k * k for k in range(1, DERIV_T + 1))


def _derivative_block(frames: MutableSequence[FeatureFrame], i: int, order: int) -> None:
    target = frames[i]
    base = target.base_feature_length
    expanded = np.zeros(base * (order + 1), dtype=np.float64)
    expanded[: target.features.size] = target.features
    start = base * (order - 1)
    needed = start + base
    for j in range(start, start + base):
        total = 0.0
        for k in range(1, DERIV_T + 1):
            prev = frames[i - k].features
            nxt = frames[i + k].features
            if prev.size < needed or nxt.size < needed:
                break
            total += k * (nxt[j] - prev[j])
        else:
            expanded[j + base] = total / _DENOMINATOR
    target.set_features(expanded, base, order)


def append_derivatives(frames: MutableSequence[FeatureFrame], order: int) -> int:
    """Append the ``order`` delta block to every eligible frame in place.

    A frame at index ``i`` is eligible when ``DERIV_T <= i < len - order *
    DERIV_T`` and it currently carries exactly ``order - 1`` derivative
    blocks.  Returns the number of frames updated.
    """

    if order not in (1, 2):
        raise ValueError(f"Derivative order must be 1 or 2, got {order}")
    updated = 0
    for i in range(DERIV_T, len(frames) - order * DERIV_T):
        if frames[i].highest_derivative == order - 1:
            _derivative_block(frames, i, order)
            updated += 1
    return updated


class DerivativeAugmenter:
    """Delay a frame stream by ``3T`` frames so each one gets its deltas.

    The queue is seeded with pad copies of the first real frame so the
    first and last real frames have context on both sides.
    """

    def __init__(self, frames: Iterator[FeatureFrame]) -> None:
        self._frames = iter(frames)
        self._queue: deque[FeatureFrame] = deque()
        self._pad: FeatureFrame | None = None
        self._primed = False

    def prime(self) -> None:
        first = next(self._frames, None)
        self._primed = True
        if first is None:
            return
        pad = first.copy()
        pad.is_pad = True
        self._pad = pad
        for _ in range(3 * DERIV_T):
            self._queue.append(pad.copy())
        self._queue.append(first)
        for _ in range(3 * DERIV_T):
            self._pull()

    def _pull(self) -> FeatureFrame:
        for order in range(1, MAX_ORDER + 1):
            append_derivatives(self._queue, order)
        head = self._queue.popleft()
        nxt = next(self._frames, None)
        self._queue.append(nxt if nxt is not None else self._pad.copy())
        return head

    def has_next(self) -> bool:
        if not self._primed:
            self.prime()
        return bool(self._queue) and not self._queue[0].is_pad

    def next(self) -> FeatureFrame:
        if not self.has_next():
            raise DataUnavailable("No more feature frames")
        return self._pull()

    def __iter__(self) -> Iterator[FeatureFrame]:
        while self.has_next():
            yield self.next()


__all__ = [
    "DerivativeAugmenter",
    "append_derivatives",
    "DERIV_T",
    "QUEUE_BOUND",
]
