"""DC-offset removal and pre-emphasis (ETSI ES 201 108, section 4.2)."""

from __future__ import annotations

import numpy as np
from scipy.signal import lfilter

from ..core.types import Array

DC_OFFSET_COEFF = 0.999
PREEMPHASIS_COEFF = 0.97


def offset_compensation(
    val: float | Array, last_val: float | Array, last_dcof: float | Array
) -> float | Array:
    return val - last_val + DC_OFFSET_COEFF * last_dcof


def pre_emphasis(val: float | Array, last_val: float | Array) -> float | Array:
    return val - PREEMPHASIS_COEFF * last_val


class SignalPreprocessor:
    """Stateful per-channel filter applied to each freshly buffered chunk.

    ``prev_raw`` and ``prev_dcof`` survive across :meth:`process` calls so a
    stream can be filtered chunk by chunk with the same result as filtering
    it in one piece.
    """

    def __init__(self, channels: int) -> None:
        self.channels = int(channels)
        self.reset()

    def reset(self) -> None:
        self.prev_raw = np.zeros(self.channels, dtype=np.float64)
        self.prev_dcof = np.zeros(self.channels, dtype=np.float64)

    def process(self, raw: Array, out: Array, start: int, end: int) -> None:
        """Filter ``raw[:, start:end]`` into ``out[:, start:end]``."""

        if end <= start:
            return
        for ch in range(self.channels):
            samples = raw[ch, start:end].astype(np.float64)
            first_prev_dcof = float(self.prev_dcof[ch])
            # filter state that reproduces offset_compensation for the first sample
            zi = [offset_compensation(0.0, self.prev_raw[ch], first_prev_dcof)]
            dcof, _ = lfilter([1.0, -1.0], [1.0, -DC_OFFSET_COEFF], samples, zi=zi)
            # pre-emphasis runs one sample behind the offset compensation
            lagged = np.empty_like(dcof)
            lagged[0] = first_prev_dcof
            lagged[1:] = dcof[:-1]
            out[ch, start:end] = pre_emphasis(dcof, lagged)
            self.prev_raw[ch] = samples[-1]
            self.prev_dcof[ch] = dcof[-1]


__all__ = [
    "SignalPreprocessor",
    "offset_compensation",
    "pre_emphasis",
    "DC_OFFSET_COEFF",
    "PREEMPHASIS_COEFF",
]
