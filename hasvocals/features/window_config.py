"""Window/shift/FFT sizes per supported sample rate.

Defaults follow ETSI ES 201 108 (25 ms windows shifted by 10 ms).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Mapping, Tuple

from ..core.errors import UnsupportedSampleRate

WindowSpec = Tuple[int, int, int]

DEFAULT_TABLE: Dict[int, WindowSpec] = {
    8000: (200, 80, 256),
    11000: (256, 110, 256),
    16000: (400, 160, 512),
    44100: (1323, 441, 2048),
}


@dataclass(frozen=True)
class WindowConfig:
    """Maps sample rates to ``(window_frames, shift_frames, fft_length)``."""

    table: Mapping[int, WindowSpec] = field(default_factory=lambda: dict(DEFAULT_TABLE))

    def __post_init__(self) -> None:
        for rate, (window, shift, fft_length) in self.table.items():
            if window <= 0 or shift <= 0:
                raise ValueError(f"Window and shift must be positive for {rate} Hz")
            if shift > window:
                raise ValueError(f"Shift {shift} exceeds window {window} for {rate} Hz")
            if fft_length < window:
                raise ValueError(f"FFT length {fft_length} shorter than window {window} for {rate} Hz")

    @property
    def supported_rates(self) -> Tuple[int, ...]:
        return tuple(sorted(self.table))

    def resolve(self, sample_rate: int) -> WindowSpec:
        try:
            return self.table[int(sample_rate)]
        except KeyError:
            raise UnsupportedSampleRate(sample_rate, self.supported_rates) from None

    def window(self, sample_rate: int) -> int:
        return self.resolve(sample_rate)[0]

    def shift(self, sample_rate: int) -> int:
        return self.resolve(sample_rate)[1]

    def fft_length(self, sample_rate: int) -> int:
        return self.resolve(sample_rate)[2]


DEFAULT_WINDOW_CONFIG = WindowConfig()

__all__ = ["WindowConfig", "DEFAULT_WINDOW_CONFIG", "DEFAULT_TABLE"]
