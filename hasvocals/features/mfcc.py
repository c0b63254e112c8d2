"""Log-energy and mel-frequency cepstral coefficients per window.

Follows the front-end of ETSI ES 201 108: Hamming window, FFT magnitude,
24 triangular mel filters starting at 64 Hz, natural-log compression
floored at -50 and a DCT over the log filterbank.
"""

from __future__ import annotations

import math
from functools import lru_cache

import numpy as np

from ..core.types import Array

F_START = 64.0
NUM_MEL_CHANNELS = 24
LOG_FLOOR = -50.0


def mel(freq: float | Array) -> float | Array:
    return 2595.0 * np.log10(1.0 + np.asarray(freq) / 700.0)


def mel_inverse(m: float | Array) -> float | Array:
    return 700.0 * (10.0 ** (np.asarray(m) / 2595.0) - 1.0)


def limited_ln(x: float | Array) -> float | Array:
    """``max(ln(x), -50)``; zero and negative inputs clamp to the floor."""

    x = np.asarray(x, dtype=np.float64)
    with np.errstate(divide="ignore", invalid="ignore"):
        out = np.log(np.where(x > 0, x, 0.0))
    out = np.maximum(np.nan_to_num(out, nan=LOG_FLOOR, neginf=LOG_FLOOR), LOG_FLOOR)
    return float(out) if out.ndim == 0 else out


def hamming_window(segment: Array, fft_length: int) -> Array:
    """Weight ``segment`` by a Hamming window and zero pad to ``fft_length``."""

    n = segment.shape[-1]
    if fft_length < n:
        raise ValueError(f"fft_length {fft_length} shorter than window {n}")
    padded = np.zeros(segment.shape[:-1] + (fft_length,), dtype=np.float64)
    padded[..., :n] = segment * np.hamming(n)
    return padded


def log_energy(segment: Array) -> float:
    """Logarithmic frame energy measure of one channel window.

    Returns 0 when the weighted sum is not positive, never ``-inf``/NaN.
    """

    idx = np.arange(segment.shape[-1], dtype=np.float64)
    total = float(np.sum(segment * idx * idx))
    if not total > 0:
        return 0.0
    return max(math.log(total), LOG_FLOOR)


def mel_bin_boundaries(sample_rate: float, fft_length: int) -> Array:
    """The 25 FFT-bin indices delimiting the mel channels."""

    cbins = np.empty(NUM_MEL_CHANNELS + 1, dtype=np.int64)
    mel_start = mel(F_START)
    mel_half = mel(sample_rate / 2.0)
    step = (mel_half - mel_start) / NUM_MEL_CHANNELS
    for i in range(cbins.size):
        if i == 0:
            cbins[i] = int(round(F_START / sample_rate * fft_length))
        elif i == cbins.size - 1:
            cbins[i] = fft_length // 2
        else:
            fci = mel_inverse(mel_start + step * i)
            cbins[i] = int(round(fci / sample_rate * fft_length))
    return cbins


@lru_cache(maxsize=16)
def _filterbank(sample_rate: float, fft_length: int) -> Array:
    cbins = mel_bin_boundaries(sample_rate, fft_length)
    bank = np.zeros((NUM_MEL_CHANNELS, fft_length // 2 + 1), dtype=np.float64)
    for j in range(NUM_MEL_CHANNELS):
        k = j + 1
        lo, mid = cbins[k - 1], cbins[k]
        rise = np.arange(lo, mid + 1)
        bank[j, rise] += (rise - lo + 1.0) / (mid - lo + 1.0)
        if k + 1 < cbins.size:
            hi = cbins[k + 1]
            fall = np.arange(mid + 1, hi + 1)
            bank[j, fall] += 1.0 - (fall - mid) / (hi - mid + 1.0)
    bank.setflags(write=False)
    return bank


@lru_cache(maxsize=16)
def _dct_basis(num_coeff: int, offset_coeff: int) -> Array:
    m = np.arange(offset_coeff, offset_coeff + num_coeff, dtype=np.float64)[:, None]
    j = np.arange(NUM_MEL_CHANNELS, dtype=np.float64)[None, :]
    basis = np.cos(np.pi * m * (j + 0.5) / NUM_MEL_CHANNELS)
    basis.setflags(write=False)
    return basis


class MelCepstrumExtractor:
    """Compute ``[log_energy, c_offset .. c_offset+num_coeff-1]`` per channel."""

    def __init__(
        self,
        sample_rate: float,
        fft_length: int,
        num_coeff: int = 13,
        offset_coeff: int = 1,
    ) -> None:
        if num_coeff <= 0:
            raise ValueError("num_coeff must be positive")
        if offset_coeff < 0:
            raise ValueError("offset_coeff must be non-negative")
        self.sample_rate = float(sample_rate)
        self.fft_length = int(fft_length)
        self.num_coeff = int(num_coeff)
        self.offset_coeff = int(offset_coeff)
        self._bank = _filterbank(self.sample_rate, self.fft_length)
        self._basis = _dct_basis(self.num_coeff, self.offset_coeff)

    @property
    def features_per_channel(self) -> int:
        return self.num_coeff + 1

    def log_mel(self, windowed: Array) -> Array:
        """Log filterbank outputs of an already windowed, padded signal."""

        spectrum = np.abs(np.fft.rfft(windowed, n=self.fft_length))
        return limited_ln(self._bank @ spectrum)

    def cepstrum(self, segment: Array) -> Array:
        """Cepstral coefficients of one raw (un-windowed) channel segment."""

        return self._basis @ self.log_mel(hamming_window(segment, self.fft_length))

    def channel_features(self, window: Array) -> Array:
        """Concatenate per-channel ``[log_energy, cepstrum...]`` blocks."""

        window = np.atleast_2d(window)
        blocks = []
        for channel in window:
            blocks.append(np.concatenate(([log_energy(channel)], self.cepstrum(channel))))
        return np.concatenate(blocks)


__all__ = [
    "MelCepstrumExtractor",
    "hamming_window",
    "log_energy",
    "limited_ln",
    "mel",
    "mel_inverse",
    "mel_bin_boundaries",
]
