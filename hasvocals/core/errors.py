"""Exception taxonomy shared by the feature pipeline and the trainer."""

from __future__ import annotations


class HasVocalsError(Exception):
    """Base class for all user-visible failures."""


class UnsupportedSampleRate(HasVocalsError, ValueError):
    """Raised when audio uses a sample rate missing from the window table."""

    def __init__(self, sample_rate: int, supported=()) -> None:
        self.sample_rate = sample_rate
        self.supported = tuple(supported)
        rates = ", ".join(str(rate) for rate in self.supported) or "none"
        super().__init__(
            f"Unsupported sample rate {sample_rate} Hz (supported: {rates})"
        )


class DataUnavailable(HasVocalsError, IOError):
    """Raised when a data container cannot be opened or read."""


class MalformedInput(HasVocalsError, ValueError):
    """Raised for unusable input files: bad headers, wrong type, bad lines."""


class NumericAnomaly(HasVocalsError, ArithmeticError):
    """Raised when training produces NaN or infinite values."""


__all__ = [
    "HasVocalsError",
    "UnsupportedSampleRate",
    "DataUnavailable",
    "MalformedInput",
    "NumericAnomaly",
]
