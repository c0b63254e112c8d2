"""Audio to labeled feature-frame pipeline exposed as a data container."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Iterator

from ..core.errors import DataUnavailable
from ..core.types import FeatureFrame
from .derivatives import DerivativeAugmenter
from .frames import FrameSource, SoundFileFrameSource
from .mfcc import MelCepstrumExtractor
from .window_config import DEFAULT_WINDOW_CONFIG, WindowConfig
from .windowing import WindowedSignalSource

logger = logging.getLogger(__name__)

SourceFactory = Callable[[], FrameSource]


class SpeechFeatureContainer:
    """Stream ``[log_energy, mfcc..., deltas...]`` frames for one recording.

    Every frame carries ``[label]`` as its target.  The container can be
    re-opened; each ``open`` restarts from the beginning of the source.
    """

    def __init__(
        self,
        source_factory: SourceFactory,
        label: float,
        window_config: WindowConfig = DEFAULT_WINDOW_CONFIG,
        *,
        num_coeff: int = 13,
        offset_coeff: int = 1,
        name: str = "",
    ) -> None:
        self._factory = source_factory
        self.label = float(label)
        self.window_config = window_config
        self.num_coeff = num_coeff
        self.offset_coeff = offset_coeff
        self.name = name
        self._signal: WindowedSignalSource | None = None
        self._augmenter: DerivativeAugmenter | None = None

    @classmethod
    def from_path(
        cls,
        path: str | Path,
        label: float,
        window_config: WindowConfig = DEFAULT_WINDOW_CONFIG,
        **kwargs,
    ) -> "SpeechFeatureContainer":
        path = Path(path)
        return cls(
            lambda: SoundFileFrameSource(path),
            label,
            window_config,
            name=kwargs.pop("name", str(path)),
            **kwargs,
        )

    def open(self) -> None:
        if self._signal is not None:
            self.close()
        signal = WindowedSignalSource(self._factory(), self.window_config)
        try:
            signal.open()
            extractor = MelCepstrumExtractor(
                signal.sample_rate,
                signal.fft_length,
                num_coeff=self.num_coeff,
                offset_coeff=self.offset_coeff,
            )
            self._signal = signal
            self._augmenter = DerivativeAugmenter(self._frames(signal, extractor))
            self._augmenter.prime()
        except Exception:
            signal.close()
            self._signal = None
            self._augmenter = None
            raise
        logger.debug(
            "Opened %s: %d Hz, window %d, shift %d",
            self.name or "<stream>",
            signal.sample_rate,
            signal.window_size,
            signal.shift_size,
        )

    def _frames(
        self, signal: WindowedSignalSource, extractor: MelCepstrumExtractor
    ) -> Iterator[FeatureFrame]:
        labels = [self.label]
        for window in signal:
            yield FeatureFrame(extractor.channel_features(window), labels)

    def close(self) -> None:
        if self._signal is not None:
            self._signal.close()
        self._signal = None
        self._augmenter = None

    def has_next(self) -> bool:
        if self._augmenter is None:
            raise DataUnavailable(f"Container {self.name or '<stream>'} is not open")
        return self._augmenter.has_next()

    def next(self) -> FeatureFrame:
        if self._augmenter is None:
            raise DataUnavailable(f"Container {self.name or '<stream>'} is not open")
        return self._augmenter.next()

    def __iter__(self) -> Iterator[FeatureFrame]:
        while self.has_next():
            yield self.next()

    def __enter__(self) -> "SpeechFeatureContainer":
        self.open()
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"SpeechFeatureContainer({self.name!r}, label={self.label})"


__all__ = ["SpeechFeatureContainer", "SourceFactory"]
