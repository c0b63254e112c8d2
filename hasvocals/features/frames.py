"""Frame-source collaborators yielding integer PCM frames per channel."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

import numpy as np
import soundfile as sf

from ..core.errors import DataUnavailable
from ..core.types import Array

logger = logging.getLogger(__name__)


class FrameSource(Protocol):
    """Sequential reader of PCM frames.

    ``read_frames`` writes up to ``count`` frames into ``dest[:, offset:]``
    (``dest`` has one row per channel) and returns the number of frames
    actually read.  A return of 0 is not end-of-stream on its own; callers
    consult :meth:`frames_remaining`.
    """

    sample_rate: int
    channel_count: int
    total_frames: int

    def frames_remaining(self) -> int:
        ...

    def read_frames(self, dest: Array, offset: int, count: int) -> int:
        ...

    def close(self) -> None:
        ...


class ArrayFrameSource:
    """Serve frames from an in-memory ``(frames, channels)`` integer array."""

    def __init__(self, samples: Array, sample_rate: int, *, max_read: int | None = None) -> None:
        data = np.asarray(samples)
        if data.ndim == 1:
            data = data[:, None]
        if data.ndim != 2:
            raise ValueError("samples must be 1-D or (frames, channels)")
        self._data = data.astype(np.int64)
        self.sample_rate = int(sample_rate)
        self.channel_count = int(data.shape[1])
        self.total_frames = int(data.shape[0])
        self._position = 0
        self._max_read = max_read

    def frames_remaining(self) -> int:
        return self.total_frames - self._position

    def read_frames(self, dest: Array, offset: int, count: int) -> int:
        count = min(count, self.frames_remaining(), dest.shape[1] - offset)
        if self._max_read is not None:
            count = min(count, self._max_read)
        if count <= 0:
            return 0
        chunk = self._data[self._position : self._position + count]
        dest[:, offset : offset + count] = chunk.T
        self._position += count
        return count

    def close(self) -> None:
        self._data = self._data[:0]


class SoundFileFrameSource:
    """Decode an audio file through :mod:`soundfile` as integer frames."""

    def __init__(self, path: str | Path, *, dtype: str = "int16") -> None:
        self.path = Path(path)
        self._dtype = dtype
        try:
            self._handle = sf.SoundFile(str(self.path))
        except (RuntimeError, OSError) as exc:
            raise DataUnavailable(f"Could not open audio file {self.path}: {exc}") from exc
        self.sample_rate = int(self._handle.samplerate)
        self.channel_count = int(self._handle.channels)
        self.total_frames = int(self._handle.frames)
        logger.debug(
            "Opened %s (%d Hz, %d channels, %d frames)",
            self.path,
            self.sample_rate,
            self.channel_count,
            self.total_frames,
        )

    def frames_remaining(self) -> int:
        return self.total_frames - int(self._handle.tell())

    def read_frames(self, dest: Array, offset: int, count: int) -> int:
        count = min(count, dest.shape[1] - offset)
        if count <= 0:
            return 0
        try:
            block = self._handle.read(count, dtype=self._dtype, always_2d=True)
        except (RuntimeError, OSError) as exc:
            raise DataUnavailable(f"Failed reading {self.path}: {exc}") from exc
        read = int(block.shape[0])
        dest[:, offset : offset + read] = block.T
        return read

    def close(self) -> None:
        self._handle.close()


__all__ = ["FrameSource", "ArrayFrameSource", "SoundFileFrameSource"]
