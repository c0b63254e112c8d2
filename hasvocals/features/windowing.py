"""Overlapping fixed-size windows over a sequential frame source."""

from __future__ import annotations

import logging

import numpy as np

from ..core.errors import DataUnavailable
from ..core.types import Array
from .frames import FrameSource
from .preprocess import SignalPreprocessor
from .window_config import DEFAULT_WINDOW_CONFIG, WindowConfig

logger = logging.getLogger(__name__)

# Consecutive empty reads tolerated while the source still reports frames.
MAX_EMPTY_READS = 1000


class WindowedSignalSource:
    """Re-chunk a frame source into preprocessed, overlapping windows.

    Frames are buffered ``window * shift`` at a time so buffer boundaries
    line up with both strides.  Frames belonging to a window that spans two
    buffers are carried to the front of the next buffer.  The final buffer
    is zero padded; its last window start is chosen so that every window
    still contains new valid samples in its trailing ``shift`` frames.
    """

    def __init__(
        self,
        source: FrameSource,
        config: WindowConfig = DEFAULT_WINDOW_CONFIG,
        preprocessor: SignalPreprocessor | None = None,
    ) -> None:
        self.source = source
        self.config = config
        self._preprocessor = preprocessor
        self._raw: Array | None = None
        self._buffer: Array | None = None
        self._window = 0
        self._shift = 0
        self._fft_length = 0
        self._buffer_frames = 0
        self._offset = 0
        self._last_start = -1
        self._new_data_offset = 0
        self._chunk_num = -1
        self._total_read = 0

    # ------------------------------------------------------------------
    # Properties

    @property
    def sample_rate(self) -> int:
        return int(self.source.sample_rate)

    @property
    def channels(self) -> int:
        return int(self.source.channel_count)

    @property
    def window_size(self) -> int:
        return self.config.window(self.sample_rate)

    @property
    def shift_size(self) -> int:
        return self.config.shift(self.sample_rate)

    @property
    def fft_length(self) -> int:
        return self.config.fft_length(self.sample_rate)

    @property
    def buffer_frames(self) -> int:
        return self._buffer_frames

    @property
    def total_frames_read(self) -> int:
        return self._total_read

    @property
    def is_open(self) -> bool:
        return self._buffer is not None

    # ------------------------------------------------------------------
    # Lifecycle

    def open(self) -> None:
        self._window, self._shift, self._fft_length = self.config.resolve(self.sample_rate)
        self._buffer_frames = self._window * self._shift
        self._raw = np.zeros((self.channels, self._buffer_frames), dtype=np.float64)
        self._buffer = np.zeros_like(self._raw)
        if self._preprocessor is None:
            self._preprocessor = SignalPreprocessor(self.channels)
        else:
            self._preprocessor.reset()
        self._offset = 0
        self._last_start = -1
        self._new_data_offset = 0
        self._chunk_num = -1
        self._total_read = 0

    def close(self) -> None:
        self._raw = None
        self._buffer = None
        self.source.close()

    # ------------------------------------------------------------------
    # Iteration

    def _buffer_exhausted(self) -> bool:
        return self._offset > self._last_start

    def has_next_window(self) -> bool:
        if self._buffer is None:
            raise DataUnavailable("Signal source is not open")
        if self._chunk_num < 0:
            return self.source.total_frames > 0
        read_whole_file = self._total_read >= self.source.total_frames
        no_shifts_left = self.source.frames_remaining() < self._shift
        return not (self._buffer_exhausted() and (read_whole_file or no_shifts_left))

    def next_window(self) -> Array:
        """Return the next ``(channels, window)`` block of filtered samples."""

        if self._buffer is None:
            raise DataUnavailable("Signal source is not open")
        if self._chunk_num < 0 or self._buffer_exhausted():
            self.next_chunk()
        start = self._offset
        segment = self._buffer[:, start : start + self._window].copy()
        self._offset += self._shift
        return segment

    def next_chunk(self) -> None:
        """Refill the buffer, carrying over frames of a spanning window."""

        spanned = 0
        if self._chunk_num >= 0:
            spanned = max(self._buffer_frames - self._offset, 0)
            if spanned:
                self._raw[:, :spanned] = self._raw[:, self._offset :].copy()
                self._buffer[:, :spanned] = self._buffer[:, self._offset :].copy()
        self._new_data_offset = spanned
        needed = self._buffer_frames - spanned

        read = 0
        empty_reads = 0
        while read < needed and self.source.frames_remaining() > 0:
            got = self.source.read_frames(self._raw, spanned + read, needed - read)
            if got == 0:
                empty_reads += 1
                if empty_reads > MAX_EMPTY_READS:
                    raise DataUnavailable(
                        f"Frame source stalled with {self.source.frames_remaining()} frames remaining"
                    )
                continue
            empty_reads = 0
            read += got
        self._total_read += read
        self._chunk_num += 1

        valid_end = spanned + read
        if valid_end < self._buffer_frames:
            self._raw[:, valid_end:] = 0.0
            self._buffer[:, valid_end:] = 0.0
            self._last_start = self._padded_last_start(valid_end)
            logger.debug(
                "Final chunk %d: %d valid frames, last window start %d",
                self._chunk_num,
                valid_end,
                self._last_start,
            )
        else:
            self._last_start = self._buffer_frames - self._window

        self._preprocessor.process(self._raw, self._buffer, self._new_data_offset, valid_end)
        self._offset = 0

    def _padded_last_start(self, valid_end: int) -> int:
        # largest shift multiple whose trailing shift frames still hold data
        bound = min(valid_end - self._window + self._shift - 1, self._buffer_frames - self._window)
        if bound < 0:
            return 0
        return (bound // self._shift) * self._shift

    def __iter__(self):
        while self.has_next_window():
            yield self.next_window()


__all__ = ["WindowedSignalSource"]
