"""Data containers: re-openable sequential sources of labeled frames."""

from __future__ import annotations

from pathlib import Path
from typing import IO, Iterator, Optional, Protocol, Sequence, runtime_checkable

from ..core.errors import DataUnavailable, MalformedInput
from ..core.types import FeatureFrame
from .labeled_io import from_line


@runtime_checkable
class DataContainer(Protocol):
    """Protocol implemented by everything the trainer consumes."""

    def open(self) -> None:
        ...

    def close(self) -> None:
        ...

    def has_next(self) -> bool:
        ...

    def next(self) -> FeatureFrame:
        ...


class _IterMixin:
    def __iter__(self) -> Iterator[FeatureFrame]:
        while self.has_next():
            yield self.next()

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class LabeledFrameContainer(_IterMixin):
    """Read real frames back from a ``.mfc`` file; pad frames are skipped."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._handle: Optional[IO[str]] = None
        self._lookahead: Optional[FeatureFrame] = None
        self._error: Optional[MalformedInput] = None
        self._lineno = 0

    def open(self) -> None:
        self.close()
        try:
            self._handle = self.path.open("r", encoding="utf-8")
        except OSError as exc:
            raise DataUnavailable(f"Could not open {self.path}: {exc}") from exc
        self._lineno = 0
        self._advance()

    def _advance(self) -> None:
        self._lookahead = None
        for line in self._handle:
            self._lineno += 1
            if not line.strip():
                continue
            try:
                frame = from_line(line, self._lineno)
            except MalformedInput as exc:
                # frames already read stay valid; the error surfaces once they run out
                self._error = exc
                return
            if not frame.is_pad:
                self._lookahead = frame
                return

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
        self._handle = None
        self._lookahead = None
        self._error = None

    def has_next(self) -> bool:
        if self._handle is None:
            raise DataUnavailable(f"Container {self.path} is not open")
        if self._lookahead is None and self._error is not None:
            raise DataUnavailable(f"Unreadable frame in {self.path}: {self._error}") from self._error
        return self._lookahead is not None

    def next(self) -> FeatureFrame:
        if not self.has_next():
            raise DataUnavailable(f"No more frames in {self.path}")
        frame = self._lookahead
        self._advance()
        return frame

    def __repr__(self) -> str:
        return f"LabeledFrameContainer({str(self.path)!r})"


class InMemoryContainer(_IterMixin):
    """Serve a fixed list of frames; each ``open`` rewinds."""

    def __init__(self, frames: Sequence[FeatureFrame], name: str = "memory") -> None:
        self._frames = [f for f in frames if not f.is_pad]
        self.name = name
        self._index: Optional[int] = None

    def __len__(self) -> int:
        return len(self._frames)

    def open(self) -> None:
        self._index = 0

    def close(self) -> None:
        self._index = None

    def has_next(self) -> bool:
        if self._index is None:
            raise DataUnavailable(f"Container {self.name} is not open")
        return self._index < len(self._frames)

    def next(self) -> FeatureFrame:
        if not self.has_next():
            raise DataUnavailable(f"No more frames in {self.name}")
        frame = self._frames[self._index]
        self._index += 1
        return frame

    def __repr__(self) -> str:
        return f"InMemoryContainer({self.name!r}, frames={len(self._frames)})"


__all__ = ["DataContainer", "LabeledFrameContainer", "InMemoryContainer"]
