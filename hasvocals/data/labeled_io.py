"""Plain-text serialisation of labeled feature frames (``.mfc`` files).

Each frame is one line of tab-terminated fields::

    highest_derivative <TAB> base_length <TAB> is_pad <TAB> l0,l1, <TAB> f0,f1,...fn, <TAB>

Floats are written with :func:`repr` so reading a file back reproduces the
exact float64 values.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Iterator, List, Sequence

from ..core.errors import MalformedInput
from ..core.types import FeatureFrame

FIELD_SEP = "\t"
VALUE_SEP = ","
FRAME_SUFFIX = ".mfc"


def _join(values: Iterable[float]) -> str:
    return "".join(repr(float(v)) + VALUE_SEP for v in values)


def _split(field: str, lineno: int) -> List[float]:
    try:
        return [float(tok) for tok in field.split(VALUE_SEP) if tok.strip()]
    except ValueError as exc:
        raise MalformedInput(f"line {lineno}: bad numeric value ({exc})") from exc


def to_line(frame: FeatureFrame) -> str:
    fields = [
        str(frame.highest_derivative),
        str(frame.base_feature_length),
        "1" if frame.is_pad else "0",
        _join(frame.labels),
        _join(frame.features),
    ]
    return "".join(f + FIELD_SEP for f in fields)


def from_line(line: str, lineno: int = 0) -> FeatureFrame:
    fields = line.rstrip("\r\n").split(FIELD_SEP)
    if fields and fields[-1] == "":
        fields.pop()
    if len(fields) != 5:
        raise MalformedInput(f"line {lineno}: expected 5 fields, found {len(fields)}")
    try:
        highest = int(fields[0])
        base = int(fields[1])
        is_pad = int(fields[2])
    except ValueError as exc:
        raise MalformedInput(f"line {lineno}: bad header field ({exc})") from exc
    if is_pad not in (0, 1):
        raise MalformedInput(f"line {lineno}: pad flag must be 0 or 1")
    labels = _split(fields[3], lineno)
    features = _split(fields[4], lineno)
    try:
        return FeatureFrame(features, labels, base, highest, is_pad=bool(is_pad))
    except ValueError as exc:
        raise MalformedInput(f"line {lineno}: {exc}") from exc


def write_frames(frames: Iterable[FeatureFrame], path: str | Path, append: bool = False) -> int:
    """Write ``frames`` to ``path``; returns the number of lines written."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with path.open("a" if append else "w", encoding="utf-8") as handle:
        for frame in frames:
            handle.write(to_line(frame) + "\n")
            count += 1
    return count


def iter_frames(path: str | Path) -> Iterator[FeatureFrame]:
    with Path(path).open("r", encoding="utf-8") as handle:
        for lineno, line in enumerate(handle, start=1):
            if not line.strip():
                continue
            yield from_line(line, lineno)


def read_frames(path: str | Path) -> Sequence[FeatureFrame]:
    return list(iter_frames(path))


__all__ = [
    "FRAME_SUFFIX",
    "to_line",
    "from_line",
    "write_frames",
    "read_frames",
    "iter_frames",
]
