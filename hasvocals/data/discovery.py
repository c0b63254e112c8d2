"""Locate audio and feature files on disk."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Mapping, Sequence

import numpy as np

logger = logging.getLogger(__name__)


def _accepts(path: Path, extensions: Sequence[str], labels: Mapping[str, float] | None) -> bool:
    ext = path.suffix[1:].lower()
    if ext not in extensions:
        return False
    return labels is None or path.stem in labels


def walk_files(
    root: str | Path,
    extensions: Iterable[str],
    *,
    recurse: bool = False,
    labels: Mapping[str, float] | None = None,
) -> List[Path]:
    """Files under ``root`` with a matching extension (and label, if given).

    Without ``recurse`` only the immediate children of ``root`` are listed.
    ``root`` may itself be a file.
    """

    root = Path(root)
    exts = tuple(e.lower().lstrip(".") for e in extensions)
    logger.info("Searching %s", root.resolve())
    if root.is_file():
        return [root] if _accepts(root, exts, labels) else []
    pattern = root.rglob("*") if recurse else root.glob("*")
    return sorted(p for p in pattern if p.is_file() and _accepts(p, exts, labels))


def select_files(
    root: str | Path,
    extensions: Iterable[str],
    *,
    recurse: bool = False,
    limit: int | None = None,
    labels: Mapping[str, float] | None = None,
    rng: np.random.Generator | None = None,
) -> List[Path]:
    """Shuffle the matching files and keep at most ``limit`` of them."""

    files = walk_files(root, extensions, recurse=recurse, labels=labels)
    logger.info("Found %d valid files", len(files))
    rng = rng or np.random.default_rng()
    order = rng.permutation(len(files))
    files = [files[i] for i in order]
    if limit is not None:
        if limit < 0:
            raise ValueError("limit must be non-negative")
        files = files[:limit]
    logger.info("Randomly selected %d files", len(files))
    return files


__all__ = ["walk_files", "select_files"]
