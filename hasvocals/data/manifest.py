"""CSV label manifests mapping audio file stems to vocal labels."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict

import pandas as pd

from ..core.errors import MalformedInput

logger = logging.getLogger(__name__)

FILENAME_HEADER = "Input.filename"
LABEL_HEADER = "Answer.label"
HAS_VOCALS = "has-vocals"
NO_VOCALS = "no-vocals"
AUDIO_SUFFIXES = (".wav",)


def is_csv(path: str | Path) -> bool:
    return Path(path).suffix.lower() == ".csv"


def _find_column(columns, needle: str) -> str | None:
    # last matching header wins, as with a left-to-right scan
    found = None
    for column in columns:
        if needle in str(column):
            found = column
    return found


def _stem(filename: str) -> str:
    name = filename.strip().strip('"').strip()
    name = Path(name).name
    suffix = Path(name).suffix
    if suffix.lower() in AUDIO_SUFFIXES:
        name = name[: -len(suffix)]
    return name


def label_value(label: str) -> float | None:
    if HAS_VOCALS in label:
        return 1.0
    if NO_VOCALS in label:
        return 0.0
    return None


def parse_label_manifest(path: str | Path) -> Dict[str, float]:
    """Return ``{file_stem: label}`` for every usable manifest row.

    Rows whose label mentions neither ``has-vocals`` nor ``no-vocals`` are
    skipped with a warning.
    """

    path = Path(path)
    if not is_csv(path):
        raise MalformedInput(f"Invalid csv datafile: {path}")
    try:
        df = pd.read_csv(path, dtype=str, keep_default_na=False, skipinitialspace=True)
    except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise MalformedInput(f"Could not parse {path}: {exc}") from exc

    filename_col = _find_column(df.columns, FILENAME_HEADER)
    label_col = _find_column(df.columns, LABEL_HEADER)
    if filename_col is None or label_col is None:
        raise MalformedInput(
            f"{path} must have columns containing {FILENAME_HEADER!r} and {LABEL_HEADER!r}"
        )

    labels: Dict[str, float] = {}
    for filename, label in zip(df[filename_col], df[label_col]):
        stem = _stem(filename)
        value = label_value(label)
        if not stem:
            continue
        if value is None:
            logger.warning("Failed to get label for %s (%r)", stem, label)
            continue
        logger.debug("Labelled %s as %.1f", stem, value)
        labels[stem] = value
    logger.info("Parsed %d labels from %s", len(labels), path)
    return labels


__all__ = ["parse_label_manifest", "label_value", "is_csv", "FILENAME_HEADER", "LABEL_HEADER"]
