"""Labeled frame containers, manifests and file discovery."""

from .containers import DataContainer, InMemoryContainer, LabeledFrameContainer
from .discovery import select_files, walk_files
from .labeled_io import from_line, iter_frames, read_frames, to_line, write_frames
from .manifest import parse_label_manifest
from .utils import partition, split_containers

__all__ = [
    "DataContainer",
    "InMemoryContainer",
    "LabeledFrameContainer",
    "from_line",
    "iter_frames",
    "parse_label_manifest",
    "partition",
    "read_frames",
    "select_files",
    "split_containers",
    "to_line",
    "walk_files",
    "write_frames",
]
