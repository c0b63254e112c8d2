"""Reporting utilities for hasvocals."""

from .metrics import CsvSink, JsonlSink
from .plots import PlotAdapter
from .progress import ConsoleProgress

__all__ = ["CsvSink", "JsonlSink", "PlotAdapter", "ConsoleProgress"]
