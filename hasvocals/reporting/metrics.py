"""Epoch metric sinks for training runs."""

from __future__ import annotations

import csv
import json
import subprocess
from pathlib import Path
from typing import Mapping


def _git_sha() -> str:
    try:
        out = subprocess.check_output(["git", "rev-parse", "HEAD"], stderr=subprocess.DEVNULL)
        return out.decode().strip()
    except (OSError, subprocess.CalledProcessError):  # pragma: no cover - git may be unavailable
        return "unknown"


def _numeric(metrics: Mapping[str, float]) -> dict:
    return {k: float(v) for k, v in metrics.items() if isinstance(v, (int, float))}


class JsonlSink:
    """Append-only JSONL writer, one record per epoch."""

    def __init__(
        self,
        path: str | Path,
        *,
        split: str = "test",
        seed: int | None = None,
        sha: str | None = None,
    ) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("")
        self.split = split
        self.seed = seed
        self.sha = sha or _git_sha()

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        record = {
            "split": self.split,
            "seed": self.seed,
            "sha": self.sha,
        }
        record.update(_numeric(metrics))
        record["epoch"] = int(epoch)
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(record) + "\n")

    __call__ = on_epoch


class CsvSink:
    """Write epoch metrics to CSV with a stable schema."""

    def __init__(self, path: str | Path, *, split: str = "test") -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.split = split

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        row = {"split": self.split}
        row.update(_numeric(metrics))
        row["epoch"] = int(epoch)
        with self.path.open("a", encoding="utf-8", newline="") as handle:
            writer = csv.DictWriter(handle, fieldnames=sorted(row.keys()))
            if handle.tell() == 0:
                writer.writeheader()
            writer.writerow(row)

    __call__ = on_epoch


__all__ = ["JsonlSink", "CsvSink"]
