"""Application layer: preprocessing, training runs and network persistence."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, List, Mapping, Sequence, Tuple

import numpy as np

from .core.errors import DataUnavailable, HasVocalsError, MalformedInput
from .core.mlp import MultiLayerPerceptron, build_vocal_network
from .core.types import TrainingState
from .data.containers import DataContainer, LabeledFrameContainer
from .data.discovery import select_files
from .data.labeled_io import FRAME_SUFFIX, write_frames
from .data.manifest import parse_label_manifest
from .data.utils import ensure_dir
from .features.pipeline import SpeechFeatureContainer
from .features.window_config import DEFAULT_WINDOW_CONFIG, WindowConfig
from .training.trainer import BackpropTrainer

logger = logging.getLogger(__name__)

AUDIO_EXTENSIONS = ("wav",)


@dataclass(frozen=True)
class HasVocalsConfig:
    """Settings shared by preprocessing and training runs."""

    max_examples: int | None = None
    max_epochs: int = 1000
    min_delta_error: float = 1e-5
    max_threads: int | None = None
    recurse: bool = False
    seed: int | None = None
    weight_range: Tuple[float, float] = (0.2, 0.8)
    hidden_layers: Tuple[int, ...] = (30, 10)
    alpha: float = 1.0
    train_fraction: float = 0.75

    def __post_init__(self) -> None:
        if self.max_epochs <= 0:
            raise MalformedInput("max_epochs must be positive")
        if self.min_delta_error < 0:
            raise MalformedInput("min_delta_error must be non-negative")
        if self.max_threads is not None and self.max_threads <= 0:
            raise MalformedInput("max_threads must be positive")
        if self.max_examples is not None and self.max_examples < 0:
            raise MalformedInput("max_examples must be non-negative")
        if not 0 < self.train_fraction <= 1:
            raise MalformedInput("train_fraction must be in (0, 1]")
        low, high = self.weight_range
        if low > high:
            raise MalformedInput("weight_range must be (low, high)")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "HasVocalsConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise MalformedInput(f"Unknown config keys: {', '.join(unknown)}")
        values = dict(data)
        if "weight_range" in values:
            values["weight_range"] = tuple(float(v) for v in values["weight_range"])
        if "hidden_layers" in values:
            values["hidden_layers"] = tuple(int(v) for v in values["hidden_layers"])
        return cls(**values)

    @classmethod
    def load(cls, path: str | Path) -> "HasVocalsConfig":
        return cls.from_mapping(load_config_file(Path(path)))

    def with_overrides(self, **overrides: Any) -> "HasVocalsConfig":
        """Return a copy with every non-``None`` override applied."""

        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    def to_dict(self) -> dict:
        return json.loads(json.dumps(asdict(self)))


def load_config_file(path: Path) -> dict:
    text = path.read_text()
    if path.suffix in {".yml", ".yaml"}:
        try:
            import yaml  # type: ignore
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise HasVocalsError("PyYAML is required to load YAML configs") from exc
        data = yaml.safe_load(text)
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise MalformedInput(f"Config {path} must contain a mapping")
    return data


def merge_config(base: dict, override: Mapping[str, Any]) -> dict:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            base[key] = merge_config(dict(base[key]), value)
        else:
            base[key] = value
    return base


def _rng(seed: int | None) -> np.random.Generator:
    return np.random.default_rng(seed)


def preprocess_audio(
    manifest_csv: str | Path,
    audio_dir: str | Path,
    temp_dir: str | Path,
    *,
    recurse: bool = False,
    limit: int | None = None,
    seed: int | None = None,
    window_config: WindowConfig = DEFAULT_WINDOW_CONFIG,
) -> List[LabeledFrameContainer]:
    """Extract features for every labeled audio file into ``<stem>.mfc``.

    Returns containers over the written files.  Files that fail to decode
    are logged and left out.
    """

    labels = parse_label_manifest(manifest_csv)
    temp_dir = ensure_dir(temp_dir)
    files = select_files(
        audio_dir, AUDIO_EXTENSIONS, recurse=recurse, limit=limit, labels=labels, rng=_rng(seed)
    )
    logger.info("Preprocessing %d audio files into %s", len(files), temp_dir)
    containers: List[LabeledFrameContainer] = []
    for idx, path in enumerate(files):
        label = labels.get(path.stem)
        if label is None:
            logger.warning("Label not found for: %s", path.stem)
            continue
        logger.debug("Processing (%d/%d) %s", idx + 1, len(files), path.name)
        out_path = temp_dir / f"{path.stem}{FRAME_SUFFIX}"
        source = SpeechFeatureContainer.from_path(path, label, window_config)
        try:
            with source:
                written = write_frames(source, out_path)
        except HasVocalsError as exc:
            logger.error("Failed to preprocess %s: %s", path, exc)
            continue
        logger.debug("Wrote %d frames to %s", written, out_path)
        containers.append(LabeledFrameContainer(out_path))
    logger.info("Finished preprocessing audio: %d files", len(containers))
    return containers


def collect_training_containers(
    temp_dir: str | Path,
    *,
    recurse: bool = False,
    limit: int | None = None,
    seed: int | None = None,
) -> List[LabeledFrameContainer]:
    files = select_files(
        temp_dir, (FRAME_SUFFIX,), recurse=recurse, limit=limit, rng=_rng(seed)
    )
    return [LabeledFrameContainer(path) for path in files]


def build_network(config: HasVocalsConfig) -> MultiLayerPerceptron:
    return build_vocal_network(
        config.hidden_layers,
        alpha=config.alpha,
        weight_range=config.weight_range,
        seed=config.seed,
    )


def train_network(
    containers: Sequence[DataContainer],
    config: HasVocalsConfig,
    callbacks: Sequence[object] | None = None,
    network: MultiLayerPerceptron | None = None,
) -> TrainingState:
    """Train ``network`` (or a fresh one from ``config``) on ``containers``."""

    if not containers:
        raise DataUnavailable("No training data found")
    trainer = BackpropTrainer(
        network if network is not None else build_network(config),
        min_delta_error=config.min_delta_error,
        max_epochs=config.max_epochs,
        max_threads=config.max_threads,
        train_fraction=config.train_fraction,
        callbacks=callbacks,
    )
    return trainer.fit(containers)


def save_network(network: MultiLayerPerceptron, path: str | Path) -> Path:
    path = network.save(path)
    logger.info("Saved network to %s", path)
    return path


def load_network(path: str | Path) -> MultiLayerPerceptron:
    try:
        return MultiLayerPerceptron.load(path)
    except (OSError, KeyError, ValueError) as exc:
        raise DataUnavailable(f"Could not load network from {path}: {exc}") from exc


__all__ = [
    "HasVocalsConfig",
    "load_config_file",
    "merge_config",
    "preprocess_audio",
    "collect_training_containers",
    "build_network",
    "train_network",
    "save_network",
    "load_network",
]
