"""hasvocals public API."""

from .app import (
    HasVocalsConfig,
    collect_training_containers,
    load_network,
    preprocess_audio,
    save_network,
    train_network,
)
from .core import activations, errors, types  # noqa: F401
from .core.mlp import Layer, MultiLayerPerceptron, build_vocal_network
from .features.pipeline import SpeechFeatureContainer
from .training.trainer import BackpropTrainer

__all__ = [
    "BackpropTrainer",
    "HasVocalsConfig",
    "Layer",
    "MultiLayerPerceptron",
    "SpeechFeatureContainer",
    "activations",
    "build_vocal_network",
    "collect_training_containers",
    "errors",
    "load_network",
    "preprocess_audio",
    "save_network",
    "train_network",
    "types",
]
