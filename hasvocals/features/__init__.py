"""Streaming audio feature extraction."""

from .derivatives import DerivativeAugmenter, append_derivatives
from .frames import ArrayFrameSource, FrameSource, SoundFileFrameSource
from .mfcc import MelCepstrumExtractor, hamming_window, limited_ln, log_energy
from .pipeline import SpeechFeatureContainer
from .preprocess import SignalPreprocessor
from .window_config import DEFAULT_WINDOW_CONFIG, WindowConfig
from .windowing import WindowedSignalSource

__all__ = [
    "ArrayFrameSource",
    "DEFAULT_WINDOW_CONFIG",
    "DerivativeAugmenter",
    "FrameSource",
    "MelCepstrumExtractor",
    "SignalPreprocessor",
    "SoundFileFrameSource",
    "SpeechFeatureContainer",
    "WindowConfig",
    "WindowedSignalSource",
    "append_derivatives",
    "hamming_window",
    "limited_ln",
    "log_energy",
]
