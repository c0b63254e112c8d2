import math

import numpy as np
import pytest

from hasvocals.core.types import FeatureFrame
from hasvocals.features.derivatives import DerivativeAugmenter, append_derivatives
from hasvocals.features.mfcc import (
    MelCepstrumExtractor,
    hamming_window,
    limited_ln,
    log_energy,
    mel,
    mel_bin_boundaries,
    mel_inverse,
)
from hasvocals.features.preprocess import SignalPreprocessor, offset_compensation, pre_emphasis


def test_preprocessor_zero_in_zero_out():
    raw = np.zeros((2, 50))
    out = np.ones_like(raw)
    SignalPreprocessor(2).process(raw, out, 0, 50)
    np.testing.assert_array_equal(out, 0.0)


def test_preprocessor_first_samples():
    raw = np.array([[1.0, 0.0, 0.0]])
    out = np.zeros_like(raw)
    SignalPreprocessor(1).process(raw, out, 0, 3)
    dcof1 = offset_compensation(0.0, 1.0, 1.0)
    assert dcof1 == pytest.approx(-0.001)
    np.testing.assert_allclose(out[0, :2], [1.0, pre_emphasis(dcof1, 1.0)])
    assert out[0, 1] == pytest.approx(-0.971)


def test_preprocessor_matches_sample_recurrence():
    rng = np.random.default_rng(11)
    raw = rng.integers(-3000, 3000, size=(1, 300)).astype(np.float64)
    out = np.zeros_like(raw)
    SignalPreprocessor(1).process(raw, out, 0, 300)

    expected = []
    last_val = last_dcof = 0.0
    for val in raw[0]:
        dcof = offset_compensation(val, last_val, last_dcof)
        expected.append(pre_emphasis(dcof, last_dcof))
        last_val, last_dcof = val, dcof
    np.testing.assert_allclose(out[0], expected, rtol=1e-10, atol=1e-8)


def test_preprocessor_state_carries_across_chunks():
    rng = np.random.default_rng(5)
    raw = rng.integers(-3000, 3000, size=(1, 400)).astype(np.float64)
    whole = np.zeros_like(raw)
    SignalPreprocessor(1).process(raw, whole, 0, 400)

    pieces = np.zeros_like(raw)
    proc = SignalPreprocessor(1)
    proc.process(raw, pieces, 0, 150)
    proc.process(raw, pieces, 150, 400)
    np.testing.assert_allclose(pieces, whole)


def test_log_energy_edges():
    assert log_energy(np.zeros(200)) == 0.0
    assert log_energy(np.array([0.0, -1.0, -1.0])) == 0.0
    assert log_energy(np.array([0.0, 0.0, 1.0])) == pytest.approx(math.log(4.0))
    assert log_energy(np.array([0.0, 1e-30])) == -50.0


def test_limited_ln():
    assert limited_ln(0.0) == -50.0
    assert limited_ln(math.e) == pytest.approx(1.0)
    np.testing.assert_allclose(limited_ln(np.array([1.0, 0.0, -2.0])), [0.0, -50.0, -50.0])


def test_mel_inverse_round_trip():
    freqs = np.array([64.0, 1000.0, 4000.0])
    np.testing.assert_allclose(mel_inverse(mel(freqs)), freqs)


def test_hamming_window_pads_to_fft_length():
    windowed = hamming_window(np.ones(200), 256)
    assert windowed.shape == (256,)
    assert windowed[0] == pytest.approx(0.08)
    assert windowed[199] == pytest.approx(0.08)
    assert windowed.max() == pytest.approx(1.0, abs=1e-4)
    np.testing.assert_array_equal(windowed[200:], 0.0)
    with pytest.raises(ValueError):
        hamming_window(np.ones(300), 256)
    np.testing.assert_array_equal(hamming_window(np.full(1, 3.0), 4), [3.0, 0.0, 0.0, 0.0])
    stereo = hamming_window(np.ones((2, 200)), 256)
    np.testing.assert_allclose(stereo[1], windowed)


def test_mel_bin_boundaries():
    cbins = mel_bin_boundaries(8000, 256)
    assert cbins.size == 25
    assert cbins[0] == 2
    assert cbins[-1] == 128
    assert np.all(np.diff(cbins) >= 0)


def test_silence_gives_flat_cepstrum():
    extractor = MelCepstrumExtractor(8000, 256)
    features = extractor.channel_features(np.zeros((2, 200)))
    assert features.shape == (28,)
    assert extractor.features_per_channel == 14
    np.testing.assert_allclose(features, 0.0, atol=1e-9)


def test_tone_features_are_finite():
    t = np.arange(400) / 16000.0
    tone = 3000.0 * np.sin(2 * np.pi * 440.0 * t)
    extractor = MelCepstrumExtractor(16000, 512)
    features = extractor.channel_features(tone)
    assert features.shape == (14,)
    assert np.all(np.isfinite(features))
    assert np.any(np.abs(features[1:]) > 1e-6)


def _ramp(n, slope=1.0):
    return [FeatureFrame([slope * t], [1.0]) for t in range(n)]


def test_augmenter_linear_ramp_derivatives():
    frames = list(DerivativeAugmenter(iter(_ramp(20, slope=3.0))))
    assert len(frames) == 20
    assert not any(frame.is_pad for frame in frames)
    for frame in frames:
        assert frame.highest_derivative == 2
        assert frame.features.size == 3
    for t in range(2, 18):
        assert frames[t].features[1] == pytest.approx(3.0)
    for t in range(4, 16):
        assert frames[t].features[2] == pytest.approx(0.0, abs=1e-12)
    np.testing.assert_allclose([f.features[0] for f in frames], 3.0 * np.arange(20))


def test_augmenter_single_and_empty_streams():
    single = list(DerivativeAugmenter(iter(_ramp(1, slope=2.0))))
    assert len(single) == 1
    np.testing.assert_allclose(single[0].features, [0.0, 0.0, 0.0])

    empty = DerivativeAugmenter(iter([]))
    assert not empty.has_next()


def test_append_derivatives_window():
    frames = _ramp(5)
    assert append_derivatives(frames, 1) == 1
    assert frames[2].highest_derivative == 1
    assert frames[2].features[1] == pytest.approx(1.0)
    assert frames[1].highest_derivative == 0
    # already-augmented frames are left alone
    assert append_derivatives(frames, 1) == 0
    with pytest.raises(ValueError):
        append_derivatives(frames, 3)


def test_feature_frame_invariants():
    frame = FeatureFrame([1.0, 2.0, 3.0, 4.0], [0.0], base_feature_length=2, highest_derivative=1)
    clone = frame.copy()
    clone.features[0] = 9.0
    assert frame.features[0] == 1.0
    assert clone != frame
    with pytest.raises(ValueError):
        FeatureFrame([1.0, 2.0, 3.0], [0.0], base_feature_length=2, highest_derivative=1)
    with pytest.raises(ValueError):
        FeatureFrame([1.0] * 8, [0.0], base_feature_length=2, highest_derivative=3)


def test_append_derivatives_treats_pads_like_real_frames():
    frames = _ramp(5)
    frames[2].is_pad = True
    assert append_derivatives(frames, 1) == 1
    assert frames[2].is_pad
    assert frames[2].highest_derivative == 1
