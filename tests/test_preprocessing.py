"""Tests for ingestion-side smoothing, baseline removal and filtering."""
from __future__ import annotations

import numpy as np
import pytest

from ictalscan.models import InvalidParameter
from ictalscan.preprocessing import (
    PreprocessingConfig,
    apply_filter,
    apply_notch,
    pad_channels,
    preprocess_samples,
    remove_baseline,
    smooth,
)
from tests.fixtures.signal_generators import FS, make_sine


def test_smooth_impulse_spreads_evenly():
    out = smooth(np.array([0.0, 0.0, 3.0, 0.0, 0.0]), half_width=1)
    np.testing.assert_allclose(out, [0.0, 1.0, 1.0, 1.0, 0.0])


def test_smooth_edges_average_available_samples():
    np.testing.assert_allclose(smooth(np.array([1.0, 2.0, 3.0]), half_width=1), [1.5, 2.0, 2.5])


def test_smooth_skips_nan():
    np.testing.assert_allclose(smooth(np.array([1.0, np.nan, 3.0]), half_width=1), [1.0, 2.0, 3.0])


def test_smooth_all_nan_gives_zero():
    np.testing.assert_array_equal(smooth(np.array([np.nan, np.nan]), half_width=3), [0.0, 0.0])


def test_smooth_empty():
    assert smooth(np.array([]), half_width=5).shape == (0,)


def test_remove_baseline_keeps_a_fraction_of_offset():
    out = remove_baseline(np.full(1000, 10.0), half_width=100, fraction=0.8)
    np.testing.assert_allclose(out, 2.0)


def test_lowpass_removes_fast_component():
    slow = make_sine(5.0, 10.0, 10.0)
    x = slow + make_sine(100.0, 10.0, 10.0)
    out = apply_filter(x, FS, "lowpass", frequency=30.0)
    mid = slice(250, -250)
    assert np.max(np.abs(out[mid] - slow[mid])) < 0.5


def test_bandpass_clips_high_edge_with_warning():
    x = make_sine(10.0, 10.0, 10.0)
    with pytest.warns(UserWarning):
        out = apply_filter(x, FS, "bandpass", band=(1.0, 200.0))
    assert out.shape == x.shape


def test_highpass_cutoff_must_be_below_nyquist():
    with pytest.raises(InvalidParameter):
        apply_filter(np.zeros(1000), FS, "highpass", frequency=200.0)


def test_filter_none_is_identity():
    x = make_sine(10.0, 1.0, 1.0)
    np.testing.assert_array_equal(apply_filter(x, FS, "none"), x)


def test_notch_removes_line_noise():
    x = make_sine(50.0, 20.0, 10.0)
    out = apply_notch(x, FS, freqs=(50.0,), q=30.0)
    mid = slice(500, -500)
    assert np.sqrt(np.mean(out[mid] ** 2)) < 1.0


def test_notch_above_nyquist_is_skipped():
    x = make_sine(10.0, 1.0, 2.0)
    np.testing.assert_array_equal(apply_notch(x, FS, freqs=(200.0,)), x)


def test_preprocess_defaults_on_constant_signal():
    out = preprocess_samples(np.full(2000, 10.0), FS)
    np.testing.assert_allclose(out, 2.0)


def test_preprocess_can_be_switched_off():
    x = make_sine(10.0, 5.0, 2.0)
    cfg = PreprocessingConfig(smoothing=False, baseline_correction=False)
    np.testing.assert_array_equal(preprocess_samples(x, FS, cfg), x)


def test_config_validation():
    with pytest.raises(InvalidParameter):
        PreprocessingConfig(filter_type="comb")
    with pytest.raises(InvalidParameter):
        PreprocessingConfig.from_dict({"smooth": True})
    cfg = PreprocessingConfig.from_dict({"filter_type": "Bandpass", "filter_band": [0.5, 40]})
    assert cfg.filter_type == "bandpass"
    assert cfg.filter_band == (0.5, 40.0)


def test_pad_channels_to_longest():
    out = pad_channels([np.ones(3), np.ones(5), []])
    assert [a.shape[0] for a in out] == [5, 5, 5]
    np.testing.assert_array_equal(out[0], [1, 1, 1, 0, 0])
    assert pad_channels([]) == []
