"""
EEG sample preprocessing for pattern detection

This module handles the ingestion-side clean-up applied before detection:
- Centred moving-average smoothing (NaN samples skipped)
- Partial baseline-drift removal (subtract a fraction of a long centred mean)
- Optional notch and low/high/band-pass filtering (scipy)
- Zero-padding channels of unequal length to a common length

The detectors never call this; ingestion adapters (ictalscan.io) do.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
import warnings
from typing import List, Mapping, Optional, Sequence

import numpy as np
from scipy.signal import butter, filtfilt, iirnotch, sosfiltfilt

from .models import InvalidParameter


@dataclass(frozen=True)
class PreprocessingConfig:
    """Configuration for ingestion-side preprocessing."""

    smoothing: bool = True
    smoothing_half_width: int = 5  # samples either side

    baseline_correction: bool = True
    baseline_half_width: int = 100
    baseline_fraction: float = 0.8

    notch: bool = False
    notch_freqs: Sequence[float] = (50.0,)
    notch_q: float = 30.0

    # 'none', 'lowpass', 'highpass' or 'bandpass'
    filter_type: str = "none"
    filter_frequency: float = 50.0
    filter_band: Sequence[float] = (1.0, 70.0)
    filter_order: int = 4

    def __post_init__(self) -> None:
        ft = str(self.filter_type).lower().strip()
        if ft not in ("none", "lowpass", "highpass", "bandpass"):
            raise InvalidParameter(f"Unknown filter_type='{self.filter_type}'. Use none/lowpass/highpass/bandpass.")
        object.__setattr__(self, "filter_type", ft)
        object.__setattr__(self, "notch_freqs", tuple(float(f) for f in self.notch_freqs))
        object.__setattr__(self, "filter_band", tuple(float(f) for f in self.filter_band))
        if int(self.smoothing_half_width) < 0 or int(self.baseline_half_width) < 0:
            raise InvalidParameter("half widths must be >= 0")

    @classmethod
    def from_dict(cls, d: Optional[Mapping]) -> "PreprocessingConfig":
        d = dict(d or {})
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(d) - known)
        if unknown:
            raise InvalidParameter(f"Unknown preprocessing config keys: {unknown}")
        return cls(**d)


def _centred_mean(x: np.ndarray, half_width: int) -> np.ndarray:
    """
    Mean over [i - h, i + h] clipped to the array, ignoring NaNs.

    Edges average over the samples that exist; positions with no valid sample get 0.
    """
    x = np.asarray(x, dtype=np.float64)
    n = x.shape[0]
    if n == 0:
        return x.copy()
    h = int(half_width)
    valid = ~np.isnan(x)
    c = np.concatenate(([0.0], np.cumsum(np.where(valid, x, 0.0))))
    k = np.concatenate(([0], np.cumsum(valid.astype(np.int64))))
    idx = np.arange(n)
    lo = np.maximum(idx - h, 0)
    hi = np.minimum(idx + h + 1, n)
    sums = c[hi] - c[lo]
    counts = k[hi] - k[lo]
    return np.where(counts > 0, sums / np.maximum(counts, 1), 0.0)


def smooth(samples, half_width: int = 5) -> np.ndarray:
    """Centred moving average, window 2*half_width + 1."""
    return _centred_mean(samples, half_width)


def remove_baseline(samples, half_width: int = 100, fraction: float = 0.8) -> np.ndarray:
    """Subtract fraction * centred moving mean (partial drift removal)."""
    x = np.asarray(samples, dtype=np.float64)
    return x - float(fraction) * _centred_mean(x, half_width)


def apply_notch(samples, sfreq: float, freqs: Sequence[float] = (50.0,), q: float = 30.0) -> np.ndarray:
    """Notch out power-line frequencies below Nyquist."""
    x = np.asarray(samples, dtype=np.float64)
    for freq in freqs:
        if freq >= sfreq / 2:
            continue
        b, a = iirnotch(freq, q, sfreq)
        if x.shape[-1] <= 3 * max(len(a), len(b)):
            warnings.warn(f"Signal too short for notch at {freq} Hz; left unfiltered.")
            continue
        x = filtfilt(b, a, x, axis=-1)
    return x


def apply_filter(
    samples,
    sfreq: float,
    filter_type: str,
    *,
    frequency: float = 50.0,
    band: Sequence[float] = (1.0, 70.0),
    order: int = 4,
) -> np.ndarray:
    """Zero-phase Butterworth low/high/band-pass."""
    x = np.asarray(samples, dtype=np.float64)
    ft = str(filter_type).lower().strip()
    if ft == "none":
        return x
    nyq = sfreq / 2.0
    if ft == "bandpass":
        low, high = float(band[0]), float(band[1])
        if high >= nyq:
            warnings.warn(f"Bandpass high ({high}Hz) >= Nyquist ({nyq}Hz), clipping to {nyq - 1}Hz")
            high = nyq - 1.0
        sos = butter(order, [low / nyq, high / nyq], btype="band", output="sos")
    elif ft in ("lowpass", "highpass"):
        cutoff = float(frequency)
        if not 0 < cutoff < nyq:
            raise InvalidParameter(f"{ft} cutoff must be in (0, {nyq}) Hz, got {cutoff}")
        sos = butter(order, cutoff / nyq, btype=ft, output="sos")
    else:
        raise InvalidParameter(f"Unknown filter_type='{filter_type}'")

    if x.shape[-1] <= 3 * (2 * sos.shape[0] + 1):
        warnings.warn(f"Signal too short for {ft} filter; left unfiltered.")
        return x
    return sosfiltfilt(sos, x, axis=-1)


def preprocess_samples(samples, sfreq: float, config: Optional[PreprocessingConfig] = None) -> np.ndarray:
    """Filtering (if any), then smoothing, then baseline removal."""
    cfg = config or PreprocessingConfig()
    x = np.asarray(samples, dtype=np.float64)
    if cfg.notch:
        x = apply_notch(x, sfreq, cfg.notch_freqs, cfg.notch_q)
    if cfg.filter_type != "none":
        x = apply_filter(
            x, sfreq, cfg.filter_type, frequency=cfg.filter_frequency, band=cfg.filter_band, order=cfg.filter_order
        )
    if cfg.smoothing:
        x = smooth(x, cfg.smoothing_half_width)
    if cfg.baseline_correction:
        x = remove_baseline(x, cfg.baseline_half_width, cfg.baseline_fraction)
    return x


def pad_channels(arrays: Sequence, fill: float = 0.0) -> List[np.ndarray]:
    """Pad every channel at the end to the longest channel's length."""
    arrs = [np.asarray(a, dtype=np.float64).reshape(-1) for a in arrays]
    if not arrs:
        return []
    n = max(a.shape[0] for a in arrs)
    return [np.pad(a, (0, n - a.shape[0]), constant_values=fill) if a.shape[0] < n else a for a in arrs]
