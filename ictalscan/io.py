"""
Ingestion adapters: raw arrays / MNE Raw / EDF files -> Recording.

File parsing itself belongs to MNE; these helpers only pad channels, optionally
preprocess them and wrap the result in the immutable Recording value.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence, Union

import numpy as np

from .models import Channel, InvalidParameter, Recording
from .preprocessing import PreprocessingConfig, pad_channels, preprocess_samples


def recording_from_array(
    data: Union[np.ndarray, Sequence[Sequence[float]]],
    *,
    sfreq: float,
    ch_names: Sequence[str],
    voltage_scales: Optional[Sequence[float]] = None,
    preprocessing: Optional[PreprocessingConfig] = None,
) -> Recording:
    """
    Build a Recording from (n_channels, n_samples) data or a list of 1D channels.

    Ragged channels are zero-padded at the end to the longest one.
    """
    if isinstance(data, np.ndarray) and data.ndim == 2:
        rows: List[np.ndarray] = [data[i] for i in range(data.shape[0])]
    elif isinstance(data, np.ndarray) and data.size == 0:
        rows = []
    else:
        rows = [np.asarray(r, dtype=np.float64).reshape(-1) for r in data]

    ch_names = [str(c) for c in ch_names]
    if len(ch_names) != len(rows):
        raise InvalidParameter(f"len(ch_names)={len(ch_names)} must match number of channels={len(rows)}")
    if voltage_scales is None:
        voltage_scales = [1.0] * len(rows)
    if len(voltage_scales) != len(rows):
        raise InvalidParameter("len(voltage_scales) must match number of channels")

    rows = pad_channels(rows)
    if preprocessing is not None:
        rows = [preprocess_samples(r, float(sfreq), preprocessing) for r in rows]

    channels = tuple(
        Channel(name=n, samples=r, voltage_scale=float(v)) for n, r, v in zip(ch_names, rows, voltage_scales)
    )
    return Recording(channels=channels, sample_rate=float(sfreq))


def recording_from_raw(
    raw,
    *,
    picks: Optional[Sequence[str]] = None,
    scale: float = 1e6,
    preprocessing: Optional[PreprocessingConfig] = None,
) -> Recording:
    """
    Wrap an mne.io.BaseRaw.

    scale: multiplier applied to MNE's SI units (default volts -> microvolts,
    the units the detection thresholds are written for).
    """
    ch_names = list(picks) if picks is not None else list(raw.ch_names)
    data = raw.get_data(picks=ch_names) * float(scale)
    return recording_from_array(
        data,
        sfreq=float(raw.info["sfreq"]),
        ch_names=ch_names,
        preprocessing=preprocessing,
    )


def load_edf(
    edf_path: Union[str, Path],
    *,
    picks: Optional[Sequence[str]] = None,
    crop_seconds: Optional[float] = None,
    scale: float = 1e6,
    preprocessing: Optional[PreprocessingConfig] = None,
) -> Recording:
    """Read an EDF file with MNE and return a Recording."""
    import mne

    path = Path(edf_path).expanduser()
    if not path.exists():
        raise FileNotFoundError(f"EDF not found: {path}")
    raw = mne.io.read_raw_edf(str(path), preload=True, verbose="ERROR")
    if crop_seconds is not None:
        tmax = min(float(crop_seconds), raw.times[-1])
        raw.crop(tmin=0.0, tmax=tmax)
    return recording_from_raw(raw, picks=picks, scale=scale, preprocessing=preprocessing)
