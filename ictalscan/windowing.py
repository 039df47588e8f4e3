"""
Sliding-window iteration over a single channel.

A window is the contiguous slice [i, i + W) for i = 0, S, 2S, ... while i + W <= n.
No overlap handling happens here; detectors own that.
"""

from __future__ import annotations

from typing import Iterator, Tuple

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from .models import InvalidParameter


def window_length(sample_rate: float, seconds: float) -> int:
    """Duration in seconds -> whole samples (floored). Raises if it rounds to nothing."""
    # small epsilon so 0.1 s * 250 Hz is 25 samples, not 24
    n = int(np.floor(float(sample_rate) * float(seconds) + 1e-9))
    if n <= 0:
        raise InvalidParameter(
            f"{seconds}s at {sample_rate} Hz is shorter than one sample; cannot build a window."
        )
    return n


class SignalWindowScanner:
    """
    Lazy, finite, restartable sequence of windows over a 1D sample array.

    Iterating yields (start_index, window) pairs; each window is a read-only view.
    A channel shorter than one window yields nothing.

    Example:
        for i, w in SignalWindowScanner(x, window=25, step=12):
            ...
    """

    def __init__(self, samples, window: int, step: int):
        window = int(window)
        step = int(step)
        if window <= 0:
            raise InvalidParameter(f"window must be > 0 samples, got {window}")
        if step <= 0:
            raise InvalidParameter(f"step must be > 0 samples, got {step}")
        x = np.asarray(samples, dtype=np.float64)
        if x.ndim != 1:
            raise InvalidParameter(f"Expected 1D samples, got shape {x.shape}")
        self._x = x.view()
        self._x.flags.writeable = False
        self.window = window
        self.step = step

    def starts(self) -> np.ndarray:
        n = self._x.shape[0]
        if n < self.window:
            return np.zeros((0,), dtype=np.int64)
        return np.arange(0, n - self.window + 1, self.step, dtype=np.int64)

    def as_matrix(self) -> np.ndarray:
        """All windows stacked as a read-only (n_windows, window) view."""
        if self._x.shape[0] < self.window:
            return np.zeros((0, self.window), dtype=np.float64)
        return sliding_window_view(self._x, self.window)[:: self.step]

    def __len__(self) -> int:
        return int(self.starts().shape[0])

    def __iter__(self) -> Iterator[Tuple[int, np.ndarray]]:
        w = self.window
        for i in self.starts().tolist():
            yield i, self._x[i : i + w]
