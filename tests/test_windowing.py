"""Tests for SignalWindowScanner and window_length."""
from __future__ import annotations

import numpy as np
import pytest

from ictalscan.models import InvalidParameter
from ictalscan.windowing import SignalWindowScanner, window_length


def test_window_starts_follow_step_until_last_full_window():
    x = np.arange(10, dtype=np.float64)
    scanner = SignalWindowScanner(x, window=4, step=3)

    starts = [i for i, _ in scanner]
    assert starts == [0, 3, 6]
    assert len(scanner) == 3
    for i, w in scanner:
        np.testing.assert_array_equal(w, x[i : i + 4])


def test_last_window_may_end_exactly_at_length():
    scanner = SignalWindowScanner(np.zeros(8), window=4, step=4)
    assert scanner.starts().tolist() == [0, 4]


def test_scanner_is_restartable():
    scanner = SignalWindowScanner(np.arange(20.0), window=5, step=5)
    first = [i for i, _ in scanner]
    second = [i for i, _ in scanner]
    assert first == second == [0, 5, 10, 15]


def test_short_channel_yields_nothing():
    scanner = SignalWindowScanner(np.zeros(3), window=5, step=1)
    assert list(scanner) == []
    assert len(scanner) == 0
    assert scanner.as_matrix().shape == (0, 5)


def test_as_matrix_matches_iteration():
    x = np.random.default_rng(0).normal(size=103)
    scanner = SignalWindowScanner(x, window=25, step=12)
    m = scanner.as_matrix()
    rows = [w for _, w in scanner]
    assert m.shape == (len(rows), 25)
    np.testing.assert_array_equal(m, np.stack(rows))


def test_windows_are_read_only():
    x = np.arange(10, dtype=np.float64)
    _, w = next(iter(SignalWindowScanner(x, window=4, step=2)))
    with pytest.raises(ValueError):
        w[0] = 99.0
    assert x[0] == 0.0


@pytest.mark.parametrize("window, step", [(0, 1), (-3, 1), (4, 0), (4, -1)])
def test_invalid_window_or_step_raises(window, step):
    with pytest.raises(InvalidParameter):
        SignalWindowScanner(np.zeros(10), window=window, step=step)


def test_invalid_parameter_is_a_value_error():
    with pytest.raises(ValueError):
        SignalWindowScanner(np.zeros(10), window=0, step=1)


def test_window_length_in_samples():
    assert window_length(250.0, 0.1) == 25
    assert window_length(250.0, 0.05) == 12
    assert window_length(250.0, 0.2) == 50
    assert window_length(250.0, 3.0) == 750


def test_window_length_rejects_sub_sample_duration():
    with pytest.raises(InvalidParameter):
        window_length(5.0, 0.1)
