"""
Epileptiform pattern detectors (time-domain heuristics on sliding windows)

Three detectors scan one channel each:
1) HFODetector: zero-crossing frequency estimate + window variance
2) IEDDetector: sharp spike (large |v| with steep rise and recovery)
3) RhythmicDetector: regular peak train (low coefficient of variation of inter-peak intervals)

ChannelEventAggregator runs them in the fixed order HFO -> IED -> Rhythmic on one
channel. A candidate window is dropped if it touches any event already accepted
for that channel (inclusive bounds), so the first detector to claim a stretch of
signal keeps it.

These are lightweight stand-ins for spectral analysis. Thresholds are heuristic.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
import threading
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
from joblib import Parallel, delayed
from scipy.stats import variation

from .models import AnalysisCancelled, Channel, Event, EventType, InvalidParameter, Recording
from .windowing import SignalWindowScanner, window_length


# (window samples, sample rate) -> frequency in Hz
FrequencyEstimator = Callable[[np.ndarray, float], float]


class UniformFrequencyEstimator:
    """
    Representative IED frequency drawn uniformly from [low, high) Hz.

    Known approximation: the window is not measured. Seeded so runs are reproducible;
    spawn() hands out independent child streams for per-channel use.
    """

    def __init__(self, low: float = 8.0, high: float = 20.0, seed=None):
        if not high > low:
            raise InvalidParameter(f"Frequency range must satisfy low < high, got ({low}, {high})")
        self.low = float(low)
        self.high = float(high)
        self._seed_seq = seed if isinstance(seed, np.random.SeedSequence) else np.random.SeedSequence(seed)
        self._rng = np.random.default_rng(self._seed_seq)

    def __call__(self, window: np.ndarray, sample_rate: float) -> float:
        return float(self._rng.uniform(self.low, self.high))

    def spawn(self, n: int) -> List["UniformFrequencyEstimator"]:
        return [UniformFrequencyEstimator(self.low, self.high, s) for s in self._seed_seq.spawn(int(n))]


@dataclass(frozen=True)
class PatternDetectionConfig:
    """Configuration for the three window detectors."""

    # HFO: 100 ms windows every 50 ms
    hfo_window_sec: float = 0.1
    hfo_step_sec: float = 0.05
    hfo_min_freq_hz: float = 80.0
    hfo_min_variance: float = 100.0

    # IED: 200 ms windows every 100 ms
    ied_window_sec: float = 0.2
    ied_step_sec: float = 0.1
    ied_min_amplitude: float = 50.0
    ied_min_slope: float = 10.0
    ied_slope_lag: int = 5  # samples either side of the peak
    ied_freq_range: Tuple[float, float] = (8.0, 20.0)

    # Rhythmic: 3 s windows every 1 s; intervals are in samples
    rhythmic_window_sec: float = 3.0
    rhythmic_step_sec: float = 1.0
    rhythmic_min_peak: float = 20.0
    rhythmic_min_intervals: int = 3
    rhythmic_max_cv: float = 0.3
    rhythmic_interval_range: Tuple[float, float] = (10.0, 100.0)

    # Which detectors run. Run order is always HFO, IED, Rhythmic.
    enabled: Tuple[str, ...] = ("HFO", "IED", "Rhythmic")

    # Seed for the IED frequency draw (None = fresh entropy)
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "ied_freq_range", tuple(float(v) for v in self.ied_freq_range))
        object.__setattr__(self, "rhythmic_interval_range", tuple(float(v) for v in self.rhythmic_interval_range))
        enabled = tuple(EventType(v).value for v in self.enabled)
        object.__setattr__(self, "enabled", enabled)
        for name in (
            "hfo_window_sec",
            "hfo_step_sec",
            "ied_window_sec",
            "ied_step_sec",
            "rhythmic_window_sec",
            "rhythmic_step_sec",
        ):
            if float(getattr(self, name)) <= 0:
                raise InvalidParameter(f"{name} must be > 0, got {getattr(self, name)}")
        if int(self.ied_slope_lag) < 1:
            raise InvalidParameter(f"ied_slope_lag must be >= 1, got {self.ied_slope_lag}")

    @classmethod
    def from_dict(cls, d: Optional[Mapping]) -> "PatternDetectionConfig":
        d = dict(d or {})
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(d) - known)
        if unknown:
            raise InvalidParameter(f"Unknown detection config keys: {unknown}")
        for key in ("ied_freq_range", "rhythmic_interval_range", "enabled"):
            if key in d and d[key] is not None:
                d[key] = tuple(d[key])
        return cls(**d)


@dataclass
class PatternDetectionResult:
    """Detection output for a whole recording."""

    sfreq: float
    ch_names: List[str]
    config: PatternDetectionConfig

    # channel name -> events sorted by start, in acquisition order
    events_by_channel: Dict[str, Tuple[Event, ...]]

    # Convenience stats
    events_count: np.ndarray  # shape (n_channels,)
    meta: Dict = field(default_factory=dict)

    def all_events(self) -> List[Event]:
        return [e for evs in self.events_by_channel.values() for e in evs]


def _overlaps_accepted(accepted: Sequence[Event], start: float, end: float) -> bool:
    return any(e.overlaps(start, end) for e in accepted)


class _WindowDetector:
    """
    Shared scan/accept loop.

    Subclasses compute per-window features on the stacked window matrix and
    return candidate (row, amplitude, frequency) triples in window order.
    """

    event_type: EventType

    def __init__(self, config: Optional[PatternDetectionConfig] = None):
        self.config = config or PatternDetectionConfig()

    def window_and_step(self, sample_rate: float) -> Tuple[int, int]:
        raise NotImplementedError

    def _candidates(
        self, windows: np.ndarray, sample_rate: float
    ) -> List[Tuple[int, float, float]]:
        raise NotImplementedError

    def detect(
        self,
        samples,
        sample_rate: float,
        channel: str,
        accepted: Sequence[Event] = (),
    ) -> List[Event]:
        """
        Scan one channel and return the events this detector adds.

        accepted: events already claimed on this channel (earlier detectors);
        candidates touching any of them, or each other, are discarded.
        """
        sample_rate = float(sample_rate)
        win, step = self.window_and_step(sample_rate)
        scanner = SignalWindowScanner(samples, win, step)
        starts = scanner.starts()
        if starts.size == 0:
            return []

        claimed = list(accepted)
        new_events: List[Event] = []
        for row, amplitude, frequency in self._candidates(scanner.as_matrix(), sample_rate):
            i = int(starts[row])
            t0 = i / sample_rate
            t1 = (i + win) / sample_rate
            if _overlaps_accepted(claimed, t0, t1):
                continue
            ev = Event(
                channel=str(channel),
                start=t0,
                end=t1,
                type=self.event_type,
                amplitude=float(amplitude),
                frequency=float(frequency),
            )
            claimed.append(ev)
            new_events.append(ev)
        return new_events


class HFODetector(_WindowDetector):
    """High-frequency oscillation: zero-crossing frequency > 80 Hz with variance > 100."""

    event_type = EventType.HFO

    def window_and_step(self, sample_rate: float) -> Tuple[int, int]:
        cfg = self.config
        return window_length(sample_rate, cfg.hfo_window_sec), window_length(sample_rate, cfg.hfo_step_sec)

    def _candidates(self, windows: np.ndarray, sample_rate: float) -> List[Tuple[int, float, float]]:
        cfg = self.config
        win = windows.shape[1]
        # zero counts as non-negative
        neg = windows < 0
        crossings = np.count_nonzero(neg[:, 1:] != neg[:, :-1], axis=1)
        est_freq = (crossings / 2.0) * (sample_rate / win)
        var = np.var(windows, axis=1)
        ptp = np.ptp(windows, axis=1)

        hit = (est_freq > cfg.hfo_min_freq_hz) & (var > cfg.hfo_min_variance)
        return [(int(r), float(ptp[r]), float(est_freq[r])) for r in np.flatnonzero(hit)]


class IEDDetector(_WindowDetector):
    """
    Interictal epileptiform discharge: a large, sharp transient.

    slope_before = (v[p] - v[p-k]) / k and slope_after = (v[p] - v[p+k]) / k
    around the largest |v| (first occurrence), k = ied_slope_lag. Both must exceed
    ied_min_slope in magnitude, and the signal must rise into the peak and recover
    out of it: the derivative leaving the peak, -slope_after, has the opposite
    sign to slope_before.
    """

    event_type = EventType.IED

    def __init__(
        self,
        config: Optional[PatternDetectionConfig] = None,
        frequency_estimator: Optional[FrequencyEstimator] = None,
    ):
        super().__init__(config)
        if frequency_estimator is None:
            lo, hi = self.config.ied_freq_range
            frequency_estimator = UniformFrequencyEstimator(lo, hi, seed=self.config.seed)
        self.frequency_estimator = frequency_estimator

    def window_and_step(self, sample_rate: float) -> Tuple[int, int]:
        cfg = self.config
        return window_length(sample_rate, cfg.ied_window_sec), window_length(sample_rate, cfg.ied_step_sec)

    def slopes(self, windows: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Return (max_amp, slope_before, slope_after) per window row."""
        k = int(self.config.ied_slope_lag)
        n_win, win = windows.shape
        rows = np.arange(n_win)
        pos = np.argmax(np.abs(windows), axis=1)
        max_amp = np.abs(windows[rows, pos])

        has_margin = (pos >= k) & (pos + k < win)
        before_idx = np.clip(pos - k, 0, win - 1)
        after_idx = np.clip(pos + k, 0, win - 1)
        peak = windows[rows, pos]
        slope_before = np.where(has_margin, (peak - windows[rows, before_idx]) / k, 0.0)
        slope_after = np.where(has_margin, (peak - windows[rows, after_idx]) / k, 0.0)
        return max_amp, slope_before, slope_after

    def _candidates(self, windows: np.ndarray, sample_rate: float) -> List[Tuple[int, float, float]]:
        cfg = self.config
        max_amp, slope_before, slope_after = self.slopes(windows)
        hit = (
            (max_amp > cfg.ied_min_amplitude)
            & (np.abs(slope_before) > cfg.ied_min_slope)
            & (np.abs(slope_after) > cfg.ied_min_slope)
            & (np.sign(slope_before) != np.sign(-slope_after))
        )
        return [
            (int(r), float(max_amp[r]), float(self.frequency_estimator(windows[r], sample_rate)))
            for r in np.flatnonzero(hit)
        ]


class RhythmicDetector(_WindowDetector):
    """Rhythmic discharge: >= 3 regular inter-peak intervals (CV < 0.3, 10..100 samples)."""

    event_type = EventType.RHYTHMIC

    def window_and_step(self, sample_rate: float) -> Tuple[int, int]:
        cfg = self.config
        return (
            window_length(sample_rate, cfg.rhythmic_window_sec),
            window_length(sample_rate, cfg.rhythmic_step_sec),
        )

    def _candidates(self, windows: np.ndarray, sample_rate: float) -> List[Tuple[int, float, float]]:
        cfg = self.config
        lo, hi = cfg.rhythmic_interval_range
        if windows.shape[1] < 3:
            return []
        mid = windows[:, 1:-1]
        peaks = (mid > windows[:, :-2]) & (mid > windows[:, 2:]) & (mid > cfg.rhythmic_min_peak)

        out: List[Tuple[int, float, float]] = []
        for r in range(windows.shape[0]):
            intervals = np.diff(np.flatnonzero(peaks[r]))
            if intervals.size < int(cfg.rhythmic_min_intervals):
                continue
            mean_interval = float(np.mean(intervals))
            cv = float(variation(intervals))
            if cv < cfg.rhythmic_max_cv and lo < mean_interval < hi:
                out.append((r, float(np.ptp(windows[r])), sample_rate / mean_interval))
        return out


class ChannelEventAggregator:
    """
    Run HFO -> IED -> Rhythmic on one channel and collect the accepted events.

    Order matters: earlier detectors claim signal first.
    """

    def __init__(
        self,
        config: Optional[PatternDetectionConfig] = None,
        frequency_estimator: Optional[FrequencyEstimator] = None,
    ):
        self.config = config or PatternDetectionConfig()
        detectors: Dict[str, _WindowDetector] = {
            EventType.HFO.value: HFODetector(self.config),
            EventType.IED.value: IEDDetector(self.config, frequency_estimator),
            EventType.RHYTHMIC.value: RhythmicDetector(self.config),
        }
        self.detectors: List[_WindowDetector] = [
            det for name, det in detectors.items() if name in self.config.enabled
        ]

    def aggregate(self, channel: Union[Channel, np.ndarray], sample_rate: float, name: Optional[str] = None) -> Tuple[Event, ...]:
        if isinstance(channel, Channel):
            samples = channel.samples
            name = channel.name if name is None else name
        else:
            samples = np.asarray(channel, dtype=np.float64)
            if name is None:
                raise InvalidParameter("name is required when passing a raw sample array.")

        accepted: List[Event] = []
        for det in self.detectors:
            accepted.extend(det.detect(samples, sample_rate, name, accepted))
        accepted.sort(key=lambda e: e.start)
        return tuple(accepted)


class PatternDetector:
    """
    Recording-level detector: fans ChannelEventAggregator out over channels.

    Typical usage:
        rec = recording_from_array(data, sfreq=250.0, ch_names=names)
        det = PatternDetector(PatternDetectionConfig(seed=0)).detect(rec)
    """

    def __init__(
        self,
        config: Optional[PatternDetectionConfig] = None,
        frequency_estimator: Optional[FrequencyEstimator] = None,
    ):
        self.config = config or PatternDetectionConfig()
        if frequency_estimator is None:
            lo, hi = self.config.ied_freq_range
            frequency_estimator = UniformFrequencyEstimator(lo, hi, seed=self.config.seed)
        self.frequency_estimator = frequency_estimator

    def _channel_estimators(self, n: int) -> List[FrequencyEstimator]:
        spawn = getattr(self.frequency_estimator, "spawn", None)
        if callable(spawn):
            return list(spawn(n))
        return [self.frequency_estimator] * n

    def detect(
        self,
        x: Union[Recording, np.ndarray],
        sfreq: Optional[float] = None,
        ch_names: Optional[List[str]] = None,
        *,
        n_jobs: int = 1,
        cancel: Optional[threading.Event] = None,
    ) -> PatternDetectionResult:
        """
        Detect events from a Recording or a (n_channels, n_samples) ndarray.

        If x is ndarray, sfreq and ch_names must be provided.
        n_jobs != 1 processes channels on joblib worker threads; each channel gets
        its own child frequency stream, so output does not depend on n_jobs.
        """
        if isinstance(x, Recording):
            recording = x
        else:
            if sfreq is None or ch_names is None:
                raise InvalidParameter("When passing ndarray, sfreq and ch_names are required.")
            from .io import recording_from_array

            recording = recording_from_array(x, sfreq=sfreq, ch_names=ch_names)

        sfreq_ = recording.sample_rate
        channels = list(recording.channels)
        estimators = self._channel_estimators(len(channels))
        shared_estimator = len(channels) > 1 and estimators[0] is estimators[-1]

        def _run(ch: Channel, est: FrequencyEstimator) -> Tuple[Event, ...]:
            if cancel is not None and cancel.is_set():
                raise AnalysisCancelled(f"Analysis cancelled before channel '{ch.name}'")
            return ChannelEventAggregator(self.config, est).aggregate(ch, sfreq_)

        if n_jobs == 1 or len(channels) <= 1 or shared_estimator:
            per_channel = [_run(ch, est) for ch, est in zip(channels, estimators)]
        else:
            per_channel = Parallel(n_jobs=n_jobs, prefer="threads")(
                delayed(_run)(ch, est) for ch, est in zip(channels, estimators)
            )

        events_by_channel = {ch.name: evs for ch, evs in zip(channels, per_channel)}
        events_count = np.array([len(evs) for evs in per_channel], dtype=np.int64)

        by_type = {t.value: 0 for t in EventType}
        for evs in per_channel:
            for e in evs:
                by_type[e.type.value] += 1

        meta: Dict = {
            "enabled": list(self.config.enabled),
            "events_by_type": by_type,
            "n_jobs": int(n_jobs),
        }
        if shared_estimator and n_jobs != 1:
            meta["parallel_warning"] = "frequency estimator has no spawn(); channels ran sequentially."

        return PatternDetectionResult(
            sfreq=sfreq_,
            ch_names=recording.ch_names,
            config=self.config,
            events_by_channel=events_by_channel,
            events_count=events_count,
            meta=meta,
        )
