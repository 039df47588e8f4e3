"""
Value types shared by the detectors, the clusterer and the summary builder.

Everything here is immutable once constructed:
- Channel / Recording: the input handed over by the ingestion layer
- Event: one per-channel detection
- IctalRegion: a cluster of temporally adjacent events
- AnalysisSummary / AnalysisResult: what a single analysis run returns

Times are seconds relative to record start; amplitudes are in the units of the
samples (microvolts for the adapters in ictalscan.io).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Sequence, Tuple

import numpy as np


Seconds = float


class InvalidParameter(ValueError):
    """Malformed window/step sizes, sample rates, event spans or config values."""


class AnalysisCancelled(RuntimeError):
    """Raised when the caller's cancel token is set between channels."""


class EventType(str, Enum):
    HFO = "HFO"
    IED = "IED"
    RHYTHMIC = "Rhythmic"

    @property
    def key(self) -> str:
        """Lower-case key used in event-count maps ('hfo', 'ied', 'rhythmic')."""
        return self.value.lower()


EVENT_KEYS: Tuple[str, ...] = tuple(t.key for t in EventType)


class Severity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        # high sorts first
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {Severity.HIGH: 0, Severity.MEDIUM: 1, Severity.LOW: 2}


def _readonly_samples(x) -> np.ndarray:
    arr = np.array(x, dtype=np.float64, copy=True).reshape(-1)
    arr.flags.writeable = False
    return arr


@dataclass(frozen=True, eq=False)
class Channel:
    """One EEG channel: a name, a voltage scale and its samples (read-only)."""

    name: str
    samples: np.ndarray
    voltage_scale: float = 1.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", str(self.name))
        object.__setattr__(self, "samples", _readonly_samples(self.samples))
        object.__setattr__(self, "voltage_scale", float(self.voltage_scale))

    @property
    def n_samples(self) -> int:
        return int(self.samples.shape[0])


@dataclass(frozen=True)
class Recording:
    """
    Channels in acquisition order plus a single sample rate.

    Channels may differ in length; padding is the ingestion layer's job
    (see ictalscan.preprocessing.pad_channels).
    """

    channels: Tuple[Channel, ...]
    sample_rate: float

    def __post_init__(self) -> None:
        channels = tuple(self.channels)
        sfreq = float(self.sample_rate)
        if not np.isfinite(sfreq) or sfreq <= 0:
            raise InvalidParameter(f"sample_rate must be > 0, got {self.sample_rate!r}")
        names = [c.name for c in channels]
        if len(set(names)) != len(names):
            dupes = sorted({n for n in names if names.count(n) > 1})
            raise InvalidParameter(f"Duplicate channel names: {dupes}")
        object.__setattr__(self, "channels", channels)
        object.__setattr__(self, "sample_rate", sfreq)

    @property
    def ch_names(self) -> List[str]:
        return [c.name for c in self.channels]

    @property
    def n_channels(self) -> int:
        return len(self.channels)

    @property
    def n_samples(self) -> int:
        if not self.channels:
            return 0
        return max(c.n_samples for c in self.channels)

    @property
    def duration_seconds(self) -> Seconds:
        return float(self.n_samples) / self.sample_rate

    @property
    def is_empty(self) -> bool:
        return self.n_samples == 0

    def channel(self, name: str) -> Channel:
        for c in self.channels:
            if c.name == name:
                return c
        raise KeyError(f"No channel named '{name}'")

    def __iter__(self) -> Iterator[Channel]:
        return iter(self.channels)


@dataclass(frozen=True)
class Event:
    """Single-channel detection [start, end] in seconds."""

    channel: str
    start: Seconds
    end: Seconds
    type: EventType
    amplitude: float
    frequency: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", EventType(self.type))
        object.__setattr__(self, "start", float(self.start))
        object.__setattr__(self, "end", float(self.end))
        if not self.end > self.start:
            raise InvalidParameter(f"Event end must be > start, got [{self.start}, {self.end}]")

    @property
    def duration(self) -> float:
        return float(self.end - self.start)

    def overlaps(self, start: Seconds, end: Seconds) -> bool:
        """Inclusive-bound interval intersection with [start, end]."""
        return start <= self.end and end >= self.start


@dataclass(frozen=True)
class IctalRegion:
    """
    A cluster of >= 3 temporally adjacent events.

    channels: distinct channel names, in order of first appearance in the cluster.
    event_count: {'hfo': n, 'ied': n, 'rhythmic': n}
    confidence: integer 0..95
    """

    start: Seconds
    end: Seconds
    channels: Tuple[str, ...]
    event_count: Mapping[str, int]
    severity: Severity
    confidence: int

    def __post_init__(self) -> None:
        counts = {k: int(self.event_count.get(k, 0)) for k in EVENT_KEYS}
        object.__setattr__(self, "event_count", MappingProxyType(counts))
        object.__setattr__(self, "channels", tuple(self.channels))
        object.__setattr__(self, "severity", Severity(self.severity))

    @property
    def total_events(self) -> int:
        return int(sum(self.event_count.values()))

    @property
    def duration(self) -> float:
        return float(self.end - self.start)

    def focus_window(self, recording_duration: Seconds, padding_fraction: float = 0.2) -> Tuple[Seconds, Seconds]:
        """Region bounds widened by padding_fraction of its duration, clamped to the recording."""
        pad = self.duration * float(padding_fraction)
        return (max(0.0, self.start - pad), min(float(recording_duration), self.end + pad))

    def as_dict(self) -> Dict:
        return {
            "start": self.start,
            "end": self.end,
            "channels": list(self.channels),
            "event_count": dict(self.event_count),
            "severity": self.severity.value,
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class FeatureStats:
    """Average amplitude / frequency / duration of one event type."""

    amplitude: float = 0.0
    frequency: float = 0.0
    duration: float = 0.0


@dataclass(frozen=True)
class AnalysisSummary:
    """Per-recording statistics built by AnalysisSummaryBuilder."""

    pattern_counts: Mapping[str, int]
    pattern_percentages: Mapping[str, float]
    features_by_type: Mapping[str, FeatureStats]
    feature_stats: Mapping[str, float]
    n_regions: int
    severity_counts: Mapping[str, int]
    channel_event_counts: Mapping[str, int]
    epilepsy_risk: int

    def __post_init__(self) -> None:
        for name in (
            "pattern_counts",
            "pattern_percentages",
            "features_by_type",
            "feature_stats",
            "severity_counts",
            "channel_event_counts",
        ):
            object.__setattr__(self, name, MappingProxyType(dict(getattr(self, name))))

    @property
    def risk_level(self) -> str:
        if self.epilepsy_risk > 70:
            return "high"
        if self.epilepsy_risk > 30:
            return "moderate"
        return "low"

    def as_dict(self) -> Dict:
        return {
            "pattern_counts": dict(self.pattern_counts),
            "pattern_percentages": dict(self.pattern_percentages),
            "features_by_type": {
                k: {"amplitude": v.amplitude, "frequency": v.frequency, "duration": v.duration}
                for k, v in self.features_by_type.items()
            },
            "feature_stats": dict(self.feature_stats),
            "n_regions": self.n_regions,
            "severity_counts": dict(self.severity_counts),
            "channel_event_counts": dict(self.channel_event_counts),
            "epilepsy_risk": self.epilepsy_risk,
            "risk_level": self.risk_level,
        }


@dataclass(frozen=True)
class AnalysisResult:
    """Output of one analysis run: per-channel events, ranked regions, summary."""

    sample_rate: float
    duration_seconds: Seconds
    events_by_channel: Mapping[str, Tuple[Event, ...]]
    regions: Tuple[IctalRegion, ...]
    summary: AnalysisSummary
    meta: Mapping = field(default_factory=dict)

    def __post_init__(self) -> None:
        ev = {str(k): tuple(v) for k, v in self.events_by_channel.items()}
        object.__setattr__(self, "events_by_channel", MappingProxyType(ev))
        object.__setattr__(self, "regions", tuple(self.regions))
        object.__setattr__(self, "meta", MappingProxyType(dict(self.meta)))

    @property
    def ch_names(self) -> List[str]:
        return list(self.events_by_channel.keys())

    def all_events(self) -> List[Event]:
        """Events of every channel, channel order then detection order."""
        return [e for events in self.events_by_channel.values() for e in events]

    def as_dict(self) -> Dict:
        return {
            "sample_rate": self.sample_rate,
            "duration_seconds": self.duration_seconds,
            "events": [event_to_dict(e) for e in self.all_events()],
            "regions": [r.as_dict() for r in self.regions],
            "summary": self.summary.as_dict(),
            "meta": dict(self.meta),
        }


def event_to_dict(event: Event) -> Dict:
    return {
        "channel": event.channel,
        "start": event.start,
        "end": event.end,
        "type": event.type.value,
        "amplitude": float(event.amplitude),
        "frequency": float(event.frequency),
    }


def count_by_type(events: Sequence[Event]) -> Dict[str, int]:
    counts = {k: 0 for k in EVENT_KEYS}
    for e in events:
        counts[e.type.key] += 1
    return counts
