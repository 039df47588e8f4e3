"""
Ictal region clustering

Goal
----
Pool per-channel detections across the whole recording and group them into
candidate ictal regions:
- flatten (keeping the channel name) and stable-sort by start time
- single greedy pass: an event joins the open cluster if it starts within
  gap_seconds of the cluster's running end
- keep clusters with at least min_events members
- annotate each with event-type counts, involved channels, severity, confidence
- rank: severity (high first), then confidence (descending)

Design principles
-----------------
- One implementation; presentation code calls this module, never a copy of it.
- Confidence jitter is injected (seeded by default) so tests can pin it.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
import math
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from .models import (
    EVENT_KEYS,
    Event,
    EventType,
    IctalRegion,
    InvalidParameter,
    Severity,
    count_by_type,
)


# () -> multiplicative factor applied to the raw confidence score
Jitter = Callable[[], float]


class UniformJitter:
    """Confidence jitter drawn uniformly from [low, high) with a seeded generator."""

    def __init__(self, low: float = 0.7, high: float = 1.0, seed=None):
        if high < low:
            raise InvalidParameter(f"Jitter range must satisfy low <= high, got ({low}, {high})")
        self.low = float(low)
        self.high = float(high)
        self._rng = np.random.default_rng(seed)

    def __call__(self) -> float:
        if self.low == self.high:
            return self.low
        return float(self._rng.uniform(self.low, self.high))


class ConstantJitter:
    """Fixed factor; ConstantJitter(1.0) makes confidence fully deterministic."""

    def __init__(self, value: float = 1.0):
        self.value = float(value)

    def __call__(self) -> float:
        return self.value


@dataclass(frozen=True)
class ClusteringConfig:
    """Configuration for ictal region clustering and scoring."""

    gap_seconds: float = 10.0
    min_events: int = 3

    # severity: high if hfo_ratio > high_hfo_ratio or total > high_min_events, etc.
    high_hfo_ratio: float = 0.5
    high_min_events: int = 10
    medium_hfo_ratio: float = 0.2
    medium_min_events: int = 5

    # confidence = min(max_confidence, round((density*w_d + involvement*w_c) * jitter))
    density_weight: float = 20.0
    involvement_weight: float = 50.0
    max_confidence: int = 95
    jitter_range: Tuple[float, float] = (0.7, 1.0)

    # Seed for the default jitter (None = fresh entropy)
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "jitter_range", tuple(float(v) for v in self.jitter_range))
        if float(self.gap_seconds) < 0:
            raise InvalidParameter(f"gap_seconds must be >= 0, got {self.gap_seconds}")
        if int(self.min_events) < 1:
            raise InvalidParameter(f"min_events must be >= 1, got {self.min_events}")

    @classmethod
    def from_dict(cls, d: Optional[Mapping]) -> "ClusteringConfig":
        d = dict(d or {})
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(d) - known)
        if unknown:
            raise InvalidParameter(f"Unknown clustering config keys: {unknown}")
        if "jitter_range" in d and d["jitter_range"] is not None:
            d["jitter_range"] = tuple(d["jitter_range"])
        return cls(**d)


def round_half_up(x: float) -> int:
    """Round to nearest integer, halves away from zero for positives (0.5 -> 1)."""
    return int(math.floor(float(x) + 0.5))


def flatten_events(events_by_channel: Mapping[str, Sequence[Event]]) -> List[Event]:
    """Channel order, then per-channel list order."""
    return [e for evs in events_by_channel.values() for e in evs]


def cluster_events(events: Iterable[Event], gap_seconds: float = 10.0) -> List[List[Event]]:
    """
    Greedy temporal clustering.

    Events are stable-sorted by start (ties keep input order). An event joins the
    current cluster when event.start <= cluster_end + gap_seconds.
    """
    ordered = sorted(events, key=lambda e: e.start)
    clusters: List[List[Event]] = []
    cluster_end = 0.0
    for ev in ordered:
        if clusters and ev.start <= cluster_end + gap_seconds:
            clusters[-1].append(ev)
            cluster_end = max(cluster_end, ev.end)
        else:
            clusters.append([ev])
            cluster_end = ev.end
    return clusters


def classify_severity(event_count: Mapping[str, int], config: Optional[ClusteringConfig] = None) -> Severity:
    cfg = config or ClusteringConfig()
    total = int(sum(event_count.get(k, 0) for k in EVENT_KEYS))
    if total == 0:
        return Severity.LOW
    hfo_ratio = event_count.get(EventType.HFO.key, 0) / total
    if hfo_ratio > cfg.high_hfo_ratio or total > cfg.high_min_events:
        return Severity.HIGH
    if hfo_ratio > cfg.medium_hfo_ratio or total > cfg.medium_min_events:
        return Severity.MEDIUM
    return Severity.LOW


def _distinct_channels(events: Sequence[Event]) -> Tuple[str, ...]:
    seen: Dict[str, None] = {}
    for e in events:
        seen.setdefault(e.channel, None)
    return tuple(seen)


class IctalRegionClusterer:
    """
    Turn pooled per-channel events into ranked IctalRegions.

    Typical usage:
        regions = IctalRegionClusterer(ClusteringConfig(seed=0)).cluster(events_by_channel)
    """

    def __init__(self, config: Optional[ClusteringConfig] = None, jitter: Optional[Jitter] = None):
        self.config = config or ClusteringConfig()
        if jitter is None:
            lo, hi = self.config.jitter_range
            jitter = UniformJitter(lo, hi, seed=self.config.seed)
        self.jitter = jitter

    def confidence(self, n_events: int, duration: float, n_involved: int, n_channels: int) -> int:
        cfg = self.config
        density = n_events / duration if duration > 0 else float(n_events)
        involvement = n_involved / (n_channels or 1)
        raw = (density * cfg.density_weight + involvement * cfg.involvement_weight) * float(self.jitter())
        return int(min(cfg.max_confidence, round_half_up(raw)))

    def build_region(self, members: Sequence[Event], n_channels: int) -> IctalRegion:
        start = min(e.start for e in members)
        end = max(e.end for e in members)
        counts = count_by_type(members)
        channels = _distinct_channels(members)
        return IctalRegion(
            start=start,
            end=end,
            channels=channels,
            event_count=counts,
            severity=classify_severity(counts, self.config),
            confidence=self.confidence(len(members), end - start, len(channels), n_channels),
        )

    def cluster(
        self,
        events_by_channel: Mapping[str, Sequence[Event]],
        n_channels: Optional[int] = None,
    ) -> Tuple[IctalRegion, ...]:
        """
        events_by_channel: channel name -> that channel's events (channels with no
        events should still be present so they count towards involvement).
        n_channels: total channels in the recording; defaults to len(events_by_channel).
        """
        cfg = self.config
        if n_channels is None:
            n_channels = len(events_by_channel)
        if int(n_channels) < 0:
            raise InvalidParameter(f"n_channels must be >= 0, got {n_channels}")

        groups = cluster_events(flatten_events(events_by_channel), cfg.gap_seconds)
        regions = [
            self.build_region(members, int(n_channels))
            for members in groups
            if len(members) >= int(cfg.min_events)
        ]
        regions.sort(key=lambda r: (r.severity.rank, -r.confidence))
        return tuple(regions)
