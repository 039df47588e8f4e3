"""Per-recording statistics over detected events and ictal regions."""

from __future__ import annotations

from typing import Dict, Iterable, Mapping, Optional, Sequence

import numpy as np

from .ictal_clustering import round_half_up
from .models import EVENT_KEYS, AnalysisSummary, Event, FeatureStats, IctalRegion, Severity


# Risk score weights; each count is divided by its normaliser and capped at 1.
RISK_WEIGHTS: Mapping[str, float] = {"hfo": 0.4, "ied": 0.3, "rhythmic": 0.1, "regions": 0.2}
PATTERN_NORMALISER = 50.0
REGION_NORMALISER = 5.0


def _mean(values: Sequence[float]) -> float:
    return float(np.mean(values)) if len(values) else 0.0


def _max(values: Sequence[float]) -> float:
    return float(np.max(values)) if len(values) else 0.0


def epilepsy_risk(pattern_counts: Mapping[str, int], n_regions: int) -> int:
    """Weighted sum of capped, normalised counts, scaled to 0..100."""
    score = sum(
        RISK_WEIGHTS[k] * min(pattern_counts.get(k, 0) / PATTERN_NORMALISER, 1.0) for k in EVENT_KEYS
    )
    score += RISK_WEIGHTS["regions"] * min(n_regions / REGION_NORMALISER, 1.0)
    return round_half_up(score * 100.0)


class AnalysisSummaryBuilder:
    """
    Aggregate counts, percentages, per-type feature averages and a risk score.

    Pure function of its inputs; empty inputs give an all-zero summary.
    """

    def build(
        self,
        events: Iterable[Event],
        regions: Sequence[IctalRegion] = (),
        ch_names: Optional[Sequence[str]] = None,
    ) -> AnalysisSummary:
        events = list(events)
        regions = list(regions)

        by_type: Dict[str, list] = {k: [] for k in EVENT_KEYS}
        for e in events:
            by_type[e.type.key].append(e)

        counts = {k: len(v) for k, v in by_type.items()}
        total = len(events)
        counts["total"] = total
        percentages = {k: (counts[k] / total * 100.0) if total > 0 else 0.0 for k in EVENT_KEYS}

        features_by_type = {
            k: FeatureStats(
                amplitude=_mean([e.amplitude for e in evs]),
                frequency=_mean([e.frequency for e in evs]),
                duration=_mean([e.duration for e in evs]),
            )
            for k, evs in by_type.items()
        }

        amps = [e.amplitude for e in events]
        freqs = [e.frequency for e in events]
        feature_stats = {
            "avg_amplitude": _mean(amps),
            "avg_frequency": _mean(freqs),
            "avg_duration": _mean([e.duration for e in events]),
            "max_amplitude": _max(amps),
            "max_frequency": _max(freqs),
        }

        severity_counts = {s.value: 0 for s in Severity}
        for r in regions:
            severity_counts[r.severity.value] += 1

        channel_counts: Dict[str, int] = {str(c): 0 for c in (ch_names or [])}
        for e in events:
            channel_counts[e.channel] = channel_counts.get(e.channel, 0) + 1

        return AnalysisSummary(
            pattern_counts=counts,
            pattern_percentages=percentages,
            features_by_type=features_by_type,
            feature_stats=feature_stats,
            n_regions=len(regions),
            severity_counts=severity_counts,
            channel_event_counts=channel_counts,
            epilepsy_risk=epilepsy_risk(counts, len(regions)),
        )
