"""Tests for greedy temporal clustering, severity and confidence scoring."""
from __future__ import annotations

import pytest

from ictalscan.ictal_clustering import (
    ClusteringConfig,
    ConstantJitter,
    IctalRegionClusterer,
    UniformJitter,
    classify_severity,
    cluster_events,
    round_half_up,
)
from ictalscan.models import EventType, InvalidParameter, Severity
from tests.fixtures.signal_generators import make_events


def _clusterer(**cfg) -> IctalRegionClusterer:
    return IctalRegionClusterer(ClusteringConfig(**cfg), ConstantJitter(1.0))


def test_four_close_ieds_form_one_low_region():
    events = make_events([0.0, 1.0, 2.0, 3.0], duration=1.0)
    regions = _clusterer().cluster({"A": events, "B": []})

    assert len(regions) == 1
    r = regions[0]
    assert (r.start, r.end) == (0.0, 4.0)
    assert r.channels == ("A",)
    assert dict(r.event_count) == {"hfo": 0, "ied": 4, "rhythmic": 0}
    assert r.severity is Severity.LOW
    # density 1/s * 20 + involvement 1/2 * 50
    assert r.confidence == 45


def test_widely_spaced_events_do_not_cluster():
    events = make_events([0.0, 15.0, 30.0, 45.0])
    assert _clusterer().cluster({"A": events}) == ()


def test_groups_fifteen_seconds_apart_stay_separate():
    # each group alone is a region; the 15 s gap keeps them apart
    events = make_events([0.0, 1.0, 2.0]) + make_events([17.2, 18.2, 19.2])
    regions = _clusterer().cluster({"A": events})
    assert len(regions) == 2
    assert sorted((r.start, r.total_events) for r in regions) == [(0.0, 3), (17.2, 3)]


def test_gap_is_inclusive():
    # cluster end 0.5, next start exactly 0.5 + 10
    events = make_events([0.0, 10.5, 21.0], duration=0.5)
    regions = _clusterer().cluster({"A": events})
    assert len(regions) == 1
    assert regions[0].total_events == 3


def test_gap_is_measured_from_running_end():
    # a long first event keeps the cluster open past its start + gap
    long_event = make_events([0.0], duration=20.0)
    short = make_events([25.0, 26.0])
    regions = _clusterer().cluster({"A": long_event + short})
    assert len(regions) == 1
    assert regions[0].start == 0.0
    assert regions[0].end == pytest.approx(26.2)


def test_fewer_than_min_events_is_dropped():
    events = make_events([0.0, 1.0])
    assert _clusterer().cluster({"A": events}) == ()
    assert len(_clusterer(min_events=2).cluster({"A": events})) == 1


def test_empty_input_gives_no_regions():
    assert _clusterer().cluster({}) == ()
    assert _clusterer().cluster({"A": [], "B": []}) == ()


def test_events_from_several_channels_are_pooled():
    events = make_events([0.0, 0.5, 1.0, 1.5], channels=["B", "A", "B", "C"])
    by_channel = {"A": [], "B": [], "C": [], "D": []}
    for e in events:
        by_channel[e.channel].append(e)

    regions = _clusterer().cluster(by_channel)
    assert len(regions) == 1
    # first-seen order after sorting by start
    assert regions[0].channels == ("B", "A", "C")


def test_confidence_is_capped():
    # 5 events in 0.5 s: density alone is 200
    events = make_events([0.0, 0.1, 0.2, 0.3, 0.4], duration=0.1)
    regions = _clusterer().cluster({"A": events, "B": []})
    assert regions[0].confidence == 95


def test_zero_channel_count_is_treated_as_one():
    events = make_events([0.0, 1.0, 2.0, 3.0], duration=1.0)
    regions = _clusterer().cluster({"A": events}, n_channels=0)
    # involvement 1/1 * 50 + density 20
    assert regions[0].confidence == 70


def test_negative_channel_count_raises():
    with pytest.raises(InvalidParameter):
        _clusterer().cluster({"A": []}, n_channels=-1)


def test_regions_are_ranked_by_severity_then_confidence():
    low_sparse = make_events([0.0, 1.0, 2.0], duration=1.0)
    medium = make_events([100.0, 101.0, 102.0, 103.0, 104.0, 105.0])
    high = make_events([200.0, 200.5, 201.0], etype=EventType.HFO) + make_events([201.5])
    low_dense = make_events([300.0, 300.25, 300.5, 300.75], duration=0.25)

    regions = _clusterer().cluster({"A": low_sparse + medium + high + low_dense, "B": []})

    assert [r.severity for r in regions] == [Severity.HIGH, Severity.MEDIUM, Severity.LOW, Severity.LOW]
    assert regions[2].start == 300.0
    assert regions[2].confidence > regions[3].confidence
    assert regions[3].start == 0.0


def test_region_bounds_and_counts_cover_members():
    events = make_events([5.0, 6.0, 7.5], duration=0.4) + make_events([6.5], etype=EventType.RHYTHMIC, duration=3.0)
    r = _clusterer().cluster({"A": events})[0]
    assert r.start == min(e.start for e in events)
    assert r.end == max(e.end for e in events)
    assert r.total_events == len(events)
    assert r.event_count["rhythmic"] == 1
    assert 0 <= r.confidence <= 95


def test_clustering_is_idempotent_with_fixed_jitter():
    events = {"A": make_events([0.0, 1.0, 2.0, 50.0, 51.0, 52.0, 53.0])}
    c = _clusterer()
    assert c.cluster(events) == c.cluster(events)


def test_seeded_jitter_is_reproducible():
    events = {"A": make_events([float(i) for i in range(8)]), "B": []}
    a = IctalRegionClusterer(ClusteringConfig(seed=11)).cluster(events)
    b = IctalRegionClusterer(ClusteringConfig(seed=11)).cluster(events)
    assert a == b


def test_uniform_jitter_bounds_confidence():
    events = make_events([0.0, 1.0, 2.0, 3.0], duration=1.0)
    for seed in range(20):
        r = IctalRegionClusterer(ClusteringConfig(), UniformJitter(0.7, 1.0, seed=seed)).cluster(
            {"A": events, "B": []}
        )[0]
        # raw score 45
        assert round_half_up(45 * 0.7) <= r.confidence <= 45


def test_cluster_events_keeps_input_order_for_ties():
    events = make_events([1.0, 1.0, 0.0], channels=["X", "Y", "Z"])
    (group,) = cluster_events(events, gap_seconds=10.0)
    assert [e.channel for e in group] == ["Z", "X", "Y"]


@pytest.mark.parametrize(
    "counts, expected",
    [
        ({"hfo": 3, "ied": 1}, Severity.HIGH),
        ({"ied": 11}, Severity.HIGH),
        ({"ied": 6}, Severity.MEDIUM),
        ({"hfo": 1, "ied": 3}, Severity.MEDIUM),
        ({"hfo": 1, "ied": 4}, Severity.LOW),
        ({"ied": 4}, Severity.LOW),
        ({"ied": 10}, Severity.MEDIUM),
        ({"hfo": 0, "ied": 0, "rhythmic": 0}, Severity.LOW),
    ],
)
def test_classify_severity(counts, expected):
    assert classify_severity(counts) is expected


@pytest.mark.parametrize("x, expected", [(0.5, 1), (1.5, 2), (2.5, 3), (44.4, 44), (44.6, 45), (0.0, 0)])
def test_round_half_up(x, expected):
    assert round_half_up(x) == expected


def test_config_from_dict():
    cfg = ClusteringConfig.from_dict({"gap_seconds": 5, "jitter_range": [0.9, 0.9]})
    assert cfg.gap_seconds == 5
    assert cfg.jitter_range == (0.9, 0.9)
    with pytest.raises(InvalidParameter):
        ClusteringConfig.from_dict({"gap": 5})


def test_config_rejects_negative_gap():
    with pytest.raises(InvalidParameter):
        ClusteringConfig(gap_seconds=-1.0)
