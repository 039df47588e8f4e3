"""Event list queries used by event tables and time-window views."""

from __future__ import annotations

from typing import Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .ictal_clustering import flatten_events
from .models import Event, EventType, IctalRegion, InvalidParameter


_SORT_KEYS = {
    "start": lambda e: e.start,
    "end": lambda e: e.end,
    "duration": lambda e: e.duration,
    "amplitude": lambda e: e.amplitude,
    "frequency": lambda e: e.frequency,
    "channel": lambda e: e.channel,
    "type": lambda e: e.type.value,
}


def events_in_window(events: Iterable[Event], start: float, end: float) -> List[Event]:
    """Events intersecting [start, end] (inclusive bounds)."""
    if end < start:
        raise InvalidParameter(f"Time window end must be >= start, got [{start}, {end}]")
    return [e for e in events if e.overlaps(start, end)]


def events_in_region(events: Iterable[Event], region: IctalRegion) -> List[Event]:
    """Events lying entirely inside the region's bounds."""
    return [e for e in events if e.start >= region.start and e.end <= region.end]


def select_events(
    events: Union[Iterable[Event], Mapping[str, Sequence[Event]]],
    *,
    type: Optional[Union[str, EventType]] = None,
    channel: Optional[str] = None,
    min_amplitude: Optional[float] = None,
    min_frequency: Optional[float] = None,
    time_window: Optional[Tuple[float, float]] = None,
    sort_by: str = "start",
    descending: bool = False,
) -> List[Event]:
    """
    Filter and sort events the way an event table does.

    events may be a flat iterable or a channel -> events mapping.
    """
    if isinstance(events, Mapping):
        pool = flatten_events(events)
    else:
        pool = list(events)

    if sort_by not in _SORT_KEYS:
        raise InvalidParameter(f"sort_by must be one of {sorted(_SORT_KEYS)}, got '{sort_by}'")

    if type is not None:
        etype = EventType(type)
        pool = [e for e in pool if e.type is etype]
    if channel is not None:
        pool = [e for e in pool if e.channel == channel]
    if min_amplitude is not None:
        pool = [e for e in pool if e.amplitude >= float(min_amplitude)]
    if min_frequency is not None:
        pool = [e for e in pool if e.frequency >= float(min_frequency)]
    if time_window is not None:
        pool = events_in_window(pool, float(time_window[0]), float(time_window[1]))

    return sorted(pool, key=_SORT_KEYS[sort_by], reverse=bool(descending))
