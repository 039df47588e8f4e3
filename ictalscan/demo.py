"""
Synthetic demo recording.

Eleven 10-20 channels at 250 Hz: alpha + beta + theta background with uniform
noise, plus a handful of injected abnormal segments per channel (fast bursts,
Gaussian spikes, slow rhythmic trains). Useful for UI smoke tests and examples;
the injected segments are returned as reference events.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

import numpy as np

from .models import Channel, Event, EventType, Recording


DEMO_CHANNELS: Tuple[str, ...] = ("C4", "CP5", "Fz", "P3", "P4", "C3", "F4", "O2", "T8", "T7", "F3")
DEMO_VOLTAGES: Tuple[float, ...] = (38.8, 38.4, 38.2, 36.9, 36.7, 36.5, 35.5, 34.5, 34.1, 34.1, 33.0)


def make_demo_recording(
    *,
    duration_sec: float = 600.0,
    sfreq: float = 250.0,
    seed: Optional[int] = None,
    n_events_range: Tuple[int, int] = (5, 10),
) -> Tuple[Recording, Dict[str, List[Event]]]:
    """
    Returns (recording, injected events by channel).

    Injected event features follow the type: fast bursts 80-150 Hz, spikes
    8-20 Hz, rhythmic trains 1-5 Hz; amplitudes scale with the channel voltage.
    """
    rng = np.random.default_rng(seed)
    n = int(round(duration_sec * sfreq))
    t = np.arange(n, dtype=np.float64) / sfreq
    types = (EventType.HFO, EventType.IED, EventType.RHYTHMIC)

    channels: List[Channel] = []
    injected: Dict[str, List[Event]] = {}
    for ci, (name, voltage) in enumerate(zip(DEMO_CHANNELS, DEMO_VOLTAGES)):
        base_freq = 10 + (ci % 5)
        base_amp = voltage * 0.2
        x = np.sin(2 * np.pi * base_freq * t) * base_amp
        x += np.sin(2 * np.pi * 20 * t) * (base_amp * 0.3)
        x += np.sin(2 * np.pi * 5 * t) * (base_amp * 0.4)
        x += (rng.random(n) - 0.5) * (base_amp * 0.5)

        events: List[Event] = []
        n_events = int(rng.integers(n_events_range[0], n_events_range[1] + 1))
        for _ in range(n_events):
            start = float(rng.random() * max(duration_sec - 30.0, 1.0))
            end = min(duration_sec, start + 0.1 + float(rng.random()) * 3.0)
            etype = types[int(rng.integers(len(types)))]
            if etype is EventType.HFO:
                amplitude = voltage * (0.3 + rng.random() * 0.4)
                frequency = 80 + rng.random() * 70
            elif etype is EventType.IED:
                amplitude = voltage * (0.5 + rng.random() * 0.5)
                frequency = 8 + rng.random() * 12
            else:
                amplitude = voltage * (0.4 + rng.random() * 0.3)
                frequency = 1 + rng.random() * 4

            s0 = int(np.floor(start * sfreq))
            s1 = min(int(np.ceil(end * sfreq)), n)
            if s1 <= s0 or end <= start:
                continue
            local_t = np.arange(s1 - s0, dtype=np.float64) / sfreq
            if etype is EventType.HFO:
                x[s0:s1] += np.sin(2 * np.pi * frequency * local_t) * (base_amp * 1.5)
            elif etype is EventType.IED:
                rel = np.arange(s1 - s0, dtype=np.float64) / (s1 - s0)
                x[s0:s1] += np.exp(-(((rel - 0.5) * 10) ** 2)) * (base_amp * 2)
            else:
                x[s0:s1] += np.sin(2 * np.pi * frequency * local_t) * (base_amp * 1.2)

            events.append(Event(name, start, end, etype, float(amplitude), float(frequency)))

        events.sort(key=lambda e: e.start)
        injected[name] = events
        channels.append(Channel(name=name, samples=x, voltage_scale=voltage))

    return Recording(channels=tuple(channels), sample_rate=float(sfreq)), injected
