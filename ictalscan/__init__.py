"""
Keep package import lightweight.

This repo is used both as:
  - a library (detectors, clustering and summary on in-memory recordings)
  - a pipeline runner (EDF ingestion, which needs `mne`)

Importing `ictalscan` should NOT eagerly import heavy dependencies. The public API
is exposed lazily via PEP 562 `__getattr__`.
"""

from __future__ import annotations

import importlib
from typing import Any, Dict, Tuple

__version__ = "0.1.0"


# Lazy-exported symbols (module, attr)
_LAZY_EXPORTS: Dict[str, Tuple[str, str]] = {
    # data model
    "Channel": ("ictalscan.models", "Channel"),
    "Recording": ("ictalscan.models", "Recording"),
    "Event": ("ictalscan.models", "Event"),
    "EventType": ("ictalscan.models", "EventType"),
    "IctalRegion": ("ictalscan.models", "IctalRegion"),
    "Severity": ("ictalscan.models", "Severity"),
    "AnalysisSummary": ("ictalscan.models", "AnalysisSummary"),
    "AnalysisResult": ("ictalscan.models", "AnalysisResult"),
    "InvalidParameter": ("ictalscan.models", "InvalidParameter"),
    "AnalysisCancelled": ("ictalscan.models", "AnalysisCancelled"),
    # windowing / detection
    "SignalWindowScanner": ("ictalscan.windowing", "SignalWindowScanner"),
    "PatternDetectionConfig": ("ictalscan.pattern_detector", "PatternDetectionConfig"),
    "HFODetector": ("ictalscan.pattern_detector", "HFODetector"),
    "IEDDetector": ("ictalscan.pattern_detector", "IEDDetector"),
    "RhythmicDetector": ("ictalscan.pattern_detector", "RhythmicDetector"),
    "ChannelEventAggregator": ("ictalscan.pattern_detector", "ChannelEventAggregator"),
    "PatternDetector": ("ictalscan.pattern_detector", "PatternDetector"),
    "UniformFrequencyEstimator": ("ictalscan.pattern_detector", "UniformFrequencyEstimator"),
    # clustering / summary
    "ClusteringConfig": ("ictalscan.ictal_clustering", "ClusteringConfig"),
    "IctalRegionClusterer": ("ictalscan.ictal_clustering", "IctalRegionClusterer"),
    "ConstantJitter": ("ictalscan.ictal_clustering", "ConstantJitter"),
    "UniformJitter": ("ictalscan.ictal_clustering", "UniformJitter"),
    "AnalysisSummaryBuilder": ("ictalscan.summary", "AnalysisSummaryBuilder"),
    # queries
    "select_events": ("ictalscan.events", "select_events"),
    "events_in_window": ("ictalscan.events", "events_in_window"),
    "events_in_region": ("ictalscan.events", "events_in_region"),
    # ingestion / preprocessing
    "PreprocessingConfig": ("ictalscan.preprocessing", "PreprocessingConfig"),
    "preprocess_samples": ("ictalscan.preprocessing", "preprocess_samples"),
    "recording_from_array": ("ictalscan.io", "recording_from_array"),
    "recording_from_raw": ("ictalscan.io", "recording_from_raw"),
    "load_edf": ("ictalscan.io", "load_edf"),
    "make_demo_recording": ("ictalscan.demo", "make_demo_recording"),
    # pipeline
    "AnalysisConfig": ("ictalscan.config", "AnalysisConfig"),
    "load_config": ("ictalscan.config", "load_config"),
    "analyze_recording": ("ictalscan.pipeline", "analyze_recording"),
}

__all__ = ["__version__", *_LAZY_EXPORTS.keys()]


def __getattr__(name: str) -> Any:
    """
    Lazy attribute access.

    Example:
      from ictalscan import analyze_recording
    """
    if name in _LAZY_EXPORTS:
        mod_name, attr = _LAZY_EXPORTS[name]
        mod = importlib.import_module(mod_name)
        return getattr(mod, attr)
    raise AttributeError(f"module 'ictalscan' has no attribute '{name}'")
