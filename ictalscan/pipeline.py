"""
End-to-end analysis of one recording:

    Recording -> PatternDetector (per channel, HFO -> IED -> Rhythmic)
              -> IctalRegionClusterer (all channels pooled)
              -> AnalysisSummaryBuilder

Results come back as an immutable AnalysisResult. Nothing is cached or broadcast;
callers that need persistence or notification own it.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from pathlib import Path
from typing import Dict, Optional, Union

from .config import AnalysisConfig
from .ictal_clustering import ConstantJitter, IctalRegionClusterer, Jitter
from .models import AnalysisResult, Recording
from .pattern_detector import FrequencyEstimator, PatternDetector
from .summary import AnalysisSummaryBuilder
from .utils.logging_utils import get_run_logger, log_section, release_run_logger


def analyze_recording(
    recording: Recording,
    config: Optional[AnalysisConfig] = None,
    *,
    run_name: str = "analysis",
    log_dir: Optional[Union[str, Path]] = None,
    cancel: Optional[threading.Event] = None,
    frequency_estimator: Optional[FrequencyEstimator] = None,
    jitter: Optional[Jitter] = None,
) -> AnalysisResult:
    """
    Run detection, clustering and summary for one recording.

    An empty recording (no channels, or zero-length channels) is a valid input
    and yields empty events/regions with an all-zero summary.

    log_dir: write '<run_name>_<timestamp>.log' there; the file is closed when
    the call returns or raises (None = log through the 'ictal.<run_name>'
    logger without a file).
    cancel: checked between channels; raises AnalysisCancelled when set.
    """
    cfg = config or AnalysisConfig()
    if jitter is None and cfg.deterministic_confidence:
        jitter = ConstantJitter(1.0)

    logger = get_run_logger(run_name, output_dir=log_dir)
    try:
        return _run_analysis(recording, cfg, logger, cancel, frequency_estimator, jitter)
    finally:
        if log_dir is not None:
            release_run_logger(logger)


def _run_analysis(
    recording: Recording,
    cfg: AnalysisConfig,
    logger: logging.Logger,
    cancel: Optional[threading.Event],
    frequency_estimator: Optional[FrequencyEstimator],
    jitter: Optional[Jitter],
) -> AnalysisResult:
    t_start = time.time()
    log_section(logger, "ICTAL ANALYSIS START")
    logger.info("channels=%d", recording.n_channels)
    logger.info("sample_rate=%.3f", recording.sample_rate)
    logger.info("duration_sec=%.3f", recording.duration_seconds)
    logger.info("detectors=%s", ",".join(cfg.detection.enabled))
    logger.info("n_jobs=%d", int(cfg.n_jobs))

    t_step = time.time()
    detection = PatternDetector(cfg.detection, frequency_estimator).detect(
        recording, n_jobs=cfg.n_jobs, cancel=cancel
    )
    logger.info("step=detections elapsed_sec=%.3f", float(time.time() - t_step))
    for name, n in zip(detection.ch_names, detection.events_count.tolist()):
        logger.debug("channel=%s events=%d", name, int(n))

    t_step = time.time()
    clusterer = IctalRegionClusterer(cfg.clustering, jitter)
    regions = clusterer.cluster(detection.events_by_channel, n_channels=recording.n_channels)
    logger.info("step=clustering elapsed_sec=%.3f", float(time.time() - t_step))

    t_step = time.time()
    summary = AnalysisSummaryBuilder().build(detection.all_events(), regions, ch_names=recording.ch_names)
    logger.info("step=summary elapsed_sec=%.3f", float(time.time() - t_step))

    meta: Dict = dict(detection.meta)
    meta["elapsed_sec"] = float(time.time() - t_start)

    log_section(logger, "ICTAL ANALYSIS SUMMARY")
    logger.info("events=%d", int(summary.pattern_counts["total"]))
    for key in ("hfo", "ied", "rhythmic"):
        logger.info("events_%s=%d", key, int(summary.pattern_counts[key]))
    logger.info("regions=%d", len(regions))
    logger.info("epilepsy_risk=%d (%s)", summary.epilepsy_risk, summary.risk_level)
    logger.info("elapsed_sec=%.3f", meta["elapsed_sec"])

    return AnalysisResult(
        sample_rate=recording.sample_rate,
        duration_seconds=recording.duration_seconds,
        events_by_channel=detection.events_by_channel,
        regions=regions,
        summary=summary,
        meta=meta,
    )


def save_result_json(result: AnalysisResult, json_path: Union[str, Path]) -> str:
    """Write a JSON snapshot of an AnalysisResult (for run records, not an export format)."""
    path = Path(json_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(result.as_dict(), f, ensure_ascii=True, indent=2)
    return str(path)
