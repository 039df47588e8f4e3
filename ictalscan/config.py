"""
Run configuration (YAML or JSON).

Layout (all sections optional; see config/default.yaml):

    detection:      PatternDetectionConfig fields
    clustering:     ClusteringConfig fields
    preprocessing:  {enabled: bool, ...PreprocessingConfig fields}
    analysis:       {n_jobs, seed, deterministic_confidence, crop_seconds, picks, scale}
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml

from .ictal_clustering import ClusteringConfig
from .models import InvalidParameter
from .pattern_detector import PatternDetectionConfig
from .preprocessing import PreprocessingConfig


def load_config(path: Union[str, Path]) -> Dict[str, Any]:
    path = Path(path).expanduser()
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        if path.suffix.lower() in (".yml", ".yaml"):
            cfg = yaml.safe_load(f)
        else:
            cfg = json.load(f)
    cfg = cfg or {}
    if not isinstance(cfg, dict):
        raise InvalidParameter(f"Config root must be a mapping, got {type(cfg).__name__}")
    return cfg


@dataclass(frozen=True)
class AnalysisConfig:
    """Everything one analysis run needs, resolved from a config mapping."""

    detection: PatternDetectionConfig = field(default_factory=PatternDetectionConfig)
    clustering: ClusteringConfig = field(default_factory=ClusteringConfig)
    preprocessing: Optional[PreprocessingConfig] = None

    n_jobs: int = 1
    # Pin confidence jitter to 1.0 (reproducible region confidence)
    deterministic_confidence: bool = False

    # Ingestion options (EDF runs)
    crop_seconds: Optional[float] = None
    picks: Optional[List[str]] = None
    scale: float = 1e6

    @classmethod
    def from_mapping(cls, cfg: Optional[Mapping[str, Any]]) -> "AnalysisConfig":
        cfg = dict(cfg or {})
        analysis_cfg = dict(cfg.get("analysis", {}) or {})
        detection = PatternDetectionConfig.from_dict(cfg.get("detection", {}) or {})
        clustering = ClusteringConfig.from_dict(cfg.get("clustering", {}) or {})

        pre_cfg = dict(cfg.get("preprocessing", {}) or {})
        enabled = bool(pre_cfg.pop("enabled", False))
        preprocessing = PreprocessingConfig.from_dict(pre_cfg) if enabled else None

        # a top-level analysis.seed seeds both random streams unless they set their own
        seed = analysis_cfg.get("seed", None)
        if seed is not None:
            if detection.seed is None:
                detection = replace(detection, seed=int(seed))
            if clustering.seed is None:
                clustering = replace(clustering, seed=int(seed) + 1)

        picks = analysis_cfg.get("picks", None)
        crop = analysis_cfg.get("crop_seconds", None)
        n_jobs = int(analysis_cfg.get("n_jobs", 1))
        if n_jobs == 0:
            raise InvalidParameter("analysis.n_jobs must be non-zero (joblib convention)")

        return cls(
            detection=detection,
            clustering=clustering,
            preprocessing=preprocessing,
            n_jobs=n_jobs,
            deterministic_confidence=bool(analysis_cfg.get("deterministic_confidence", False)),
            crop_seconds=float(crop) if crop is not None else None,
            picks=[str(p) for p in picks] if picks else None,
            scale=float(analysis_cfg.get("scale", 1e6)),
        )
