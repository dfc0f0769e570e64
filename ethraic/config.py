# ethraic/config.py
from __future__ import annotations

import json
import logging
import math
import os
import time
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ethraic.schema import Weights

log = logging.getLogger(__name__)

DEFAULT_ALPHA = 0.3
DEFAULT_LMAX = 400


# ----------------------------
# Named threshold table
# ----------------------------
class Thresholds(BaseModel):
    """Every band boundary and cut point used by the pipeline."""
    model_config = ConfigDict(validate_assignment=True)

    # lexical
    depth_marker_cap: int = Field(default=5, ge=1)
    depth_length_weight: float = Field(default=0.7, ge=0.0, le=1.0)
    uncertainty_marker_cap: int = Field(default=4, ge=1)

    # phase bands (upper bounds, exclusive)
    phase_bands: Tuple[float, float, float, float] = (0.30, 0.50, 0.70, 0.85)

    # paradigm bands (upper bounds, exclusive)
    paradigm_bands: Tuple[float, float, float, float, float] = (0.15, 0.35, 0.55, 0.75, 0.90)

    # running safety-metric limits (0..100) that fire a category on their own
    cognitive_overload: float = 85.0
    emotional_distress: float = 75.0
    confusion_spiral: float = 80.0
    reality_disconnect: float = 70.0
    breakthrough_overwhelm: float = 90.0

    # per-category score: (fires above, medium above, high above, critical above)
    overload_cuts: Tuple[float, float, float, float] = (40.0, 50.0, 80.0, 120.0)
    distress_cuts: Tuple[float, float, float, float] = (30.0, 40.0, 75.0, 100.0)
    confusion_cuts: Tuple[float, float, float, float] = (50.0, 60.0, 80.0, 120.0)
    disconnect_cuts: Tuple[float, float, float, float] = (40.0, 50.0, 70.0, 100.0)
    overwhelm_cuts: Tuple[float, float, float, float] = (60.0, 70.0, 80.0, 95.0)

    # needs_intervention limits
    intervene_overwhelm: float = 70.0
    intervene_load: float = 85.0
    intervene_floor: float = 30.0

    # history and cadence
    message_history_cap: int = Field(default=50, ge=1)
    intervention_history_cap: int = Field(default=50, ge=1)
    cadence_window: int = Field(default=10, ge=2)
    rapid_interval_s: float = Field(default=5.0, gt=0.0)

    # safety assessment gates
    moderate_risk_crisis: float = 0.6
    high_risk_crisis: float = 0.8
    high_risk_fragmentation: float = 0.7

    # breakthrough detector
    pattern_threshold: float = 0.7
    pattern_candidate: float = 0.3
    max_patterns: int = Field(default=100, ge=3)
    momentum_window_s: float = 300.0

    @field_validator("phase_bands", "paradigm_bands", "overload_cuts", "distress_cuts",
                     "confusion_cuts", "disconnect_cuts", "overwhelm_cuts")
    @classmethod
    def _ascending(cls, v):
        if any(not math.isfinite(x) for x in v) or any(b <= a for a, b in zip(v, v[1:])):
            raise ValueError(f"cut points must be finite and strictly ascending, got {list(v)}")
        return v


class PipelineConfig(BaseModel):
    weights: Weights = Field(default_factory=Weights)
    ema_alpha: float = Field(default=DEFAULT_ALPHA, gt=0.0, le=1.0)
    depth_lmax: int = Field(default=DEFAULT_LMAX, ge=1)
    history_limit: int = Field(default=200, ge=1)
    whole_word_markers: bool = False
    display_jitter: float = Field(default=0.0, ge=0.0, le=10.0)
    anomaly_decay: float = Field(default=0.6, ge=0.0, lt=1.0)
    thresholds: Thresholds = Field(default_factory=Thresholds)


# ----------------------------
# Tunable params file (data/params.json) with mtime-aware cache
# ----------------------------
_PARAMS_CACHE: Dict[str, Any] = {"ts": 0.0, "mtime": None, "path": None, "data": {}}


def _params_path() -> Path:
    return Path(os.getenv("ETHRAIC_PARAMS", "data/params.json"))


def _load_params(ttl: float = 60.0) -> Dict[str, Any]:
    """
    Return latest params, refreshing when:
      - file path or mtime changed, or
      - TTL expired, or
      - file missing/corrupt (falls back to {})
    """
    path = _params_path()
    now = time.time()
    exists = path.exists()
    mtime = path.stat().st_mtime if exists else None

    if (
        now - _PARAMS_CACHE["ts"] < ttl
        and _PARAMS_CACHE["mtime"] == mtime
        and _PARAMS_CACHE["path"] == str(path)
    ):
        return _PARAMS_CACHE["data"]

    data: Dict[str, Any] = {}
    if exists:
        try:
            loaded = json.loads(path.read_text(encoding="utf-8"))
            if isinstance(loaded, dict):
                data = loaded
            else:
                log.warning("params file %s is not a JSON object; ignoring", path)
        except (OSError, ValueError) as e:
            log.warning("params file %s unreadable (%s); using defaults", path, e)

    _PARAMS_CACHE.update({"ts": now, "mtime": mtime, "path": str(path), "data": data})
    return data


# ----------------------------
# Individual parsers (never raise)
# ----------------------------
def parse_weights(raw: Any = None) -> Weights:
    """Merge a JSON string or mapping over the default weights; bad input -> defaults."""
    if raw is None or raw == "":
        return Weights()
    try:
        if isinstance(raw, str):
            raw = json.loads(raw)
        if not isinstance(raw, dict):
            raise ValueError("weights must be an object")
        return Weights(**{**Weights().model_dump(), **raw})
    except (ValueError, TypeError, ValidationError) as e:
        log.warning("malformed weights %r (%s); using defaults", raw, e)
        return Weights()


def parse_alpha(raw: Any = None) -> float:
    """EMA alpha in (0, 1]; anything else -> DEFAULT_ALPHA."""
    if raw is None or raw == "":
        return DEFAULT_ALPHA
    try:
        alpha = float(raw)
    except (TypeError, ValueError):
        alpha = float("nan")
    if not math.isfinite(alpha) or not (0.0 < alpha <= 1.0):
        log.warning("EMA alpha %r out of range (0, 1]; using %.2f", raw, DEFAULT_ALPHA)
        return DEFAULT_ALPHA
    return alpha


def parse_lmax(raw: Any = None) -> int:
    if raw is None or raw == "":
        return DEFAULT_LMAX
    try:
        lmax = int(float(raw))
        if lmax >= 1:
            return lmax
    except (TypeError, ValueError, OverflowError):
        pass
    log.warning("depth Lmax %r invalid; using %d", raw, DEFAULT_LMAX)
    return DEFAULT_LMAX


def parse_thresholds(raw: Any = None) -> Thresholds:
    if not raw:
        return Thresholds()
    try:
        if not isinstance(raw, dict):
            raise ValueError("thresholds must be an object")
        return Thresholds(**raw)
    except (ValueError, TypeError, ValidationError) as e:
        log.warning("malformed thresholds (%s); using defaults", e)
        return Thresholds()


def load_config(env: Optional[Dict[str, str]] = None) -> PipelineConfig:
    """
    Build the pipeline config: defaults <- params file <- environment.
    Each malformed piece falls back on its own; this never raises.
    """
    env = os.environ if env is None else env
    params = _load_params()

    weights_raw = env.get("METRICS_WEIGHTS") or params.get("weights")
    alpha_raw = env.get("METRICS_EMA_ALPHA") or params.get("ema_alpha")
    lmax_raw = env.get("METRICS_DEPTH_LMAX") or params.get("depth_lmax")

    cfg = PipelineConfig(
        weights=parse_weights(weights_raw),
        ema_alpha=parse_alpha(alpha_raw),
        depth_lmax=parse_lmax(lmax_raw),
        thresholds=parse_thresholds(params.get("thresholds")),
    )
    for key in ("history_limit", "whole_word_markers", "display_jitter", "anomaly_decay"):
        if key not in params:
            continue
        try:
            cfg = PipelineConfig(**{**cfg.model_dump(), key: params[key]})
        except ValidationError as e:
            log.warning("ignoring malformed pipeline param %s=%r (%s)", key, params[key], e)
    return cfg
