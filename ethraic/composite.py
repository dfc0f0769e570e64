# ethraic/composite.py
from __future__ import annotations

import math
from typing import Mapping, Optional, Union

from ethraic.metrics import clamp
from ethraic.schema import MetricBundle, Weights

CORE = ("entropy", "clarity", "novelty", "depth", "coherence")


def composite(weights: Union[Weights, Mapping[str, float], None],
              metrics: Union[MetricBundle, Mapping[str, float]]) -> float:
    """
    Weighted mean of the five core metrics:
      - only weights actually supplied count toward the denominator,
      - zero total weight -> 0.0,
      - result clamped to [0,1].
    """
    if weights is None:
        weights = Weights()
    w = weights.model_dump() if isinstance(weights, Weights) else dict(weights)
    m = metrics.model_dump() if isinstance(metrics, MetricBundle) else dict(metrics)

    num = 0.0
    den = 0.0
    for k in CORE:
        wk = w.get(k)
        if wk is None:
            continue
        wk = float(wk)
        if not math.isfinite(wk) or wk < 0:
            raise ValueError(f"weight {k}={wk!r} must be a finite non-negative number")
        num += wk * float(m.get(k, 0.0))
        den += wk
    return clamp(num / den) if den > 0 else 0.0


def ema(prev: Optional[float], current: float, alpha: float = 0.3) -> float:
    """
    alpha*current + (1-alpha)*prev.
    Cold start (prev None/NaN) returns current unchanged.
    alpha outside [0,1] is a caller error.
    """
    if not isinstance(alpha, (int, float)) or not math.isfinite(alpha) or not (0.0 <= alpha <= 1.0):
        raise ValueError(f"EMA alpha must be within [0, 1], got {alpha!r}")
    if prev is None or (isinstance(prev, float) and math.isnan(prev)):
        return current
    return alpha * current + (1.0 - alpha) * prev
