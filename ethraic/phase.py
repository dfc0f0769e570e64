# ethraic/phase.py
from __future__ import annotations

from bisect import bisect_right
from typing import Sequence

from ethraic.schema import Phase

PHASE_BANDS = (0.30, 0.50, 0.70, 0.85)
_ORDER = (Phase.SURFACE, Phase.EXPLORING, Phase.DEEP, Phase.INTEGRATION, Phase.BREAKTHROUGH)


def phase_from_composite(c_ema: float, bands: Sequence[float] = PHASE_BANDS) -> Phase:
    """
    Band lookup on the smoothed composite:
      [0, .30) SURFACE, [.30, .50) EXPLORING, [.50, .70) DEEP,
      [.70, .85) INTEGRATION, [.85, 1] BREAKTHROUGH.
    A value on a boundary belongs to the upper band. NaN -> SURFACE.
    """
    if len(bands) != len(_ORDER) - 1 or list(bands) != sorted(bands):
        raise ValueError(f"phase bands must be {len(_ORDER) - 1} ascending cut points")
    if c_ema != c_ema:
        return Phase.SURFACE
    return _ORDER[bisect_right(list(bands), c_ema)]
