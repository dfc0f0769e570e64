# ethraic/paradigm.py
from __future__ import annotations

from bisect import bisect_right
from typing import Dict, Optional, Sequence

import networkx as nx

from ethraic.config import Thresholds
from ethraic.metrics import clamp, count_markers, marker_density
from ethraic.schema import (
    CrisisIndicator, InterventionTier, ParadigmState, ParadigmTransition,
    RiskLevel, SafetyAssessment, SafetyMetrics,
)

PARADIGM_BANDS = (0.15, 0.35, 0.55, 0.75, 0.90)
_ORDER = (
    ParadigmState.NORMAL_SCIENCE,
    ParadigmState.ANOMALY_AWARENESS,
    ParadigmState.CRISIS_EMERGENCE,
    ParadigmState.PARADIGM_REVOLUTION,
    ParadigmState.TRANSITION_CHAOS,
    ParadigmState.NEW_PARADIGM_FORMATION,
)

# Kuhn cycle: each stage leads to the next, new paradigm formation back to normal science
KUHN_CYCLE = nx.DiGraph()
nx.add_cycle(KUHN_CYCLE, _ORDER)

# -------------------------
# Worldview marker banks
# -------------------------
WORLDVIEW_COLLAPSE = (
    "everything i believed", "nothing makes sense", "my whole worldview", "was all wrong",
    "can't trust anything", "foundation is gone", "falling apart", "collapsing",
)
IDENTITY_FRAGMENTATION = (
    "who am i", "don't know who i am", "not myself", "lost myself", "falling apart",
    "split", "fragmented", "multiple selves", "no self", "dissolving",
)
REALITY_QUESTIONING = (
    "is this real", "not real", "simulation", "nothing is real", "am i dreaming",
    "illusion", "does anything exist", "matrix",
)
MARKER_CAP = 3

_SEVERITY_WEIGHT = {"low": 0.4, "medium": 0.6, "high": 0.85, "critical": 1.0}


def paradigm_state(crisis_level: float, anomaly_accumulation: float,
                   bands: Sequence[float] = PARADIGM_BANDS) -> ParadigmState:
    """
    Pure band lookup on mean(crisis_level, anomaly_accumulation); inputs clamped to [0,1].
    No hysteresis: the state is re-derived every turn.
    """
    if len(bands) != len(_ORDER) - 1 or list(bands) != sorted(bands):
        raise ValueError(f"paradigm bands must be {len(_ORDER) - 1} ascending cut points")
    level = (clamp(crisis_level) + clamp(anomaly_accumulation)) / 2.0
    return _ORDER[bisect_right(list(bands), level)]


def transition(prev: ParadigmState, cur: ParadigmState) -> ParadigmTransition:
    """
    Classify a move on the Kuhn cycle:
      - hold: same state
      - advance: one step forward
      - regress: one step back
      - leap: anything else (distance = shortest way round the cycle)
    """
    if prev == cur:
        return ParadigmTransition(prev=prev, cur=cur, kind="hold", distance=0)
    forward = nx.shortest_path_length(KUHN_CYCLE, prev, cur)
    backward = nx.shortest_path_length(KUHN_CYCLE, cur, prev)
    if forward == 1:
        kind = "advance"
    elif backward == 1:
        kind = "regress"
    else:
        kind = "leap"
    return ParadigmTransition(prev=prev, cur=cur, kind=kind, distance=min(forward, backward))


def worldview_scores(text: str, whole_word: bool = False) -> Dict[str, float]:
    """Marker density per worldview category, 3 hits saturating."""
    return {
        "worldview_collapse": marker_density(count_markers(text, WORLDVIEW_COLLAPSE, whole_word), MARKER_CAP),
        "identity_fragmentation": marker_density(count_markers(text, IDENTITY_FRAGMENTATION, whole_word), MARKER_CAP),
        "reality_questioning": marker_density(count_markers(text, REALITY_QUESTIONING, whole_word), MARKER_CAP),
    }


def crisis_level(indicator: Optional[CrisisIndicator], safety: SafetyMetrics,
                 worldview: Dict[str, float]) -> float:
    """Largest of: overwhelm dial, severity-weighted indicator confidence, worldview markers."""
    parts = [safety.overwhelm_index / 100.0]
    if indicator is not None:
        parts.append(_SEVERITY_WEIGHT[indicator.severity.value] * max(indicator.confidence, 0.5))
    parts.extend(worldview.values())
    return clamp(max(parts))


def assess_safety(crisis: float, fragmentation: float,
                  thresholds: Optional[Thresholds] = None) -> SafetyAssessment:
    """
    Three risk tiers:
      - HIGH: crisis > 0.8 and fragmentation > 0.7
      - MODERATE: crisis > 0.6
      - LOW: otherwise
    """
    th = thresholds or Thresholds()
    crisis, fragmentation = clamp(crisis), clamp(fragmentation)
    if crisis > th.high_risk_crisis and fragmentation > th.high_risk_fragmentation:
        return SafetyAssessment(
            risk_level=RiskLevel.HIGH,
            intervention=InterventionTier.stabilization,
            recommendation="Pause exploration; stabilize identity and orientation before continuing",
            response=(
                "The user shows signs of acute destabilization and identity fragmentation. "
                "Stop introducing new ideas. Respond slowly and warmly, reflect their feelings, "
                "anchor them in the present moment and their body, and gently suggest reaching "
                "out to someone they trust or a professional if the distress continues."
            ),
        )
    if crisis > th.moderate_risk_crisis:
        return SafetyAssessment(
            risk_level=RiskLevel.MODERATE,
            intervention=InterventionTier.grounding,
            recommendation="Slow the pace and connect insights back to concrete experience",
            response=(
                "The user's worldview appears to be under strain. Keep answers short and concrete, "
                "check in on how they are feeling, and tie abstract ideas to everyday examples."
            ),
        )
    return SafetyAssessment(
        risk_level=RiskLevel.LOW,
        intervention=InterventionTier.none,
        recommendation="Continue exploration at the current pace",
        response="No safety concerns detected. Continue the conversation normally.",
    )
