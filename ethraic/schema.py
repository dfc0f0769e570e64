# ethraic/schema.py
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# -------------------------
# Enums (wire-safe)
# -------------------------

class Phase(str, Enum):
    SURFACE = "SURFACE"
    EXPLORING = "EXPLORING"
    DEEP = "DEEP"
    INTEGRATION = "INTEGRATION"
    BREAKTHROUGH = "BREAKTHROUGH"


class ParadigmState(str, Enum):
    NORMAL_SCIENCE = "NORMAL_SCIENCE"
    ANOMALY_AWARENESS = "ANOMALY_AWARENESS"
    CRISIS_EMERGENCE = "CRISIS_EMERGENCE"
    PARADIGM_REVOLUTION = "PARADIGM_REVOLUTION"
    TRANSITION_CHAOS = "TRANSITION_CHAOS"
    NEW_PARADIGM_FORMATION = "NEW_PARADIGM_FORMATION"


class CrisisType(str, Enum):
    cognitive_overload = "cognitive_overload"
    emotional_distress = "emotional_distress"
    confusion_spiral = "confusion_spiral"
    reality_disconnect = "reality_disconnect"
    breakthrough_overwhelm = "breakthrough_overwhelm"


class Severity(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {Severity.low: 0, Severity.medium: 1, Severity.high: 2, Severity.critical: 3}


class RiskLevel(str, Enum):
    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"


class InterventionTier(str, Enum):
    none = "none"
    grounding = "grounding"
    stabilization = "stabilization"


class PatternType(str, Enum):
    convergence = "convergence"
    divergence = "divergence"
    emergence = "emergence"
    transcendence = "transcendence"
    integration = "integration"


class Role(str, Enum):
    user = "user"
    assistant = "assistant"


# -------------------------
# Metric models
# -------------------------

class Weights(BaseModel):
    """Composite weight vector; need not sum to 1."""
    entropy: float = Field(default=0.2, ge=0.0, allow_inf_nan=False)
    clarity: float = Field(default=0.2, ge=0.0, allow_inf_nan=False)
    novelty: float = Field(default=0.2, ge=0.0, allow_inf_nan=False)
    depth: float = Field(default=0.2, ge=0.0, allow_inf_nan=False)
    coherence: float = Field(default=0.2, ge=0.0, allow_inf_nan=False)


class MetricBundle(BaseModel):
    """Per-turn lexical scores, all in [0,1]."""
    model_config = ConfigDict(frozen=True)

    entropy: float = Field(ge=0.0, le=1.0)
    clarity: float = Field(ge=0.0, le=1.0)
    depth: float = Field(ge=0.0, le=1.0)
    coherence: float = Field(ge=0.0, le=1.0)
    novelty: float = Field(ge=0.0, le=1.0)
    grounding: float = Field(ge=0.0, le=1.0)
    complexity: float = Field(ge=0.0, le=1.0)
    emotional_intensity: float = Field(ge=0.0, le=1.0)
    uncertainty: float = Field(ge=0.0, le=1.0)

    @property
    def abstractness(self) -> float:
        return 1.0 - self.grounding

    def display(self) -> Dict[str, int]:
        """0..100 integers for the UI."""
        return {k: int(round(v * 100)) for k, v in self.model_dump().items()}


# -------------------------
# Safety models
# -------------------------

class CrisisIndicator(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: CrisisType
    severity: Severity
    confidence: float = Field(ge=0.0, le=1.0)
    recommendation: str
    immediate_action: str


class SafetyMetrics(BaseModel):
    """Running per-session safety dials, each 0..100."""
    cognitive_load: float = Field(default=50.0, ge=0.0, le=100.0)
    emotional_stability: float = Field(default=80.0, ge=0.0, le=100.0)
    coherence_level: float = Field(default=75.0, ge=0.0, le=100.0)
    grounding_score: float = Field(default=85.0, ge=0.0, le=100.0)
    overwhelm_index: float = Field(default=30.0, ge=0.0, le=100.0)


class InterventionStrategy(BaseModel):
    type: CrisisType
    priority: int = Field(ge=1, le=4)
    action: str
    message: str


class SafetyAssessment(BaseModel):
    risk_level: RiskLevel
    intervention: InterventionTier
    recommendation: str
    response: str


class ParadigmTransition(BaseModel):
    prev: ParadigmState
    cur: ParadigmState
    kind: str  # hold | advance | regress | leap
    distance: int = Field(ge=0)


class BreakthroughPattern(BaseModel):
    type: PatternType
    strength: float = Field(ge=0.0, le=1.0)
    confidence: float = Field(ge=0.0, le=1.0)
    description: str
    timestamp: float


class BreakthroughIndicator(BaseModel):
    type: str
    signal: float = Field(ge=0.0, le=1.0)
    description: str


class HistoryMessage(BaseModel):
    content: str
    role: Role = Role.user
    timestamp: float = 0.0


# -------------------------
# Per-turn reading (what the pipeline hands back)
# -------------------------

class Reading(BaseModel):
    """One processed turn: metrics, smoothing, phase and the safety branch."""
    model_config = ConfigDict(frozen=True)

    turn: int = Field(ge=1)
    role: Role
    metrics: MetricBundle
    display: Dict[str, int]
    composite: float = Field(ge=0.0, le=1.0)
    composite_ema: float = Field(ge=0.0, le=1.0)
    phase: Phase
    crisis: Optional[CrisisIndicator] = None
    intervention: Optional[InterventionStrategy] = None
    breakthrough: Optional[BreakthroughPattern] = None
    crisis_level: float = Field(ge=0.0, le=1.0)
    anomaly_accumulation: float = Field(ge=0.0, le=1.0)
    paradigm_state: ParadigmState
    transition: ParadigmTransition
    safety: SafetyAssessment
    prompt_context: str


class SessionSnapshot(BaseModel):
    """What an external store persists between turns."""
    ema: Optional[float] = None
    turns: int = Field(default=0, ge=0)
    safety: SafetyMetrics = Field(default_factory=SafetyMetrics)
    anomaly_accumulation: float = Field(default=0.0, ge=0.0, le=1.0)
    paradigm_state: ParadigmState = ParadigmState.NORMAL_SCIENCE
    history: List[str] = Field(default_factory=list)


# -------------------------
# JSON Schema helper
# -------------------------

def reading_json_schema() -> Dict[str, Any]:
    """Return the JSON Schema for Reading (wire contract)."""
    return Reading.model_json_schema()
