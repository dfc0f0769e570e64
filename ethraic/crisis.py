# ethraic/crisis.py
# crisis detection + stabilization for one session; state never leaks across sessions
from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from ethraic.config import Thresholds
from ethraic.metrics import clamp, count_markers, grounding, sentences, tokenize
from ethraic.schema import (
    CrisisIndicator, CrisisType, HistoryMessage, InterventionStrategy,
    SafetyMetrics, Severity,
)

log = logging.getLogger(__name__)

# ----------------------------
# Vocabularies
# ----------------------------
OVERLOAD_MARKERS = (
    "too much", "overwhelming", "can't process", "confused", "lost",
    "spinning", "don't understand", "too fast", "slow down", "wait",
)
DISTRESS_MARKERS = (
    "scared", "afraid", "anxious", "panic", "terrified", "help",
    "crying", "upset", "disturbed", "troubled", "distressed",
)
POSITIVE_MARKERS = ("excited", "amazing", "wonderful", "love", "beautiful", "joy")
CONFUSION_MARKERS = (
    "what", "confused", "don't get it", "lost", "makes no sense",
    "contradictory", "paradox", "impossible", "how can",
)
DISCONNECT_MARKERS = (
    "not real", "simulation", "matrix", "dream", "illusion",
    "nothing matters", "all meaningless", "fake", "unreal",
)
EMOTIONAL_WORDS = (
    "feel", "felt", "feeling", "emotion", "heart", "soul",
    "love", "hate", "fear", "joy", "sad", "angry", "happy",
)
CONNECTORS = ("because", "therefore", "thus", "so", "and", "but", "however")

STABILIZATION_PHRASES: Dict[str, Tuple[str, ...]] = {
    "grounding": (
        "Let's take a moment to ground ourselves in the present.",
        "Take a deep breath. We can slow down the pace of exploration.",
        "Your safety and wellbeing come first. Let's recalibrate.",
    ),
    "clarity": (
        "Let me help clarify and organize these thoughts.",
        "We can break this down into smaller, manageable insights.",
        "Let's focus on one core idea at a time.",
    ),
    "support": (
        "You're navigating complex territory. That takes courage.",
        "These are profound realizations. It's natural to need time to integrate them.",
        "Remember, breakthrough moments can feel intense. This is normal.",
    ),
    "reality": (
        "Let's connect these insights back to your everyday experience.",
        "How might this understanding apply to your immediate context?",
        "While exploring consciousness, staying grounded is essential.",
    ),
}

RECOMMENDATIONS: Dict[CrisisType, str] = {
    CrisisType.cognitive_overload: "Slow down exploration pace, simplify concepts, provide breaks",
    CrisisType.emotional_distress: "Provide emotional support, validate experience, offer grounding",
    CrisisType.confusion_spiral: "Break down concepts, provide concrete examples, check understanding",
    CrisisType.reality_disconnect: "Provide grounding exercises, connect to concrete reality, practical applications",
    CrisisType.breakthrough_overwhelm: "Slow integration pace, celebrate insights, provide integration time",
}

INTERVENTION_MESSAGES: Dict[CrisisType, Dict[Severity, str]] = {
    CrisisType.cognitive_overload: {
        Severity.low: "I notice we're covering a lot of ground. Would you like to pause and integrate?",
        Severity.medium: "Let's slow down a bit. These are complex ideas that deserve time to process.",
        Severity.high: "I sense this might be overwhelming. Let's take a break and return to solid ground.",
        Severity.critical: "Your wellbeing is most important. Let's pause and take care of you first.",
    },
    CrisisType.emotional_distress: {
        Severity.low: "I'm here with you through this exploration. How are you feeling?",
        Severity.medium: "These insights can be emotionally intense. Your feelings are valid and important.",
        Severity.high: "I notice this might be emotionally challenging. Would you like to talk about what you're experiencing?",
        Severity.critical: "Your emotional wellbeing matters most. Let's focus on support and stability right now.",
    },
    CrisisType.confusion_spiral: {
        Severity.low: "Let me help clarify. Which part would you like to explore more clearly?",
        Severity.medium: "I see there's some confusion. Let's untangle these thoughts one by one.",
        Severity.high: "Let's reset and approach this from a different angle. No rush.",
        Severity.critical: "Let's pause and get back to basics. Understanding will come with time.",
    },
    CrisisType.reality_disconnect: {
        Severity.low: "While we explore abstract ideas, let's stay connected to your lived experience.",
        Severity.medium: "These insights are profound. How do they relate to your everyday life?",
        Severity.high: "Let's ground these realizations in practical, concrete terms.",
        Severity.critical: "Your connection to reality is important. Let's focus on the here and now.",
    },
    CrisisType.breakthrough_overwhelm: {
        Severity.low: "You're experiencing significant insights. Take time to integrate them.",
        Severity.medium: "Breakthrough moments can be intense. Let's process this together.",
        Severity.high: "This is a lot to take in. There's no rush - integration takes time.",
        Severity.critical: "Major breakthroughs need gentle integration. Let's go slowly.",
    },
}

_PRIORITY = {Severity.critical: 1, Severity.high: 2, Severity.medium: 3, Severity.low: 4}


@dataclass
class _Entry:
    content: str
    timestamp: float
    role: str


def severity_for(score: float, cuts: Tuple[float, float, float, float]) -> Severity:
    """cuts = (fires, medium, high, critical); strictly-above comparisons."""
    _, medium, high, critical = cuts
    if score > critical:
        return Severity.critical
    if score > high:
        return Severity.high
    if score > medium:
        return Severity.medium
    return Severity.low


class CrisisProtocols:
    """
    Running safety dials plus five independent category detectors.
    analyze_for_crisis() returns at most one indicator: the highest severity,
    earlier categories winning ties.
    """

    def __init__(self, thresholds: Optional[Thresholds] = None, *,
                 rng: Optional[random.Random] = None, whole_word: bool = False) -> None:
        self.th = thresholds or Thresholds()
        self.rng = rng or random.Random()
        self.whole_word = whole_word
        self.safety = SafetyMetrics()
        self.history: List[_Entry] = []
        self.interventions: List[InterventionStrategy] = []

    # ---------- main entry ----------

    def analyze_for_crisis(
        self,
        message: str,
        metrics: Optional[Mapping[str, float]] = None,
        context: Optional[Sequence[HistoryMessage]] = None,
        *,
        role: str = "user",
        timestamp: Optional[float] = None,
    ) -> Optional[CrisisIndicator]:
        """
        message: raw text. metrics: display-scale (0..100) values keyed
        depth / paradigm_shift / emergence / attention_coherence / grounding.
        context: optional prior turns; when given it replaces the internal
        history for repeated-question detection.
        """
        if not isinstance(message, str):
            raise TypeError(f"message must be str, got {type(message).__name__}")

        self.history.append(_Entry(message, time.time() if timestamp is None else float(timestamp), role))
        if len(self.history) > self.th.message_history_cap:
            self.history = self.history[-self.th.message_history_cap:]

        self._update_safety_metrics(message, metrics)

        found: List[CrisisIndicator] = []
        for ind in (
            self.detect_cognitive_overload(message),
            self.detect_emotional_distress(message),
            self.detect_confusion_spiral(message, context),
            self.detect_reality_disconnect(message),
            self.detect_breakthrough_overwhelm(metrics),
        ):
            if ind is not None:
                found.append(ind)
        if not found:
            return None

        best = found[0]
        for ind in found[1:]:
            if ind.severity.rank > best.severity.rank:
                best = ind
        log.info("crisis indicator %s severity=%s confidence=%.2f",
                 best.type.value, best.severity.value, best.confidence)
        return best

    # ---------- running dials ----------

    def _update_safety_metrics(self, message: str, metrics: Optional[Mapping[str, float]]) -> None:
        m = metrics or {}
        load = (
            self.message_complexity(message) * 0.4
            + self.response_rate() * 0.3
            + float(m.get("depth") or 50.0) * 0.3  # zero depth counts as unknown
        )
        stability = 100.0 - self.emotional_language(message) * 10
        coherence_level = self.message_coherence(message)
        if "grounding" in m:
            grounding_score = float(m["grounding"])
        else:
            grounding_score = grounding(message, self.whole_word) * 100.0

        s = SafetyMetrics(
            cognitive_load=clamp(load, 0.0, 100.0),
            emotional_stability=clamp(stability, 0.0, 100.0),
            coherence_level=clamp(coherence_level, 0.0, 100.0),
            grounding_score=clamp(grounding_score, 0.0, 100.0),
        )
        s.overwhelm_index = clamp(
            (100 - s.emotional_stability) * 0.3
            + s.cognitive_load * 0.3
            + (100 - s.coherence_level) * 0.2
            + (100 - s.grounding_score) * 0.2,
            0.0, 100.0,
        )
        self.safety = s

    def message_complexity(self, message: str) -> float:
        toks = tokenize(message)
        if not toks:
            return 0.0
        avg_len = sum(len(w) for w in toks) / len(toks)
        per_sentence = len(toks) / max(1, len(sentences(message)))
        return min(100.0, avg_len * 5 + per_sentence * 2)

    def response_rate(self) -> float:
        """0..100; 100 when messages arrive faster than the rapid threshold."""
        recent = self.history[-self.th.cadence_window:]
        if len(recent) < 2:
            return 50.0
        intervals = [b.timestamp - a.timestamp for a, b in zip(recent[:-1], recent[1:])]
        avg = sum(intervals) / len(intervals)
        if avg <= 0:
            return 100.0
        return min(100.0, self.th.rapid_interval_s / avg * 100.0)

    def emotional_language(self, message: str) -> int:
        return count_markers(message, EMOTIONAL_WORDS, self.whole_word)

    def message_coherence(self, message: str) -> float:
        sents = sentences(message)
        if not sents:
            return SafetyMetrics().coherence_level
        connectors = count_markers(message, CONNECTORS, self.whole_word)
        complete = sum(1 for s in sents if len(s.split()) > 3)
        return min(100.0, connectors * 15 + complete / len(sents) * 70)

    # ---------- detectors ----------

    def _indicator(self, kind: CrisisType, score: float, cuts, phrases: str) -> CrisisIndicator:
        return CrisisIndicator(
            type=kind,
            severity=severity_for(score, cuts),
            confidence=clamp(score / 100.0),
            recommendation=RECOMMENDATIONS[kind],
            immediate_action=self.stabilization_phrase(phrases),
        )

    def detect_cognitive_overload(self, message: str) -> Optional[CrisisIndicator]:
        markers = count_markers(message, OVERLOAD_MARKERS, self.whole_word)
        exclaims = message.count("!")
        questions = message.count("?")
        caps = sum(1 for ch in message if ch.isupper())
        caps_ratio = caps / len(message) if message else 0.0
        score = markers * 20 + exclaims * 10 + questions * 5 + caps_ratio * 100

        cuts = self.th.overload_cuts
        if score > cuts[0] or self.safety.cognitive_load > self.th.cognitive_overload:
            return self._indicator(CrisisType.cognitive_overload, score, cuts, "clarity")
        return None

    def detect_emotional_distress(self, message: str) -> Optional[CrisisIndicator]:
        distress = count_markers(message, DISTRESS_MARKERS, self.whole_word)
        positive = count_markers(message, POSITIVE_MARKERS, self.whole_word)
        score = distress * 25 - positive * 10

        cuts = self.th.distress_cuts
        if score > cuts[0] or self.safety.emotional_stability < 100 - self.th.emotional_distress:
            return self._indicator(CrisisType.emotional_distress, score, cuts, "support")
        return None

    def detect_confusion_spiral(self, message: str,
                                context: Optional[Sequence[HistoryMessage]] = None) -> Optional[CrisisIndicator]:
        markers = count_markers(message, CONFUSION_MARKERS, self.whole_word)
        questions = message.count("?")
        if context is None:
            window = [e.content for e in self.history[-5:]]
        else:
            window = ([m.content for m in context] + [message])[-5:]
        recent_questions = sum(1 for c in window if "?" in c)
        score = markers * 20 + questions * 15 + recent_questions * 10

        cuts = self.th.confusion_cuts
        if score > cuts[0] or self.safety.coherence_level < 100 - self.th.confusion_spiral:
            return self._indicator(CrisisType.confusion_spiral, score, cuts, "clarity")
        return None

    def detect_reality_disconnect(self, message: str) -> Optional[CrisisIndicator]:
        markers = count_markers(message, DISCONNECT_MARKERS, self.whole_word)
        abstract_ratio = 1.0 - grounding(message, self.whole_word)
        score = markers * 30 + abstract_ratio * 50

        cuts = self.th.disconnect_cuts
        if score > cuts[0] or self.safety.grounding_score < 100 - self.th.reality_disconnect:
            return self._indicator(CrisisType.reality_disconnect, score, cuts, "reality")
        return None

    def detect_breakthrough_overwhelm(self, metrics: Optional[Mapping[str, float]]) -> Optional[CrisisIndicator]:
        if not metrics:
            return None
        score = (
            float(metrics.get("paradigm_shift", 0.0)) * 0.3
            + float(metrics.get("emergence", 0.0)) * 0.3
            + (100.0 - float(metrics.get("attention_coherence", 100.0))) * 0.4
        )
        cuts = self.th.overwhelm_cuts
        if score > cuts[0] or self.safety.overwhelm_index > self.th.breakthrough_overwhelm:
            return self._indicator(CrisisType.breakthrough_overwhelm, score, cuts, "support")
        return None

    # ---------- interventions ----------

    def stabilization_phrase(self, kind: str) -> str:
        return self.rng.choice(STABILIZATION_PHRASES[kind])

    def generate_intervention(self, indicator: CrisisIndicator) -> InterventionStrategy:
        strategy = InterventionStrategy(
            type=indicator.type,
            priority=_PRIORITY[indicator.severity],
            action=indicator.immediate_action,
            message=INTERVENTION_MESSAGES[indicator.type].get(indicator.severity, indicator.immediate_action),
        )
        self.interventions.append(strategy)
        if len(self.interventions) > self.th.intervention_history_cap:
            self.interventions = self.interventions[-self.th.intervention_history_cap:]
        return strategy

    def safety_status(self) -> SafetyMetrics:
        return self.safety.model_copy()

    def needs_intervention(self) -> bool:
        s, th = self.safety, self.th
        return (
            s.overwhelm_index > th.intervene_overwhelm
            or s.cognitive_load > th.intervene_load
            or s.emotional_stability < th.intervene_floor
            or s.coherence_level < th.intervene_floor
            or s.grounding_score < th.intervene_floor
        )

    def reset(self) -> None:
        self.safety = SafetyMetrics()
        self.history = []
        self.interventions = []
