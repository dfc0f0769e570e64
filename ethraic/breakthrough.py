# ethraic/breakthrough.py
# per-session detector for convergence / divergence / emergence / transcendence / integration moments
from __future__ import annotations

import math
import time
import zlib
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from ethraic.config import Thresholds
from ethraic.metrics import clamp
from ethraic.schema import BreakthroughIndicator, BreakthroughPattern, PatternType

DIM = 128
_MARKER_SLOT = 120

PATTERN_MARKERS: Dict[PatternType, Tuple[str, ...]] = {
    PatternType.convergence: (
        "everything connects", "it all makes sense", "coming together",
        "unified", "whole picture", "integration", "synthesis",
    ),
    PatternType.divergence: (
        "completely different", "new perspective", "never thought",
        "alternative", "opposite", "flip", "reverse",
    ),
    PatternType.emergence: (
        "suddenly", "just realized", "aha", "eureka", "breakthrough",
        "dawned on me", "lightbulb", "click",
    ),
    PatternType.transcendence: (
        "beyond", "transcend", "higher level", "meta", "above",
        "zoom out", "bigger picture", "fundamental",
    ),
    PatternType.integration: (
        "both/and", "paradox resolved", "holding both", "inclusive",
        "reconcile", "bridge", "synthesize",
    ),
}
EMERGENCE_WORDS = ("emerge", "arise", "develop", "form", "crystallize")

_DESCRIPTIONS = {
    PatternType.convergence: "convergence detected - multiple thought threads unifying into coherent understanding",
    PatternType.divergence: "divergence observed - exploring radically new conceptual territory",
    PatternType.emergence: "emergence pattern - new insights crystallizing from thought interactions",
    PatternType.transcendence: "transcendence indicated - rising above previous conceptual limitations",
    PatternType.integration: "integration occurring - synthesizing disparate elements into unified whole",
}


@dataclass
class Thought:
    content: str
    vector: List[float]
    timestamp: float
    role: str


# --- vectors -----------------------------------------------------------------
def text_to_vector(text: str) -> List[float]:
    """Hashed bag of words, weighted 1/(position+1), plus marker-family slots; L2-normalized."""
    v = [0.0] * DIM
    low = (text or "").lower()
    for i, word in enumerate(low.split()):
        v[zlib.crc32(word.encode("utf-8")) % DIM] += 1.0 / (i + 1)
    for k, markers in enumerate(PATTERN_MARKERS.values()):
        for m in markers:
            if m in low:
                v[_MARKER_SLOT + k] += 1.0
    mag = math.sqrt(sum(x * x for x in v))
    return [x / mag for x in v] if mag > 0 else v


def cosine(a: Sequence[float], b: Sequence[float]) -> float:
    if len(a) != len(b):
        return 0.0
    dot = sum(x * y for x, y in zip(a, b))
    na = math.sqrt(sum(x * x for x in a)); nb = math.sqrt(sum(y * y for y in b))
    if na == 0 or nb == 0:
        return 0.0
    return dot / (na * nb)


def _average(vectors: Sequence[Sequence[float]]) -> List[float]:
    if not vectors:
        return []
    return [sum(col) / len(vectors) for col in zip(*vectors)]


def _words(text: str) -> set:
    return set((text or "").lower().split())


# --- detector ----------------------------------------------------------------
class BreakthroughDetector:

    def __init__(self, thresholds: Optional[Thresholds] = None) -> None:
        self.th = thresholds or Thresholds()
        self.thoughts: List[Thought] = []
        self.history: List[BreakthroughPattern] = []

    def detect_pattern(self, text: str, role: str = "user",
                       timestamp: Optional[float] = None) -> Optional[BreakthroughPattern]:
        """Record a thought; return a pattern only when its strength clears the threshold."""
        ts = time.time() if timestamp is None else float(timestamp)
        self.thoughts.append(Thought(text, text_to_vector(text), ts, role))
        if len(self.thoughts) > self.th.max_patterns:
            self.thoughts = self.thoughts[-self.th.max_patterns:]

        pattern = self._analyze(self.thoughts[-1])
        if pattern is not None and pattern.strength > self.th.pattern_threshold:
            self.history.append(pattern)
            return pattern
        return None

    def candidate_strength(self) -> float:
        """Strength of the latest thought even if below the report threshold (0 when warming up)."""
        if not self.thoughts:
            return 0.0
        return self._strength(self.thoughts[-1])[0]

    def _strength(self, current: Thought) -> Tuple[float, Optional[PatternType], float, float, float]:
        if len(self.thoughts) < 3:
            return 0.0, None, 0.0, 0.0, 0.0
        recent = self.thoughts[-10:]
        prior = recent[:-1]
        low = current.content.lower()

        signal, detected = 0.0, None
        for kind, markers in PATTERN_MARKERS.items():
            s = sum(1 for m in markers if m in low) / len(markers)
            if s > signal:
                signal, detected = s, kind

        evolution = self.pattern_evolution(recent)
        leap = self._conceptual_leap(current, prior)
        emergence = self._emergence(current, prior)
        total = signal * 0.3 + evolution * 0.3 + leap * 0.2 + emergence * 0.2
        return clamp(total), detected, evolution, leap, emergence

    def _analyze(self, current: Thought) -> Optional[BreakthroughPattern]:
        total, detected, evolution, leap, emergence = self._strength(current)
        if total <= self.th.pattern_candidate:
            return None
        kind = detected or self._infer_type(evolution, leap, emergence)
        return BreakthroughPattern(
            type=kind,
            strength=total,
            confidence=self._confidence(self.thoughts[-10:]),
            description=self._describe(kind, total),
            timestamp=current.timestamp,
        )

    def pattern_evolution(self, thoughts: Sequence[Thought]) -> float:
        """Growing message length plus semantic drift between consecutive thoughts."""
        if len(thoughts) < 2:
            return 0.0
        lengths = [len(t.content) for t in thoughts]
        steps = [(b - a) / a for a, b in zip(lengths[:-1], lengths[1:]) if a > 0]
        trend = sum(steps) / (len(lengths) - 1) if steps else 0.0
        drift = sum(1 - cosine(a.vector, b.vector) for a, b in zip(thoughts[:-1], thoughts[1:]))
        drift /= len(thoughts) - 1
        return clamp(trend * 0.5 + drift * 0.5)

    def _conceptual_leap(self, current: Thought, prior: Sequence[Thought]) -> float:
        if len(prior) < 2:
            return 0.0
        avg = _average([t.vector for t in prior[-5:]])
        distance = 1 - cosine(current.vector, avg)
        cur = _words(current.content)
        seen = _words(" ".join(t.content for t in prior))
        shared = sum(1 for w in cur if w in seen and len(w) > 3)
        return clamp(distance * min(1.0, shared / max(len(cur), 1)))

    def _emergence(self, current: Thought, prior: Sequence[Thought]) -> float:
        cur = _words(current.content)
        if not cur:
            return 0.0
        seen = _words(" ".join(t.content for t in prior))
        novel = sum(1 for w in cur if w not in seen and len(w) > 4)
        marker = any(m in current.content.lower() for m in EMERGENCE_WORDS)
        return clamp(novel / len(cur) + (0.3 if marker else 0.0))

    @staticmethod
    def _infer_type(evolution: float, leap: float, emergence: float) -> PatternType:
        scores = {
            PatternType.convergence: evolution * 0.5 + (1 - leap) * 0.5,
            PatternType.divergence: leap * 0.7 + evolution * 0.3,
            PatternType.emergence: emergence * 0.8 + evolution * 0.2,
            PatternType.transcendence: leap * 0.5 + emergence * 0.5,
            PatternType.integration: evolution * 0.4 + emergence * 0.3 + (1 - leap) * 0.3,
        }
        best, best_score = PatternType.emergence, 0.0
        for kind, score in scores.items():
            if score > best_score:
                best, best_score = kind, score
        return best

    @staticmethod
    def _confidence(thoughts: Sequence[Thought]) -> float:
        count = min(len(thoughts) / 10.0, 1.0)
        if len(thoughts) < 2:
            return clamp(count * 0.5)
        sims = [cosine(a.vector, b.vector) for a, b in zip(thoughts[:-1], thoughts[1:])]
        return clamp(count * 0.5 + (sum(sims) / len(sims)) * 0.5)

    @staticmethod
    def _describe(kind: PatternType, strength: float) -> str:
        intensity = "Strong" if strength > 0.8 else "Moderate" if strength > 0.5 else "Emerging"
        return f"{intensity} {_DESCRIPTIONS[kind]}"

    def indicators(self, now: Optional[float] = None) -> List[BreakthroughIndicator]:
        if len(self.thoughts) < 3:
            return [BreakthroughIndicator(type="warming_up", signal=0.2, description="Building thought momentum")]
        now = time.time() if now is None else now
        out: List[BreakthroughIndicator] = []
        recent = self.thoughts[-10:]

        evolution = self.pattern_evolution(recent)
        if evolution > 0.7:
            out.append(BreakthroughIndicator(type="evolution", signal=evolution,
                                             description="Thought patterns evolving rapidly"))

        intervals = [b.timestamp - a.timestamp for a, b in zip(recent[:-1], recent[1:])]
        avg = sum(intervals) / len(intervals)
        if intervals[-1] < avg * 0.7:
            out.append(BreakthroughIndicator(type="acceleration", signal=0.8,
                                             description="Thought velocity increasing"))

        n = sum(1 for b in self.history if now - b.timestamp < self.th.momentum_window_s)
        if n:
            out.append(BreakthroughIndicator(type="momentum", signal=min(1.0, n * 0.3),
                                             description=f"{n} recent breakthrough{'s' if n > 1 else ''}"))
        return out

    def reset(self) -> None:
        self.thoughts = []
        self.history = []
