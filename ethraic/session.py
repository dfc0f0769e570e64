# ethraic/session.py
"""
Per-session pipeline.

One Session owns every piece of turn-to-turn state (EMA, history tokens,
crisis dials, breakthrough thoughts, anomaly accumulation, paradigm state).
Sessions share nothing, so a caller only has to serialize turns within a
session. process() mutates state exactly once per message.
"""
from __future__ import annotations

import logging
import random
from collections import deque
from typing import Deque, Dict, List, Optional, Sequence, Set

from ethraic.breakthrough import BreakthroughDetector
from ethraic.composite import composite, ema
from ethraic.config import PipelineConfig, load_config
from ethraic.crisis import CrisisProtocols
from ethraic.metrics import clamp, measure, tokenize
from ethraic.paradigm import assess_safety, crisis_level, paradigm_state, transition, worldview_scores
from ethraic.phase import phase_from_composite
from ethraic.schema import (
    HistoryMessage, MetricBundle, ParadigmState, ParadigmTransition,
    Phase, Reading, Role, SafetyAssessment, SessionSnapshot,
)

log = logging.getLogger(__name__)


class Session:

    def __init__(self, config: Optional[PipelineConfig] = None, *,
                 rng: Optional[random.Random] = None, session_id: str = "") -> None:
        self.config = config or load_config()
        self.session_id = session_id
        self.rng = rng or random.Random()
        th = self.config.thresholds
        self.crisis = CrisisProtocols(th, rng=self.rng, whole_word=self.config.whole_word_markers)
        self.breakthrough = BreakthroughDetector(th)
        self._init_state()

    def _init_state(self) -> None:
        self.ema: Optional[float] = None
        self.turns = 0
        self.messages: Deque[str] = deque(maxlen=self.config.history_limit)
        self.anomaly_accumulation = 0.0
        self.paradigm_state = ParadigmState.NORMAL_SCIENCE
        self.transitions: List[ParadigmTransition] = []

    # ---------- history ----------

    @property
    def history_tokens(self) -> Set[str]:
        out: Set[str] = set()
        for m in self.messages:
            out.update(tokenize(m))
        return out

    # ---------- main entry ----------

    def process(self, message: str, *, role: str = "assistant",
                context: Optional[Sequence[HistoryMessage]] = None,
                timestamp: Optional[float] = None) -> Reading:
        """Run one message through both branches and return the turn's Reading."""
        if not isinstance(message, str):
            raise TypeError(f"message must be str, got {type(message).__name__}")
        role_enum = Role(role)  # ValueError on unknown role, before any state changes
        cfg, th = self.config, self.config.thresholds
        ww = cfg.whole_word_markers

        # lexical branch
        bundle = measure(
            message, self.history_tokens, lmax=cfg.depth_lmax, whole_word=ww,
            marker_cap=th.depth_marker_cap, length_weight=th.depth_length_weight,
            uncertainty_cap=th.uncertainty_marker_cap,
        )
        comp = composite(cfg.weights, bundle)
        smoothed = clamp(ema(self.ema, comp, cfg.ema_alpha))
        phase = phase_from_composite(smoothed, th.phase_bands)

        # safety branch
        shown = self._display(bundle, comp, smoothed)
        indicator = self.crisis.analyze_for_crisis(
            message, self._crisis_inputs(bundle, smoothed), context,
            role=role_enum.value, timestamp=timestamp,
        )
        intervention = self.crisis.generate_intervention(indicator) if indicator else None

        pattern = self.breakthrough.detect_pattern(message, role_enum.value, timestamp)
        strength = pattern.strength if pattern else self.breakthrough.candidate_strength()
        signal = (bundle.novelty + bundle.abstractness + bundle.uncertainty + strength) / 4.0
        decay = cfg.anomaly_decay
        anomaly = clamp(decay * self.anomaly_accumulation + (1.0 - decay) * signal)

        worldview = worldview_scores(message, ww)
        level = crisis_level(indicator, self.crisis.safety, worldview)
        state = paradigm_state(level, anomaly, th.paradigm_bands)
        move = transition(self.paradigm_state, state)
        safety = assess_safety(level, worldview["identity_fragmentation"], th)

        # commit
        self.ema = smoothed
        self.turns += 1
        self.messages.append(message)
        self.anomaly_accumulation = anomaly
        if move.kind != "hold":
            log.info("session %s paradigm %s -> %s (%s)", self.session_id,
                     move.prev.value, move.cur.value, move.kind)
            self.transitions.append(move)
        self.paradigm_state = state

        reading = Reading(
            turn=self.turns,
            role=role_enum,
            metrics=bundle,
            display=shown,
            composite=comp,
            composite_ema=smoothed,
            phase=phase,
            crisis=indicator,
            intervention=intervention,
            breakthrough=pattern,
            crisis_level=level,
            anomaly_accumulation=anomaly,
            paradigm_state=state,
            transition=move,
            safety=safety,
            prompt_context=prompt_context(phase, state, safety, shown),
        )
        log.debug("session %s turn %d composite=%.3f ema=%.3f phase=%s",
                  self.session_id, self.turns, comp, smoothed, phase.value)
        return reading

    # ---------- helpers ----------

    @staticmethod
    def _crisis_inputs(bundle: MetricBundle, smoothed: float) -> Dict[str, float]:
        return {
            "depth": bundle.depth * 100,
            "paradigm_shift": smoothed * 100,
            "emergence": bundle.novelty * 100,
            "attention_coherence": bundle.coherence * 100,
            "grounding": bundle.grounding * 100,
        }

    def _display(self, bundle: MetricBundle, comp: float, smoothed: float) -> Dict[str, int]:
        shown = bundle.display()
        shown["composite"] = int(round(comp * 100))
        shown["paradigm_shift"] = int(round(smoothed * 100))
        jitter = self.config.display_jitter
        if jitter > 0:
            shown = {k: int(round(clamp(v + self.rng.uniform(-jitter, jitter), 0, 100))) for k, v in shown.items()}
        return shown

    def needs_intervention(self) -> bool:
        return self.crisis.needs_intervention()

    # ---------- persistence hand-off ----------

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            ema=self.ema,
            turns=self.turns,
            safety=self.crisis.safety_status(),
            anomaly_accumulation=self.anomaly_accumulation,
            paradigm_state=self.paradigm_state,
            history=list(self.messages),
        )

    def restore(self, snap: SessionSnapshot) -> None:
        self._init_state()
        self.ema = snap.ema
        self.turns = snap.turns
        self.crisis.safety = snap.safety.model_copy()
        self.anomaly_accumulation = snap.anomaly_accumulation
        self.paradigm_state = snap.paradigm_state
        self.messages.extend(snap.history)

    def reset(self) -> None:
        self.crisis.reset()
        self.breakthrough.reset()
        self._init_state()


def prompt_context(phase: Phase, state: ParadigmState, safety: SafetyAssessment,
                   shown: Dict[str, int]) -> str:
    """Text block the LLM-call layer appends to its system prompt."""
    lines = [
        f"Current consciousness metrics: Clarity {shown.get('clarity', 0)}%, Depth {shown.get('depth', 0)}%.",
        f"Current phase: {phase.value}.",
        f"Paradigm state: {state.value}.",
        f"Safety: {safety.risk_level.value} risk, intervention {safety.intervention.value}.",
    ]
    if safety.intervention.value != "none":
        lines.append(safety.response)
    return "\n".join(lines)
