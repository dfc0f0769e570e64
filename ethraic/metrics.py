# ethraic/metrics.py
# bounded-cost text -> lexical scores; every function is total and clamps to [0,1]
from __future__ import annotations

import math
import re
from collections import Counter
from typing import AbstractSet, Iterable, List, Optional, Sequence

from ethraic.schema import MetricBundle

# --- tokenization ------------------------------------------------------------
_STRIP = re.compile(r"[^\w\s]|_")
_SPACE = re.compile(r"\s+")
_SENT = re.compile(r"[.!?]+")


def clamp(x: float, lo: float = 0.0, hi: float = 1.0) -> float:
    if x != x:  # NaN
        return lo
    return max(lo, min(hi, x))


def normalize(text: str) -> str:
    text = _STRIP.sub(" ", (text or "").lower())
    return _SPACE.sub(" ", text).strip()


def tokenize(text: str) -> List[str]:
    """Case-folded word tokens; punctuation stripped; empty input -> []."""
    norm = normalize(text)
    return norm.split(" ") if norm else []


def sentences(text: str) -> List[str]:
    return [s.strip() for s in _SENT.split(text or "") if s.strip()]


# --- marker vocabularies -----------------------------------------------------
DEPTH_MARKERS = re.compile(
    r"\b(because|therefore|thus|so that|hence|however|moreover|first|second|third)\b", re.I
)
UNCERTAINTY_MARKERS = (
    "maybe", "perhaps", "might", "possibly", "probably", "not sure", "unsure",
    "uncertain", "i wonder", "could be", "unclear",
)
CONCRETE_WORDS = (
    "see", "hear", "touch", "feel", "taste", "body", "physical",
    "real", "actual", "practical", "specific", "example", "like",
)
ABSTRACT_WORDS = (
    "consciousness", "existence", "being", "essence", "infinite",
    "absolute", "transcendent", "universal", "eternal", "void",
)
DISTRESS_WORDS = (
    "scared", "afraid", "anxious", "panic", "terrified", "help",
    "crying", "upset", "disturbed", "troubled", "distressed",
)
POSITIVE_WORDS = ("excited", "amazing", "wonderful", "love", "beautiful", "joy")


def count_markers(text: str, markers: Iterable[str], whole_word: bool = False) -> int:
    """
    Number of distinct markers present in text (case-insensitive).
    Substring matching by default, so "butter" matches "but"; whole_word=True
    restricts matches to word boundaries.
    """
    t = (text or "").lower()
    if not t:
        return 0
    if whole_word:
        return sum(1 for m in markers if re.search(r"(?<!\w)" + re.escape(m) + r"(?!\w)", t))
    return sum(1 for m in markers if m in t)


def marker_density(count: int, cap: int) -> float:
    return clamp(count / max(1, cap))


# --- analyzers ---------------------------------------------------------------
def entropy(tokens: Sequence[str]) -> float:
    """Shannon entropy normalized by log2 |V|; one distinct token -> 0."""
    n = len(tokens)
    if n == 0:
        return 0.0
    freq = Counter(tokens)
    H = -sum((c / n) * math.log2(c / n) for c in freq.values())
    Hmax = math.log2(max(1, len(freq)))
    return clamp(H / Hmax) if Hmax > 0 else 0.0


def clarity(tokens: Sequence[str]) -> float:
    """Type-token ratio."""
    if not tokens:
        return 0.0
    return clamp(len(set(tokens)) / len(tokens))


def depth(text: str, tokens: Optional[Sequence[str]] = None, lmax: int = 400,
          marker_cap: int = 5, length_weight: float = 0.7) -> float:
    toks = tokenize(text) if tokens is None else tokens
    len_score = math.log(1 + len(toks)) / math.log(1 + max(1, lmax))
    markers = len(DEPTH_MARKERS.findall(text or ""))
    return clamp(length_weight * clamp(len_score) + (1.0 - length_weight) * marker_density(markers, marker_cap))


def coherence(tokens: Sequence[str]) -> float:
    """1 - share of bigrams that repeat an earlier bigram; < 2 tokens -> 1."""
    n = len(tokens)
    if n < 2:
        return 1.0
    bigrams = list(zip(tokens[:-1], tokens[1:]))
    seen: Counter = Counter()
    repeats = 0
    for b in bigrams:
        seen[b] += 1
        if seen[b] > 1:
            repeats += 1
    return clamp(1.0 - repeats / len(bigrams))


def novelty(tokens: Sequence[str], history: AbstractSet[str]) -> float:
    """1 - Jaccard(current token set, history set); empty current -> 0."""
    if not tokens:
        return 0.0
    cur = set(tokens)
    union = cur | set(history)
    inter = sum(1 for w in cur if w in history)
    return clamp(1.0 - (inter / len(union) if union else 0.0))


def grounding(text: str, whole_word: bool = False) -> float:
    """
    Concrete vs abstract vocabulary. With no abstract words the raw concrete
    count is used; result = min(100, ratio*50 + 30) / 100, so a neutral text sits at 0.3.
    """
    concrete = count_markers(text, CONCRETE_WORDS, whole_word)
    abstract = count_markers(text, ABSTRACT_WORDS, whole_word)
    ratio = concrete / abstract if abstract > 0 else float(concrete)
    return clamp(min(100.0, ratio * 50 + 30) / 100.0)


def abstractness(text: str, whole_word: bool = False) -> float:
    return 1.0 - grounding(text, whole_word)


def complexity(text: str, tokens: Optional[Sequence[str]] = None) -> float:
    """Grows with average word length and words per sentence."""
    toks = tokenize(text) if tokens is None else tokens
    if not toks:
        return 0.0
    avg_len = sum(len(w) for w in toks) / len(toks)
    per_sentence = len(toks) / max(1, len(sentences(text)))
    return clamp(min(100.0, avg_len * 5 + per_sentence * 2) / 100.0)


def emotional_intensity(text: str, whole_word: bool = False) -> float:
    distress = count_markers(text, DISTRESS_WORDS, whole_word)
    positive = count_markers(text, POSITIVE_WORDS, whole_word)
    return clamp((distress * 25 - positive * 10) / 100.0)


def uncertainty(text: str, whole_word: bool = False, marker_cap: int = 4) -> float:
    """Hedging vocabulary plus question marks (3+ saturates)."""
    hedges = count_markers(text, UNCERTAINTY_MARKERS, whole_word)
    questions = (text or "").count("?")
    return clamp(0.6 * marker_density(hedges, marker_cap) + 0.4 * min(1.0, questions / 3.0))


# --- public API --------------------------------------------------------------
def measure(text: str, history: AbstractSet[str] = frozenset(), *, lmax: int = 400,
            whole_word: bool = False, marker_cap: int = 5, length_weight: float = 0.7,
            uncertainty_cap: int = 4) -> MetricBundle:
    """Run every lexical analyzer over one message."""
    tokens = tokenize(text)
    return MetricBundle(
        entropy=entropy(tokens),
        clarity=clarity(tokens),
        depth=depth(text, tokens, lmax=lmax, marker_cap=marker_cap, length_weight=length_weight),
        coherence=coherence(tokens),
        novelty=novelty(tokens, history),
        grounding=grounding(text, whole_word),
        complexity=complexity(text, tokens),
        emotional_intensity=emotional_intensity(text, whole_word),
        uncertainty=uncertainty(text, whole_word, uncertainty_cap),
    )
