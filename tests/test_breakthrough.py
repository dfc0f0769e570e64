# tests/test_breakthrough.py
from ethraic.breakthrough import BreakthroughDetector, cosine, text_to_vector
from ethraic.schema import PatternType

EUREKA = (
    "suddenly I just realized, aha, eureka, a real breakthrough: it dawned on me like a "
    "lightbulb and everything started to click, new structures emerge from scattered observations"
)

def test_vectors_are_normalized():
    v = text_to_vector("the quick brown fox")
    assert abs(sum(x * x for x in v) - 1.0) < 1e-9
    assert text_to_vector("") == [0.0] * len(v)
    assert cosine(v, v) > 0.999
    assert cosine(v, [0.0] * len(v)) == 0.0

def test_warming_up():
    d = BreakthroughDetector()
    assert d.detect_pattern("ok", timestamp=0) is None
    assert d.candidate_strength() == 0.0
    [ind] = d.indicators(now=0)
    assert ind.type == "warming_up"

def test_emergence_pattern_detected():
    d = BreakthroughDetector()
    d.detect_pattern("ok", timestamp=0)
    d.detect_pattern("a bit more text here", timestamp=60)
    pattern = d.detect_pattern(EUREKA, timestamp=70)
    assert pattern is not None
    assert pattern.type == PatternType.emergence
    assert pattern.strength > 0.7
    assert pattern.description.startswith(("Strong", "Moderate"))
    assert d.history == [pattern]

    types = {i.type for i in d.indicators(now=100)}
    assert "momentum" in types
    assert "acceleration" in types
    assert "momentum" not in {i.type for i in d.indicators(now=10_000)}

def test_plain_chat_stays_quiet():
    d = BreakthroughDetector()
    for i, msg in enumerate(["hello there", "hello there again", "hello there again friend"]):
        assert d.detect_pattern(msg, timestamp=i) is None

def test_reset():
    d = BreakthroughDetector()
    for i in range(4):
        d.detect_pattern(f"message number {i}", timestamp=i)
    d.reset()
    assert d.thoughts == [] and d.history == []
