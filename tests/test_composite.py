# tests/test_composite.py
import pytest

from ethraic.composite import composite, ema
from ethraic.phase import phase_from_composite
from ethraic.schema import Phase, Weights

M = {"entropy": 0.9, "clarity": 0.4, "novelty": 0.7, "depth": 0.2, "coherence": 1.0}

def test_default_weights_are_equal():
    assert composite(Weights(), M) == pytest.approx(sum(M.values()) / 5)
    assert composite(None, M) == pytest.approx(sum(M.values()) / 5)

def test_weight_scaling_invariance():
    w = {"entropy": 1.0, "clarity": 2.0, "novelty": 0.5, "depth": 3.0, "coherence": 1.0}
    base = composite(w, M)
    for k in (0.01, 1.0, 7.5, 1000.0):
        assert composite({n: k * v for n, v in w.items()}, M) == pytest.approx(base)

def test_missing_weights_do_not_bias_down():
    assert composite({"entropy": 1.0}, M) == pytest.approx(M["entropy"])
    assert composite({"depth": 2.0, "coherence": 2.0}, M) == pytest.approx(0.6)

def test_zero_weights_score_zero():
    assert composite({k: 0.0 for k in M}, M) == 0.0

def test_negative_weight_rejected():
    with pytest.raises(ValueError):
        composite({"entropy": -1.0}, M)

def test_ema_cold_start():
    assert ema(None, 0.42, 0.3) == 0.42
    assert ema(float("nan"), 0.42, 0.9) == 0.42

def test_ema_alpha_edges():
    assert ema(0.2, 0.8, 0.0) == 0.2
    assert ema(0.2, 0.8, 1.0) == 0.8
    assert ema(0.2, 0.8, 0.5) == pytest.approx(0.5)

@pytest.mark.parametrize("alpha", [-0.1, 1.5, float("nan"), float("inf")])
def test_ema_alpha_out_of_range_fails_fast(alpha):
    with pytest.raises(ValueError):
        ema(0.2, 0.8, alpha)

def test_ema_lags_a_jump():
    raw = [0.1, 0.1, 0.9, 0.9, 0.9]
    seq, prev = [], None
    for c in raw:
        prev = ema(prev, c, 0.3)
        seq.append(prev)
    assert seq[0] == 0.1 and seq[1] == pytest.approx(0.1)
    assert seq[2] == pytest.approx(0.34)
    assert all(b >= a - 1e-12 for a, b in zip(seq, seq[1:]))
    assert seq[2] - seq[1] < 0.8          # no discontinuous jump
    assert seq[-1] < 0.9
    assert seq[-1] == pytest.approx(0.6256)

@pytest.mark.parametrize("value,phase", [
    (0.0, Phase.SURFACE), (0.2999, Phase.SURFACE), (0.30, Phase.EXPLORING),
    (0.49, Phase.EXPLORING), (0.50, Phase.DEEP), (0.70, Phase.INTEGRATION),
    (0.8499, Phase.INTEGRATION), (0.85, Phase.BREAKTHROUGH), (1.0, Phase.BREAKTHROUGH),
])
def test_phase_bands(value, phase):
    assert phase_from_composite(value) == phase

def test_phase_monotonic_without_gaps():
    order = list(Phase)
    seen = [order.index(phase_from_composite(i / 1000)) for i in range(1001)]
    assert seen == sorted(seen)
    assert set(seen) == set(range(len(order)))

def test_phase_rejects_bad_bands():
    with pytest.raises(ValueError):
        phase_from_composite(0.5, (0.5, 0.3, 0.7, 0.8))
