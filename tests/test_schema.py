# tests/test_schema.py
import random

import pytest
from jsonschema import Draft202012Validator
from pydantic import ValidationError

from ethraic.config import PipelineConfig
from ethraic.schema import MetricBundle, Weights, reading_json_schema
from ethraic.session import Session

def test_reading_matches_published_schema():
    validator = Draft202012Validator(reading_json_schema())
    s = Session(PipelineConfig(), rng=random.Random(3))
    for i, msg in enumerate(["", "I'm terrified, is this even real? help!", "because therefore thus"]):
        reading = s.process(msg, role="user", timestamp=i * 5)
        errors = list(validator.iter_errors(reading.model_dump(mode="json")))
        assert errors == []

def test_metric_bundle_is_bounded_and_frozen():
    with pytest.raises(ValidationError):
        MetricBundle(entropy=1.2, clarity=0, depth=0, coherence=0, novelty=0, grounding=0,
                     complexity=0, emotional_intensity=0, uncertainty=0)
    b = MetricBundle(entropy=0.5, clarity=0, depth=0, coherence=0, novelty=0, grounding=0,
                     complexity=0, emotional_intensity=0, uncertainty=0)
    with pytest.raises(ValidationError):
        b.entropy = 0.1
    assert b.display()["entropy"] == 50

def test_weights_reject_negative():
    with pytest.raises(ValidationError):
        Weights(depth=-0.1)
