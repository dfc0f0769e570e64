# examples/quickstart.py
import json, random

from ethraic.session import Session

turns = [
    "Hello. What would you like to think about today?",
    "Because the pattern repeats, we can first name it, second test it, and third let it go.",
    "Maybe the question is not what you know, but how you know it? Perhaps both?",
]

s = Session(rng=random.Random(7), session_id="quickstart")
for t in turns:
    r = s.process(t)
    print(f"turn={r.turn} composite={r.composite:.3f} ema={r.composite_ema:.3f} "
          f"phase={r.phase.value} paradigm={r.paradigm_state.value}")
print(json.dumps(r.display, indent=2))
