# scripts/replay_session.py
# Replay a JSONL transcript ({"role": ..., "content": ..., "ts": ...} per line) through one session
from __future__ import annotations
import argparse, json, random, sys
from pathlib import Path

from ethraic.config import load_config, parse_alpha
from ethraic.session import Session

def main() -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("transcript", type=Path)
    ap.add_argument("--seed", type=int, default=0)
    ap.add_argument("--alpha", type=float, default=None, help="override EMA alpha")
    args = ap.parse_args()

    cfg = load_config()
    if args.alpha is not None:
        cfg = cfg.model_copy(update={"ema_alpha": parse_alpha(args.alpha)})
    s = Session(cfg, rng=random.Random(args.seed), session_id=args.transcript.stem)

    for n, line in enumerate(args.transcript.read_text(encoding="utf-8").splitlines(), 1):
        if not line.strip():
            continue
        try:
            row = json.loads(line)
        except ValueError as e:
            print(f"[x] line {n}: {e}", file=sys.stderr)
            return 2
        r = s.process(str(row.get("content", "")), role=row.get("role", "assistant"), timestamp=row.get("ts"))
        crisis = f"{r.crisis.type.value}/{r.crisis.severity.value}" if r.crisis else "-"
        print(f"{r.turn:>3} {r.role.value:<9} ema={r.composite_ema:.3f} {r.phase.value:<12} "
              f"{r.paradigm_state.value:<22} risk={r.safety.risk_level.value:<8} crisis={crisis}")
    return 0

if __name__ == "__main__":
    sys.exit(main())
