#!/usr/bin/env python3
# Check saved readings (bare, or wrapped in an /analyze reply) against the Reading schema.
import json, sys
from pathlib import Path

from jsonschema import Draft202012Validator

from ethraic.schema import reading_json_schema

def check(path: Path, validator: Draft202012Validator) -> int:
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict) and "reading" in data:
        data = data["reading"]
    errs = list(validator.iter_errors(data))
    for e in errs:
        where = "/".join(str(p) for p in e.path) or "<root>"
        print(f"{path}: {where}: {e.message}")
    return len(errs)

def main(argv) -> int:
    if not argv:
        print("Usage: python recipes/validate.py <reading.json> [more.json ...]")
        return 2
    validator = Draft202012Validator(reading_json_schema())
    bad = sum(1 for p in argv if check(Path(p), validator))
    print("OK" if not bad else f"{bad} of {len(argv)} file(s) failed")
    return 1 if bad else 0

if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
