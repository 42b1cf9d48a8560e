"""Consume fixtures and validate them against the engine."""

from __future__ import annotations

import json
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT / "src"))
sys.path.insert(0, str(ROOT / "tools"))

from fixtures_io import (  # noqa: E402
    call_from_json,
    engine_from_json,
    engine_state_to_json,
    run_call,
)


def _check_cases(path: Path) -> list[str]:
    failures: list[str] = []
    data = json.loads(path.read_text())

    for case in data.get("cases", []):
        engine = engine_from_json(case["pre_state"])
        result = run_call(engine, call_from_json(case["call"]))

        expected = case["expected"]
        if result.ok != expected["ok"]:
            failures.append(f"{path.name}:{case['name']}: ok_mismatch")
            continue

        if result.error_name != expected["error"]:
            failures.append(f"{path.name}:{case['name']}: error_mismatch")
            continue

        if engine_state_to_json(engine) != expected["post_state"]:
            failures.append(f"{path.name}:{case['name']}: post_state_mismatch")

    return failures


def main() -> None:
    fixtures = ROOT / "fixtures"

    failures: list[str] = []
    for path in sorted(fixtures.rglob("*.json")):
        failures.extend(_check_cases(path))

    if failures:
        for f in failures:
            print("FAIL", f)
        raise SystemExit(1)

    print("All fixtures passed")


if __name__ == "__main__":
    main()
