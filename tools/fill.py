"""Regenerate escrow fixtures by running the test suite with ``--output``.

Every ``escrow_case`` call in the tests lands in ``<output>/escrow/*.json``;
``tools/consume.py`` replays them and ``tools/fixtures_to_vectors.py``
turns them into YAML vectors.
"""

from __future__ import annotations

import argparse
import os
import shutil
import subprocess
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
DEFAULT_OUT = ROOT / "fixtures"


def main() -> int:
    parser = argparse.ArgumentParser(description="Fill escrow fixtures from the tests")
    parser.add_argument("--output", default=str(DEFAULT_OUT), help="fixture directory")
    parser.add_argument("-k", dest="select", default=None, help="pytest -k expression")
    parser.add_argument("--clean", action="store_true", help="remove existing fixtures first")
    args = parser.parse_args()

    out = Path(args.output).resolve()
    if args.clean and out.exists():
        shutil.rmtree(out)

    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join([str(ROOT / "src"), str(ROOT)])

    cmd = [sys.executable, "-m", "pytest", str(ROOT / "tests"), "-q", "--output", str(out)]
    if args.select:
        cmd += ["-k", args.select]
    print("Filling", out)
    return subprocess.call(cmd, env=env, cwd=str(ROOT))


if __name__ == "__main__":
    raise SystemExit(main())
