# main.py
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

import config
from planning.planner import Planner, PlanningPolicy
from planning.snapshot import SnapshotError


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Phase a work-item snapshot for concurrent execution")
    parser.add_argument("snapshot", help="Path to a JSON list of work items (or {\"tasks\": [...]})")
    parser.add_argument("--full", action="store_true", help="Print every phase instead of the next step")
    parser.add_argument("--analysis", action="store_true", help="Print the runnable-now analysis")
    parser.add_argument("--json", action="store_true", help="Print the full report as JSON")
    parser.add_argument("--no-sequence", action="store_true", help="Do not split phases on file conflicts")
    parser.add_argument("--trace", action="store_true", default=config.PLAN_TRACE, help="Print [PLAN] trace lines")
    args = parser.parse_args(argv)

    path = Path(args.snapshot)
    try:
        records = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        print(f"Error: snapshot not found at {path}", file=sys.stderr)
        return 1
    except json.JSONDecodeError as e:
        print(f"Error: snapshot is not valid JSON: {e}", file=sys.stderr)
        return 1

    planner = Planner(PlanningPolicy(trace=args.trace, sequence_conflicts=not args.no_sequence))

    try:
        if args.analysis:
            print(planner.describe(records))
            return 0
        report = planner.plan(records, full=args.full or args.json)
    except SnapshotError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(report.as_dict(), indent=2))
    else:
        print(report.text.rstrip())
    return 0


if __name__ == "__main__":
    sys.exit(main())
