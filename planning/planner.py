# planning/planner.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import config
from planning.classification import ConflictRules, ModuleRules, WorkerRules
from planning.conflicts import judge_phases, scan_conflicts, sequence_conflicting, serialize_phases
from planning.formatter import render_analysis, render_full_plan, render_next_step
from planning.models import ConflictRecord, ConflictVerdict, ScheduleResult, WorkItem
from planning.scheduler import schedule
from planning.snapshot import load_snapshot


@dataclass(frozen=True)
class PlanningPolicy:
    trace: bool = config.PLAN_TRACE
    sequence_conflicts: bool = True  # split phases whose items overlap on files
    workers: WorkerRules = field(default_factory=WorkerRules)
    modules: ModuleRules = field(default_factory=ModuleRules)
    rules: ConflictRules = field(default_factory=ConflictRules)


@dataclass(frozen=True)
class PlanReport:
    items: Sequence[WorkItem]
    schedule: ScheduleResult
    conflicts: List[ConflictRecord]
    verdicts: Dict[int, ConflictVerdict]  # phase index -> verdict, multi-item phases only
    text: str

    def as_dict(self) -> Dict[str, Any]:
        return {
            **self.schedule.as_dict(),
            "conflicts": [c.as_dict() for c in self.conflicts],
            "verdicts": {str(k): v.as_dict() for k, v in self.verdicts.items()},
            "text": self.text,
        }


class Planner:
    """
    One planning pass over a work-item snapshot:
    - normalize the records
    - phase them by dependency closure
    - scan for file overlap and (optionally) split conflicting phases
    - judge every multi-item phase, run denied phases one item at a time
    - render instructions

    Holds configuration only; every call recomputes from the snapshot it is given.
    """

    def __init__(self, policy: Optional[PlanningPolicy] = None) -> None:
        self.policy = policy or PlanningPolicy()

    def plan(self, records: Any, *, full: bool = True) -> PlanReport:
        items = load_snapshot(records)
        result, conflicts, verdicts = self._safe_schedule(items)

        if full:
            text = render_full_plan(items, self.policy.workers, result=result, verdicts=verdicts)
        else:
            text = render_next_step(items, self.policy.workers, result=result, verdicts=verdicts)

        return PlanReport(items=items, schedule=result, conflicts=conflicts, verdicts=verdicts, text=text)

    def judge_phases(self, items: Sequence[WorkItem], result: ScheduleResult) -> Dict[int, ConflictVerdict]:
        verdicts = judge_phases(result, items, rules=self.policy.rules, modules=self.policy.modules)
        if self.policy.trace:
            for index, verdict in verdicts.items():
                state = "allow" if verdict.allowed else "deny"
                print(f"[PLAN] phase {index} verdict: {state} ({verdict.confidence}) {verdict.reason}")
        return verdicts

    def describe(self, records: Any) -> str:
        """Runnable-now analysis text over the same phases plan() would produce."""
        items = load_snapshot(records)
        result, _, _ = self._safe_schedule(items)
        return render_analysis(result, items)

    def _safe_schedule(
        self, items: Sequence[WorkItem]
    ) -> Tuple[ScheduleResult, List[ConflictRecord], Dict[int, ConflictVerdict]]:
        pending = [wi for wi in items if not wi.is_completed]

        result = schedule(items)
        self._trace_schedule("dependency", result)

        conflicts = scan_conflicts(pending)
        if self.policy.trace:
            for c in conflicts:
                print(f"[PLAN] {c.severity} {c.type}: {c.file_path} items={list(c.items)}")

        if self.policy.sequence_conflicts and conflicts:
            result = sequence_conflicting(result, items, conflicts)
            self._trace_schedule("sequenced", result)

        verdicts = self.judge_phases(items, result)
        denied = {index for index, v in verdicts.items() if not v.allowed}
        if self.policy.sequence_conflicts and denied:
            result = serialize_phases(result, items, denied)
            self._trace_schedule("serialized", result)
            verdicts = self.judge_phases(items, result)

        return result, conflicts, verdicts

    def _trace_schedule(self, label: str, result: ScheduleResult) -> None:
        if not self.policy.trace:
            return
        for phase in result.phases:
            print(f"[PLAN] {label} phase {phase.index}: {list(phase.items)}")
        for b in result.blocked:
            print(f"[PLAN] blocked: {b.id} ({b.reason})")
