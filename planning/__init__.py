from __future__ import annotations

from .classification import ConflictRules, ModuleRules, WorkerRules
from .conflicts import (
    analyze_group,
    judge_phases,
    parallel_work_plan,
    scan_conflicts,
    sequence_conflicting,
    serialize_denied,
)
from .formatter import render_analysis, render_full_plan, render_next_step, safe_schedule
from .models import (
    ChangeKind,
    ConflictRecord,
    ConflictVerdict,
    Phase,
    ScheduleResult,
    Status,
    TouchedFile,
    WorkItem,
)
from .planner import Planner, PlanningPolicy, PlanReport
from .scheduler import dependency_signature_groups, find_cycles, runnable_now, schedule
from .snapshot import SnapshotError, load_snapshot

__all__ = [
    "ChangeKind",
    "ConflictRecord",
    "ConflictRules",
    "ConflictVerdict",
    "ModuleRules",
    "Phase",
    "PlanReport",
    "Planner",
    "PlanningPolicy",
    "ScheduleResult",
    "SnapshotError",
    "Status",
    "TouchedFile",
    "WorkItem",
    "WorkerRules",
    "analyze_group",
    "dependency_signature_groups",
    "find_cycles",
    "judge_phases",
    "load_snapshot",
    "parallel_work_plan",
    "render_analysis",
    "render_full_plan",
    "render_next_step",
    "runnable_now",
    "safe_schedule",
    "scan_conflicts",
    "schedule",
    "sequence_conflicting",
    "serialize_denied",
]
