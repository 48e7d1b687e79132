# planning/formatter.py

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from planning.classification import WorkerRules
from planning.conflicts import judge_phases, scan_conflicts, sequence_conflicting, serialize_denied
from planning.models import ConflictVerdict, ScheduleResult, Status, WorkItem
from planning.scheduler import NO_DEPS_SIGNATURE, schedule

ALL_DONE = "All work items are completed! No further action needed."
NOTHING_TO_DO = "Nothing to do: the snapshot has no work items."


def render_next_step(
    items: Sequence[WorkItem],
    workers: Optional[WorkerRules] = None,
    result: Optional[ScheduleResult] = None,
    verdicts: Optional[Dict[int, ConflictVerdict]] = None,
) -> str:
    """Instruction for what to start right now."""
    items = tuple(items)
    workers = workers or WorkerRules()

    if not items:
        return NOTHING_TO_DO
    if all(wi.is_completed for wi in items):
        return ALL_DONE

    if result is None:
        result = safe_schedule(items)
    by_id = {wi.id: wi for wi in items}

    if not result.runnable_now:
        return _render_waiting(result, by_id)

    runnable = [by_id[i] for i in result.runnable_now]
    verdict = None
    if len(runnable) > 1:
        if verdicts is None:
            verdicts = judge_phases(result, items)
        verdict = verdicts.get(result.phases[0].index)

    return render_phase_instruction(runnable, workers, verdict)


def render_phase_instruction(
    phase_items: Sequence[WorkItem],
    workers: Optional[WorkerRules] = None,
    verdict: Optional[ConflictVerdict] = None,
) -> str:
    workers = workers or WorkerRules()

    if len(phase_items) == 1:
        wi = phase_items[0]
        return (
            f"Use the worker located in {workers.resolve_worker(wi)} to complete work item: {wi.id}. "
            f"Mark the item as in progress when you start working on it."
        )

    listed = ", ".join(f"{wi.id} ({workers.resolve_worker(wi)})" for wi in phase_items)
    if verdict is not None and not verdict.allowed:
        return (
            f"Run these {len(phase_items)} work items one at a time, in this order: {listed}. "
            f"They are not safe to run in parallel ({verdict.reason}). "
            f"Complete each item before starting the next."
        )
    return (
        f"Launch {len(phase_items)} workers simultaneously to execute these work items at the same time: "
        f"{listed}. Start all {len(phase_items)} items concurrently, not sequentially."
    )


def safe_schedule(items: Sequence[WorkItem], sequence_conflicts: bool = True) -> ScheduleResult:
    """Dependency phases, split on file conflicts and denied group verdicts unless disabled."""
    result = schedule(items)
    if not sequence_conflicts:
        return result
    pending = [wi for wi in items if not wi.is_completed]
    result = sequence_conflicting(result, items, scan_conflicts(pending))
    return serialize_denied(result, items)


def render_analysis(result: ScheduleResult, items: Sequence[WorkItem]) -> str:
    """Human-readable summary of what can run now, with same-prerequisite sub-groups."""
    by_id = {wi.id: wi for wi in items}
    runnable = [by_id[i] for i in result.runnable_now]

    if not runnable:
        return (
            "No work items are currently ready to run. All pending items have unmet dependencies "
            "or are already in progress."
        )

    if len(runnable) == 1:
        return f'1 work item is ready to run: "{_label(runnable[0])}".'

    lines: List[str] = [f"{len(runnable)} work items are ready to run in parallel:", ""]

    shared = [g for g in result.signature_groups if len(g.items) > 1]
    single = [g for g in result.signature_groups if len(g.items) == 1]

    if shared:
        lines.append("Items with the same prerequisites (can run together):")
        for g in shared:
            prereq = "none" if g.signature == NO_DEPS_SIGNATURE else g.signature
            names = ", ".join(_label(by_id[i]) for i in g.items)
            lines.append(f"- {len(g.items)} items after [{prereq}]: {names}")

    if single:
        if shared:
            lines.append("")
        lines.append("Independent items:")
        for g in single:
            lines.append(f"- {_label(by_id[g.items[0]])}")

    return "\n".join(lines)


def render_full_plan(
    items: Sequence[WorkItem],
    workers: Optional[WorkerRules] = None,
    result: Optional[ScheduleResult] = None,
    sequence_conflicts: bool = True,
    verdicts: Optional[Dict[int, ConflictVerdict]] = None,
) -> str:
    """
    One block per phase in order, then blocked items and a summary.

    A multi-item phase whose group verdict is a deny is worded as sequential work.
    """
    items = tuple(items)
    workers = workers or WorkerRules()

    if not items:
        return NOTHING_TO_DO

    pending = [wi for wi in items if not wi.is_completed]
    if not pending:
        return ALL_DONE

    if result is None:
        result = safe_schedule(items, sequence_conflicts)
    if verdicts is None:
        verdicts = judge_phases(result, items)

    by_id = {wi.id: wi for wi in items}

    lines: List[str] = ["=== COMPLETE EXECUTION PLAN ==="]

    if not result.phases:
        lines.append("")
        lines.append("No executable work items found.")

    for n, phase in enumerate(result.phases):
        phase_items = [by_id[i] for i in phase.items]
        plural = "s" if len(phase_items) > 1 else ""
        lines.append("")
        lines.append(f"PHASE {phase.index} ({len(phase_items)} item{plural}):")

        in_progress = [wi.id for wi in phase_items if wi.status is Status.IN_PROGRESS]
        if in_progress:
            lines.append(f"Already in progress: {', '.join(in_progress)}")

        lines.append(render_phase_instruction(phase_items, workers, verdicts.get(phase.index)))

        if n < len(result.phases) - 1:
            lines.append(f"After completing the above, proceed to Phase {phase.index + 1}.")

    if result.blocked:
        lines.append("")
        lines.append(f"BLOCKED ITEMS ({len(result.blocked)}):")
        for b in result.blocked:
            lines.append(f"  - {b.id}: {b.reason}")

    executable = len(result.scheduled_ids)
    lines.append("")
    lines.append("=== SUMMARY ===")
    lines.append(f"Total pending items: {len(pending)}")
    lines.append(f"Executable items: {executable}")
    lines.append(f"Execution phases: {len(result.phases)}")
    if result.blocked:
        lines.append(f"Blocked items: {len(result.blocked)}")

    return "\n".join(lines) + "\n"


def _render_waiting(result: ScheduleResult, by_id: Dict[str, WorkItem]) -> str:
    if result.phases:
        # phase 1 holds only items that are already running
        running = ", ".join(result.phases[0].items)
        return f"No new work items ready to run. Wait for the items in progress to finish: {running}"

    unmet: List[str] = []
    for b in result.blocked:
        for dep in b.unmet:
            if dep not in unmet:
                unmet.append(dep)

    waiting = len(result.blocked)
    noun = "item is" if waiting == 1 else "items are"
    if unmet:
        return (
            f"No work items ready to run. {waiting} {noun} waiting for dependencies. "
            f"First complete: {', '.join(unmet)}"
        )

    reasons = "; ".join(f"{b.id}: {b.reason}" for b in result.blocked)
    return f"No work items ready to run. {waiting} {noun} blocked: {reasons}"


def _label(wi: WorkItem) -> str:
    return wi.name or wi.id
