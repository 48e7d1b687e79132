# planning/conflicts.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set, Tuple

import config
from planning.classification import ConflictRules, ModuleRules
from planning.models import (
    DEPENDENCY_CONFLICT,
    FILE_CONFLICT,
    ConflictRecord,
    ConflictVerdict,
    Phase,
    ScheduleResult,
    Status,
    TouchedFile,
    WorkItem,
    WorkPlan,
)
from planning.scheduler import dependency_signature_groups

_TOP_LEVEL = "."


@dataclass
class _RuleOutcome:
    allowed: bool
    confidence: int = 100
    reason: str = ""
    warnings: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)


def analyze_group(
    items: Sequence[WorkItem],
    rules: Optional[ConflictRules] = None,
    modules: Optional[ModuleRules] = None,
) -> ConflictVerdict:
    """
    Verdict for running `items` at the same time, judged from their touched files.

    Rules run in order; the first deny wins:
      1. database / schema / migration paths        -> deny
      2. modified shared library roots              -> deny
      3. configuration artifacts                    -> deny
      4. modified API / contract surfaces           -> deny
      5. every file NEW                             -> allow (95)
      6. modifications limited to tests / docs      -> allow (85)
      7. paths inside one module / independent roots -> allow (90 / 80 / 75)
      8. anything else                              -> deny
    """
    rules = rules or ConflictRules()
    modules = modules or ModuleRules()

    files = _touched(items)
    paths = _unique(f.path for f in files)
    modified = _unique(f.path for f in files if f.is_modify)

    deny_checks = (
        ("database", paths, "Contains database/schema changes",
         "Run schema and migration work on its own before dependent items"),
        ("shared", modified, "Modifies shared components",
         "Sequence changes to shared libraries; land them before items that use them"),
        ("config_files", paths, "Contains configuration changes",
         "Let a single item own configuration changes"),
        ("api", modified, "Modifies API contracts",
         "Agree on the contract first, then run consumers in parallel"),
    )
    for table, candidates, label, recommendation in deny_checks:
        hits = rules.filter(table, candidates)
        if hits:
            return _deny(f"{label}: {', '.join(hits)}", recommendation)

    outcome = _check_new_files_only(files)
    if outcome is None:
        outcome = _check_test_doc_only(modified, rules)
    if outcome is None:
        outcome = _check_module_roots(items, paths, modified, rules, modules)

    if not outcome.allowed:
        return _deny(outcome.reason, "Run these items sequentially", outcome.warnings)

    return ConflictVerdict(
        allowed=True,
        confidence=outcome.confidence,
        reason=outcome.reason,
        risk_factors=list(outcome.warnings),
        recommendations=list(outcome.recommendations),
    )


def scan_conflicts(items: Sequence[WorkItem]) -> List[ConflictRecord]:
    """
    Backlog-wide overlap scan.

    A path touched by several items where more than one modifies it is a high
    severity file_conflict; a path modified by exactly one of them is a medium
    severity dependency_conflict (modifier listed first).
    """
    usage: Dict[str, Dict[str, bool]] = {}
    for wi in items:
        for f in wi.touched_files:
            if not f.path:
                continue
            per_item = usage.setdefault(f.path, {})
            per_item[wi.id] = per_item.get(wi.id, False) or f.is_modify

    conflicts: List[ConflictRecord] = []
    for path in sorted(usage):
        users = usage[path]
        if len(users) < 2:
            continue

        modifiers = [item_id for item_id, is_modify in users.items() if is_modify]
        if len(modifiers) > 1:
            conflicts.append(
                ConflictRecord(
                    type=FILE_CONFLICT,
                    file_path=path,
                    items=tuple(modifiers),
                    severity="high",
                    reason="Multiple items modify the same file",
                )
            )
        elif len(modifiers) == 1:
            modifier = modifiers[0]
            others = [item_id for item_id in users if item_id != modifier]
            conflicts.append(
                ConflictRecord(
                    type=DEPENDENCY_CONFLICT,
                    file_path=path,
                    items=(modifier, *others),
                    severity="medium",
                    reason=f"{modifier} modifies a file that {', '.join(others)} also use; run {modifier} first",
                )
            )
    return conflicts


def sequence_conflicting(
    result: ScheduleResult,
    items: Sequence[WorkItem],
    conflicts: Optional[Sequence[ConflictRecord]] = None,
) -> ScheduleResult:
    """
    Split phases so that items in a detected conflict never share a phase.

    Dependency order is preserved: sub-phases of phase N all come before phase N+1.
    Inside a phase a modifier runs before the items reading its file; items that
    modify the same file run one after another in snapshot order, and the other
    users of that file wait for the last of them.
    """
    if conflicts is None:
        conflicts = scan_conflicts(items)
    if not conflicts:
        return result

    by_id = {wi.id: wi for wi in items}
    new_phases: List[Tuple[str, ...]] = []

    for phase in result.phases:
        for wave in _split_phase(phase, conflicts, by_id):
            new_phases.append(wave)

    return _renumbered(result, by_id, new_phases)


def judge_phases(
    result: ScheduleResult,
    items: Sequence[WorkItem],
    rules: Optional[ConflictRules] = None,
    modules: Optional[ModuleRules] = None,
) -> Dict[int, ConflictVerdict]:
    """Group verdict for every multi-item phase, keyed by phase index."""
    by_id = {wi.id: wi for wi in items}
    return {
        phase.index: analyze_group([by_id[i] for i in phase.items], rules, modules)
        for phase in result.phases
        if len(phase.items) > 1
    }


def serialize_phases(result: ScheduleResult, items: Sequence[WorkItem], indices: Set[int]) -> ScheduleResult:
    """Run the phases listed in `indices` one item at a time, keeping their item order."""
    if not indices:
        return result

    new_phases: List[Tuple[str, ...]] = []
    for phase in result.phases:
        if phase.index in indices:
            new_phases.extend((item_id,) for item_id in phase.items)
        else:
            new_phases.append(phase.items)

    return _renumbered(result, {wi.id: wi for wi in items}, new_phases)


def serialize_denied(
    result: ScheduleResult,
    items: Sequence[WorkItem],
    rules: Optional[ConflictRules] = None,
    modules: Optional[ModuleRules] = None,
) -> ScheduleResult:
    """Split every phase whose group verdict is a deny into single-item phases."""
    verdicts = judge_phases(result, items, rules, modules)
    return serialize_phases(result, items, {i for i, v in verdicts.items() if not v.allowed})


def parallel_work_plan(
    items: Sequence[WorkItem],
    rules: Optional[ConflictRules] = None,
    modules: Optional[ModuleRules] = None,
) -> WorkPlan:
    """Per-item verdicts rolled up into one parallel group plus the items that must go one at a time."""
    pending = [wi for wi in items if not wi.is_completed]
    verdicts = [(wi, analyze_group([wi], rules, modules)) for wi in pending]

    parallel = [(wi, v) for wi, v in verdicts if v.allowed]
    sequential = tuple((wi.id, v.reason) for wi, v in verdicts if not v.allowed)
    conflicts = tuple(scan_conflicts(pending))

    recommendations: List[str] = []
    if conflicts:
        recommendations.append("Resolve file conflicts before starting parallel work")
    if parallel:
        recommendations.append("Sync regularly between workers running in parallel")

    parallel_ids: Tuple[str, ...] = ()
    confidence = 0
    if len(parallel) > 1:
        parallel_ids = tuple(wi.id for wi, _ in parallel)
        confidence = min(v.confidence for _, v in parallel)

    return WorkPlan(
        parallel_items=parallel_ids,
        parallel_confidence=confidence,
        sequential=sequential,
        conflicts=conflicts,
        recommendations=tuple(recommendations),
    )


# ---------------- rules ----------------


def _check_new_files_only(files: List[TouchedFile]) -> Optional[_RuleOutcome]:
    if any(not f.is_new for f in files):
        return None
    if not files:
        reason = "No files specified - safe for parallel work"
    else:
        reason = "All files are new - no modifications to existing code"
    return _RuleOutcome(allowed=True, confidence=config.CONFIDENCE_ALL_NEW, reason=reason)


def _check_test_doc_only(modified: List[str], rules: ConflictRules) -> Optional[_RuleOutcome]:
    if any(not rules.matches("test_doc", p) for p in modified):
        return None

    if not modified:
        return _RuleOutcome(
            allowed=True,
            confidence=config.CONFIDENCE_TEST_DOC_ONLY,
            reason="No existing files are modified",
        )
    return _RuleOutcome(
        allowed=True,
        confidence=config.CONFIDENCE_TEST_DOC_ONLY,
        reason="Low risk of conflicts with proper coordination",
        warnings=[f"Minor modifications to tests/docs: {', '.join(modified)}"],
        recommendations=["Coordinate test and doc changes between workers"],
    )


def _check_module_roots(
    items: Sequence[WorkItem],
    paths: List[str],
    modified: List[str],
    rules: ConflictRules,
    modules: ModuleRules,
) -> _RuleOutcome:
    offending = [p for p in modified if not rules.matches("test_doc", p)]

    shared_edits = _modified_by_several(items)
    if shared_edits:
        return _RuleOutcome(
            allowed=False,
            reason=f"Several items modify the same files: {', '.join(shared_edits)}",
        )

    roots = _unique(modules.module_of(p) or _TOP_LEVEL for p in paths)

    if len(roots) == 1 and roots[0] != _TOP_LEVEL:
        root = roots[0]
        if modules.is_independent(root):
            return _RuleOutcome(
                allowed=True,
                confidence=config.CONFIDENCE_INDEPENDENT_MODULE,
                reason=f"All changes contained within independent module: {root}",
            )
        return _RuleOutcome(
            allowed=True,
            confidence=config.CONFIDENCE_SINGLE_MODULE,
            reason=f"All changes contained within module: {root}",
            warnings=["Module independence not verified"],
        )

    if roots and all(r != _TOP_LEVEL and modules.is_independent(r) for r in roots):
        return _RuleOutcome(
            allowed=True,
            confidence=config.CONFIDENCE_INDEPENDENT_MODULES,
            reason=f"Changes span independent modules: {', '.join(roots)}",
            warnings=["Changes span several modules"],
            recommendations=["Keep each worker inside its own module"],
        )

    return _RuleOutcome(
        allowed=False,
        reason=f"Modifies existing files across modules: {', '.join(offending)}",
        warnings=[f"Modules touched: {', '.join(roots)}"],
    )


# ---------------- helpers ----------------


def _deny(reason: str, recommendation: str, extra_risks: Sequence[str] = ()) -> ConflictVerdict:
    return ConflictVerdict(
        allowed=False,
        confidence=0,
        reason=reason,
        risk_factors=[reason, *extra_risks],
        recommendations=[recommendation],
    )


def _touched(items: Sequence[WorkItem]) -> List[TouchedFile]:
    return [f for wi in items for f in wi.touched_files if f.path]


def _modified_by_several(items: Sequence[WorkItem]) -> List[str]:
    counts: Dict[str, int] = {}
    for wi in items:
        for path in {f.path for f in wi.touched_files if f.path and f.is_modify}:
            counts[path] = counts.get(path, 0) + 1
    return sorted(p for p, n in counts.items() if n > 1)


def _unique(values) -> List[str]:
    seen: Set[str] = set()
    out: List[str] = []
    for v in values:
        if v not in seen:
            seen.add(v)
            out.append(v)
    return out


def _renumbered(
    result: ScheduleResult,
    by_id: Dict[str, WorkItem],
    new_phases: List[Tuple[str, ...]],
) -> ScheduleResult:
    phases = tuple(Phase(index=i, items=ids) for i, ids in enumerate(new_phases, 1))

    runnable: Tuple[str, ...] = ()
    if phases:
        runnable = tuple(i for i in phases[0].items if by_id[i].status is Status.PENDING)

    return ScheduleResult(
        runnable_now=runnable,
        phases=phases,
        blocked=result.blocked,
        signature_groups=dependency_signature_groups([by_id[i] for i in runnable]),
    )


def _split_phase(
    phase: Phase,
    conflicts: Sequence[ConflictRecord],
    by_id: Dict[str, WorkItem],
) -> List[Tuple[str, ...]]:
    members = list(phase.items)
    position = {item_id: pos for pos, item_id in enumerate(members)}
    preds: Dict[str, Set[str]] = {item_id: set() for item_id in members}

    for record in conflicts:
        if record.type == DEPENDENCY_CONFLICT:
            modifier = record.items[0]
            if modifier not in position:
                continue
            for other in record.items[1:]:
                if other in position:
                    preds[other].add(modifier)
            continue

        chain = sorted((i for i in record.items if i in position), key=position.__getitem__)
        if not chain:
            continue
        for earlier, later in zip(chain, chain[1:]):
            preds[later].add(earlier)

        # readers of a multiply-modified file go after the last modifier
        for other in members:
            if other in record.items:
                continue
            if any(f.path == record.file_path for f in by_id[other].touched_files):
                preds[other].add(chain[-1])

    waves: List[Tuple[str, ...]] = []
    done: Set[str] = set()
    remaining = members
    while remaining:
        wave = [i for i in remaining if preds[i] <= done]
        if not wave:
            # conflicting orderings; release the earliest item alone
            wave = [remaining[0]]
        waves.append(tuple(wave))
        done |= set(wave)
        remaining = [i for i in remaining if i not in done]
    return waves
