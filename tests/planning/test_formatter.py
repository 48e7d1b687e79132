from __future__ import annotations

from planning.classification import WorkerRules
from planning.formatter import (
    ALL_DONE,
    NOTHING_TO_DO,
    render_analysis,
    render_full_plan,
    render_next_step,
)
from planning.scheduler import schedule
from planning.snapshot import load_snapshot


def test_empty_snapshot_is_nothing_to_do():
    assert render_next_step(()) == NOTHING_TO_DO
    assert render_full_plan(()) == NOTHING_TO_DO


def test_everything_completed_reports_completion():
    items = load_snapshot([{"id": "T1", "status": "done"}, {"id": "T2", "status": "completed"}])
    assert render_next_step(items) == ALL_DONE
    assert render_full_plan(items) == ALL_DONE


def test_single_runnable_item_names_item_and_worker():
    items = load_snapshot(
        [
            {"id": "T1", "name": "Build login API endpoint"},
            {"id": "T2", "dependencies": ["T1"]},
        ]
    )
    text = render_next_step(items)

    assert "T1" in text
    assert ".claude/agents/api-integration.md" in text
    assert "T2" not in text


def test_multiple_runnable_items_are_listed_and_started_concurrently():
    items = load_snapshot(
        [
            {"id": "T1", "name": "Card component"},
            {"id": "T2", "name": "Write tests for parser"},
            {"id": "T3", "assignedWorker": "/opt/agents/custom.md"},
        ]
    )
    text = render_next_step(items)

    assert "T1 (.claude/agents/react-components.md)" in text
    assert "T2 (.claude/agents/testing-specialist.md)" in text
    assert "T3 (/opt/agents/custom.md)" in text
    assert "concurrently, not sequentially" in text


def test_nothing_runnable_names_the_unmet_dependencies():
    items = load_snapshot([{"id": "T1", "dependencies": ["T9"]}])
    text = render_next_step(items)

    assert "1 item is waiting for dependencies" in text
    assert "First complete: T9" in text


def test_cycle_names_the_ids_that_block_progress():
    items = load_snapshot(
        [
            {"id": "T1", "dependencies": ["T2"]},
            {"id": "T2", "dependencies": ["T1"]},
        ]
    )
    assert render_next_step(items).endswith("First complete: T2, T1")


def test_only_in_progress_work_left_says_to_wait():
    items = load_snapshot([{"id": "T1", "status": "doing"}, {"id": "T2", "dependencies": ["T1"]}])
    text = render_next_step(items)

    assert "in progress" in text
    assert "T1" in text


def test_full_plan_has_one_block_per_phase_and_a_summary():
    items = load_snapshot(
        [
            {"id": "T1"},
            {"id": "T2"},
            {"id": "T3", "dependencies": ["T1", "T2"]},
        ]
    )
    text = render_full_plan(items)

    assert text.startswith("=== COMPLETE EXECUTION PLAN ===")
    assert "PHASE 1 (2 items):" in text
    assert "PHASE 2 (1 item):" in text
    assert "After completing the above, proceed to Phase 2." in text
    assert "proceed to Phase 3" not in text
    assert "Total pending items: 3" in text
    assert "Executable items: 3" in text
    assert "Execution phases: 2" in text
    assert "Blocked items" not in text
    assert text.index("PHASE 1") < text.index("PHASE 2") < text.index("=== SUMMARY ===")


def test_full_plan_lists_blocked_items_with_reasons():
    items = load_snapshot(
        [
            {"id": "T1"},
            {"id": "T2", "dependencies": ["ghost"]},
        ]
    )
    text = render_full_plan(items)

    assert "BLOCKED ITEMS (1):" in text
    assert "T2: unresolved dependency: ghost" in text
    assert "Blocked items: 1" in text


def test_full_plan_splits_conflicting_phase_unless_disabled():
    records = [
        {"id": "A", "touchedFiles": [{"path": "src/app.py", "changeKind": "MODIFY"}]},
        {"id": "B", "touchedFiles": [{"path": "src/app.py", "changeKind": "MODIFY"}]},
    ]
    items = load_snapshot(records)

    assert "Execution phases: 2" in render_full_plan(items)
    assert "Execution phases: 1" in render_full_plan(items, sequence_conflicts=False)


def test_phase_the_analyzer_denies_is_never_started_concurrently():
    records = [
        {"id": "A", "touchedFiles": [{"path": "src/billing/invoice.py", "changeKind": "MODIFY"}]},
        {"id": "B", "touchedFiles": [{"path": "src/search/index.py", "changeKind": "MODIFY"}]},
    ]
    items = load_snapshot(records)

    assert "Execution phases: 2" in render_full_plan(items)
    assert "work item: A." in render_next_step(items)

    unsplit = render_full_plan(items, sequence_conflicts=False)
    assert "Execution phases: 1" in unsplit
    assert "Run these 2 work items one at a time, in this order: A (" in unsplit
    assert "Modifies existing files across modules" in unsplit
    assert "concurrently" not in unsplit


def test_analysis_groups_items_by_shared_prerequisites():
    items = load_snapshot(
        [
            {"id": "T0", "status": "done"},
            {"id": "A", "name": "Alpha", "dependencies": ["T0"]},
            {"id": "B", "name": "Beta", "dependencies": ["T0"]},
            {"id": "C"},
        ]
    )
    text = render_analysis(schedule(items), items)

    assert text.startswith("3 work items are ready to run in parallel:")
    assert "- 2 items after [T0]: Alpha, Beta" in text
    assert "Independent items:\n- C" in text


def test_worker_rules_are_replaceable():
    rules = WorkerRules(categories=(("docs-writer", ("readme",)),), default="generalist", agents_dir=None)
    items = load_snapshot([{"id": "T1", "name": "Update README"}, {"id": "T2", "name": "Build pipeline"}])

    assert rules.resolve_worker(items[0]) == "docs-writer"
    assert rules.resolve_worker(items[1]) == "generalist"


def test_keywords_match_whole_words_only():
    (item,) = load_snapshot([{"id": "T1", "name": "Build pipeline"}])
    assert WorkerRules().resolve_worker(item) == ".claude/agents/fullstack.md"
