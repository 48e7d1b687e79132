# planning/snapshot.py

from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from pydantic import ValidationError

import config
from planning.models import ChangeKind, Status, TouchedFile, WorkItem
from planning.schemas import SnapshotDocument, WorkItemRecord


class SnapshotError(ValueError):
    """Raised when the supplied records cannot form a snapshot (bad document, missing / duplicate ids)."""


_FILE_LIST_SECTION_RE = re.compile(r"^## File List[ \t]*\n(.*?)(?=^## |\Z)", re.MULTILINE | re.DOTALL)
_FILE_LINE_RE = re.compile(r"^- `?([^`\n]+?)`? - ([A-Z_]+)\s*$", re.MULTILINE)

_DOCUMENT_KEYS = ("tasks", "items", "workItems")
_CHANGE_KIND_KEYS = ("changeKind", "change_kind", "type")


def load_snapshot(source: Any) -> Tuple[WorkItem, ...]:
    """
    Build an immutable snapshot from raw records.

    Accepts a list of mappings, a {"tasks": [...]} document, or already-built WorkItems.
    """
    if isinstance(source, Mapping):
        if not any(key in source for key in _DOCUMENT_KEYS):
            raise SnapshotError(
                f"Snapshot document needs one of {list(_DOCUMENT_KEYS)}; got keys {sorted(map(str, source))}"
            )
        try:
            source = SnapshotDocument.model_validate(source).tasks
        except ValidationError as e:
            raise SnapshotError(f"Invalid snapshot document: {e}") from e

    if source is None:
        return ()

    items: List[WorkItem] = []
    seen: Dict[str, int] = {}
    for pos, raw in enumerate(source):
        item = raw if isinstance(raw, WorkItem) else _to_work_item(raw, pos)
        if item.id in seen:
            raise SnapshotError(
                f"Duplicate work item id {item.id!r} (records {seen[item.id]} and {pos})"
            )
        seen[item.id] = pos
        items.append(item)

    return tuple(items)


def normalize_status(status: Optional[str], completed_at: Any = None) -> Status:
    if completed_at:
        return Status.COMPLETED

    key = (status or "").strip().lower()
    canonical = config.STATUS_ALIASES.get(key)
    if canonical is None:
        # unknown vocabulary is treated as not-done so the item is never dropped
        return Status.PENDING
    return Status(canonical)


def normalize_dependency(descriptor: Any) -> Optional[str]:
    """Return the canonical target id of a dependency descriptor, or None if it has none."""
    if isinstance(descriptor, str):
        return descriptor.strip() or None

    if isinstance(descriptor, (int, float)) and not isinstance(descriptor, bool):
        return str(descriptor)

    if isinstance(descriptor, Mapping):
        for key in config.DEPENDENCY_ID_FIELDS:
            value = descriptor.get(key)
            if isinstance(value, (str, int)) and not isinstance(value, bool) and str(value).strip():
                return str(value).strip()

    return None


def normalize_change_kind(kind: Any) -> ChangeKind:
    key = str(kind or "").strip().upper()
    return ChangeKind(config.CHANGE_KIND_ALIASES.get(key, "OTHER"))


def normalize_touched_files(entries: Optional[Iterable[Any]]) -> Tuple[TouchedFile, ...]:
    """Entries without a usable path are dropped (non-fatal)."""
    files: List[TouchedFile] = []
    for entry in entries or []:
        if isinstance(entry, TouchedFile):
            files.append(entry)
            continue

        if isinstance(entry, str):
            path, kind = entry, None
        elif isinstance(entry, Mapping):
            path = entry.get("path")
            kind = next((entry[k] for k in _CHANGE_KIND_KEYS if entry.get(k)), None)
        else:
            continue

        if not isinstance(path, str) or not path.strip():
            continue

        files.append(TouchedFile(path=_clean_path(path), change_kind=normalize_change_kind(kind)))
    return tuple(files)


def touched_files_from_markdown(text: str) -> Tuple[TouchedFile, ...]:
    """
    Parse a story-style "## File List" section:

        ## File List
        - `src/pages/Home.tsx` - NEW
        - `src/utils/format.ts` - MODIFY
    """
    if not text:
        return ()

    m = _FILE_LIST_SECTION_RE.search(text)
    if not m:
        return ()

    entries = [{"path": path, "type": kind} for path, kind in _FILE_LINE_RE.findall(m.group(1))]
    return normalize_touched_files(entries)


def _to_work_item(raw: Any, pos: int) -> WorkItem:
    try:
        record = WorkItemRecord.model_validate(raw)
    except ValidationError as e:
        raise SnapshotError(f"Invalid work item record at position {pos}: {e}") from e

    deps: List[str] = []
    malformed = 0
    for descriptor in record.dependencies:
        dep_id = normalize_dependency(descriptor)
        if dep_id is None:
            malformed += 1
        elif dep_id not in deps:
            deps.append(dep_id)

    if record.touched_files is not None:
        touched = normalize_touched_files(record.touched_files)
    else:
        touched = touched_files_from_markdown(record.content or "")

    worker = (record.assigned_worker or "").strip() or None

    return WorkItem(
        id=record.id,
        status=normalize_status(record.status, record.completed_at),
        dependencies=tuple(deps),
        touched_files=touched,
        assigned_worker=worker,
        name=record.name,
        description=record.description,
        malformed_dependencies=malformed,
    )


def _clean_path(path: str) -> str:
    path = path.strip().strip("`").replace("\\", "/")
    while path.startswith("./"):
        path = path[2:]
    return path
