# planning/classification.py
from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import config
from planning.models import WorkItem


@dataclass(frozen=True)
class WorkerRules:
    """
    Keyword -> worker lookup used when an item does not declare its worker.

    categories: ordered (worker, keywords) pairs; the first pair with a keyword
    present (as a whole word) in the item's name/description/id wins.
    """
    categories: Tuple[Tuple[str, Tuple[str, ...]], ...] = config.WORKER_CATEGORIES
    default: str = config.DEFAULT_WORKER
    agents_dir: Optional[str] = config.AGENTS_DIR

    def classify(self, text: str) -> str:
        text = (text or "").lower()
        for worker, keywords in self.categories:
            for kw in keywords:
                if re.search(rf"\b{re.escape(kw.lower())}\b", text):
                    return worker
        return self.default

    def resolve_worker(self, item: WorkItem) -> str:
        worker = item.assigned_worker
        if not worker:
            worker = self.classify(" ".join([item.name, item.description, item.id]))

        if "/" in worker or not self.agents_dir:
            return worker
        return posixpath.join(self.agents_dir, worker)


@dataclass(frozen=True)
class ModuleRules:
    independent_roots: Tuple[str, ...] = config.INDEPENDENT_MODULE_ROOTS
    depth: int = config.MODULE_DEPTH

    def module_of(self, path: str) -> Optional[str]:
        """First `depth` segments of a nested path; top-level files have no module."""
        parts = [p for p in path.split("/") if p]
        if len(parts) < 2:
            return None
        return "/".join(parts[: min(self.depth, len(parts) - 1)])

    def is_independent(self, module: str) -> bool:
        for root in self.independent_roots:
            root = root.strip("/")
            if module == root or module.startswith(root + "/"):
                return True
            # tolerate roots nested under a source dir, e.g. "pkg/__tests__"
            if "/" not in root and root in module.split("/"):
                return True
        return False


@dataclass(frozen=True)
class ConflictRules:
    """Regex tables behind the group-verdict rules. Pass a custom instance to override."""
    database: Tuple[str, ...] = config.DATABASE_PATTERNS
    shared: Tuple[str, ...] = config.SHARED_PATTERNS
    config_files: Tuple[str, ...] = config.CONFIG_PATTERNS
    api: Tuple[str, ...] = config.API_PATTERNS
    test_doc: Tuple[str, ...] = config.TEST_DOC_PATTERNS

    def matches(self, table: str, path: str) -> bool:
        return any(re.search(p, path, re.IGNORECASE) for p in getattr(self, table))

    def filter(self, table: str, paths: Sequence[str]) -> List[str]:
        return [p for p in paths if self.matches(table, p)]
