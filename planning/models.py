from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class Status(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ChangeKind(str, Enum):
    NEW = "NEW"
    MODIFY = "MODIFY"
    OTHER = "OTHER"


@dataclass(frozen=True)
class TouchedFile:
    path: str
    change_kind: ChangeKind = ChangeKind.OTHER

    @property
    def is_new(self) -> bool:
        return self.change_kind is ChangeKind.NEW

    @property
    def is_modify(self) -> bool:
        return self.change_kind is ChangeKind.MODIFY


@dataclass(frozen=True)
class WorkItem:
    id: str
    status: Status = Status.PENDING

    # canonical target ids, in declaration order
    dependencies: Tuple[str, ...] = ()
    touched_files: Tuple[TouchedFile, ...] = ()
    assigned_worker: Optional[str] = None

    name: str = ""
    description: str = ""

    # descriptors that carried no recognizable id
    malformed_dependencies: int = 0

    @property
    def is_completed(self) -> bool:
        return self.status is Status.COMPLETED


@dataclass(frozen=True)
class Phase:
    index: int  # 1-based
    items: Tuple[str, ...]

    def as_dict(self) -> Dict[str, Any]:
        return {"index": self.index, "items": list(self.items)}


@dataclass(frozen=True)
class BlockedItem:
    id: str
    reason: str
    unmet: Tuple[str, ...] = ()

    def as_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "reason": self.reason, "unmet": list(self.unmet)}


@dataclass(frozen=True)
class SignatureGroup:
    """
    Runnable-now items sharing the same prerequisite-id set.
    Informational only: never feeds back into the phase partition.
    """
    signature: str
    items: Tuple[str, ...]

    def as_dict(self) -> Dict[str, Any]:
        return {"signature": self.signature, "items": list(self.items)}


@dataclass(frozen=True)
class ScheduleResult:
    runnable_now: Tuple[str, ...] = ()
    phases: Tuple[Phase, ...] = ()
    blocked: Tuple[BlockedItem, ...] = ()
    signature_groups: Tuple[SignatureGroup, ...] = ()

    @property
    def scheduled_ids(self) -> List[str]:
        return [item_id for phase in self.phases for item_id in phase.items]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "runnableNow": list(self.runnable_now),
            "phases": [p.as_dict() for p in self.phases],
            "blocked": [b.as_dict() for b in self.blocked],
            "signatureGroups": [g.as_dict() for g in self.signature_groups],
        }


@dataclass(frozen=True)
class ConflictVerdict:
    allowed: bool
    confidence: int
    reason: str
    risk_factors: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "allowed": self.allowed,
            "confidence": self.confidence,
            "reason": self.reason,
            "riskFactors": list(self.risk_factors),
            "recommendations": list(self.recommendations),
        }


FILE_CONFLICT = "file_conflict"
DEPENDENCY_CONFLICT = "dependency_conflict"


@dataclass(frozen=True)
class ConflictRecord:
    type: str
    file_path: str
    items: Tuple[str, ...]
    severity: str  # high | medium
    reason: str = ""

    def as_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "filePath": self.file_path,
            "items": list(self.items),
            "severity": self.severity,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class WorkPlan:
    parallel_items: Tuple[str, ...] = ()
    parallel_confidence: int = 0
    sequential: Tuple[Tuple[str, str], ...] = ()  # (item id, reason)
    conflicts: Tuple[ConflictRecord, ...] = ()
    recommendations: Tuple[str, ...] = ()

    def as_dict(self) -> Dict[str, Any]:
        groups = []
        if self.parallel_items:
            groups.append(
                {
                    "items": list(self.parallel_items),
                    "maxWorkers": len(self.parallel_items),
                    "confidence": self.parallel_confidence,
                }
            )
        return {
            "parallelGroups": groups,
            "sequentialWork": [{"id": i, "reason": r} for i, r in self.sequential],
            "conflicts": [c.as_dict() for c in self.conflicts],
            "recommendations": list(self.recommendations),
        }
