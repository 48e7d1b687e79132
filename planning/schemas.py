# planning/schemas.py

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class WorkItemRecord(BaseModel):
    """
    Boundary shape of one work item as the external store hands it over.

    Loose on purpose: key naming varies between producers, so aliases are accepted
    and anything unknown is ignored. Canonicalization happens in planning.snapshot.
    """
    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)
    status: Optional[str] = None
    completed_at: Optional[Any] = Field(
        default=None, validation_alias=AliasChoices("completedAt", "completed_at")
    )
    dependencies: List[Any] = Field(
        default_factory=list, validation_alias=AliasChoices("dependencies", "depends_on", "dependsOn")
    )
    touched_files: Optional[List[Any]] = Field(
        default=None,
        validation_alias=AliasChoices("touchedFiles", "touched_files", "fileList", "files"),
    )
    assigned_worker: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("assignedWorker", "assigned_worker", "agent")
    )
    name: str = ""
    description: str = ""
    content: Optional[str] = Field(default=None, validation_alias=AliasChoices("content", "rawContent"))

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("dependencies", mode="before")
    @classmethod
    def _deps_as_list(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, (str, dict)):
            return [v]
        return v

    @field_validator("name", "description", mode="before")
    @classmethod
    def _none_as_empty(cls, v: Any) -> Any:
        return "" if v is None else v


class SnapshotDocument(BaseModel):
    """Accepts {"tasks": [...]} as well as a bare list (see planning.snapshot.load_snapshot)."""
    model_config = ConfigDict(extra="ignore")

    tasks: List[Any] = Field(default_factory=list, validation_alias=AliasChoices("tasks", "items", "workItems"))
