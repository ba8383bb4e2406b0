"""
Plan record models for devplan.

A plan record is one YAML document per file. Field aliases are the on-disk
key names (``workflow``, ``phase``, ``created``, ``sub_tasks``, ...), so a
record round-trips through ``model_validate``/``to_document`` without
renaming anything. Stage progress entries stay open mappings: their
starting shape comes from ``devplan.core.stages`` and callers may merge in
whatever fields they need.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

DEFAULT_STAGE = "scope_analysis"


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _coerce_timestamp(v: object) -> object:
    # Unquoted timestamps in hand-edited YAML load as datetime objects
    if isinstance(v, datetime):
        return v.isoformat()
    if isinstance(v, date):
        return v.isoformat()
    return v


class PlanStatus(str, Enum):
    """Plan lifecycle status."""

    ACTIVE = "active"
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    PROMOTED = "promoted"
    INDEPENDENT = "independent"


class Priority(str, Enum):
    """Plan priority levels."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class PlanType(str, Enum):
    """Whether a record is a main plan or a subtask plan."""

    PLAN = "plan"
    SUBTASK = "subtask"


class ParentPlan(BaseModel):
    """Back-reference from a subtask plan to the plan that spawned it."""

    file: str = Field(..., description="Path of the parent plan file")
    task: str = Field(..., description="Parent task description")
    slug: str = Field(..., description="Parent plan slug")


class SubtaskReference(BaseModel):
    """
    A parent plan's entry for one decomposed child task.

    ``status`` is free-form (e.g. "independent", "promoted") and unrelated
    to PlanStatus.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    description: str
    slug: str
    priority: Priority = Priority.MEDIUM
    status: str = "independent"
    reference_type: str | None = Field(default=None, alias="type")
    plan_file: str | None = None
    created: str = Field(default_factory=utc_now_iso)

    @field_validator("created", mode="before")
    @classmethod
    def coerce_created(cls, v: object) -> object:
        return _coerce_timestamp(v)


class PlanRecord(BaseModel):
    """
    A development plan tracked through the stages of its workflow.

    Example:
        >>> plan = PlanRecord(
        ...     task="Add login",
        ...     slug="add-login",
        ...     workflow_type="micro",
        ...     current_stage="implementation",
        ...     status=PlanStatus.ACTIVE,
        ...     created_at="2025-01-01T00:00:00.000Z",
        ...     updated_at="2025-01-01T00:00:00.000Z",
        ...     progress={"implementation": {"complete": False, "changes": []}},
        ... )
        >>> plan.to_document()["phase"]
        'implementation'
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    task: str = Field(..., description="Human-readable task description")
    slug: str = Field(..., description="Filename-safe identifier derived from task")
    workflow_type: str = Field(..., alias="workflow", description="Workflow catalog entry")
    current_stage: str = Field(default=DEFAULT_STAGE, alias="phase")
    status: PlanStatus
    priority: Priority = Priority.MEDIUM
    created_at: str = Field(..., alias="created")
    updated_at: str = Field(..., alias="updated")
    subtasks: list[SubtaskReference] = Field(default_factory=list, alias="sub_tasks")
    progress: dict[str, dict[str, Any]] = Field(default_factory=dict)
    parent_plan: ParentPlan | None = None
    plan_type: PlanType | None = Field(default=None, alias="type")
    parent_task: str | None = None

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def coerce_timestamps(cls, v: object) -> object:
        return _coerce_timestamp(v)

    @field_validator("current_stage", mode="before")
    @classmethod
    def default_stage(cls, v: object) -> object:
        return v or DEFAULT_STAGE

    @field_validator("progress", "subtasks", mode="before")
    @classmethod
    def none_is_empty(cls, v: object, info: ValidationInfo) -> object:
        if v is None:
            return {} if info.field_name == "progress" else []
        return v

    @property
    def is_subtask(self) -> bool:
        """True for plans created as subtasks of another plan."""
        return self.plan_type == PlanType.SUBTASK

    def is_stage_complete(self, stage: str) -> bool:
        """Return True only if the stage exists and its complete flag is True."""
        return self.progress.get(stage, {}).get("complete") is True

    def all_stages_complete(self) -> bool:
        """Return True if every stage present in progress is complete."""
        return all(self.is_stage_complete(stage) for stage in self.progress)

    def find_subtask(self, slug: str) -> SubtaskReference | None:
        """Find a subtask reference by slug."""
        for subtask in self.subtasks:
            if subtask.slug == slug:
                return subtask
        return None

    def touch(self) -> str:
        """Refresh ``updated_at`` and return the new timestamp."""
        self.updated_at = utc_now_iso()
        return self.updated_at

    def to_document(self) -> dict[str, Any]:
        """Serialize to the on-disk mapping (aliased keys, unset optionals omitted)."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")
