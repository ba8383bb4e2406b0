"""
Stage schema registry for devplan.

Defines the seven standard workflow stages, their canonical ordering, and the
starting data shape of each stage's progress record. Known stages map to a
specific Pydantic model; any other name gets the generic custom shape.

The shapes are where a stage starts, not a contract: callers may merge any
extra fields into a stage's progress later on, which is why every model
allows extra fields.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class StandardStage(str, Enum):
    """Standard workflow stages, declared in canonical order."""

    SCOPE_ANALYSIS = "scope_analysis"
    CONTEXT_GATHERING = "context_gathering"
    SOLUTION_DESIGN = "solution_design"
    IMPLEMENTATION = "implementation"
    VALIDATION = "validation"
    DOCUMENTATION = "documentation"
    KNOWLEDGE_CAPTURE = "knowledge_capture"


STANDARD_STAGES: list[str] = [stage.value for stage in StandardStage]

# scope_analysis=0 ... knowledge_capture=6
STAGE_ORDER: dict[str, int] = {name: index for index, name in enumerate(STANDARD_STAGES)}


class ValidationStatus(str, Enum):
    """Outcome tracking for the validation stage."""

    IN_PROGRESS = "in_progress"
    PASSED = "passed"
    FAILED = "failed"
    AWAITING_FIXES = "awaiting_fixes"


class FixCycleStatus(str, Enum):
    """Lifecycle of a validation fix cycle."""

    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


class ChecklistItem(BaseModel):
    """A single ``{task, complete}`` entry in a stage checklist."""

    task: str
    complete: bool = False


class FixCycle(BaseModel):
    """
    A validation fix cycle.

    Pairs the issues found during one validation pass with the subtask plan
    opened to resolve them.
    """

    cycle: int = Field(..., ge=1, description="1-based cycle number")
    subplan_file: str = Field(..., description="Path of the fix subtask plan")
    issues: list[str] = Field(default_factory=list)
    created: str = Field(..., description="ISO-8601 creation timestamp")
    status: FixCycleStatus = FixCycleStatus.ACTIVE
    resolved: bool = False


class StageProgress(BaseModel):
    """Base shape shared by every stage: just the completion flag."""

    model_config = ConfigDict(extra="allow")

    complete: bool = False


class ScopeAnalysisProgress(StageProgress):
    findings: dict[str, Any] = Field(default_factory=dict)


class ContextGatheringProgress(StageProgress):
    findings: dict[str, Any] = Field(default_factory=dict)


class SolutionDesignProgress(StageProgress):
    artifacts: dict[str, Any] = Field(default_factory=dict)
    checklist: list[ChecklistItem] = Field(default_factory=list)


class ImplementationProgress(StageProgress):
    changes: list[Any] = Field(default_factory=list)


class ValidationProgress(StageProgress):
    results: dict[str, Any] = Field(default_factory=dict)
    validation_status: ValidationStatus = ValidationStatus.IN_PROGRESS
    issues_found: list[str] = Field(default_factory=list)
    fix_cycles: list[FixCycle] = Field(default_factory=list)


class DocumentationProgress(StageProgress):
    files: list[str] = Field(default_factory=list)


class KnowledgeCaptureProgress(StageProgress):
    learnings: dict[str, Any] = Field(default_factory=dict)


class CustomStageProgress(StageProgress):
    """Generic shape for stages outside the standard set."""

    data: dict[str, Any] = Field(default_factory=dict)
    notes: list[Any] = Field(default_factory=list)


STAGE_PROGRESS_MODELS: dict[str, type[StageProgress]] = {
    StandardStage.SCOPE_ANALYSIS.value: ScopeAnalysisProgress,
    StandardStage.CONTEXT_GATHERING.value: ContextGatheringProgress,
    StandardStage.SOLUTION_DESIGN.value: SolutionDesignProgress,
    StandardStage.IMPLEMENTATION.value: ImplementationProgress,
    StandardStage.VALIDATION.value: ValidationProgress,
    StandardStage.DOCUMENTATION.value: DocumentationProgress,
    StandardStage.KNOWLEDGE_CAPTURE.value: KnowledgeCaptureProgress,
}


def is_standard_stage(stage: str) -> bool:
    """Return True if ``stage`` is one of the seven standard stages."""
    return stage in STAGE_ORDER


def stage_index(stage: str) -> int | None:
    """Position of ``stage`` in the canonical ordering, or None for custom stages."""
    return STAGE_ORDER.get(stage)


def progress_model_for(stage: str) -> type[StageProgress]:
    """
    Resolve the progress model for a stage name.

    Args:
        stage: Stage name (standard or custom)

    Returns:
        The stage-specific model, or CustomStageProgress for unknown names
    """
    return STAGE_PROGRESS_MODELS.get(stage, CustomStageProgress)


def create_stage_progress(stage: str) -> dict[str, Any]:
    """
    Build the empty progress record for a stage.

    Example:
        >>> create_stage_progress("implementation")
        {'complete': False, 'changes': []}
        >>> create_stage_progress("security_review")
        {'complete': False, 'data': {}, 'notes': []}
    """
    return progress_model_for(stage)().model_dump(mode="json")
