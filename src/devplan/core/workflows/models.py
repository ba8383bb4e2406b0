"""
Workflow catalog models for devplan.

Provides Pydantic models for the workflows file (``.llms/workflows.yml``)
and for the result of a next-step query.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from devplan.core.stages import STANDARD_STAGES


class WorkflowDefinition(BaseModel):
    """
    A named workflow type: an ordered list of stage names.

    Duplicate stage names are collapsed on load, keeping the position of
    the first occurrence.
    """

    description: str = Field(default="", description="What kind of task this workflow suits")
    steps: list[str] = Field(default_factory=list, description="Ordered stage names")

    @field_validator("steps")
    @classmethod
    def collapse_duplicate_steps(cls, v: list[str]) -> list[str]:
        seen: set[str] = set()
        steps: list[str] = []
        for step in v:
            if step not in seen:
                seen.add(step)
                steps.append(step)
        return steps


def _builtin_default() -> WorkflowDefinition:
    return WorkflowDefinition(
        description="Default workflow for unspecified workflow types",
        steps=STANDARD_STAGES[:5],
    )


class WorkflowsConfig(BaseModel):
    """
    Root model for the workflows file.

    ``default`` is used whenever a requested workflow type is not in
    ``workflows``.
    """

    workflows: dict[str, WorkflowDefinition] = Field(default_factory=dict)
    default: WorkflowDefinition = Field(default_factory=_builtin_default)

    @field_validator("workflows", mode="before")
    @classmethod
    def none_is_empty(cls, v: object) -> object:
        return {} if v is None else v


class NextSteps(BaseModel):
    """Where a plan stands in its workflow and what comes after."""

    current_step: str | None
    next_step: str | None = None
    remaining_steps: list[str] = Field(default_factory=list)
    is_complete: bool = False


def get_default_workflows() -> WorkflowsConfig:
    """
    Get the built-in workflow catalog.

    Used when no workflows file exists, and written out by
    ``WorkflowCatalog.create_file``.

    Returns:
        WorkflowsConfig with micro, small, medium, large and epic workflows
    """
    return WorkflowsConfig(
        workflows={
            "micro": WorkflowDefinition(
                description="Very small tasks that require minimal analysis and implementation",
                steps=["implementation"],
            ),
            "small": WorkflowDefinition(
                description="Small tasks requiring basic design and implementation",
                steps=["scope_analysis", "context_gathering", "implementation", "validation"],
            ),
            "medium": WorkflowDefinition(
                description="Medium-sized tasks requiring full analysis and design",
                steps=STANDARD_STAGES[:6],
            ),
            "large": WorkflowDefinition(
                description=(
                    "Large tasks requiring comprehensive analysis, design, and documentation"
                ),
                steps=list(STANDARD_STAGES),
            ),
            "epic": WorkflowDefinition(
                description="Complex tasks requiring full workflow with extensive documentation",
                steps=list(STANDARD_STAGES),
            ),
        },
        default=_builtin_default(),
    )
