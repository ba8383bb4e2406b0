"""
Plan generation for devplan.

Builds new plan records from a task description and a workflow type, with
the progress map pre-populated from the workflow catalog and the stage
schema registry.
"""

from __future__ import annotations

import logging
import re

from devplan.core.plans.models import (
    DEFAULT_STAGE,
    PlanRecord,
    PlanStatus,
    PlanType,
    Priority,
    utc_now_iso,
)
from devplan.core.stages import create_stage_progress
from devplan.core.workflows import WorkflowCatalog

logger = logging.getLogger(__name__)

DEFAULT_WORKFLOW = "medium"
MAX_SLUG_LENGTH = 50


def generate_slug(text: str, max_length: int = MAX_SLUG_LENGTH) -> str:
    """
    Generate a filename-safe slug from a task description.

    Lowercases, drops everything that is not an ASCII letter, digit,
    whitespace or hyphen (non-ASCII letters included), turns whitespace runs
    into single hyphens, collapses hyphen runs and trims hyphens from both
    ends. Input with nothing usable yields an empty string.

    Args:
        text: Task description
        max_length: Maximum slug length

    Returns:
        Slug containing only [a-z0-9-]

    Example:
        >>> generate_slug("Add OAuth2 login (phase 1)!")
        'add-oauth2-login-phase-1'
        >>> generate_slug("!!!")
        ''
    """
    slug = text.lower()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    slug = slug.strip("-")
    # Truncation can expose a hyphen at the cut
    return slug[:max_length].strip("-")


def generate_plan(
    task_description: str,
    slug: str,
    *,
    catalog: WorkflowCatalog,
    workflow_type: str | None = None,
    priority: Priority | str | None = None,
    status: PlanStatus | str | None = None,
    plan_type: PlanType | str | None = None,
    initial_stage: str | None = None,
) -> PlanRecord:
    """
    Construct a new plan record.

    The progress map holds one entry per stage of the resolved workflow, in
    workflow order. Subtask plans start out ``pending``, everything else
    ``active``, unless ``status`` says otherwise. ``plan_type`` only drives
    that default; linking a subtask to its parent is the caller's job.

    Args:
        task_description: What the plan is for
        slug: Identifier for the plan (usually ``generate_slug(task_description)``)
        catalog: Workflow catalog used to resolve the stage list
        workflow_type: Workflow type name (default "medium"); unknown names
            keep their name but use the catalog's default stages
        priority: Plan priority (default medium)
        status: Explicit initial status
        plan_type: "plan" or "subtask"
        initial_stage: Stage to start in (default: first workflow step)

    Returns:
        A new PlanRecord

    Raises:
        CatalogCorruptError: If the workflows file cannot be loaded
    """
    workflow_type = workflow_type or DEFAULT_WORKFLOW
    steps = catalog.get_workflow_steps(workflow_type)

    if initial_stage is None:
        initial_stage = steps[0] if steps else DEFAULT_STAGE

    progress = {step: create_stage_progress(step) for step in steps}

    if status is None:
        status = PlanStatus.PENDING if plan_type == PlanType.SUBTASK else PlanStatus.ACTIVE

    now = utc_now_iso()
    plan = PlanRecord(
        task=task_description,
        slug=slug,
        workflow_type=workflow_type,
        current_stage=initial_stage,
        status=status,
        priority=priority or Priority.MEDIUM,
        created_at=now,
        updated_at=now,
        subtasks=[],
        progress=progress,
    )
    logger.debug(
        f"Generated plan '{slug}' ({workflow_type}) with stages: {', '.join(progress)}"
    )
    return plan
