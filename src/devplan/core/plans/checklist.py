"""
Checklist editing for plan stages.

A stage checklist is a list of ``{task, complete}`` items stored under the
stage's ``checklist`` key. Items are addressed by case-insensitive
substring match on their task text.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from devplan.core.exceptions import (
    InvalidChecklistError,
    NoChecklistError,
    NoMatchError,
    StageNotFoundError,
)
from devplan.core.plans.models import PlanRecord
from devplan.core.plans.store import load_plan, save_plan
from devplan.core.stages import ChecklistItem

logger = logging.getLogger(__name__)


def _stage_progress(plan: PlanRecord, stage: str) -> dict[str, Any]:
    if stage not in plan.progress:
        raise StageNotFoundError(stage)
    return plan.progress[stage]


def _matches(item: Any, pattern: str) -> bool:
    if not isinstance(item, dict):
        return False
    task = item.get("task")
    return isinstance(task, str) and bool(task) and pattern in task.lower()


def update_checklist_item(
    plan_path: Path,
    stage: str,
    task_pattern: str,
    complete: bool = True,
    new_task_text: str | None = None,
) -> int:
    """
    Update every checklist item whose task text contains ``task_pattern``.

    Args:
        plan_path: Plan file path
        stage: Stage holding the checklist
        task_pattern: Case-insensitive substring to match
        complete: Completion flag to set on matched items
        new_task_text: Replacement task text for matched items

    Returns:
        Number of items updated

    Raises:
        StageNotFoundError: If the stage is not in the plan's progress
        NoChecklistError: If the stage has no checklist list
        NoMatchError: If no item matches the pattern
    """
    plan = load_plan(plan_path)
    stage_progress = _stage_progress(plan, stage)

    checklist = stage_progress.get("checklist")
    if not isinstance(checklist, list):
        raise NoChecklistError(stage)

    pattern = task_pattern.lower()
    updated = 0
    for item in checklist:
        if _matches(item, pattern):
            item["complete"] = complete
            if new_task_text:
                item["task"] = new_task_text
            updated += 1

    if updated == 0:
        raise NoMatchError(
            f"No checklist items found matching pattern: '{task_pattern}'",
            stage=stage,
            pattern=task_pattern,
        )

    plan.touch()
    save_plan(plan_path, plan)
    logger.info(f"Updated {updated} checklist item(s) in {stage} of {plan_path}")
    return updated


def add_checklist_item(
    plan_path: Path,
    stage: str,
    task_text: str,
    complete: bool = False,
    insert_at: int | None = None,
) -> int:
    """
    Add an item to a stage checklist, creating the checklist if needed.

    Args:
        plan_path: Plan file path
        stage: Stage to add the item to
        task_text: Task description
        complete: Whether the item starts complete
        insert_at: 0-based position; out-of-range or None appends

    Returns:
        Index the item was placed at

    Raises:
        StageNotFoundError: If the stage is not in the plan's progress
        InvalidChecklistError: If the stage's checklist is not a list
    """
    plan = load_plan(plan_path)
    stage_progress = _stage_progress(plan, stage)

    checklist = stage_progress.get("checklist")
    if checklist is None:
        checklist = stage_progress["checklist"] = []
    elif not isinstance(checklist, list):
        raise InvalidChecklistError(stage)

    item = ChecklistItem(task=task_text, complete=complete).model_dump()
    if insert_at is not None and 0 <= insert_at <= len(checklist):
        checklist.insert(insert_at, item)
        position = insert_at
    else:
        checklist.append(item)
        position = len(checklist) - 1

    plan.touch()
    save_plan(plan_path, plan)
    logger.info(f"Added checklist item to {stage} of {plan_path} at position {position}")
    return position
