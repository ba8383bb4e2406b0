"""
Stage update engine for devplan.

Moves a plan to a target stage: validates the transition against the
canonical stage ordering, merges caller-supplied data into the stage's
progress record, marks earlier stages complete when advancing, recomputes
the plan status and writes the whole record back.

Every update is all-or-nothing: a failure at any step leaves the plan file
untouched.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from devplan.core.exceptions import PlanError, StageOrderError
from devplan.core.plans.models import PlanRecord, PlanStatus
from devplan.core.plans.store import load_plan, save_plan
from devplan.core.stages import (
    STANDARD_STAGES,
    create_stage_progress,
    is_standard_stage,
    stage_index,
)

logger = logging.getLogger(__name__)


class UpdateResult(BaseModel):
    """
    Outcome of a stage update.

    On success ``warnings`` lists every soft condition met along the way
    (possibly none). On failure ``error`` holds the message and
    ``error_category`` one of not_found, corrupt, validation or not_matched.
    """

    success: bool
    stage: str | None = None
    updated_at: str | None = None
    warnings: list[str] = Field(default_factory=list)
    error: str | None = None
    error_category: str | None = None


def check_transition(plan: PlanRecord, target_stage: str, force: bool = False) -> list[str]:
    """
    Validate moving ``plan`` from its current stage to ``target_stage``.

    Custom stages are always allowed; ordering is only enforced when both
    stages are standard. Moving backwards is allowed with a warning. Jumping
    more than one stage ahead requires every standard stage strictly between
    the two that the plan tracks to be complete, unless ``force`` is set.

    Returns:
        Warnings for the transition

    Raises:
        StageOrderError: If intermediate stages are incomplete and force is False
    """
    warnings: list[str] = []
    current_stage = plan.current_stage

    if not is_standard_stage(target_stage):
        warnings.append(
            f"Custom stage detected: {target_stage}. "
            "This stage is not in the standard workflow stages."
        )

    current_index = stage_index(current_stage)
    target_index = stage_index(target_stage)

    if current_index is None or target_index is None:
        warnings.append(
            f"Cannot validate stage order between {current_stage} and {target_stage}"
        )
    elif target_index < current_index:
        warnings.append(f"Moving backwards from {current_stage} to {target_stage}")
    elif target_index > current_index + 1:
        missing_stages = [
            stage
            for stage in STANDARD_STAGES[current_index + 1 : target_index]
            if stage in plan.progress and not plan.is_stage_complete(stage)
        ]
        if missing_stages and not force:
            raise StageOrderError(target_stage, missing_stages)
        if missing_stages:
            warnings.append(
                f"Forcing jump to {target_stage} (skipping: {', '.join(missing_stages)})"
            )
        else:
            warnings.append(
                f"Jumping from {current_stage} to {target_stage} (intermediate stages complete)"
            )

    if plan.status == PlanStatus.COMPLETED:
        warnings.append("Plan is already marked as completed - updating anyway")
    elif plan.status == PlanStatus.FAILED:
        warnings.append("Plan is marked as failed - updating anyway")

    return warnings


def merge_section_data(stage_progress: dict[str, Any], section_data: dict[str, Any]) -> None:
    """
    Merge caller data into a stage progress record in place.

    When both the existing and the new value are mappings they are merged
    one level deep (new keys win, untouched keys survive). Anything else,
    lists included, replaces the existing value.

    Example:
        >>> progress = {"complete": False, "findings": {"a": 1}, "changes": ["x"]}
        >>> merge_section_data(progress, {"findings": {"b": 2}, "changes": ["y"]})
        >>> progress["findings"], progress["changes"]
        ({'a': 1, 'b': 2}, ['y'])
    """
    for key, value in section_data.items():
        existing = stage_progress.get(key)
        if isinstance(existing, dict) and isinstance(value, dict):
            stage_progress[key] = {**existing, **value}
        else:
            stage_progress[key] = value


def apply_stage_update(
    plan: PlanRecord,
    target_stage: str,
    mark_complete: bool = True,
    section_data: dict[str, Any] | None = None,
) -> list[str]:
    """
    Apply a validated transition to ``plan`` in memory.

    Returns:
        Warnings raised by the status recomputation
    """
    warnings: list[str] = []
    current_index = stage_index(plan.current_stage)
    target_index = stage_index(target_stage)

    if current_index is not None and target_index is not None and target_index > current_index:
        for stage in STANDARD_STAGES[:target_index]:
            if stage in plan.progress:
                plan.progress[stage]["complete"] = True

    plan.current_stage = target_stage

    if section_data is not None:
        stage_progress = plan.progress.setdefault(target_stage, create_stage_progress(target_stage))
        merge_section_data(stage_progress, section_data)

    if mark_complete:
        plan.progress.setdefault(target_stage, create_stage_progress(target_stage))
        plan.progress[target_stage]["complete"] = True

    if plan.all_stages_complete():
        plan.status = PlanStatus.COMPLETED
        warnings.append("All stages complete - marking plan as completed")
    elif plan.status == PlanStatus.COMPLETED:
        plan.status = PlanStatus.ACTIVE
        warnings.append("Plan status changed from completed to active")

    plan.touch()
    return warnings


class StageUpdater:
    """
    Runs stage updates against one plan file.

    Example:
        >>> updater = StageUpdater(Path(".llms/.dev-plan-main.yaml"))
        >>> result = updater.update_stage("context_gathering", section_data={
        ...     "findings": {"api": "REST"},
        ... })
        >>> result.success
        True
    """

    def __init__(self, plan_path: Path) -> None:
        """
        Initialize StageUpdater.

        Args:
            plan_path: Path to the plan file
        """
        self.plan_path = Path(plan_path)

    def update_stage(
        self,
        target_stage: str,
        *,
        force: bool = False,
        mark_complete: bool = True,
        section_data: dict[str, Any] | None = None,
    ) -> UpdateResult:
        """
        Load, validate, update and save the plan.

        Args:
            target_stage: Stage to move to (standard or custom)
            force: Allow jumping past incomplete intermediate stages
            mark_complete: Mark the target stage complete (default True)
            section_data: Data to merge into the target stage's progress

        Returns:
            UpdateResult; failures are reported in the result, not raised
        """
        warnings: list[str] = []
        try:
            plan = load_plan(self.plan_path)
            warnings.extend(check_transition(plan, target_stage, force=force))
            warnings.extend(
                apply_stage_update(
                    plan,
                    target_stage,
                    mark_complete=mark_complete,
                    section_data=section_data,
                )
            )
            save_plan(self.plan_path, plan)
        except PlanError as e:
            logger.debug(f"Update of {self.plan_path} to {target_stage} failed: {e}")
            return UpdateResult(success=False, error=str(e), error_category=e.category)

        logger.info(f"Updated {self.plan_path} to stage {target_stage}")
        for warning in warnings:
            logger.debug(f"{self.plan_path}: {warning}")

        return UpdateResult(
            success=True,
            stage=target_stage,
            updated_at=plan.updated_at,
            warnings=warnings,
        )


def update_stage(
    plan_path: Path,
    target_stage: str,
    *,
    force: bool = False,
    mark_complete: bool = True,
    section_data: dict[str, Any] | None = None,
) -> UpdateResult:
    """Convenience wrapper around ``StageUpdater(plan_path).update_stage(...)``."""
    return StageUpdater(plan_path).update_stage(
        target_stage,
        force=force,
        mark_complete=mark_complete,
        section_data=section_data,
    )
