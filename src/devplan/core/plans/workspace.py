"""
Plan workspace for devplan.

A project keeps its plans under one directory (``.llms`` by default):

    .llms/workflows.yml
    .llms/.dev-plan-main.yaml
    .llms/.dev-plan-main/subtasks/.dev-plan-<slug>.yaml

The workspace creates the main plan, decomposes it into subtask plans,
promotes subtask references to plan files, lists plans, and runs the
validation fix loop (a failed validation opens a fix subtask plan; resolving
it reopens validation).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from devplan.core.config import DevplanConfig
from devplan.core.exceptions import (
    NoMatchError,
    PlanError,
    PlanExistsError,
    PlanNotFoundError,
    StageNotFoundError,
    SubtaskNotFoundError,
)
from devplan.core.plans.generator import generate_plan, generate_slug
from devplan.core.plans.models import (
    ParentPlan,
    PlanRecord,
    PlanType,
    Priority,
    SubtaskReference,
    utc_now_iso,
)
from devplan.core.plans.store import load_plan, save_plan, validate_plan_document
from devplan.core.stages import FixCycle, FixCycleStatus, StandardStage, ValidationStatus
from devplan.core.workflows import NextSteps, WorkflowCatalog

logger = logging.getLogger(__name__)

SUBTASK_REFERENCE_TYPE = "independent_plan"
VALIDATION_STAGE = StandardStage.VALIDATION.value


def subtask_file_name(slug: str) -> str:
    """File name for a subtask plan, e.g. ``.dev-plan-add-login.yaml``."""
    return f".dev-plan-{slug}.yaml"


class PlanWorkspace:
    """
    Plans of one project directory.

    Plan paths handed out by the workspace are relative to the project
    directory when possible; paths passed in may be relative (resolved
    against the project directory) or absolute.

    Example:
        >>> workspace = PlanWorkspace(Path("."))
        >>> path, plan = workspace.create_main_plan("Build login", workflow_type="small")
        >>> workspace.create_subtask_plan("Add password reset")[1].parent_task
        'Build login'
    """

    def __init__(self, project_dir: Path, config: DevplanConfig | None = None) -> None:
        """
        Initialize PlanWorkspace.

        Args:
            project_dir: Project root directory
            config: devplan configuration (defaults to built-in defaults)
        """
        self.project_dir = Path(project_dir)
        self.config = config or DevplanConfig()
        self.catalog = WorkflowCatalog(self.plans_dir, self.config.workflows_file)

    @property
    def plans_dir(self) -> Path:
        """Directory holding the plans and the workflows file."""
        return self.project_dir / self.config.plans_dir

    @property
    def main_plan_path(self) -> Path:
        """Path of the main plan file."""
        return self.plans_dir / self.config.main_plan_file

    @property
    def subtasks_dir(self) -> Path:
        """Directory holding the main plan's subtask plans."""
        return self.subtasks_dir_for(self.main_plan_path)

    @staticmethod
    def subtasks_dir_for(plan_path: Path) -> Path:
        """Subtask directory of any plan: ``<dir>/<plan stem>/subtasks``."""
        plan_path = Path(plan_path)
        return plan_path.parent / plan_path.stem / "subtasks"

    def resolve(self, plan_file: Path | str) -> Path:
        """Resolve a plan path given relative to the project directory."""
        path = Path(plan_file)
        return path if path.is_absolute() else self.project_dir / path

    def display_path(self, path: Path) -> str:
        """Render a path relative to the project directory when it is inside it."""
        try:
            return Path(path).relative_to(self.project_dir).as_posix()
        except ValueError:
            return str(path)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def _new_plan(
        self,
        description: str,
        slug: str,
        *,
        workflow_type: str | None,
        priority: Priority | str | None,
        status: str | None = None,
        plan_type: PlanType | None = None,
    ) -> PlanRecord:
        return generate_plan(
            description,
            slug,
            catalog=self.catalog,
            workflow_type=workflow_type or self.config.default_workflow,
            priority=priority or self.config.default_priority,
            status=status,
            plan_type=plan_type,
        )

    def _build_child_plan(
        self,
        parent_path: Path,
        parent: PlanRecord,
        description: str,
        slug: str,
        *,
        workflow_type: str | None,
        priority: Priority | str | None,
        status: str | None = None,
    ) -> tuple[Path, PlanRecord]:
        path = self.subtasks_dir_for(parent_path) / subtask_file_name(slug)
        if path.exists():
            raise PlanExistsError(self.display_path(path))

        plan = self._new_plan(
            description,
            slug,
            workflow_type=workflow_type,
            priority=priority,
            status=status,
            plan_type=PlanType.SUBTASK,
        )
        plan.plan_type = PlanType.SUBTASK
        plan.parent_plan = ParentPlan(
            file=self.display_path(parent_path), task=parent.task, slug=parent.slug
        )
        plan.parent_task = parent.task
        return path, plan

    def _save_with_parent(
        self, path: Path, plan: PlanRecord, parent_path: Path, parent: PlanRecord
    ) -> None:
        """
        Write a child plan together with its updated parent.

        The parent is checked before anything is written, and the child file
        is removed again if writing the parent fails, so a child plan is
        never left behind without the parent's reference to it.
        """
        parent.touch()
        validate_plan_document(parent.to_document())

        save_plan(path, plan)
        try:
            save_plan(parent_path, parent)
        except Exception:
            path.unlink(missing_ok=True)
            raise

    def create_main_plan(
        self,
        task_description: str,
        workflow_type: str | None = None,
        priority: Priority | str | None = None,
        status: str | None = None,
    ) -> tuple[Path, PlanRecord]:
        """
        Create the project's main plan.

        Raises:
            PlanExistsError: If the main plan file already exists
        """
        path = self.main_plan_path
        if path.exists():
            raise PlanExistsError(self.display_path(path))

        plan = self._new_plan(
            task_description,
            generate_slug(task_description),
            workflow_type=workflow_type,
            priority=priority,
            status=status,
        )
        save_plan(path, plan)
        logger.info(f"Created main plan '{plan.slug}' at {path}")
        return path, plan

    def load_main_plan(self) -> PlanRecord:
        """
        Load the main plan.

        Raises:
            PlanNotFoundError: If there is no main plan yet
        """
        return load_plan(self.main_plan_path)

    def create_subtask_plan(
        self,
        subtask_description: str,
        workflow_type: str | None = None,
        priority: Priority | str | None = None,
        status: str | None = None,
    ) -> tuple[Path, PlanRecord]:
        """
        Create an independent subtask plan and reference it from the main plan.

        Raises:
            PlanNotFoundError: If there is no main plan
            PlanExistsError: If the subtask plan file already exists
        """
        main_plan = self.load_main_plan()
        slug = generate_slug(subtask_description)

        path, plan = self._build_child_plan(
            self.main_plan_path,
            main_plan,
            subtask_description,
            slug,
            workflow_type=workflow_type,
            priority=priority,
            status=status,
        )

        main_plan.subtasks.append(
            SubtaskReference(
                description=subtask_description,
                slug=slug,
                priority=plan.priority,
                status="independent",
                reference_type=SUBTASK_REFERENCE_TYPE,
                plan_file=self.display_path(path),
            )
        )
        self._save_with_parent(path, plan, self.main_plan_path, main_plan)

        logger.info(f"Created subtask plan '{slug}' at {path}")
        return path, plan

    def promote_subtask(
        self,
        subtask_slug: str,
        workflow_type: str | None = None,
        priority: Priority | str | None = None,
    ) -> tuple[Path, PlanRecord]:
        """
        Materialize a plan file for a subtask the main plan only references.

        Priority defaults to the reference's own priority.

        Raises:
            PlanNotFoundError: If there is no main plan
            SubtaskNotFoundError: If the main plan has no subtask with that slug
            PlanExistsError: If the subtask plan file already exists
        """
        main_plan = self.load_main_plan()
        reference = main_plan.find_subtask(subtask_slug)
        if reference is None:
            raise SubtaskNotFoundError(subtask_slug)

        path, plan = self._build_child_plan(
            self.main_plan_path,
            main_plan,
            reference.description,
            reference.slug,
            workflow_type=workflow_type,
            priority=priority or reference.priority,
        )

        reference.reference_type = SUBTASK_REFERENCE_TYPE
        reference.plan_file = self.display_path(path)
        reference.status = "promoted"
        self._save_with_parent(path, plan, self.main_plan_path, main_plan)

        logger.info(f"Promoted subtask '{subtask_slug}' to {path}")
        return path, plan

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def read_plan(self, plan_file: Path | str) -> PlanRecord:
        """Load a plan by path."""
        return load_plan(self.resolve(plan_file))

    def list_plans(self, include_subtasks: bool = True) -> list[tuple[Path, PlanRecord]]:
        """
        List the main plan followed by its subtask plans.

        Subtask plans are ordered by file name. Subtask files that cannot
        be loaded are skipped with a warning.
        """
        plans: list[tuple[Path, PlanRecord]] = []
        if self.main_plan_path.exists():
            plans.append((self.main_plan_path, self.load_main_plan()))

        if include_subtasks and self.subtasks_dir.is_dir():
            for path in sorted(self.subtasks_dir.glob("*.yaml"), key=lambda p: p.name):
                try:
                    plans.append((path, load_plan(path)))
                except PlanError as e:
                    logger.warning(f"Skipping unreadable subtask plan {path}: {e}")

        return plans

    def next_steps(self, plan_file: Path | str) -> tuple[PlanRecord, NextSteps]:
        """
        Work out where a plan stands in its workflow.

        Returns:
            The loaded plan and its NextSteps
        """
        plan = self.read_plan(plan_file)
        steps = self.catalog.get_next_steps(
            plan.workflow_type,
            plan.current_stage,
            plan.is_stage_complete(plan.current_stage),
        )
        return plan, steps

    # ------------------------------------------------------------------
    # Validation fix loop
    # ------------------------------------------------------------------

    def _validation_progress(self, plan: PlanRecord) -> dict[str, Any]:
        if VALIDATION_STAGE not in plan.progress:
            raise StageNotFoundError(VALIDATION_STAGE)
        return plan.progress[VALIDATION_STAGE]

    def open_fix_cycle(
        self,
        plan_file: Path | str,
        issues: list[str],
        workflow_type: str | None = None,
    ) -> tuple[Path, dict[str, Any]]:
        """
        Record failed validation and open a fix subtask plan for it.

        Cycles are numbered from 1. The parent's validation stage moves to
        ``awaiting_fixes`` with ``issues_found`` set to ``issues``.

        Returns:
            Path of the fix plan and the recorded fix cycle

        Raises:
            PlanNotFoundError: If the plan does not exist
            StageNotFoundError: If the plan has no validation stage
            PlanExistsError: If the fix plan file already exists
        """
        plan_path = self.resolve(plan_file)
        plan = load_plan(plan_path)
        validation = self._validation_progress(plan)

        fix_cycles = validation.get("fix_cycles")
        if not isinstance(fix_cycles, list):
            fix_cycles = validation["fix_cycles"] = []
        cycle_number = len(fix_cycles) + 1

        fix_path, fix_plan = self._build_child_plan(
            plan_path,
            plan,
            f"Fix validation issues - Cycle {cycle_number}",
            f"fix-validation-cycle-{cycle_number}",
            workflow_type=workflow_type or self.config.fix_cycle_workflow,
            priority=plan.priority,
        )

        cycle = FixCycle(
            cycle=cycle_number,
            subplan_file=self.display_path(fix_path),
            issues=list(issues),
            created=utc_now_iso(),
        ).model_dump(mode="json")
        fix_cycles.append(cycle)
        validation["validation_status"] = ValidationStatus.AWAITING_FIXES.value
        validation["issues_found"] = list(issues)

        self._save_with_parent(fix_path, fix_plan, plan_path, plan)
        logger.info(f"Opened fix cycle {cycle_number} for {plan_path} at {fix_path}")
        return fix_path, cycle

    def resolve_fix_cycle(
        self,
        plan_file: Path | str,
        cycle: int,
        status: FixCycleStatus | str = FixCycleStatus.COMPLETED,
    ) -> dict[str, Any]:
        """
        Close a fix cycle.

        Once every cycle is resolved the validation stage goes back to
        ``in_progress`` so validation can be rerun.

        Returns:
            The updated fix cycle

        Raises:
            NoMatchError: If the plan has no fix cycle with that number
        """
        try:
            status = FixCycleStatus(status)
        except ValueError as e:
            raise PlanError(f"Invalid fix cycle status: {status}", status=str(status)) from e

        plan_path = self.resolve(plan_file)
        plan = load_plan(plan_path)
        validation = self._validation_progress(plan)
        fix_cycles = validation.get("fix_cycles") or []

        entry = next(
            (c for c in fix_cycles if isinstance(c, dict) and c.get("cycle") == cycle), None
        )
        if entry is None:
            raise NoMatchError(f"Fix cycle {cycle} not found in plan {plan_file}", cycle=cycle)

        entry["status"] = status.value
        entry["resolved"] = True
        if all(isinstance(c, dict) and c.get("resolved") for c in fix_cycles):
            validation["validation_status"] = ValidationStatus.IN_PROGRESS.value

        plan.touch()
        save_plan(plan_path, plan)
        logger.info(f"Resolved fix cycle {cycle} of {plan_path} as {status.value}")
        return entry

    def require_plan(self, plan_file: Path | str) -> Path:
        """
        Resolve a plan path and check it exists.

        Raises:
            PlanNotFoundError: If the file does not exist
        """
        path = self.resolve(plan_file)
        if not path.exists():
            raise PlanNotFoundError(plan_file)
        return path
