"""
Workflow catalog for devplan.

Resolves workflow type names to ordered stage lists, answers "what comes
next" queries, and bootstraps the workflows file on demand. The file is
re-read on every call so edits take effect without restarting anything.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from devplan.core.exceptions import CatalogCorruptError, CatalogExistsError
from devplan.core.workflows.models import NextSteps, WorkflowsConfig, get_default_workflows

logger = logging.getLogger(__name__)


class WorkflowCatalog:
    """
    Workflow catalog backed by a YAML file.

    Falls back to the built-in catalog when the file is absent, and to the
    catalog's ``default`` workflow when a requested type is unknown.

    Example:
        >>> catalog = WorkflowCatalog(Path(".llms"))
        >>> catalog.get_workflow_steps("micro")
        ['implementation']
        >>> catalog.get_next_steps("medium", "scope_analysis", True).next_step
        'context_gathering'
    """

    WORKFLOWS_FILE = "workflows.yml"

    def __init__(self, plans_dir: Path, filename: str | None = None) -> None:
        """
        Initialize WorkflowCatalog.

        Args:
            plans_dir: Directory holding the workflows file (e.g., ./.llms)
            filename: Workflows file name (defaults to workflows.yml)
        """
        self.plans_dir = Path(plans_dir)
        self._file_path = self.plans_dir / (filename or self.WORKFLOWS_FILE)

    @property
    def file_path(self) -> Path:
        """Get the path to the workflows file."""
        return self._file_path

    def file_exists(self) -> bool:
        """Check if the workflows file exists."""
        return self._file_path.exists()

    def load(self) -> WorkflowsConfig:
        """
        Load the catalog.

        Returns:
            The stored catalog, or the built-in one if no file exists

        Raises:
            CatalogCorruptError: If the file cannot be parsed or validated
        """
        if not self._file_path.exists():
            logger.debug(f"No workflows file at {self._file_path}, using built-in catalog")
            return get_default_workflows()

        try:
            data = yaml.safe_load(self._file_path.read_text(encoding="utf-8")) or {}
        except (yaml.YAMLError, OSError) as e:
            raise CatalogCorruptError(
                f"Error loading workflows file {self._file_path}: {e}",
                path=str(self._file_path),
            ) from e

        if not isinstance(data, dict):
            raise CatalogCorruptError(
                f"Error loading workflows file {self._file_path}: "
                f"expected a mapping, got {type(data).__name__}",
                path=str(self._file_path),
            )

        try:
            return WorkflowsConfig.model_validate(data)
        except ValidationError as e:
            raise CatalogCorruptError(
                f"Error loading workflows file {self._file_path}: {e}",
                path=str(self._file_path),
            ) from e

    def create_file(self, force: bool = False) -> Path:
        """
        Write the built-in catalog to the workflows file.

        Args:
            force: Overwrite an existing file

        Returns:
            Path of the written file

        Raises:
            CatalogExistsError: If the file exists and force is False
        """
        if self._file_path.exists() and not force:
            raise CatalogExistsError(self._file_path)

        self._file_path.parent.mkdir(parents=True, exist_ok=True)

        header = """# Devplan workflows
# Each workflow type lists the stages a plan of that size goes through.
# Plans with an unknown workflow type use the default workflow.

"""
        content = yaml.dump(
            get_default_workflows().model_dump(mode="json"),
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )
        self._file_path.write_text(header + content, encoding="utf-8")
        logger.info(f"Wrote workflows file {self._file_path}")
        return self._file_path

    def get_workflow_steps(self, workflow_type: str | None) -> list[str]:
        """
        Get the ordered stage names for a workflow type.

        Unknown or missing types fall back to the default workflow.

        Raises:
            CatalogCorruptError: If the workflows file cannot be loaded
        """
        catalog = self.load()
        if workflow_type and workflow_type in catalog.workflows:
            return list(catalog.workflows[workflow_type].steps)
        return list(catalog.default.steps)

    def get_next_steps(
        self,
        workflow_type: str | None,
        current_stage: str,
        current_stage_complete: bool = False,
    ) -> NextSteps:
        """
        Work out the current and next step of a plan within its workflow.

        A current stage that is not part of the workflow is treated as if the
        workflow were just starting, so ``current_step`` becomes the first
        step rather than ``current_stage``.

        Args:
            workflow_type: The plan's workflow type
            current_stage: The plan's current stage
            current_stage_complete: Whether the current stage is complete

        Returns:
            NextSteps for the plan
        """
        steps = self.get_workflow_steps(workflow_type)

        if current_stage not in steps:
            return NextSteps(
                current_step=steps[0] if steps else None,
                next_step=steps[1] if len(steps) > 1 else None,
                remaining_steps=steps[1:],
                is_complete=False,
            )

        current_index = steps.index(current_stage)
        advance_index = current_index + 1 if current_stage_complete else current_index

        next_step: str | None = None
        if current_stage_complete and advance_index < len(steps):
            next_step = steps[advance_index]
        elif not current_stage_complete and current_index < len(steps) - 1:
            next_step = steps[current_index + 1]

        if current_stage_complete:
            remaining = steps[advance_index + 1 :]
        else:
            remaining = steps[current_index + 1 :]

        return NextSteps(
            current_step=current_stage,
            next_step=next_step,
            remaining_steps=remaining,
            is_complete=advance_index >= len(steps),
        )

    def validate_workflow_step(self, workflow_type: str | None, step: str) -> bool:
        """Check whether ``step`` belongs to the given workflow type."""
        return step in self.get_workflow_steps(workflow_type)
