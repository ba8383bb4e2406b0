"""
YAML persistence for plan records.

Each plan is one YAML document in its own file. Every save rewrites the
whole file; there is no locking, so concurrent writers to the same plan
race and the last write wins (or the file ends up truncated).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from devplan.core.exceptions import (
    InvalidRecordStructureError,
    PlanCorruptError,
    PlanNotFoundError,
)
from devplan.core.plans.models import PlanRecord

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ["task", "slug", "workflow", "phase", "status", "created", "updated"]


def dump_plan_yaml(document: dict[str, Any]) -> str:
    """Render a plan document as YAML, keeping key order and unicode intact."""
    return yaml.safe_dump(
        document,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
        width=float("inf"),
    )


def load_plan(path: Path) -> PlanRecord:
    """
    Load a plan record from a YAML file.

    Args:
        path: Plan file path

    Returns:
        Parsed PlanRecord

    Raises:
        PlanNotFoundError: If the file does not exist
        PlanCorruptError: If the file is not a YAML mapping
        InvalidRecordStructureError: If the mapping is not a valid plan record
    """
    path = Path(path)
    if not path.exists():
        raise PlanNotFoundError(path)

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise PlanCorruptError(path, str(e)) from e
    except UnicodeDecodeError as e:
        raise PlanCorruptError(path, f"not valid UTF-8 ({e})") from e

    if not isinstance(data, dict):
        raise PlanCorruptError(path, f"expected a mapping, got {type(data).__name__}")

    try:
        plan = PlanRecord.model_validate(data)
    except ValidationError as e:
        raise InvalidRecordStructureError(
            f"Invalid plan record in {path}: {e}", path=str(path)
        ) from e

    logger.debug(f"Loaded plan '{plan.slug}' from {path}")
    return plan


def validate_plan_document(document: dict[str, Any]) -> None:
    """
    Check a serialized plan before it is written.

    Raises:
        InvalidRecordStructureError: If a required top-level field is missing
            or a progress entry has no ``complete`` field
    """
    for field in REQUIRED_FIELDS:
        if field not in document:
            raise InvalidRecordStructureError(f"Missing required field: {field}", field=field)

    progress = document.get("progress") or {}
    for stage, data in progress.items():
        if not isinstance(data, dict) or "complete" not in data:
            raise InvalidRecordStructureError(
                f"Invalid progress structure for stage {stage}: missing 'complete' field",
                stage=stage,
            )


def save_plan(path: Path, plan: PlanRecord) -> Path:
    """
    Validate and write a plan record, replacing the file's contents.

    Args:
        path: Plan file path (parent directories are created)
        plan: Record to write

    Returns:
        The written path

    Raises:
        InvalidRecordStructureError: If the record fails validation
    """
    path = Path(path)
    document = plan.to_document()
    validate_plan_document(document)

    content = dump_plan_yaml(document)
    try:
        yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise InvalidRecordStructureError(f"Generated YAML is invalid: {e}") from e

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    logger.debug(f"Saved plan '{plan.slug}' to {path}")
    return path
