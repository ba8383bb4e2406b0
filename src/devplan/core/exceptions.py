"""
Exceptions for plan, catalog and checklist operations.

Every failure carries a ``category`` so adapters can tell the caller what
kind of recovery is possible.

Exception Hierarchy:
    PlanError (base)
    ├── PlanNotFoundError (not_found)
    ├── PlanCorruptError (corrupt)
    ├── PlanExistsError (validation)
    ├── InvalidRecordStructureError (validation)
    ├── StageOrderError (validation, recoverable with force)
    ├── StageNotFoundError (not_found)
    ├── NoChecklistError (not_found)
    ├── InvalidChecklistError (validation)
    ├── NoMatchError (not_matched)
    ├── SubtaskNotFoundError (not_found)
    ├── CatalogCorruptError (corrupt)
    └── CatalogExistsError (validation)

Example:
    >>> from devplan.core.exceptions import StageOrderError
    >>> try:
    ...     raise StageOrderError("validation", ["context_gathering"])
    ... except StageOrderError as e:
    ...     print(e.category, e.missing_stages)
    validation ['context_gathering']
"""

from pathlib import Path

NOT_FOUND = "not_found"
CORRUPT = "corrupt"
VALIDATION = "validation"
NOT_MATCHED = "not_matched"


class PlanError(Exception):
    """
    Base exception for all plan-related errors.

    Attributes:
        message: Human-readable error message
        context: Optional dictionary of additional context
    """

    category = VALIDATION

    def __init__(self, message: str, **context: object) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        return self.message


class PlanNotFoundError(PlanError):
    """Raised when a plan file does not exist."""

    category = NOT_FOUND

    def __init__(self, path: Path | str, **context: object) -> None:
        super().__init__(f"Plan file not found: {path}", path=str(path), **context)
        self.path = Path(path)


class PlanCorruptError(PlanError):
    """Raised when a plan file cannot be parsed as a YAML mapping."""

    category = CORRUPT

    def __init__(self, path: Path | str, reason: str, **context: object) -> None:
        super().__init__(
            f"Error loading plan file {path}: {reason}", path=str(path), **context
        )
        self.path = Path(path)
        self.reason = reason


class PlanExistsError(PlanError):
    """Raised when creating a plan whose file already exists."""

    def __init__(self, path: Path | str, **context: object) -> None:
        super().__init__(f"Plan file already exists: {path}", path=str(path), **context)
        self.path = Path(path)


class InvalidRecordStructureError(PlanError):
    """
    Raised when a plan record breaks the record contract.

    Covers missing required top-level fields, progress entries without a
    ``complete`` flag and values the record model rejects. Under normal API
    use this points at a hand-edited file.
    """


class StageOrderError(PlanError):
    """
    Raised when a forward jump skips incomplete stages.

    Recoverable: retrying the same update with ``force=True`` proceeds and
    records a warning instead.

    Attributes:
        target_stage: The stage the caller tried to move to
        missing_stages: Intermediate stages that are not complete
    """

    def __init__(self, target_stage: str, missing_stages: list[str], **context: object) -> None:
        message = (
            f"Cannot jump to {target_stage}. Missing stages: {', '.join(missing_stages)}. "
            "Use force to override."
        )
        super().__init__(
            message, target_stage=target_stage, missing_stages=missing_stages, **context
        )
        self.target_stage = target_stage
        self.missing_stages = missing_stages


class StageNotFoundError(PlanError):
    """Raised when a stage is absent from a plan's progress map."""

    category = NOT_FOUND

    def __init__(self, stage: str, **context: object) -> None:
        super().__init__(f"Stage '{stage}' not found in plan progress", stage=stage, **context)
        self.stage = stage


class NoChecklistError(PlanError):
    """Raised when a stage has no checklist sequence to edit."""

    category = NOT_FOUND

    def __init__(self, stage: str, **context: object) -> None:
        super().__init__(f"No checklist found for stage '{stage}'", stage=stage, **context)
        self.stage = stage


class InvalidChecklistError(PlanError):
    """Raised when a stage's checklist field exists but is not a list."""

    def __init__(self, stage: str, **context: object) -> None:
        super().__init__(
            f"Checklist for stage '{stage}' is not a list", stage=stage, **context
        )
        self.stage = stage


class NoMatchError(PlanError):
    """Raised when a lookup pattern matches nothing."""

    category = NOT_MATCHED


class SubtaskNotFoundError(PlanError):
    """Raised when a subtask slug is not referenced by the main plan."""

    category = NOT_FOUND

    def __init__(self, slug: str, **context: object) -> None:
        super().__init__(
            f"Subtask with slug '{slug}' not found in main plan", slug=slug, **context
        )
        self.slug = slug


class CatalogCorruptError(PlanError):
    """Raised when the workflows file exists but cannot be parsed."""

    category = CORRUPT


class CatalogExistsError(PlanError):
    """Raised when writing the workflows file over an existing one without force."""

    def __init__(self, path: Path | str, **context: object) -> None:
        super().__init__(
            f"Workflows file already exists at {path}. Use force to overwrite.",
            path=str(path),
            **context,
        )
        self.path = Path(path)


__all__ = [
    "CORRUPT",
    "NOT_FOUND",
    "NOT_MATCHED",
    "VALIDATION",
    "CatalogCorruptError",
    "CatalogExistsError",
    "InvalidChecklistError",
    "InvalidRecordStructureError",
    "NoChecklistError",
    "NoMatchError",
    "PlanCorruptError",
    "PlanError",
    "PlanExistsError",
    "PlanNotFoundError",
    "StageNotFoundError",
    "StageOrderError",
    "SubtaskNotFoundError",
]
