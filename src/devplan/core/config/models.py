"""
Configuration data models for devplan.

These models define the structure of .devplan.json and
~/.config/devplan/config.json files, with validation via Pydantic.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class DevplanConfig(BaseModel):
    """
    Top-level devplan configuration.

    Loaded from defaults, user config, project config, and env vars.

    Example:
        >>> config = DevplanConfig(plans_dir=".plans", default_workflow="small")
        >>> config.workflows_file
        'workflows.yml'
    """
    plans_dir: str = Field(
        default=".llms",
        description="Directory under the project root holding plans and workflows"
    )
    workflows_file: str = Field(
        default="workflows.yml",
        description="Workflow catalog file name inside plans_dir"
    )
    main_plan_file: str = Field(
        default=".dev-plan-main.yaml",
        description="Main plan file name inside plans_dir"
    )
    default_workflow: str = Field(
        default="medium",
        description="Workflow type used when a plan is created without one"
    )
    default_priority: str = Field(
        default="medium",
        description="Priority used when a plan is created without one"
    )
    fix_cycle_workflow: str = Field(
        default="small",
        description="Workflow type for validation fix subtask plans"
    )
    log_level: str = Field(
        default="WARNING",
        description="Logging level for CLI commands"
    )

    model_config = ConfigDict(
        extra="ignore",
        validate_assignment=True,
    )

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {v!r}")
        return level

    @field_validator("default_priority")
    @classmethod
    def validate_priority(cls, v: str) -> str:
        if v not in ("high", "medium", "low"):
            raise ValueError(f"default_priority must be high, medium or low, got {v!r}")
        return v
