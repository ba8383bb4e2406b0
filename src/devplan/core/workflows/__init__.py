"""
Devplan workflows module.

A workflow type (micro, small, medium, large, epic, or anything defined in
``.llms/workflows.yml``) is an ordered list of stages a plan moves through.
"""

from devplan.core.workflows.catalog import WorkflowCatalog
from devplan.core.workflows.models import (
    NextSteps,
    WorkflowDefinition,
    WorkflowsConfig,
    get_default_workflows,
)

__all__ = [
    "NextSteps",
    "WorkflowCatalog",
    "WorkflowDefinition",
    "WorkflowsConfig",
    "get_default_workflows",
]
