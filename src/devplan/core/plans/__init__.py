"""
Plan records and the operations on them.

Provides the plan record model, plan generation, YAML persistence, the
stage update engine, checklist editing and the project plan workspace.
"""

from devplan.core.plans.checklist import add_checklist_item, update_checklist_item
from devplan.core.plans.generator import generate_plan, generate_slug
from devplan.core.plans.models import (
    ParentPlan,
    PlanRecord,
    PlanStatus,
    PlanType,
    Priority,
    SubtaskReference,
)
from devplan.core.plans.store import load_plan, save_plan
from devplan.core.plans.updater import StageUpdater, UpdateResult, update_stage
from devplan.core.plans.workspace import PlanWorkspace

__all__ = [
    "ParentPlan",
    "PlanRecord",
    "PlanStatus",
    "PlanType",
    "PlanWorkspace",
    "Priority",
    "StageUpdater",
    "SubtaskReference",
    "UpdateResult",
    "add_checklist_item",
    "generate_plan",
    "generate_slug",
    "load_plan",
    "save_plan",
    "update_checklist_item",
    "update_stage",
]
