"""
Tool adapters for the devplan server.

Each tool takes the JSON arguments of a ``tools/call`` request, runs one
plan operation and renders a text result. Plan failures become error text
(``❌ <message>``); argument problems raise JSONRPCInvalidParamsError so the
server can answer with a protocol error instead.
"""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Callable
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from devplan.core.config import DevplanConfig
from devplan.core.exceptions import PlanError
from devplan.core.plans import (
    PlanRecord,
    PlanWorkspace,
    add_checklist_item,
    update_checklist_item,
    update_stage,
)
from devplan.core.plans.store import dump_plan_yaml
from devplan.core.server.jsonrpc import JSONRPCInvalidParamsError

logger = logging.getLogger(__name__)

PRIORITIES = ["high", "medium", "low"]
INITIAL_STATUSES = ["active", "pending"]
FIX_CYCLE_OUTCOMES = ["completed", "failed"]


def _schema(properties: dict[str, Any], required: list[str] | None = None) -> dict[str, Any]:
    schema: dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return schema


_PLAN_FILE = {"type": "string", "description": "Path to the plan file"}
_WORKFLOW = {
    "type": "string",
    "description": "Workflow type (micro, small, medium, large, epic or custom)",
}
_PRIORITY = {"type": "string", "enum": PRIORITIES, "description": "Priority", "default": "medium"}
_STATUS = {"type": "string", "enum": INITIAL_STATUSES, "description": "Initial status"}

TOOL_DEFINITIONS: list[dict[str, Any]] = [
    {
        "name": "create_plan",
        "description": "Create a new development plan for a task",
        "inputSchema": _schema(
            {
                "taskDescription": {"type": "string", "description": "The task description"},
                "workflow": _WORKFLOW,
                "priority": _PRIORITY,
                "status": _STATUS,
            },
            ["taskDescription"],
        ),
    },
    {
        "name": "create_subtask_plan",
        "description": "Create an independent subtask plan",
        "inputSchema": _schema(
            {
                "subtaskDescription": {"type": "string", "description": "The subtask description"},
                "workflow": _WORKFLOW,
                "priority": _PRIORITY,
                "status": _STATUS,
            },
            ["subtaskDescription"],
        ),
    },
    {
        "name": "update_plan",
        "description": "Update a development plan stage",
        "inputSchema": _schema(
            {
                "planFile": _PLAN_FILE,
                "stage": {
                    "type": "string",
                    "description": "The stage to update to (standard or custom)",
                },
                "sectionData": {
                    "type": "object",
                    "description": "Optional data to merge into the stage section",
                },
                "force": {
                    "type": "boolean",
                    "description": "Force update even if validation fails",
                    "default": False,
                },
                "incomplete": {
                    "type": "boolean",
                    "description": "Do not mark the stage as complete",
                    "default": False,
                },
            },
            ["planFile", "stage"],
        ),
    },
    {
        "name": "read_plan",
        "description": "Read a development plan file",
        "inputSchema": _schema({"planFile": _PLAN_FILE}, ["planFile"]),
    },
    {
        "name": "list_plans",
        "description": "List all development plans in the plans directory",
        "inputSchema": _schema(
            {
                "includeSubtasks": {
                    "type": "boolean",
                    "description": "Include subtask plans in the listing",
                    "default": True,
                }
            }
        ),
    },
    {
        "name": "promote_subtask",
        "description": "Promote a subtask to an independent plan",
        "inputSchema": _schema(
            {
                "subtaskSlug": {
                    "type": "string",
                    "description": "The slug of the subtask to promote",
                },
                "workflow": _WORKFLOW,
                "priority": _PRIORITY,
            },
            ["subtaskSlug"],
        ),
    },
    {
        "name": "get_workflow_next_steps",
        "description": "Get the next steps for a plan based on its workflow",
        "inputSchema": _schema({"planFile": _PLAN_FILE}, ["planFile"]),
    },
    {
        "name": "create_workflows_file",
        "description": "Create or update the workflows.yml file",
        "inputSchema": _schema(
            {
                "force": {
                    "type": "boolean",
                    "description": "Force overwrite existing file",
                    "default": False,
                }
            }
        ),
    },
    {
        "name": "list_workflows",
        "description": "List all available workflows and their steps",
        "inputSchema": _schema({}),
    },
    {
        "name": "update_checklist_item",
        "description": "Update a specific checklist item in a plan stage",
        "inputSchema": _schema(
            {
                "planFile": _PLAN_FILE,
                "stage": {"type": "string", "description": "The stage containing the checklist"},
                "taskPattern": {
                    "type": "string",
                    "description": (
                        "Pattern to match the task description (supports partial matches)"
                    ),
                },
                "complete": {
                    "type": "boolean",
                    "description": "Whether to mark the task as complete",
                    "default": True,
                },
                "newTask": {
                    "type": "string",
                    "description": "Optional new task description",
                },
            },
            ["planFile", "stage", "taskPattern"],
        ),
    },
    {
        "name": "add_checklist_item",
        "description": "Add a new item to a stage checklist",
        "inputSchema": _schema(
            {
                "planFile": _PLAN_FILE,
                "stage": {
                    "type": "string",
                    "description": "The stage to add the checklist item to",
                },
                "task": {"type": "string", "description": "The task description"},
                "complete": {
                    "type": "boolean",
                    "description": "Whether the task is already complete",
                    "default": False,
                },
                "insertAt": {
                    "type": "number",
                    "description": "Position to insert the item (0-based, default: end)",
                },
            },
            ["planFile", "stage", "task"],
        ),
    },
    {
        "name": "open_fix_cycle",
        "description": "Record failed validation and open a fix subtask plan",
        "inputSchema": _schema(
            {
                "planFile": _PLAN_FILE,
                "issues": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Issues found during validation",
                },
                "workflow": _WORKFLOW,
            },
            ["planFile", "issues"],
        ),
    },
    {
        "name": "resolve_fix_cycle",
        "description": "Close a validation fix cycle",
        "inputSchema": _schema(
            {
                "planFile": _PLAN_FILE,
                "cycle": {"type": "integer", "description": "Fix cycle number (from 1)"},
                "status": {
                    "type": "string",
                    "enum": FIX_CYCLE_OUTCOMES,
                    "description": "How the cycle ended",
                    "default": "completed",
                },
            },
            ["planFile", "cycle"],
        ),
    },
]

TOOL_NAMES = [tool["name"] for tool in TOOL_DEFINITIONS]


class ToolResponse(BaseModel):
    """Text result of one tool call."""

    text: str
    is_error: bool = False

    def to_result(self) -> dict[str, Any]:
        """Render as a ``tools/call`` result."""
        return {"content": [{"type": "text", "text": self.text}], "isError": self.is_error}


def _string(args: dict[str, Any], key: str, required: bool = False) -> str | None:
    value = args.get(key)
    if value is None:
        if required:
            raise JSONRPCInvalidParamsError(f"Missing required argument: {key}")
        return None
    if not isinstance(value, str):
        raise JSONRPCInvalidParamsError(f"Argument '{key}' must be a string")
    if required and not value:
        raise JSONRPCInvalidParamsError(f"Argument '{key}' must not be empty")
    return value


def _flag(args: dict[str, Any], key: str, default: bool) -> bool:
    value = args.get(key, default)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise JSONRPCInvalidParamsError(f"Argument '{key}' must be a boolean")
    return value


def _choice(args: dict[str, Any], key: str, choices: list[str]) -> str | None:
    value = _string(args, key)
    if value is not None and value not in choices:
        raise JSONRPCInvalidParamsError(
            f"Argument '{key}' must be one of {', '.join(choices)}, got {value!r}"
        )
    return value


class PlanTools:
    """
    The devplan tool set bound to one project directory.

    Example:
        >>> tools = PlanTools(Path("."))
        >>> tools.call("create_plan", {"taskDescription": "Build login"}).text.splitlines()[0]
        '✅ Main development plan created successfully!'
    """

    def __init__(self, project_dir: Path, config: DevplanConfig | None = None) -> None:
        self.workspace = PlanWorkspace(project_dir, config)
        self._handlers: dict[str, Callable[[dict[str, Any]], ToolResponse]] = {
            name: getattr(self, name) for name in TOOL_NAMES
        }

    def call(self, name: str, arguments: dict[str, Any] | None = None) -> ToolResponse:
        """
        Run a tool by name.

        Raises:
            JSONRPCInvalidParamsError: For unknown tools or bad arguments
        """
        handler = self._handlers.get(name)
        if handler is None:
            raise JSONRPCInvalidParamsError(f"Unknown tool: {name}")
        if arguments is not None and not isinstance(arguments, dict):
            raise JSONRPCInvalidParamsError("Tool arguments must be an object")

        try:
            return handler(arguments or {})
        except PlanError as e:
            logger.debug(f"Tool {name} failed ({e.category}): {e}")
            return ToolResponse(text=f"❌ {e}", is_error=True)

    def _path(self, path: Path) -> str:
        return self.workspace.display_path(path)

    def _plan_summary(self, plan: PlanRecord) -> str:
        return (
            f"📝 Task: {plan.task}\n"
            f"🏷️  Slug: {plan.slug}\n"
            f"🛠️  Workflow: {plan.workflow_type}\n"
            f"📅 Priority: {plan.priority.value}\n"
            f"🔄 Status: {plan.status.value}\n"
            f"🎯 Phase: {plan.current_stage}"
        )

    # ------------------------------------------------------------------
    # Plans
    # ------------------------------------------------------------------

    def create_plan(self, args: dict[str, Any]) -> ToolResponse:
        path, plan = self.workspace.create_main_plan(
            _string(args, "taskDescription", required=True),
            workflow_type=_string(args, "workflow"),
            priority=_choice(args, "priority", PRIORITIES),
            status=_choice(args, "status", INITIAL_STATUSES),
        )
        return ToolResponse(
            text=(
                "✅ Main development plan created successfully!\n"
                f"📁 Plan file: {self._path(path)}\n"
                f"{self._plan_summary(plan)}"
            )
        )

    def create_subtask_plan(self, args: dict[str, Any]) -> ToolResponse:
        path, plan = self.workspace.create_subtask_plan(
            _string(args, "subtaskDescription", required=True),
            workflow_type=_string(args, "workflow"),
            priority=_choice(args, "priority", PRIORITIES),
            status=_choice(args, "status", INITIAL_STATUSES),
        )
        return ToolResponse(
            text=(
                "✅ Independent subtask plan created!\n"
                f"📁 Subtask plan: {self._path(path)}\n"
                f"{self._plan_summary(plan)}\n"
                f"👆 Parent: {plan.parent_task}"
            )
        )

    def promote_subtask(self, args: dict[str, Any]) -> ToolResponse:
        path, plan = self.workspace.promote_subtask(
            _string(args, "subtaskSlug", required=True),
            workflow_type=_string(args, "workflow"),
            priority=_choice(args, "priority", PRIORITIES),
        )
        return ToolResponse(
            text=(
                "✅ Subtask promoted to independent plan!\n"
                f"📁 Subtask plan: {self._path(path)}\n"
                f"{self._plan_summary(plan)}"
            )
        )

    def update_plan(self, args: dict[str, Any]) -> ToolResponse:
        plan_file = _string(args, "planFile", required=True)
        stage = _string(args, "stage", required=True)
        force = _flag(args, "force", False)
        section_data = args.get("sectionData")
        if section_data is not None and not isinstance(section_data, dict):
            raise JSONRPCInvalidParamsError("Argument 'sectionData' must be an object")

        result = update_stage(
            self.workspace.resolve(plan_file),
            stage,
            force=force,
            mark_complete=not _flag(args, "incomplete", False),
            section_data=section_data or {},
        )

        if not result.success:
            text = f"❌ Failed to update plan: {result.error}"
            if not force:
                text += "\n💡 Use force: true to override validation"
            return ToolResponse(text=text, is_error=True)

        text = (
            "✅ Plan updated successfully!\n"
            f"📁 Plan file: {plan_file}\n"
            f"🎯 Updated to stage: {result.stage}\n"
            f"📅 Updated at: {result.updated_at}"
        )
        if section_data:
            text += f"\n📝 Section data updated:\n{json.dumps(section_data, indent=2)}"
        if result.warnings:
            text += "\n\n⚠️  Warnings:\n" + "\n".join(f"  - {w}" for w in result.warnings)
        return ToolResponse(text=text)

    def read_plan(self, args: dict[str, Any]) -> ToolResponse:
        plan = self.workspace.read_plan(_string(args, "planFile", required=True))
        return ToolResponse(text=dump_plan_yaml(plan.to_document()))

    def list_plans(self, args: dict[str, Any]) -> ToolResponse:
        if not self.workspace.plans_dir.is_dir():
            return ToolResponse(
                text=(
                    f"No {self.workspace.config.plans_dir} directory found. "
                    "Create a plan first with create_plan."
                )
            )

        plans = self.workspace.list_plans(_flag(args, "includeSubtasks", True))
        if not plans:
            return ToolResponse(
                text=f"No plans found in {self.workspace.config.plans_dir} directory."
            )

        blocks = []
        for path, plan in plans:
            block = f"📁 {self._path(path)}\n{self._plan_summary(plan)}"
            if plan.is_subtask:
                block += f"\n👆 Parent: {plan.parent_task}"
            blocks.append(block)
        return ToolResponse(text=f"Found {len(plans)} plan(s):\n\n" + "\n---\n".join(blocks))

    def get_workflow_next_steps(self, args: dict[str, Any]) -> ToolResponse:
        plan, steps = self.workspace.next_steps(_string(args, "planFile", required=True))
        current_complete = plan.is_stage_complete(plan.current_stage)

        text = (
            f"📋 Plan: {plan.task}\n"
            f"🛠️  Workflow: {plan.workflow_type}\n"
            f"🎯 Current Phase: {steps.current_step}{' ✅' if current_complete else ' 🔄'}\n\n"
        )
        if steps.is_complete:
            text += "🎉 All workflow steps are complete!"
        elif steps.next_step:
            text += f"➡️  Next Step: {steps.next_step}"
            if steps.remaining_steps:
                text += f"\n📝 Remaining Steps: {' → '.join(steps.remaining_steps)}"

        all_steps = self.workspace.catalog.get_workflow_steps(plan.workflow_type)
        lines = []
        for index, step in enumerate(all_steps, start=1):
            line = f"{index}. {step}"
            if plan.is_stage_complete(step):
                line += " ✅"
            if step == plan.current_stage:
                line += " ← current"
            lines.append(line)
        text += f"\n\n📊 Full Workflow ({plan.workflow_type}):\n" + "\n".join(lines)
        return ToolResponse(text=text)

    def open_fix_cycle(self, args: dict[str, Any]) -> ToolResponse:
        issues = args.get("issues")
        if not isinstance(issues, list) or not all(isinstance(i, str) for i in issues):
            raise JSONRPCInvalidParamsError("Argument 'issues' must be a list of strings")

        fix_path, cycle = self.workspace.open_fix_cycle(
            _string(args, "planFile", required=True),
            issues,
            workflow_type=_string(args, "workflow"),
        )
        issue_lines = "\n".join(f"  - {issue}" for issue in issues) or "  (none)"
        return ToolResponse(
            text=(
                f"🔧 Opened fix cycle {cycle['cycle']}\n"
                f"📁 Fix plan: {self._path(fix_path)}\n"
                f"🐛 Issues:\n{issue_lines}"
            )
        )

    def resolve_fix_cycle(self, args: dict[str, Any]) -> ToolResponse:
        plan_file = _string(args, "planFile", required=True)
        cycle = args.get("cycle")
        if isinstance(cycle, bool) or not isinstance(cycle, int):
            raise JSONRPCInvalidParamsError("Argument 'cycle' must be an integer")
        status = _choice(args, "status", FIX_CYCLE_OUTCOMES) or "completed"

        entry = self.workspace.resolve_fix_cycle(plan_file, cycle, status)
        plan = self.workspace.read_plan(plan_file)
        validation_status = plan.progress["validation"].get("validation_status")
        return ToolResponse(
            text=(
                f"✅ Resolved fix cycle {entry['cycle']} as {entry['status']}\n"
                f"📁 Plan file: {plan_file}\n"
                f"🔍 Validation status: {validation_status}"
            )
        )

    # ------------------------------------------------------------------
    # Workflows
    # ------------------------------------------------------------------

    def create_workflows_file(self, args: dict[str, Any]) -> ToolResponse:
        catalog = self.workspace.catalog
        path = catalog.create_file(force=_flag(args, "force", False))
        workflows = catalog.load()

        lines = [
            f"  {name:<8} - {' → '.join(wf.steps)}"
            for name, wf in workflows.workflows.items()
        ]
        return ToolResponse(
            text=(
                f"✅ Created workflows configuration at {self._path(path)}\n\n"
                "🎯 Available workflow types:\n"
                + "\n".join(lines)
                + f"\n\n💡 You can now customize the workflow steps by editing {self._path(path)}"
            )
        )

    def list_workflows(self, args: dict[str, Any]) -> ToolResponse:
        workflows = self.workspace.catalog.load()

        text = "📋 Available Workflows:\n\n"
        for name, wf in workflows.workflows.items():
            text += f"🛠️  {name}\n   {wf.description}\n   Steps: {' → '.join(wf.steps)}\n\n"
        text += (
            "📌 Default Workflow:\n"
            f"   {workflows.default.description}\n"
            f"   Steps: {' → '.join(workflows.default.steps)}"
        )
        return ToolResponse(text=text)

    # ------------------------------------------------------------------
    # Checklists
    # ------------------------------------------------------------------

    def update_checklist_item(self, args: dict[str, Any]) -> ToolResponse:
        plan_file = _string(args, "planFile", required=True)
        stage = _string(args, "stage", required=True)
        pattern = _string(args, "taskPattern", required=True)
        complete = _flag(args, "complete", True)
        new_task = _string(args, "newTask")

        count = update_checklist_item(
            self.workspace.resolve(plan_file), stage, pattern, complete, new_task
        )
        text = (
            f"✅ Updated {count} checklist item(s) in stage '{stage}'\n"
            f"📁 Plan file: {plan_file}\n"
            f"🎯 Pattern: {pattern}\n"
            f"✔️  Marked as: {'complete' if complete else 'incomplete'}"
        )
        if new_task:
            text += f"\n📝 Updated task text: {new_task}"
        return ToolResponse(text=text)

    def add_checklist_item(self, args: dict[str, Any]) -> ToolResponse:
        plan_file = _string(args, "planFile", required=True)
        stage = _string(args, "stage", required=True)
        task = _string(args, "task", required=True)
        complete = _flag(args, "complete", False)

        insert_at = args.get("insertAt")
        if insert_at is not None:
            if isinstance(insert_at, bool) or not isinstance(insert_at, (int, float)):
                raise JSONRPCInvalidParamsError("Argument 'insertAt' must be a number")
            if not math.isfinite(insert_at):
                raise JSONRPCInvalidParamsError("Argument 'insertAt' must be a finite number")
            insert_at = int(insert_at)

        position = add_checklist_item(
            self.workspace.resolve(plan_file), stage, task, complete, insert_at
        )
        return ToolResponse(
            text=(
                f"✅ Added new checklist item to stage '{stage}'\n"
                f"📁 Plan file: {plan_file}\n"
                f"📝 Task: {task}\n"
                f"✔️  Status: {'complete' if complete else 'incomplete'}\n"
                f"📍 Position: {position}"
            )
        )
