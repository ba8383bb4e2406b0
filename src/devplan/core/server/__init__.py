"""
devplan tool server.

Exposes the plan operations as tools over newline-delimited JSON-RPC 2.0
on stdio.
"""

from devplan.core.server.server import PlanServer
from devplan.core.server.tools import TOOL_DEFINITIONS, PlanTools, ToolResponse

__all__ = [
    "TOOL_DEFINITIONS",
    "PlanServer",
    "PlanTools",
    "ToolResponse",
]
