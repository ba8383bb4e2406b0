"""
devplan CLI - Tool server command.
"""

import logging

import typer

from devplan.core.server import PlanServer, PlanTools

logger = logging.getLogger(__name__)


def serve(ctx: typer.Context) -> None:
    """
    Run the devplan tool server on stdin/stdout.

    Speaks newline-delimited JSON-RPC 2.0 (initialize, tools/list,
    tools/call, ping). Logs go to stderr.
    """
    obj = ctx.obj or {}
    tools = PlanTools(obj["project_dir"], obj.get("config"))
    logger.info(f"Serving plans from {tools.workspace.plans_dir}")
    try:
        PlanServer(tools).serve_forever()
    except KeyboardInterrupt:
        raise typer.Exit(130)
