"""
Stdio JSON-RPC server for the devplan tools.

Reads one request per line from the input stream and writes one response
per line to the output stream. Logging goes to stderr only; stdout carries
protocol messages exclusively.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, TextIO

from devplan import __version__
from devplan.core.server.jsonrpc import (
    INTERNAL_ERROR,
    JSONRPCError,
    JSONRPCInvalidParamsError,
    JSONRPCMethodNotFoundError,
    JSONRPCRequest,
    build_error,
    build_response,
    parse_request,
)
from devplan.core.server.tools import TOOL_DEFINITIONS, PlanTools

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "devplan"


class PlanServer:
    """
    Newline-delimited JSON-RPC 2.0 server over a pair of text streams.

    Supported methods: ``initialize``, ``tools/list``, ``tools/call`` and
    ``ping``. Notifications are processed but never answered.

    Example:
        >>> server = PlanServer(PlanTools(Path(".")), io.StringIO(requests), out)
        >>> server.serve_forever()
    """

    def __init__(
        self,
        tools: PlanTools,
        instream: TextIO | None = None,
        outstream: TextIO | None = None,
    ) -> None:
        self.tools = tools
        self.instream = instream or sys.stdin
        self.outstream = outstream or sys.stdout
        self._methods = {
            "initialize": self._initialize,
            "tools/list": self._list_tools,
            "tools/call": self._call_tool,
            "ping": self._ping,
        }

    def serve_forever(self) -> None:
        """Process requests until the input stream is exhausted."""
        logger.info("devplan tool server started")
        for line in self.instream:
            if not line.strip():
                continue
            response = self.handle_line(line)
            if response is not None:
                self.outstream.write(response)
                self.outstream.flush()
        logger.info("devplan tool server input closed, stopping")

    def handle_line(self, line: str) -> str | None:
        """
        Handle one raw message.

        Returns:
            The serialized response, or None for notifications
        """
        try:
            request = parse_request(line)
        except JSONRPCError as e:
            logger.warning(f"Rejected message: {e.message}")
            return build_error(e.request_id, e)

        try:
            result = self.dispatch(request)
        except JSONRPCError as e:
            logger.debug(f"{request.method} failed with {e.code}: {e.message}")
            if request.is_notification:
                return None
            return build_error(request.id, e)
        except Exception as e:
            logger.exception(f"Unexpected error handling {request.method}")
            if request.is_notification:
                return None
            return build_error(
                request.id, JSONRPCError(f"Internal error: {e}", code=INTERNAL_ERROR)
            )

        if request.is_notification:
            return None
        return build_response(request.id, result)

    def dispatch(self, request: JSONRPCRequest) -> Any:
        """
        Route a request to its method handler.

        Raises:
            JSONRPCMethodNotFoundError: For unknown methods
        """
        handler = self._methods.get(request.method)
        if handler is None:
            # notifications/initialized and friends need no handling
            if request.is_notification and request.method.startswith("notifications/"):
                return None
            raise JSONRPCMethodNotFoundError(f"Method not found: {request.method}")
        return handler(request.params)

    def _initialize(self, params: dict[str, Any]) -> dict[str, Any]:
        client = params.get("clientInfo") or {}
        logger.info(f"Initialize from {client.get('name', 'unknown client')}")
        return {
            "protocolVersion": params.get("protocolVersion") or PROTOCOL_VERSION,
            "capabilities": {"tools": {}},
            "serverInfo": {"name": SERVER_NAME, "version": __version__},
        }

    def _list_tools(self, params: dict[str, Any]) -> dict[str, Any]:
        return {"tools": TOOL_DEFINITIONS}

    def _call_tool(self, params: dict[str, Any]) -> dict[str, Any]:
        name = params.get("name")
        if not isinstance(name, str):
            raise JSONRPCInvalidParamsError("tools/call requires a tool name")
        logger.debug(f"Calling tool {name}")
        return self.tools.call(name, params.get("arguments")).to_result()

    def _ping(self, params: dict[str, Any]) -> dict[str, Any]:
        return {}
