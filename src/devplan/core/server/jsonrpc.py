"""
JSON-RPC 2.0 protocol helpers for the devplan tool server.

Messages are newline-delimited: one JSON object per line on the input
stream, one per line on the output stream.

Reference: https://www.jsonrpc.org/specification
"""

from __future__ import annotations

import json
from typing import Any

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


class JSONRPCError(Exception):
    """Base exception for JSON-RPC protocol errors."""

    code = INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        code: int | None = None,
        data: Any = None,
        request_id: str | int | None = None,
    ):
        """
        Initialize JSON-RPC error.

        Args:
            message: Error message
            code: JSON-RPC error code (defaults to the class code)
            data: Additional error data (optional)
            request_id: Id of the offending request, when it could be read
        """
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.data = data
        self.request_id = request_id

    def to_error(self) -> dict[str, Any]:
        """Build the JSON-RPC error object."""
        error: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error


class JSONRPCParseError(JSONRPCError):
    """Raised when a message is not valid JSON."""

    code = PARSE_ERROR


class JSONRPCInvalidRequestError(JSONRPCError):
    """Raised when a message is JSON but not a JSON-RPC request."""

    code = INVALID_REQUEST


class JSONRPCMethodNotFoundError(JSONRPCError):
    """Raised for a method the server does not implement."""

    code = METHOD_NOT_FOUND


class JSONRPCInvalidParamsError(JSONRPCError):
    """Raised for an unknown tool or unusable parameters."""

    code = INVALID_PARAMS


class JSONRPCRequest:
    """
    A parsed JSON-RPC 2.0 request or notification.

    Attributes:
        method: Method name
        params: Named parameters (empty dict when absent)
        id: Request identifier, None for notifications
    """

    def __init__(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        request_id: str | int | None = None,
        has_id: bool = True,
    ):
        self.method = method
        self.params = params or {}
        self.id = request_id
        self._has_id = has_id

    @property
    def is_notification(self) -> bool:
        """Notifications carry no id and get no response."""
        return not self._has_id

    def __repr__(self) -> str:
        return f"JSONRPCRequest(id={self.id!r}, method={self.method!r})"


def parse_request(raw_line: str) -> JSONRPCRequest:
    """
    Parse one line of input into a request.

    Args:
        raw_line: A single newline-delimited message

    Returns:
        Parsed JSONRPCRequest

    Raises:
        JSONRPCParseError: If the line is not valid JSON
        JSONRPCInvalidRequestError: If the JSON is not a valid request

    Example:
        >>> parse_request('{"jsonrpc": "2.0", "id": 1, "method": "ping"}')
        JSONRPCRequest(id=1, method='ping')
    """
    try:
        message = json.loads(raw_line)
    except json.JSONDecodeError as e:
        raise JSONRPCParseError(f"Parse error: {e}") from e

    if not isinstance(message, dict):
        raise JSONRPCInvalidRequestError("Request must be a JSON object")

    if message.get("jsonrpc") != "2.0":
        raise JSONRPCInvalidRequestError(
            f"Invalid JSON-RPC version: {message.get('jsonrpc')!r}",
            request_id=message.get("id"),
        )

    method = message.get("method")
    if not isinstance(method, str) or not method:
        raise JSONRPCInvalidRequestError(
            "Request is missing a method", request_id=message.get("id")
        )

    params = message.get("params")
    if params is not None and not isinstance(params, dict):
        raise JSONRPCInvalidParamsError("Params must be an object", request_id=message.get("id"))

    return JSONRPCRequest(
        method=method,
        params=params,
        request_id=message.get("id"),
        has_id="id" in message,
    )


def build_response(request_id: str | int | None, result: Any) -> str:
    """
    Build a JSON-RPC 2.0 success response.

    Returns:
        Response as string with newline terminator
    """
    return json.dumps({"jsonrpc": "2.0", "id": request_id, "result": result}) + "\n"


def build_error(request_id: str | int | None, error: JSONRPCError) -> str:
    """
    Build a JSON-RPC 2.0 error response.

    Returns:
        Response as string with newline terminator

    Example:
        >>> build_error(1, JSONRPCMethodNotFoundError("Unknown method: foo"))
        '{"jsonrpc": "2.0", "id": 1, "error": {"code": -32601, "message": "Unknown method: foo"}}\\n'
    """
    return json.dumps({"jsonrpc": "2.0", "id": request_id, "error": error.to_error()}) + "\n"
