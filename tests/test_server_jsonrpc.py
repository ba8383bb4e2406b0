"""
Tests for JSON-RPC 2.0 protocol helpers.
"""

import json

import pytest

from devplan.core.server.jsonrpc import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    PARSE_ERROR,
    JSONRPCError,
    JSONRPCInvalidParamsError,
    JSONRPCInvalidRequestError,
    JSONRPCMethodNotFoundError,
    JSONRPCParseError,
    build_error,
    build_response,
    parse_request,
)


class TestParseRequest:
    """Tests for parse_request function."""

    def test_request_with_params(self):
        """Test parsing a request with named params."""
        request = parse_request(
            '{"jsonrpc": "2.0", "id": 7, "method": "tools/call", "params": {"name": "x"}}'
        )

        assert request.method == "tools/call"
        assert request.id == 7
        assert request.params == {"name": "x"}
        assert request.is_notification is False

    def test_request_without_params(self):
        """Test that missing params become an empty dict."""
        request = parse_request('{"jsonrpc": "2.0", "id": "a", "method": "ping"}')
        assert request.params == {}
        assert request.id == "a"

    def test_null_id_is_not_notification(self):
        """Test that an explicit null id still expects a response."""
        request = parse_request('{"jsonrpc": "2.0", "id": null, "method": "ping"}')
        assert request.id is None
        assert request.is_notification is False

    def test_notification(self):
        """Test parsing a notification (no id)."""
        request = parse_request('{"jsonrpc": "2.0", "method": "notifications/initialized"}')
        assert request.is_notification is True

    def test_invalid_json(self):
        """Test that malformed JSON is a parse error."""
        with pytest.raises(JSONRPCParseError) as exc_info:
            parse_request("{not json")
        assert exc_info.value.code == PARSE_ERROR
        assert exc_info.value.request_id is None

    def test_non_object(self):
        """Test that a JSON array is an invalid request."""
        with pytest.raises(JSONRPCInvalidRequestError) as exc_info:
            parse_request("[1, 2, 3]")
        assert exc_info.value.code == INVALID_REQUEST

    def test_wrong_version(self):
        """Test that the version must be 2.0 and the id is kept."""
        with pytest.raises(JSONRPCInvalidRequestError) as exc_info:
            parse_request('{"jsonrpc": "1.0", "id": 3, "method": "ping"}')
        assert exc_info.value.request_id == 3

    def test_missing_method(self):
        """Test that a request without a method is invalid."""
        with pytest.raises(JSONRPCInvalidRequestError) as exc_info:
            parse_request('{"jsonrpc": "2.0", "id": 4}')
        assert "missing a method" in exc_info.value.message
        assert exc_info.value.request_id == 4

    def test_positional_params_rejected(self):
        """Test that list params are invalid params."""
        with pytest.raises(JSONRPCInvalidParamsError) as exc_info:
            parse_request('{"jsonrpc": "2.0", "id": 5, "method": "ping", "params": [1]}')
        assert exc_info.value.code == INVALID_PARAMS
        assert exc_info.value.request_id == 5


class TestBuildMessages:
    """Tests for response and error builders."""

    def test_build_response(self):
        """Test building a success response."""
        response = build_response(1, {"tools": []})

        assert response.endswith("\n")
        assert json.loads(response) == {"jsonrpc": "2.0", "id": 1, "result": {"tools": []}}

    def test_build_error(self):
        """Test building an error response."""
        response = build_error("req-1", JSONRPCMethodNotFoundError("Method not found: foo"))

        parsed = json.loads(response)
        assert parsed["id"] == "req-1"
        assert parsed["error"] == {"code": -32601, "message": "Method not found: foo"}
        assert "result" not in parsed

    def test_build_error_with_data(self):
        """Test that error data is included when present."""
        error = JSONRPCError("Boom", data={"detail": "x"})
        parsed = json.loads(build_error(None, error))

        assert parsed["id"] is None
        assert parsed["error"] == {"code": INTERNAL_ERROR, "message": "Boom", "data": {"detail": "x"}}

    def test_explicit_code_overrides_class_code(self):
        """Test the code argument."""
        assert JSONRPCInvalidParamsError("x", code=-32000).code == -32000
