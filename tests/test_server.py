"""
Tests for the stdio JSON-RPC server.
"""

import io
import json

import pytest

from devplan import __version__
from devplan.core.config import DevplanConfig
from devplan.core.server import PlanServer, PlanTools


def _request(request_id, method, params=None):
    message = {"jsonrpc": "2.0", "id": request_id, "method": method}
    if params is not None:
        message["params"] = params
    return json.dumps(message)


@pytest.fixture
def server(project_dir):
    """Server bound to a temporary project, with no streams attached."""
    return PlanServer(PlanTools(project_dir, DevplanConfig()), io.StringIO(), io.StringIO())


def _handle(server, line):
    response = server.handle_line(line)
    return json.loads(response) if response is not None else None


class TestHandleLine:
    """Test single message handling."""

    def test_initialize(self, server):
        """Test the initialize handshake."""
        response = _handle(
            server,
            _request(
                1,
                "initialize",
                {"protocolVersion": "2025-03-26", "clientInfo": {"name": "editor"}},
            ),
        )

        result = response["result"]
        assert response["id"] == 1
        assert result["protocolVersion"] == "2025-03-26"
        assert result["capabilities"] == {"tools": {}}
        assert result["serverInfo"] == {"name": "devplan", "version": __version__}

    def test_initialize_default_protocol(self, server):
        """Test the protocol version when the client sends none."""
        result = _handle(server, _request(1, "initialize", {}))["result"]
        assert result["protocolVersion"] == "2024-11-05"

    def test_tools_list(self, server):
        """Test that tools/list returns every tool."""
        tools = _handle(server, _request(2, "tools/list"))["result"]["tools"]
        names = [tool["name"] for tool in tools]

        assert "create_plan" in names
        assert "update_plan" in names
        assert len(names) == 13

    def test_tools_call(self, server, project_dir):
        """Test a successful tool call."""
        response = _handle(
            server,
            _request(
                3, "tools/call", {"name": "create_plan", "arguments": {"taskDescription": "Ship"}}
            ),
        )

        result = response["result"]
        assert result["isError"] is False
        assert result["content"][0]["type"] == "text"
        assert "created successfully" in result["content"][0]["text"]
        assert (project_dir / ".llms" / ".dev-plan-main.yaml").exists()

    def test_tools_call_plan_error(self, server):
        """Test that plan failures are results with isError set."""
        response = _handle(
            server,
            _request(4, "tools/call", {"name": "read_plan", "arguments": {"planFile": "x.yaml"}}),
        )

        assert "error" not in response
        assert response["result"]["isError"] is True

    def test_unknown_tool(self, server):
        """Test that an unknown tool is invalid params."""
        response = _handle(server, _request(5, "tools/call", {"name": "nope"}))
        assert response["error"]["code"] == -32602

    def test_tools_call_without_name(self, server):
        """Test that tools/call needs a name."""
        response = _handle(server, _request(6, "tools/call", {}))
        assert response["error"]["code"] == -32602

    def test_infinite_insert_position(self, server, project_dir):
        """Test that an Infinity position is invalid params, not an internal error."""
        _handle(
            server,
            _request(
                11, "tools/call", {"name": "create_plan", "arguments": {"taskDescription": "Ship"}}
            ),
        )
        line = (
            '{"jsonrpc": "2.0", "id": 12, "method": "tools/call", "params": '
            '{"name": "add_checklist_item", "arguments": {"planFile": '
            '".llms/.dev-plan-main.yaml", "stage": "solution_design", '
            '"task": "A", "insertAt": Infinity}}}'
        )

        response = _handle(server, line)
        assert response["id"] == 12
        assert response["error"]["code"] == -32602

    def test_unknown_method(self, server):
        """Test that an unknown method is method not found."""
        response = _handle(server, _request(7, "resources/list"))

        assert response["id"] == 7
        assert response["error"] == {
            "code": -32601,
            "message": "Method not found: resources/list",
        }

    def test_parse_error(self, server):
        """Test that malformed JSON gets a parse error with a null id."""
        response = _handle(server, "{oops")

        assert response["id"] is None
        assert response["error"]["code"] == -32700

    def test_invalid_request_keeps_id(self, server):
        """Test that the id of an invalid request is echoed."""
        response = _handle(server, '{"jsonrpc": "1.0", "id": 9, "method": "ping"}')

        assert response["id"] == 9
        assert response["error"]["code"] == -32600

    def test_ping(self, server):
        """Test ping."""
        assert _handle(server, _request("p", "ping")) == {"jsonrpc": "2.0", "id": "p", "result": {}}

    def test_notification_gets_no_response(self, server):
        """Test that notifications are never answered."""
        line = json.dumps({"jsonrpc": "2.0", "method": "notifications/initialized"})
        assert server.handle_line(line) is None

    def test_unknown_notification_gets_no_response(self, server):
        """Test that failing notifications are still not answered."""
        line = json.dumps({"jsonrpc": "2.0", "method": "made/up"})
        assert server.handle_line(line) is None

    def test_unexpected_error(self, server, monkeypatch):
        """Test that unexpected exceptions become internal errors."""

        def boom(name, arguments=None):
            raise RuntimeError("disk on fire")

        monkeypatch.setattr(server.tools, "call", boom)
        response = _handle(server, _request(10, "tools/call", {"name": "list_plans"}))

        assert response["error"]["code"] == -32603
        assert response["error"]["message"] == "Internal error: disk on fire"


class TestServeForever:
    """Test the stream loop."""

    def test_processes_all_lines(self, project_dir):
        """Test that each request gets one response line, in order."""
        lines = "\n".join(
            [
                _request(1, "initialize", {}),
                json.dumps({"jsonrpc": "2.0", "method": "notifications/initialized"}),
                "",
                _request(2, "tools/list"),
                _request(3, "ping"),
            ]
        )
        outstream = io.StringIO()
        server = PlanServer(
            PlanTools(project_dir, DevplanConfig()), io.StringIO(lines + "\n"), outstream
        )

        server.serve_forever()

        responses = [json.loads(line) for line in outstream.getvalue().splitlines()]
        assert [r["id"] for r in responses] == [1, 2, 3]
