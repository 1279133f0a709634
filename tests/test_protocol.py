"""Tests for JSON-RPC dispatch."""

import pytest

from metacog import __version__
from metacog.protocol import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    LATEST_PROTOCOL_VERSION,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    ProtocolError,
    ProtocolHandler,
    build_server_info,
    decode,
    is_client_error,
)
from metacog.schemas.mcp import ServerInfo
from metacog.tools.builtin import INSTRUCTIONS, create_registry
from metacog.tools.executor import ToolInvoker


@pytest.fixture
def handler():
    invoker = ToolInvoker(create_registry(), sink=None)
    return ProtocolHandler(invoker, ServerInfo(name="metacog", version="9.9.9"), INSTRUCTIONS)


@pytest.fixture
def custom_handler(registry):
    registry.seal()
    return ProtocolHandler(ToolInvoker(registry, sink=None), ServerInfo(name="t", version="0"))


def rpc(method, params=None, id=1):
    message = {"jsonrpc": "2.0", "id": id, "method": method}
    if params is not None:
        message["params"] = params
    return message


class TestInitialize:
    def test_handshake(self, handler):
        response = handler.handle(
            rpc("initialize", {"protocolVersion": "2025-03-26", "clientInfo": {"name": "test"}})
        )
        result = response["result"]
        assert response["id"] == 1
        assert result["protocolVersion"] == "2025-03-26"
        assert result["serverInfo"] == {"name": "metacog", "version": "9.9.9"}
        assert result["capabilities"] == {"tools": {"listChanged": False}}
        assert result["instructions"] == INSTRUCTIONS

    def test_unsupported_version_gets_latest(self, handler):
        response = handler.handle(rpc("initialize", {"protocolVersion": "1999-01-01"}))
        assert response["result"]["protocolVersion"] == LATEST_PROTOCOL_VERSION

    def test_no_instructions_omitted(self, custom_handler):
        result = custom_handler.handle(rpc("initialize", {}))["result"]
        assert "instructions" not in result

    def test_server_info_from_settings(self, monkeypatch):
        import metacog.config

        monkeypatch.setenv("METACOG_SERVER_NAME", "mirror")
        monkeypatch.setenv("METACOG_ICON_URL", "https://example.com/icon.png")
        metacog.config.get_settings.cache_clear()

        info = build_server_info()
        assert info.name == "mirror"
        assert info.version == __version__
        assert info.icons == [{"src": "https://example.com/icon.png"}]


class TestToolsList:
    def test_lists_in_registration_order(self, handler):
        tools = handler.handle(rpc("tools/list"))["result"]["tools"]
        assert [t["name"] for t in tools] == ["become", "drugs", "pray", "ritual"]
        assert "inputSchema" in tools[0]
        assert tools[0]["inputSchema"]["required"] == ["name", "lens", "environment"]

    def test_order_unchanged_after_calls(self, handler):
        first = handler.handle(rpc("tools/list"))
        handler.handle(rpc("tools/call", {"name": "pray", "arguments": {"request": "x"}}))
        handler.handle(rpc("tools/call", {"name": "nope", "arguments": {}}))
        assert handler.handle(rpc("tools/list")) == first


class TestToolsCall:
    def test_success(self, handler):
        response = handler.handle(
            rpc(
                "tools/call",
                {
                    "name": "become",
                    "arguments": {
                        "name": "Sherlock Holmes",
                        "lens": "deductive reasoning",
                        "environment": "221B Baker Street",
                    },
                },
                id="abc",
            )
        )
        assert response == {
            "jsonrpc": "2.0",
            "id": "abc",
            "result": {
                "content": [
                    {
                        "type": "text",
                        "text": "You are now Sherlock Holmes seeing through deductive reasoning in 221B Baker Street",
                    }
                ],
                "isError": False,
            },
        }

    def test_unknown_tool(self, handler):
        response = handler.handle(rpc("tools/call", {"name": "teleport", "arguments": {"a": "b"}}))
        error = response["error"]
        assert error["code"] == INVALID_PARAMS
        assert error["data"]["kind"] == "UnknownToolError"
        assert "result" not in response

    def test_missing_parameter(self, handler):
        response = handler.handle(
            rpc("tools/call", {"name": "ritual", "arguments": {"threshold": "t", "result": "r"}})
        )
        error = response["error"]
        assert error["code"] == INVALID_PARAMS
        assert error["data"] == {"kind": "MissingParameterError", "param": "steps"}

    def test_type_mismatch(self, handler):
        response = handler.handle(
            rpc(
                "tools/call",
                {"name": "ritual", "arguments": {"threshold": ["t"], "steps": ["a"], "result": "r"}},
            )
        )
        data = response["error"]["data"]
        assert data["kind"] == "TypeMismatchError"
        assert data["param"] == "threshold"
        assert data["expected"] == "string"
        assert data["actual"] == "array"

    def test_handler_failure(self, custom_handler):
        response = custom_handler.handle(rpc("tools/call", {"name": "explode", "arguments": {}}))
        assert response["error"]["code"] == INTERNAL_ERROR
        assert response["error"]["data"]["kind"] == "InternalHandlerError"

        # Other tools keep working
        ok = custom_handler.handle(rpc("tools/call", {"name": "greet", "arguments": {"name": "x"}}))
        assert ok["result"]["content"][0]["text"] == "Hello, x!"

    def test_missing_name(self, handler):
        response = handler.handle(rpc("tools/call", {"arguments": {}}))
        assert response["error"]["code"] == INVALID_PARAMS


class TestEnvelope:
    def test_ping(self, handler):
        assert handler.handle(rpc("ping")) == {"jsonrpc": "2.0", "id": 1, "result": {}}

    def test_unknown_method(self, handler):
        response = handler.handle(rpc("resources/list"))
        assert response["error"]["code"] == METHOD_NOT_FOUND
        assert response["id"] == 1

    def test_notification_has_no_response(self, handler):
        assert handler.handle({"jsonrpc": "2.0", "method": "notifications/initialized"}) is None

    @pytest.mark.parametrize(
        "message",
        [
            {"jsonrpc": "1.0", "id": 1, "method": "ping"},
            {"jsonrpc": "2.0", "id": 1},
            {"jsonrpc": "2.0", "id": 1, "method": "ping", "params": [1]},
            "ping",
            42,
        ],
    )
    def test_invalid_request(self, handler, message):
        response = handler.handle(message)
        assert response["error"]["code"] == INVALID_REQUEST
        assert "id" in response

    def test_batch(self, handler):
        responses = handler.handle_payload(
            [
                rpc("ping", id=1),
                {"jsonrpc": "2.0", "method": "notifications/initialized"},
                rpc("tools/call", {"name": "nope"}, id=2),
            ]
        )
        assert [r["id"] for r in responses] == [1, 2]
        assert "result" in responses[0]
        assert "error" in responses[1]

    def test_batch_of_notifications(self, handler):
        assert handler.handle_payload([{"jsonrpc": "2.0", "method": "notifications/initialized"}]) is None

    def test_empty_batch(self, handler):
        response = handler.handle_payload([])
        assert response["error"]["code"] == INVALID_REQUEST
        assert response["id"] is None


class TestDecode:
    def test_valid(self):
        assert decode(b'{"a": 1}') == {"a": 1}

    def test_invalid(self):
        with pytest.raises(ProtocolError) as exc_info:
            decode("{not json")
        assert exc_info.value.code == PARSE_ERROR

    def test_is_client_error(self):
        assert is_client_error({"error": {"code": INVALID_PARAMS}})
        assert not is_client_error({"error": {"code": INTERNAL_ERROR}})
        assert not is_client_error({"result": {}})
