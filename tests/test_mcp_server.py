"""Tests for the SDK server behind stdio and streaming sessions."""

import pytest
from mcp.shared.exceptions import McpError
from mcp.shared.memory import create_connected_server_and_client_session

from metacog.mcp_server import create_mcp_server
from metacog.protocol import INTERNAL_ERROR, INVALID_PARAMS
from metacog.schemas.mcp import ServerInfo
from metacog.tools.builtin import INSTRUCTIONS, create_registry
from metacog.tools.executor import ToolInvoker


@pytest.fixture
def server():
    invoker = ToolInvoker(create_registry(), sink=None)
    return create_mcp_server(invoker, ServerInfo(name="metacog", version="9.9.9"), INSTRUCTIONS)


@pytest.fixture
def custom_server(registry):
    registry.seal()
    return create_mcp_server(ToolInvoker(registry, sink=None), ServerInfo(name="t", version="0"))


class TestInitializationOptions:
    def test_identity_and_instructions(self, server):
        options = server.create_initialization_options()
        assert options.server_name == "metacog"
        assert options.server_version == "9.9.9"
        assert options.instructions == INSTRUCTIONS
        assert options.capabilities.tools is not None


class TestTools:
    @pytest.mark.asyncio
    async def test_list_in_registration_order(self, server):
        async with create_connected_server_and_client_session(server) as session:
            result = await session.list_tools()

        assert [t.name for t in result.tools] == ["become", "drugs", "pray", "ritual"]
        ritual = result.tools[3]
        assert ritual.inputSchema["properties"]["steps"]["type"] == "array"
        assert ritual.inputSchema["required"] == ["threshold", "steps", "result"]

    @pytest.mark.asyncio
    async def test_call(self, server):
        async with create_connected_server_and_client_session(server) as session:
            result = await session.call_tool(
                "become",
                {"name": "Ada Lovelace", "lens": "poetical science", "environment": "1843"},
            )

        assert result.isError is False
        assert [block.text for block in result.content] == [
            "You are now Ada Lovelace seeing through poetical science in 1843"
        ]

    @pytest.mark.asyncio
    async def test_missing_parameter(self, server):
        async with create_connected_server_and_client_session(server) as session:
            with pytest.raises(McpError) as exc_info:
                await session.call_tool("become", {"name": "x"})

        error = exc_info.value.error
        assert error.code == INVALID_PARAMS
        assert error.data == {"kind": "MissingParameterError", "param": "lens"}

    @pytest.mark.asyncio
    async def test_type_mismatch(self, server):
        async with create_connected_server_and_client_session(server) as session:
            with pytest.raises(McpError) as exc_info:
                await session.call_tool(
                    "ritual",
                    {"threshold": "a", "steps": "not a list", "result": "b"},
                )

        error = exc_info.value.error
        assert error.code == INVALID_PARAMS
        assert error.data["kind"] == "TypeMismatchError"
        assert error.data["param"] == "steps"

    @pytest.mark.asyncio
    async def test_unknown_tool(self, server):
        async with create_connected_server_and_client_session(server) as session:
            with pytest.raises(McpError) as exc_info:
                await session.call_tool("teleport", {})

        assert exc_info.value.error.code == INVALID_PARAMS
        assert exc_info.value.error.data == {"kind": "UnknownToolError", "tool": "teleport"}

    @pytest.mark.asyncio
    async def test_handler_failure(self, custom_server):
        async with create_connected_server_and_client_session(custom_server) as session:
            with pytest.raises(McpError) as exc_info:
                await session.call_tool("explode", {})

        error = exc_info.value.error
        assert error.code == INTERNAL_ERROR
        assert error.data["kind"] == "InternalHandlerError"
        assert error.message == "Tool 'explode' failed: RuntimeError: boom"
