"""The tool registry as an MCP SDK server.

stdio and the streaming session run on the SDK's low-level Server, which
owns the handshake, version negotiation and framing. Listing and calling
tools go through the same ToolInvoker as the HTTP routes.
"""

from mcp import types
from mcp.server.lowlevel import Server
from mcp.shared.exceptions import McpError

from metacog.errors import InternalHandlerError, MetacogError
from metacog.logging import get_logger
from metacog.protocol import ProtocolError, build_server_info
from metacog.schemas.mcp import ServerInfo, ToolDescriptor
from metacog.tools.executor import ToolInvoker

logger = get_logger(__name__)


def to_sdk_tool(descriptor: ToolDescriptor) -> types.Tool:
    return types.Tool(
        name=descriptor.name,
        description=descriptor.description,
        inputSchema=descriptor.input_schema(),
    )


def create_mcp_server(
    invoker: ToolInvoker,
    server_info: ServerInfo | None = None,
    instructions: str | None = None,
) -> Server:
    """Build an SDK server that serves the invoker's registry.

    Tool failures are answered as JSON-RPC errors with the same code and
    ``data.kind`` as POST /mcp.

    Args:
        invoker: Runs tool calls.
        server_info: Name and version sent on initialize. Defaults to
            the configured identity.
        instructions: Usage guidance sent on initialize.
    """
    server_info = server_info or build_server_info()
    server: Server = Server(server_info.name, version=server_info.version, instructions=instructions)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return [to_sdk_tool(descriptor) for descriptor in invoker.registry.list()]

    async def call_tool(request: types.CallToolRequest) -> types.ServerResult:
        name = request.params.name
        try:
            result = invoker.invoke(name, request.params.arguments)
        except InternalHandlerError as e:
            raise McpError(ProtocolError.from_tool_error(e).to_error_data()) from e
        except MetacogError as e:
            logger.warning("tool_call_rejected", tool_name=name, kind=e.kind, error=e.message)
            raise McpError(ProtocolError.from_tool_error(e).to_error_data()) from e

        return types.ServerResult(
            types.CallToolResult(
                content=[types.TextContent(type="text", text=block.text) for block in result.content],
                isError=result.is_error,
            )
        )

    # @server.call_tool() would fold errors into an isError result.
    server.request_handlers[types.CallToolRequest] = call_tool
    return server
