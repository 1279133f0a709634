"""MCP protocol schemas."""

from metacog.schemas.mcp import (
    ErrorDetail,
    ErrorResponse,
    InvocationResult,
    JsonRpcError,
    JsonRpcRequest,
    JsonRpcResponse,
    ParameterKind,
    ParameterSpec,
    ServerInfo,
    TextContent,
    ToolDefinition,
    ToolDescriptor,
    ToolInvokeRequest,
    ToolListResponse,
)

__all__ = [
    "ErrorDetail",
    "ErrorResponse",
    "InvocationResult",
    "JsonRpcError",
    "JsonRpcRequest",
    "JsonRpcResponse",
    "ParameterKind",
    "ParameterSpec",
    "ServerInfo",
    "TextContent",
    "ToolDefinition",
    "ToolDescriptor",
    "ToolInvokeRequest",
    "ToolListResponse",
]
