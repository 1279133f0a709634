"""MCP Client for interacting with the metacog server.

This client provides a clean interface for:
- Tool discovery
- Tool invocation over REST
- Tool invocation over single-shot JSON-RPC

Usage:
    from metacog.client import MCPClient

    client = MCPClient("http://localhost:3333")

    # List tools
    tools = client.list_tools()

    # Invoke a tool
    text = client.invoke_tool("become", {
        "name": "Sherlock Holmes",
        "lens": "deductive reasoning",
        "environment": "221B Baker Street",
    }).text
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Any

import httpx


class MCPClientError(Exception):
    """Base exception for MCP client errors."""

    def __init__(self, message: str, kind: str | None = None, details: dict[str, Any] | None = None):
        self.kind = kind
        self.details = details or {}
        super().__init__(message)


class ToolNotFoundError(MCPClientError):
    """Raised when a tool is not found."""

    pass


class InvalidArgumentsError(MCPClientError):
    """Raised when the server rejects the arguments."""

    pass


class ToolExecutionError(MCPClientError):
    """Raised when the tool handler fails on the server."""

    pass


@dataclass
class ToolDefinition:
    """Definition of an MCP tool."""

    name: str
    description: str
    input_schema: dict[str, Any] | None = None


@dataclass
class ToolResult:
    """Result of a tool invocation."""

    content: list[dict[str, Any]] = field(default_factory=list)

    @property
    def text(self) -> str:
        """Concatenated text of all text blocks."""
        return "".join(block.get("text", "") for block in self.content if block.get("type") == "text")


_ERROR_TYPES: dict[str, type[MCPClientError]] = {
    "UnknownToolError": ToolNotFoundError,
    "MissingParameterError": InvalidArgumentsError,
    "TypeMismatchError": InvalidArgumentsError,
    "BadRequestError": InvalidArgumentsError,
    "InternalHandlerError": ToolExecutionError,
}


def _raise_for_error(error: dict[str, Any]) -> None:
    kind = error.get("kind")
    exc_type = _ERROR_TYPES.get(kind or "", MCPClientError)
    raise exc_type(error.get("message", "Unknown error"), kind=kind, details=error.get("details"))


class MCPClient:
    """HTTP client for the metacog server.

    Synchronous by default for simplicity.

    Args:
        base_url: The base URL of the MCP server (e.g., "http://localhost:3333")
        timeout: Request timeout in seconds (default: 30)
        http_client: Pre-built httpx client to use instead of creating one
    """

    def __init__(
        self,
        base_url: str = "http://localhost:3333",
        timeout: float = 30.0,
        http_client: httpx.Client | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(base_url=self.base_url, timeout=timeout)
        self._ids = itertools.count(1)

    def __enter__(self) -> MCPClient:
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            self._client.close()

    def health(self) -> dict[str, str]:
        """Check server health.

        Returns:
            Health status dict with "status" and "version" keys.
        """
        response = self._client.get("/health")
        response.raise_for_status()
        return response.json()

    def list_tools(self) -> list[ToolDefinition]:
        """List all available tools, in registration order."""
        response = self._client.get("/v1/tools")
        response.raise_for_status()
        data = response.json()
        return [
            ToolDefinition(
                name=t["name"],
                description=t["description"],
                input_schema=t.get("inputSchema"),
            )
            for t in data["tools"]
        ]

    def invoke_tool(
        self,
        tool_name: str,
        arguments: dict[str, Any],
        correlation_id: str | None = None,
    ) -> ToolResult:
        """Invoke a tool through the REST endpoint.

        Raises:
            ToolNotFoundError: If the tool doesn't exist.
            InvalidArgumentsError: If arguments are missing or mistyped, or
                the server could not parse the request.
            ToolExecutionError: If the handler failed.
        """
        payload: dict[str, Any] = {"arguments": arguments}
        if correlation_id:
            payload["correlation_id"] = correlation_id

        response = self._client.post(f"/v1/tools/{tool_name}", json=payload)
        if response.status_code >= 400:
            body = _json_or_none(response)
            if body and "error" in body:
                _raise_for_error(body["error"])
            response.raise_for_status()

        return ToolResult(content=response.json()["content"])

    def rpc(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Send one JSON-RPC request to the single-shot endpoint.

        Raises:
            MCPClientError: If the server answered with an error object.
        """
        message: dict[str, Any] = {"jsonrpc": "2.0", "id": next(self._ids), "method": method}
        if params is not None:
            message["params"] = params

        response = self._client.post("/mcp", json=message)
        body = _json_or_none(response)
        if body is None:
            response.raise_for_status()
            raise MCPClientError(f"Empty response to '{method}'")
        if "error" in body:
            error = body["error"]
            data = error.get("data") or {}
            details = {k: v for k, v in data.items() if k != "kind"}
            _raise_for_error({"kind": data.get("kind"), "message": error.get("message"), "details": details})
        return body["result"]

    def initialize(self, client_name: str = "metacog-client") -> dict[str, Any]:
        """Run the initialize handshake."""
        return self.rpc(
            "initialize",
            {
                "protocolVersion": "2025-06-18",
                "capabilities": {},
                "clientInfo": {"name": client_name, "version": "0"},
            },
        )

    def call_tool(self, tool_name: str, arguments: dict[str, Any]) -> ToolResult:
        """Invoke a tool through JSON-RPC tools/call."""
        result = self.rpc("tools/call", {"name": tool_name, "arguments": arguments})
        return ToolResult(content=result["content"])


def _json_or_none(response: httpx.Response) -> dict[str, Any] | None:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None
