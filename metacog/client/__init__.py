"""Metacog Client Library.

Provides an HTTP client for interacting with the MCP server.
"""

from metacog.client.mcp_client import MCPClient

__all__ = ["MCPClient"]
