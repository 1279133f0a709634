"""MCP over stdin and stdout, on the SDK's stdio transport.

stdout carries protocol messages only. Logs go to stderr.
"""

import asyncio

from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from metacog.logging import get_logger

logger = get_logger(__name__)


async def run_stdio(server: Server) -> None:
    """Run one session over the process's stdin and stdout."""
    logger.info("stdio_transport_started", server=server.name)
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())
    logger.info("stdio_transport_stopped")


def serve_stdio(server: Server) -> None:
    """Serve until stdin closes."""
    asyncio.run(run_stdio(server))
