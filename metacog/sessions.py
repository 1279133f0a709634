"""Streaming sessions over server-sent events.

The MCP SDK's SseServerTransport does the framing: the endpoint event,
one message event per response, and periodic pings. StreamTransport puts
a registry of open sessions in front of it. A message posted to a
session that is unknown or already closed gets a structured 404, and
session lifetimes are logged and counted.
"""

import re

from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.sse import SseServerTransport
from pydantic import ValidationError as PydanticValidationError
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.types import Message, Receive, Scope, Send

from metacog.errors import BadRequestError, SessionNotFoundError
from metacog.logging import get_logger
from metacog.metrics import record_stream_session
from metacog.protocol import INVALID_REQUEST, ProtocolError, decode, error_response

logger = get_logger(__name__)

SESSION_ID_PATTERN = re.compile(rb"session_id=([0-9a-f]+)")


class SessionManager:
    """Ids of the streaming sessions that are currently open."""

    def __init__(self) -> None:
        self._open: set[str] = set()

    def open(self, session_id: str) -> None:
        self._open.add(session_id)
        record_stream_session("opened")
        logger.info("stream_session_opened", session_id=session_id)

    def close(self, session_id: str) -> None:
        """Forget a session. Closing an unknown id does nothing."""
        if session_id not in self._open:
            return
        self._open.discard(session_id)
        record_stream_session("closed")
        logger.info("stream_session_closed", session_id=session_id)

    def require(self, session_id: str) -> None:
        """Raise SessionNotFoundError unless the session is open."""
        if session_id not in self._open:
            raise SessionNotFoundError(session_id)

    def __len__(self) -> int:
        return len(self._open)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._open


class StreamTransport:
    """ASGI app serving both halves of the SSE transport.

    GET opens a session and runs ``server`` on it until the client
    disconnects. POST delivers one JSON-RPC message to an open session;
    the response arrives on that session's stream.

    Args:
        server: SDK server run for every session.
        sessions: Registry of open sessions.
        message_path: Path advertised in the endpoint event.
    """

    def __init__(
        self,
        server: Server,
        sessions: SessionManager | None = None,
        message_path: str = "/messages",
    ) -> None:
        self.server = server
        self.sessions = sessions if sessions is not None else SessionManager()
        self.sse = SseServerTransport(message_path)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["method"] == "POST":
            await self.post_message(scope, receive, send)
        else:
            await self.connect(scope, receive, send)

    async def connect(self, scope: Scope, receive: Receive, send: Send) -> None:
        opened: list[str] = []

        async def send_tracked(message: Message) -> None:
            # The session id first appears in the endpoint event.
            if not opened and message["type"] == "http.response.body":
                match = SESSION_ID_PATTERN.search(message.get("body", b""))
                if match:
                    opened.append(match.group(1).decode())
                    self.sessions.open(opened[0])
            await send(message)

        try:
            async with self.sse.connect_sse(scope, receive, send_tracked) as (read_stream, write_stream):
                await self.server.run(
                    read_stream,
                    write_stream,
                    self.server.create_initialization_options(),
                )
        finally:
            if opened:
                self.sessions.close(opened[0])

    async def post_message(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)
        session_id = request.query_params.get("session_id")
        if not session_id:
            raise BadRequestError("Missing session_id query parameter", param="session_id")
        self.sessions.require(session_id)

        body = await request.body()
        try:
            types.JSONRPCMessage.model_validate(decode(body))
        except ProtocolError as e:
            await self._reject(e, scope, receive, send)
            return
        except PydanticValidationError as e:
            error = ProtocolError(
                INVALID_REQUEST,
                "Invalid request",
                {"kind": "InvalidRequest", "detail": e.errors(include_url=False, include_context=False)},
            )
            await self._reject(error, scope, receive, send)
            return

        delivered = False

        async def replay() -> Message:
            nonlocal delivered
            if delivered:
                return await receive()
            delivered = True
            return {"type": "http.request", "body": body, "more_body": False}

        await self.sse.handle_post_message(scope, replay, send)

    @staticmethod
    async def _reject(error: ProtocolError, scope: Scope, receive: Receive, send: Send) -> None:
        logger.warning("stream_message_rejected", code=error.code, error=error.message)
        response = JSONResponse(status_code=400, content=error_response(None, error))
        await response(scope, receive, send)
