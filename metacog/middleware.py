"""Request tracing for the HTTP transports."""

import time
import uuid

from starlette.datastructures import MutableHeaders
from starlette.requests import Request
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from metacog.logging import bind_context, clear_context, get_logger
from metacog.metrics import record_request

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
CORRELATION_ID_HEADER = "X-Correlation-ID"

UNMETERED_PREFIXES = ("/metrics",)


def _short_id() -> str:
    return uuid.uuid4().hex[:8]


def route_path(scope: Scope) -> str:
    """The matched route template, so per-tool paths share one series."""
    route = scope.get("route")
    return getattr(route, "path", scope["path"])


class RequestTracingMiddleware:
    """Bind request ids to the log context and time every request.

    The correlation id is taken from the caller when present. Messages
    posted to a streaming session also carry the session id in their
    log context. Both ids are echoed back as response headers.

    Written against raw ASGI so an SSE stream passes straight through;
    for a stream, the logged duration is the lifetime of the session.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope)
        request_id = _short_id()
        correlation_id = request.headers.get(CORRELATION_ID_HEADER) or _short_id()

        clear_context()
        context = {
            "request_id": request_id,
            "correlation_id": correlation_id,
            "method": request.method,
            "path": request.url.path,
        }
        if "session_id" in request.query_params:
            context["session_id"] = request.query_params["session_id"]
        bind_context(**context)

        status_code = 500

        async def send_with_ids(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
                headers = MutableHeaders(scope=message)
                headers[REQUEST_ID_HEADER] = request_id
                headers[CORRELATION_ID_HEADER] = correlation_id
            await send(message)

        start = time.perf_counter()
        try:
            await self.app(scope, receive, send_with_ids)
        except Exception as e:
            logger.error(
                "request_failed",
                error=str(e),
                error_type=type(e).__name__,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )
            raise
        else:
            elapsed = time.perf_counter() - start
            logger.info(
                "request_completed",
                status_code=status_code,
                duration_ms=round(elapsed * 1000, 2),
            )
            if not request.url.path.startswith(UNMETERED_PREFIXES):
                record_request(request.method, route_path(scope), status_code, elapsed)
        finally:
            clear_context()
