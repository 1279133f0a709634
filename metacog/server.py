"""FastAPI MCP Server.

This server exposes the tool registry over:
- Single-shot JSON-RPC at /mcp
- A streaming session at /sse, with messages posted to /messages,
  both on the MCP SDK's SSE transport
- REST discovery and invocation under /v1/tools

The server holds no per-invocation state. The registry is built and
sealed before the app is created and is only read afterwards.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exception_handlers import http_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from metacog import __version__
from metacog.config import get_settings
from metacog.errors import (
    BadRequestError,
    InternalHandlerError,
    MetacogError,
    NotFoundError,
    UnknownToolError,
    ValidationError,
)
from metacog.logging import bind_context, configure_logging, get_logger
from metacog.mcp_server import create_mcp_server
from metacog.metrics import metrics
from metacog.middleware import RequestTracingMiddleware
from metacog.protocol import (
    ProtocolError,
    ProtocolHandler,
    build_server_info,
    decode,
    error_response,
    is_client_error,
)
from metacog.schemas.mcp import (
    ErrorResponse,
    InvocationResult,
    ToolInvokeRequest,
    ToolListResponse,
)
from metacog.sessions import SessionManager, StreamTransport
from metacog.tools.builtin import INSTRUCTIONS, create_registry
from metacog.tools.executor import ToolInvoker, log_sink
from metacog.tools.registry import ToolRegistry

logger = get_logger(__name__)

MESSAGE_PATH = "/messages"


def error_status(error: MetacogError) -> int:
    """HTTP status for an invocation or routing error."""
    if isinstance(error, UnknownToolError | NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(error, ValidationError | BadRequestError):
        return status.HTTP_400_BAD_REQUEST
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_json(error: MetacogError) -> JSONResponse:
    return JSONResponse(
        status_code=error_status(error),
        content=ErrorResponse(error=error.to_detail()).model_dump(),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    settings = get_settings()

    configure_logging(
        json_format=not settings.debug,
        level="DEBUG" if settings.debug else settings.log_level,
    )

    logger.info(
        "server_starting",
        version=__version__,
        host=settings.host,
        port=settings.port,
        debug=settings.debug,
    )
    logger.info("tools_registered", tools=app.state.registry.names())
    yield
    logger.info("server_shutdown", open_sessions=len(app.state.sessions))


def create_app(registry: ToolRegistry | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        registry: Tools to serve. Defaults to the sealed built-in set.
    """
    settings = get_settings()

    if registry is None:
        registry = create_registry()
    registry.seal()

    invoker = ToolInvoker(registry, sink=log_sink if settings.log_invocations else None)
    server_info = build_server_info()
    protocol = ProtocolHandler(invoker, server_info, INSTRUCTIONS)
    mcp_server = create_mcp_server(invoker, server_info, INSTRUCTIONS)
    sessions = SessionManager()
    stream = StreamTransport(mcp_server, sessions, MESSAGE_PATH)

    app = FastAPI(
        title="Metacog MCP Server",
        description="Metacognitive tools over the Model Context Protocol",
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.registry = registry
    app.state.invoker = invoker
    app.state.protocol = protocol
    app.state.mcp_server = mcp_server
    app.state.sessions = sessions

    app.add_middleware(RequestTracingMiddleware)

    @app.exception_handler(MetacogError)
    async def metacog_error_handler(request: Request, exc: MetacogError) -> JSONResponse:
        return error_json(exc)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = [
            {"loc": list(error["loc"]), "type": error["type"], "message": error["msg"]}
            for error in exc.errors()
        ]
        logger.warning("request_rejected", errors=errors)
        return error_json(BadRequestError(errors=errors))

    @app.exception_handler(StarletteHTTPException)
    async def not_found_handler(request: Request, exc: StarletteHTTPException) -> Response:
        if exc.status_code == status.HTTP_404_NOT_FOUND:
            return error_json(NotFoundError())
        return await http_exception_handler(request, exc)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy", "version": __version__}

    @app.get("/metrics", include_in_schema=False)
    async def get_metrics() -> PlainTextResponse:
        """Return Prometheus-formatted metrics."""
        return PlainTextResponse(
            content=metrics.to_prometheus(),
            media_type="text/plain; version=0.0.4; charset=utf-8",
        )

    @app.get("/metrics/json")
    async def get_metrics_json() -> dict:
        """Return metrics as JSON."""
        return metrics.get_stats()

    # REST discovery and invocation

    @app.get("/v1/tools", response_model=ToolListResponse, response_model_by_alias=True)
    async def list_tools() -> ToolListResponse:
        """List tools in registration order."""
        return ToolListResponse(tools=registry.list_definitions())

    @app.post(
        "/v1/tools/{tool_name}",
        response_model=InvocationResult,
        response_model_by_alias=True,
        responses={
            400: {"model": ErrorResponse},
            404: {"model": ErrorResponse},
            500: {"model": ErrorResponse},
        },
    )
    async def invoke_tool(tool_name: str, request: ToolInvokeRequest) -> InvocationResult:
        """Invoke a tool by name.

        Raises:
            404: Tool not found
            400: Missing or mismatched argument
            500: Handler failure
        """
        if request.correlation_id:
            bind_context(correlation_id=request.correlation_id)
        try:
            return invoker.invoke(tool_name, request.arguments)
        except InternalHandlerError:
            raise
        except MetacogError as e:
            logger.warning("tool_call_rejected", tool_name=tool_name, kind=e.kind, error=e.message)
            raise

    # Single-shot JSON-RPC

    @app.post("/mcp")
    async def mcp_endpoint(request: Request) -> Response:
        """Answer one JSON-RPC message or batch in a single response."""
        try:
            payload = decode(await request.body())
        except ProtocolError as e:
            return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=error_response(None, e))

        response = protocol.handle_payload(payload)
        if response is None:
            return Response(status_code=status.HTTP_202_ACCEPTED)
        return JSONResponse(status_code=_rpc_status(response), content=response)

    # Streaming session

    # GET /sse opens a session. Its first event names the URL to post
    # messages to, and responses arrive on the stream as message events.
    app.add_route("/sse", stream, methods=["GET"], include_in_schema=False)
    app.add_route(MESSAGE_PATH, stream, methods=["POST"], include_in_schema=False)

    return app


def _rpc_status(response: dict | list) -> int:
    # Batches always answer 200; each entry carries its own error.
    if isinstance(response, list) or "error" not in response:
        return status.HTTP_200_OK
    if is_client_error(response):
        return status.HTTP_400_BAD_REQUEST
    return status.HTTP_500_INTERNAL_SERVER_ERROR


# Application instance for uvicorn
app = create_app()
