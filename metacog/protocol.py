"""JSON-RPC dispatch for the single-shot endpoint.

POST /mcp answers each message or batch in one HTTP response, with the
status code derived from the outcome, so it is dispatched here rather
than through an SDK session. Error codes and protocol versions come from
the MCP SDK, and ProtocolError is also how the SDK-backed transports in
metacog.mcp_server report failed tool calls.
"""

from __future__ import annotations

import json
from typing import Any

from mcp import types
from mcp.shared.version import SUPPORTED_PROTOCOL_VERSIONS
from pydantic import ValidationError as PydanticValidationError

from metacog import __version__
from metacog.config import get_settings
from metacog.errors import (
    InternalHandlerError,
    MetacogError,
    UnknownToolError,
    ValidationError,
)
from metacog.logging import get_logger
from metacog.schemas.mcp import (
    JsonRpcError,
    JsonRpcRequest,
    JsonRpcResponse,
    ServerInfo,
)
from metacog.tools.executor import ToolInvoker

logger = get_logger(__name__)

LATEST_PROTOCOL_VERSION = types.LATEST_PROTOCOL_VERSION

PARSE_ERROR = types.PARSE_ERROR
INVALID_REQUEST = types.INVALID_REQUEST
METHOD_NOT_FOUND = types.METHOD_NOT_FOUND
INVALID_PARAMS = types.INVALID_PARAMS
INTERNAL_ERROR = types.INTERNAL_ERROR

CLIENT_ERROR_CODES = frozenset({PARSE_ERROR, INVALID_REQUEST, METHOD_NOT_FOUND, INVALID_PARAMS})


class ProtocolError(Exception):
    """A JSON-RPC level failure to report to the caller."""

    def __init__(self, code: int, message: str, data: dict[str, Any] | None = None) -> None:
        self.code = code
        self.message = message
        self.data = data
        super().__init__(message)

    @classmethod
    def from_tool_error(cls, error: MetacogError) -> ProtocolError:
        if isinstance(error, UnknownToolError | ValidationError):
            code = INVALID_PARAMS
        else:
            code = INTERNAL_ERROR
        data = {"kind": error.kind, **error.details}
        return cls(code, error.message, data)

    def to_error(self) -> JsonRpcError:
        return JsonRpcError(code=self.code, message=self.message, data=self.data)

    def to_error_data(self) -> types.ErrorData:
        """The same error as the SDK's error object."""
        return types.ErrorData(code=self.code, message=self.message, data=self.data)


def _dump(response: JsonRpcResponse) -> dict[str, Any]:
    data = response.model_dump(mode="json", exclude_none=True)
    # id is always present, null when the request id is unknown
    data["id"] = response.id
    return data


def error_response(request_id: str | int | None, error: ProtocolError) -> dict[str, Any]:
    """Build a serialized JSON-RPC error response."""
    return _dump(JsonRpcResponse(id=request_id, error=error.to_error()))


def build_server_info() -> ServerInfo:
    """Server identity from settings."""
    settings = get_settings()
    icons = [{"src": settings.icon_url}] if settings.icon_url else None
    return ServerInfo(name=settings.server_name, version=__version__, icons=icons)


def decode(raw: str | bytes) -> Any:
    """Decode a raw message body.

    Raises:
        ProtocolError: The body is not valid JSON.
    """
    try:
        return json.loads(raw)
    except ValueError as e:
        raise ProtocolError(PARSE_ERROR, "Parse error", {"kind": "ParseError", "detail": str(e)}) from e


def is_client_error(response: dict[str, Any]) -> bool:
    """Whether a serialized response carries a caller-caused error."""
    error = response.get("error")
    return error is not None and error.get("code") in CLIENT_ERROR_CODES


class ProtocolHandler:
    """Dispatch JSON-RPC messages to the tool invoker.

    Args:
        invoker: Runs tool calls.
        server_info: Identity returned from initialize.
        instructions: Usage guidance returned from initialize.
    """

    def __init__(
        self,
        invoker: ToolInvoker,
        server_info: ServerInfo,
        instructions: str | None = None,
    ) -> None:
        self.invoker = invoker
        self.server_info = server_info
        self.instructions = instructions
        self._methods = {
            "initialize": self._initialize,
            "ping": self._ping,
            "tools/list": self._list_tools,
            "tools/call": self._call_tool,
        }

    def handle_payload(self, payload: Any) -> dict[str, Any] | list[dict[str, Any]] | None:
        """Handle one decoded message or a batch of them.

        Returns:
            The response, a list of responses for a batch, or None when
            nothing needs to be sent back.
        """
        if isinstance(payload, list):
            if not payload:
                return error_response(
                    None, ProtocolError(INVALID_REQUEST, "Empty batch", {"kind": "InvalidRequest"})
                )
            responses = [r for r in (self.handle(item) for item in payload) if r is not None]
            return responses or None
        return self.handle(payload)

    def handle(self, message: Any) -> dict[str, Any] | None:
        """Handle a single decoded JSON-RPC message."""
        request_id = message.get("id") if isinstance(message, dict) else None
        try:
            request = JsonRpcRequest.model_validate(message)
        except PydanticValidationError as e:
            return error_response(
                request_id if isinstance(request_id, str | int) else None,
                ProtocolError(
                    INVALID_REQUEST,
                    "Invalid request",
                    {"kind": "InvalidRequest", "detail": e.errors(include_url=False, include_context=False)},
                ),
            )

        if request.is_notification:
            logger.debug("notification_received", method=request.method)
            return None

        try:
            result = self.dispatch(request.method, request.params or {})
        except ProtocolError as e:
            return error_response(request.id, e)
        return _dump(JsonRpcResponse(id=request.id, result=result))

    def dispatch(self, method: str, params: dict[str, Any]) -> dict[str, Any]:
        """Run a method and return its result.

        Raises:
            ProtocolError: Unknown method, bad params or a failed tool call.
        """
        handler = self._methods.get(method)
        if handler is None:
            raise ProtocolError(
                METHOD_NOT_FOUND,
                f"Method '{method}' not found",
                {"kind": "MethodNotFound", "method": method},
            )
        return handler(params)

    def _initialize(self, params: dict[str, Any]) -> dict[str, Any]:
        requested = params.get("protocolVersion")
        version = requested if requested in SUPPORTED_PROTOCOL_VERSIONS else LATEST_PROTOCOL_VERSION
        client = params.get("clientInfo") or {}
        logger.info("session_initialized", protocol_version=version, client=client.get("name"))
        result: dict[str, Any] = {
            "protocolVersion": version,
            "capabilities": {"tools": {"listChanged": False}},
            "serverInfo": self.server_info.model_dump(exclude_none=True),
        }
        if self.instructions:
            result["instructions"] = self.instructions
        return result

    def _ping(self, params: dict[str, Any]) -> dict[str, Any]:
        return {}

    def _list_tools(self, params: dict[str, Any]) -> dict[str, Any]:
        definitions = self.invoker.registry.list_definitions()
        return {"tools": [d.model_dump(by_alias=True) for d in definitions]}

    def _call_tool(self, params: dict[str, Any]) -> dict[str, Any]:
        name = params.get("name")
        if not isinstance(name, str):
            raise ProtocolError(
                INVALID_PARAMS,
                "tools/call requires a string 'name'",
                {"kind": "InvalidParams"},
            )
        try:
            result = self.invoker.invoke(name, params.get("arguments"))
        except InternalHandlerError as e:
            raise ProtocolError.from_tool_error(e) from e
        except MetacogError as e:
            logger.warning("tool_call_rejected", tool_name=name, kind=e.kind, error=e.message)
            raise ProtocolError.from_tool_error(e) from e
        return result.model_dump(mode="json", by_alias=True)
