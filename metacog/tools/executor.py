"""Handler execution and the invocation pipeline.

An invocation runs lookup, validation, execution and formatting in that
order. Every failure before the handler runs is a caller error; a failure
inside the handler is an InternalHandlerError. Neither touches the
registry.
"""

import time
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from metacog.errors import InternalHandlerError, MetacogError
from metacog.logging import get_logger
from metacog.metrics import record_tool_invocation
from metacog.schemas.mcp import InvocationResult, TextContent
from metacog.tools.registry import Tool, ToolRegistry
from metacog.tools.validation import validate

logger = get_logger(__name__)

InvocationSink = Callable[[dict[str, Any]], None]

_events_logger = get_logger("metacog.events")


def log_sink(record: dict[str, Any]) -> None:
    """Default sink: write the invocation record to the events logger."""
    _events_logger.info(
        record["event"],
        tool=record["tool"],
        invoked_at=record["timestamp"],
        params=record["params"],
    )


def execute(tool: Tool, arguments: dict[str, Any]) -> str:
    """Run a tool's handler on validated arguments.

    Raises:
        InternalHandlerError: The handler raised, or returned a non-string.
    """
    try:
        text = tool.invoke(arguments)
    except Exception as e:
        raise InternalHandlerError(tool.name, f"{type(e).__name__}: {e}") from e
    if not isinstance(text, str):
        raise InternalHandlerError(
            tool.name,
            f"handler returned {type(text).__name__}, expected str",
        )
    return text


def format_result(text: str) -> InvocationResult:
    """Wrap handler output in a single text content block."""
    return InvocationResult(content=(TextContent(text=text),))


class ToolInvoker:
    """Validates and runs tool calls against a registry.

    Args:
        registry: The sealed tool registry.
        sink: Receives one record per successful invocation. None disables it.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        sink: InvocationSink | None = log_sink,
    ) -> None:
        self.registry = registry
        self.sink = sink

    def invoke(self, tool_name: str, arguments: Any) -> InvocationResult:
        """Invoke a tool by name.

        Raises:
            UnknownToolError: Tool not registered.
            MissingParameterError: A required argument is absent.
            TypeMismatchError: An argument has the wrong kind.
            InternalHandlerError: The handler failed.
        """
        tool = self.registry.lookup(tool_name)
        validated = validate(tool.descriptor.parameters, arguments)

        logger.debug("tool_invocation_start", tool_name=tool_name)
        start_time = time.perf_counter()
        try:
            text = execute(tool, validated)
        except MetacogError as e:
            elapsed = time.perf_counter() - start_time
            logger.error(
                "tool_invocation_failed",
                tool_name=tool_name,
                error=e.message,
                duration_ms=round(elapsed * 1000, 3),
            )
            record_tool_invocation(tool_name, "error", elapsed)
            raise

        elapsed = time.perf_counter() - start_time
        logger.info(
            "tool_invocation_success",
            tool_name=tool_name,
            duration_ms=round(elapsed * 1000, 3),
        )
        record_tool_invocation(tool_name, "success", elapsed)
        self._emit(tool_name, validated)
        return format_result(text)

    def _emit(self, tool_name: str, params: dict[str, Any]) -> None:
        if self.sink is None:
            return
        record = {
            "event": "tool_invoked",
            "tool": tool_name,
            "timestamp": datetime.now(UTC).isoformat(),
            "params": {k: list(v) if isinstance(v, list) else v for k, v in params.items()},
        }
        try:
            self.sink(record)
        except Exception:
            logger.exception("invocation_sink_failed", tool_name=tool_name)
