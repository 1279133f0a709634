"""Tool registry, validation and execution."""

from metacog.tools.builtin import create_registry
from metacog.tools.executor import ToolInvoker, execute, format_result
from metacog.tools.registry import Tool, ToolHandler, ToolRegistry
from metacog.tools.validation import validate

__all__ = [
    "Tool",
    "ToolHandler",
    "ToolInvoker",
    "ToolRegistry",
    "create_registry",
    "execute",
    "format_result",
    "validate",
]
