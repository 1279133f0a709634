"""Tool registration system.

Tools are:
- Stateless
- Pure string composition over validated arguments
- Registered once at startup, then read-only
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any

from metacog.errors import DuplicateToolError, RegistrySealedError, UnknownToolError
from metacog.schemas.mcp import ParameterSpec, ToolDefinition, ToolDescriptor

ToolHandler = Callable[[dict[str, Any]], str]


@dataclass(frozen=True)
class Tool:
    """A registered MCP tool."""

    descriptor: ToolDescriptor
    handler: ToolHandler

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def description(self) -> str:
        return self.descriptor.description

    def to_definition(self) -> ToolDefinition:
        """Convert to MCP tool definition for discovery."""
        return self.descriptor.to_definition()

    def invoke(self, arguments: dict[str, Any]) -> str:
        """Invoke the handler with already validated arguments."""
        return self.handler(arguments)


class ToolRegistry:
    """Registry for MCP tools.

    Provides:
    - Tool registration, directly or via decorator
    - Lookup by name
    - Discovery in registration order

    Once sealed, the registry rejects further registrations.
    """

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}
        self._sealed = False

    @property
    def sealed(self) -> bool:
        return self._sealed

    def register(self, descriptor: ToolDescriptor, handler: ToolHandler) -> Tool:
        """Add a tool.

        Raises:
            DuplicateToolError: A tool with this name already exists.
            RegistrySealedError: The registry has been sealed.
        """
        if self._sealed:
            raise RegistrySealedError(descriptor.name)
        if descriptor.name in self._tools:
            raise DuplicateToolError(descriptor.name)
        tool = Tool(descriptor=descriptor, handler=handler)
        self._tools[descriptor.name] = tool
        return tool

    def tool(
        self,
        name: str,
        description: str,
        parameters: dict[str, ParameterSpec] | None = None,
    ) -> Callable[[ToolHandler], ToolHandler]:
        """Decorator to register a tool.

        Usage:
            @registry.tool("echo", "Echo the input back", {
                "message": ParameterSpec(kind=ParameterKind.STRING, description="Text"),
            })
            def echo(args: dict) -> str:
                return args["message"]
        """

        def decorator(func: ToolHandler) -> ToolHandler:
            descriptor = ToolDescriptor(
                name=name,
                description=description,
                parameters=parameters or {},
            )
            self.register(descriptor, func)
            return func

        return decorator

    def seal(self) -> None:
        """Stop accepting registrations."""
        self._sealed = True

    def lookup(self, name: str) -> Tool:
        """Get a tool by name.

        Raises:
            UnknownToolError: No tool is registered under this name.
        """
        tool = self._tools.get(name)
        if tool is None:
            raise UnknownToolError(name)
        return tool

    def list(self) -> list[ToolDescriptor]:
        """All descriptors in registration order."""
        return [tool.descriptor for tool in self._tools.values()]

    def list_definitions(self) -> list[ToolDefinition]:
        """List all tool definitions for discovery."""
        return [tool.to_definition() for tool in self._tools.values()]

    def names(self) -> list[str]:
        return list(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[Tool]:
        return iter(list(self._tools.values()))
