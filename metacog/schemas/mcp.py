"""MCP protocol schema definitions.

These schemas align with the Model Context Protocol specification.
"""

from collections.abc import Mapping
from enum import StrEnum
from types import MappingProxyType
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


class ParameterKind(StrEnum):
    """Primitive kinds a tool parameter may declare."""

    STRING = "string"
    STRING_ARRAY = "string_array"

    def json_schema(self) -> dict[str, Any]:
        """JSON Schema fragment for this kind."""
        if self is ParameterKind.STRING_ARRAY:
            return {"type": "array", "items": {"type": "string"}}
        return {"type": "string"}


class ParameterSpec(BaseModel):
    """Declaration of a single tool parameter."""

    model_config = ConfigDict(frozen=True)

    kind: ParameterKind = Field(..., description="Declared value kind")
    description: str = Field(..., description="Human-readable description")
    required: bool = Field(default=True, description="Whether callers must supply it")


class ToolDefinition(BaseModel):
    """Definition of an MCP tool for discovery."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., description="Unique tool identifier")
    description: str = Field(..., description="Human-readable description")
    input_schema: dict[str, Any] = Field(
        default_factory=dict,
        alias="inputSchema",
        description="JSON Schema for tool input",
    )


class ToolDescriptor(BaseModel):
    """Name, description and parameter schema of a registered tool.

    Parameter order is declaration order. It does not affect validation,
    only how the schema is rendered for callers. Parameters are held in a
    read-only mapping so a descriptor handed out by a sealed registry
    cannot be edited in place.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Unique tool identifier")
    description: str = Field(..., description="Human-readable description")
    parameters: Mapping[str, ParameterSpec] = Field(default_factory=dict, validate_default=True)

    @field_validator("parameters", mode="after")
    @classmethod
    def _freeze_parameters(cls, value: Mapping[str, ParameterSpec]) -> Mapping[str, ParameterSpec]:
        return MappingProxyType(dict(value))

    @field_serializer("parameters")
    def _serialize_parameters(self, value: Mapping[str, ParameterSpec]) -> dict[str, ParameterSpec]:
        return dict(value)

    def input_schema(self) -> dict[str, Any]:
        """Render the parameters as a JSON Schema object."""
        properties = {
            name: {**spec.kind.json_schema(), "description": spec.description}
            for name, spec in self.parameters.items()
        }
        required = [name for name, spec in self.parameters.items() if spec.required]
        return {
            "type": "object",
            "properties": properties,
            "required": required,
        }

    def to_definition(self) -> ToolDefinition:
        """Convert to MCP tool definition for discovery."""
        return ToolDefinition(
            name=self.name,
            description=self.description,
            input_schema=self.input_schema(),
        )


class TextContent(BaseModel):
    """A plain text content block."""

    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"
    text: str


class InvocationResult(BaseModel):
    """Content envelope returned by a successful tool call."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    content: tuple[TextContent, ...] = Field(..., description="Ordered content blocks")
    is_error: bool = Field(default=False, alias="isError")


class ErrorDetail(BaseModel):
    """Structured error reported to callers."""

    kind: str = Field(..., description="Error kind, e.g. MissingParameterError")
    message: str = Field(..., description="Human-readable message")
    details: dict[str, Any] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    """Error body for REST endpoints."""

    error: ErrorDetail


class ToolListResponse(BaseModel):
    """Response for tool listing endpoint."""

    tools: list[ToolDefinition]


class ToolInvokeRequest(BaseModel):
    """Request payload for REST tool invocation."""

    arguments: Any = Field(
        default=None,
        description="Tool arguments",
    )
    correlation_id: str | None = Field(
        default=None,
        description="Optional correlation ID for tracing",
    )


# JSON-RPC 2.0


class JsonRpcRequest(BaseModel):
    """Inbound JSON-RPC request or notification."""

    jsonrpc: Literal["2.0"]
    method: str
    id: str | int | None = None
    params: dict[str, Any] | None = None

    @property
    def is_notification(self) -> bool:
        return "id" not in self.model_fields_set


class JsonRpcError(BaseModel):
    """JSON-RPC error object."""

    code: int
    message: str
    data: dict[str, Any] | None = None


class JsonRpcResponse(BaseModel):
    """Outbound JSON-RPC response."""

    jsonrpc: Literal["2.0"] = "2.0"
    id: str | int | None = None
    result: dict[str, Any] | None = None
    error: JsonRpcError | None = None


class ServerInfo(BaseModel):
    """Server identity surfaced during initialization."""

    name: str
    version: str
    icons: list[dict[str, str]] | None = None
