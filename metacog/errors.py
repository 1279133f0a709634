"""Error taxonomy for tool registration and invocation.

Registration errors are raised while the registry is being built and abort
startup. Invocation errors are raised per call and converted into
structured error responses at the transport boundary.
"""

from typing import Any

from metacog.schemas.mcp import ErrorDetail


class MetacogError(Exception):
    """Base exception for all metacog errors."""

    def __init__(self, message: str, **details: Any) -> None:
        self.message = message
        self.details = details
        super().__init__(message)

    @property
    def kind(self) -> str:
        """Stable error kind reported to callers."""
        return type(self).__name__

    def to_detail(self) -> ErrorDetail:
        """Convert to the wire error shape."""
        return ErrorDetail(kind=self.kind, message=self.message, details=self.details)


# Registration


class RegistrationError(MetacogError):
    """Raised while building the registry. Fatal at startup."""


class DuplicateToolError(RegistrationError):
    """A tool with the same name is already registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Tool '{name}' is already registered", tool=name)


class RegistrySealedError(RegistrationError):
    """The registry no longer accepts registrations."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"Cannot register '{name}': registry is sealed",
            tool=name,
        )


# Invocation


class UnknownToolError(MetacogError):
    """The requested tool is not registered."""

    def __init__(self, name: str) -> None:
        self.tool_name = name
        super().__init__(f"Tool '{name}' not found", tool=name)


class ValidationError(MetacogError):
    """Base class for argument validation failures."""


class MissingParameterError(ValidationError):
    """A required parameter was not supplied."""

    def __init__(self, param: str) -> None:
        self.param = param
        super().__init__(f"Missing required parameter: {param}", param=param)


class TypeMismatchError(ValidationError):
    """A parameter was supplied with the wrong kind of value."""

    def __init__(self, param: str, expected: str, actual: str) -> None:
        self.param = param
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Parameter '{param}' expected {expected}, got {actual}",
            param=param,
            expected=expected,
            actual=actual,
        )


class InternalHandlerError(MetacogError):
    """A tool handler raised or returned something other than text."""

    def __init__(self, tool_name: str, cause: str) -> None:
        self.tool_name = tool_name
        super().__init__(
            f"Tool '{tool_name}' failed: {cause}",
            tool=tool_name,
        )


# Transport


class NotFoundError(MetacogError):
    """Routing miss at the transport level."""

    def __init__(self, message: str = "Not found", **details: Any) -> None:
        super().__init__(message, **details)


class SessionNotFoundError(NotFoundError):
    """No open streaming session with the given id."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session '{session_id}' not found", session_id=session_id)


class BadRequestError(MetacogError):
    """The request body or query string could not be parsed."""

    def __init__(self, message: str = "Malformed request", **details: Any) -> None:
        super().__init__(message, **details)
