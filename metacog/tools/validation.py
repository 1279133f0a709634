"""Structural validation of tool arguments against a parameter schema."""

from collections.abc import Mapping
from typing import Any

from metacog.errors import MissingParameterError, TypeMismatchError
from metacog.schemas.mcp import ParameterKind, ParameterSpec


def json_type_name(value: Any) -> str:
    """Name a Python value by its JSON type."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, str):
        return "string"
    if isinstance(value, int | float):
        return "number"
    if isinstance(value, list | tuple):
        return "array"
    if isinstance(value, Mapping):
        return "object"
    return type(value).__name__


def _expected_name(kind: ParameterKind) -> str:
    if kind is ParameterKind.STRING_ARRAY:
        return "array of strings"
    return "string"


def _check_value(name: str, spec: ParameterSpec, value: Any) -> Any:
    if spec.kind is ParameterKind.STRING:
        if not isinstance(value, str):
            raise TypeMismatchError(name, _expected_name(spec.kind), json_type_name(value))
        return value

    if not isinstance(value, list | tuple):
        raise TypeMismatchError(name, _expected_name(spec.kind), json_type_name(value))
    for index, item in enumerate(value):
        if not isinstance(item, str):
            raise TypeMismatchError(
                name,
                _expected_name(spec.kind),
                f"array with {json_type_name(item)} at index {index}",
            )
    return list(value)


def validate(
    parameters: Mapping[str, ParameterSpec],
    raw_arguments: Any,
) -> dict[str, Any]:
    """Check raw arguments against declared parameters.

    Parameters are checked in declaration order and the first failure is
    raised. Absent and null values count as missing. Undeclared fields are
    dropped.

    Returns:
        Validated arguments, containing only declared parameters that were
        supplied.

    Raises:
        MissingParameterError: A required parameter is absent.
        TypeMismatchError: A parameter has the wrong kind, or the payload
            is not an object.
    """
    if raw_arguments is None:
        raw_arguments = {}
    if not isinstance(raw_arguments, Mapping):
        raise TypeMismatchError("arguments", "object", json_type_name(raw_arguments))

    validated: dict[str, Any] = {}
    for name, spec in parameters.items():
        value = raw_arguments.get(name)
        if value is None:
            if spec.required:
                raise MissingParameterError(name)
            continue
        validated[name] = _check_value(name, spec, value)
    return validated
