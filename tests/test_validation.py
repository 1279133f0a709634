"""Tests for argument validation."""

import pytest

from metacog.errors import MissingParameterError, TypeMismatchError
from metacog.schemas.mcp import ParameterKind, ParameterSpec
from metacog.tools.builtin import BECOME, PRAY, RITUAL
from metacog.tools.validation import json_type_name, validate

STRING = ParameterSpec(kind=ParameterKind.STRING, description="text")
ARRAY = ParameterSpec(kind=ParameterKind.STRING_ARRAY, description="list")
OPTIONAL = ParameterSpec(kind=ParameterKind.STRING, description="maybe", required=False)


class TestRequiredParameters:
    """Missing required parameters."""

    @pytest.mark.parametrize("missing", ["name", "lens", "environment"])
    def test_missing_field_is_named(self, missing):
        """Omitting any required field names exactly that field."""
        args = {"name": "n", "lens": "l", "environment": "e"}
        del args[missing]

        with pytest.raises(MissingParameterError) as exc_info:
            validate(BECOME.parameters, args)

        assert exc_info.value.param == missing
        assert exc_info.value.details == {"param": missing}

    def test_null_counts_as_missing(self):
        """A JSON null for a required field is treated as absent."""
        with pytest.raises(MissingParameterError):
            validate({"a": STRING}, {"a": None})

    def test_none_payload_is_empty(self):
        """No arguments at all fails on the first required field."""
        with pytest.raises(MissingParameterError) as exc_info:
            validate(RITUAL.parameters, None)
        assert exc_info.value.param == "threshold"

    def test_optional_may_be_absent(self):
        """Optional parameters are dropped when not supplied."""
        assert validate(PRAY.parameters, {"request": "rain"}) == {"request": "rain"}
        assert validate(PRAY.parameters, {"request": "rain", "entity": None}) == {"request": "rain"}

    def test_no_parameters_accepts_empty(self):
        assert validate({}, {}) == {}


class TestTypeChecks:
    """Kind mismatches."""

    def test_array_where_string_declared(self):
        """A list for a string parameter is rejected."""
        with pytest.raises(TypeMismatchError) as exc_info:
            validate({"a": STRING}, {"a": ["x"]})

        error = exc_info.value
        assert error.param == "a"
        assert error.expected == "string"
        assert error.actual == "array"

    def test_string_where_array_declared(self):
        """A string for an array parameter is rejected."""
        with pytest.raises(TypeMismatchError) as exc_info:
            validate({"steps": ARRAY}, {"steps": "Observe"})

        assert exc_info.value.param == "steps"
        assert exc_info.value.expected == "array of strings"
        assert exc_info.value.actual == "string"

    def test_array_with_non_string_element(self):
        """Every array element must be a string."""
        with pytest.raises(TypeMismatchError) as exc_info:
            validate({"steps": ARRAY}, {"steps": ["a", 2]})
        assert exc_info.value.actual == "array with number at index 1"

    @pytest.mark.parametrize("value", [1, 1.5, True, {"k": "v"}])
    def test_non_text_for_string(self, value):
        with pytest.raises(TypeMismatchError):
            validate({"a": STRING}, {"a": value})

    def test_optional_still_type_checked(self):
        """Optional parameters are checked when present."""
        with pytest.raises(TypeMismatchError):
            validate({"a": OPTIONAL}, {"a": 3})

    def test_non_object_payload(self):
        """The payload itself must be an object."""
        with pytest.raises(TypeMismatchError) as exc_info:
            validate({"a": STRING}, ["a"])
        assert exc_info.value.param == "arguments"
        assert exc_info.value.expected == "object"


class TestAcceptedInput:
    """Well-formed payloads."""

    def test_extra_fields_ignored(self):
        """Unknown fields are neither an error nor passed through."""
        result = validate({"a": STRING}, {"a": "x", "extra": 42})
        assert result == {"a": "x"}

    def test_free_text_accepted(self):
        """No constraints on content, including empty strings."""
        text = "é\n" * 1000
        assert validate({"a": STRING}, {"a": text}) == {"a": text}
        assert validate({"a": STRING}, {"a": ""}) == {"a": ""}

    def test_tuple_array_returned_as_list(self):
        assert validate({"steps": ARRAY}, {"steps": ("a", "b")}) == {"steps": ["a", "b"]}

    def test_empty_array_accepted(self):
        assert validate({"steps": ARRAY}, {"steps": []}) == {"steps": []}


class TestJsonTypeName:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (None, "null"),
            (True, "boolean"),
            ("s", "string"),
            (1, "number"),
            (2.5, "number"),
            ([], "array"),
            ({}, "object"),
        ],
    )
    def test_names(self, value, expected):
        assert json_type_name(value) == expected
