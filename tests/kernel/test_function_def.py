"""Tests for the kernel function definition DTOs."""

import pytest

from compat_kernel.domain.function_def import (
    FunctionDefinition,
    FunctionParameter,
    NamespaceDefinition,
)


def _definition(**overrides) -> FunctionDefinition:
    fields = dict(
        namespace="mysql",
        name="LOCATE",
        parameters=(
            FunctionParameter("substr", "STRING"),
            FunctionParameter("s", "STRING"),
            FunctionParameter("pos", "INT64", default="1"),
        ),
        return_type="INT64",
        body="STRPOS(s, substr)",
    )
    fields.update(overrides)
    return FunctionDefinition(**fields)


class TestFunctionParameter:

    def test_render_without_default(self):
        assert FunctionParameter("ts", "TIMESTAMP").render() == "ts TIMESTAMP"

    def test_render_with_default(self):
        assert FunctionParameter("pos", "INT64", "1").render() == "pos INT64 DEFAULT 1"


class TestFunctionDefinition:

    def test_qualified_name(self):
        assert _definition().qualified_name == "mysql.LOCATE"

    def test_signature_lists_parameters_in_order(self):
        assert _definition().signature == (
            "mysql.LOCATE(substr STRING, s STRING, pos INT64 DEFAULT 1)"
        )

    def test_zero_parameter_signature(self):
        d = _definition(name="PI", parameters=(), return_type="FLOAT64", body="ACOS(-1)")
        assert d.signature == "mysql.PI()"

    def test_empty_body_rejected(self):
        with pytest.raises(ValueError, match="requires a body"):
            _definition(body="   ")

    def test_missing_return_type_rejected(self):
        with pytest.raises(ValueError, match="return type"):
            _definition(return_type="")

    def test_default_must_be_last(self):
        with pytest.raises(ValueError, match="only the last parameter"):
            _definition(parameters=(
                FunctionParameter("a", "INT64", default="1"),
                FunctionParameter("b", "INT64"),
            ))

    def test_two_defaults_rejected(self):
        with pytest.raises(ValueError, match="only the last parameter"):
            _definition(parameters=(
                FunctionParameter("a", "INT64", default="1"),
                FunctionParameter("b", "INT64", default="2"),
            ))

    def test_frozen(self):
        d = _definition()
        with pytest.raises(AttributeError):
            d.name = "OTHER"

    def test_namespace_definition_defaults(self):
        assert NamespaceDefinition("mysql").description == ""
