"""Tests for the compiled catalog -> kernel DTO bridges."""

import pytest

from compat_config.bridges import (
    DOC_WIDTH,
    build_doc_lines,
    definitions_from_compiled,
    namespace_from_compiled,
)
from compat_config.compiler import compile_catalog
from compat_config.schema import Category, ParameterDef
from compat_kernel.exceptions import EntryNotFoundError


@pytest.fixture
def compiled(catalog_factory, entry_factory):
    return compile_catalog(catalog_factory([
        entry_factory("A_ONE"),
        entry_factory(
            "B_TWO",
            category=Category.DATE_AND_TIME,
            parameters=(
                ParameterDef("x", "INT64", "The value."),
                ParameterDef("n", "INT64", default="1"),
            ),
            target_expression="x * n",
            deviations=("First difference.", "Second difference."),
            limitations=("Only small values.",),
        ),
    ]))


class TestDefinitions:

    def test_namespace(self, compiled):
        ns = namespace_from_compiled(compiled)
        assert (ns.name, ns.description) == ("mysql", "Test functions.")

    def test_all_in_order(self, compiled):
        defs = definitions_from_compiled(compiled)
        assert [d.name for d in defs] == ["A_ONE", "B_TWO"]
        assert defs[1].body == "x * n"
        assert defs[1].parameters[1].default == "1"
        assert defs[1].signature == "mysql.B_TWO(x INT64, n INT64 DEFAULT 1)"

    def test_selection_keeps_declaration_order(self, compiled):
        defs = definitions_from_compiled(compiled, ["b_two", "A_ONE"])
        assert [d.name for d in defs] == ["A_ONE", "B_TWO"]

    def test_unknown_selection(self, compiled):
        with pytest.raises(EntryNotFoundError):
            definitions_from_compiled(compiled, ["NOPE"])


class TestDocLines:

    def test_single_deviation_layout(self, compiled):
        assert build_doc_lines(compiled.entry("A_ONE")) == (
            "NAME : A_ONE",
            "TYPE : NUMERIC",
            "DESCRIPTION : Double the argument.",
            "RETURN_TYPE : INT64",
            "PARAMETERS : x - The value.",
            "DIFFERENCE FROM MYSQL : Only INT64 input is accepted.",
            "LIMITATIONS : None",
        )

    def test_numbered_deviations_and_defaults(self, compiled):
        lines = build_doc_lines(compiled.entry("B_TWO"))
        assert "TYPE : DATE AND TIME" in lines
        assert "PARAMETERS : x - The value.; n (default 1)" in lines
        i = lines.index("DIFFERENCE FROM MYSQL :")
        assert lines[i + 1:i + 3] == ("1. First difference.", "2. Second difference.")
        assert lines[-1] == "LIMITATIONS : Only small values."

    def test_long_text_wraps(self, catalog_factory, entry_factory):
        entry = entry_factory(description="word " * 60)
        lines = build_doc_lines(compile_catalog(catalog_factory([entry])).entry("DOUBLE_IT"))
        description = [l for l in lines if l.startswith("DESCRIPTION") or l.startswith("   ")]
        assert len(description) > 1
        assert all(len(l) <= DOC_WIDTH for l in lines)
