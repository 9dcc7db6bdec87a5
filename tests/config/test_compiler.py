"""Tests for catalog compilation, fingerprinting and pin verification."""

import dataclasses

import pytest

from compat_config.assembler import catalog_checksum, replace_entry
from compat_config.compiler import (
    CompilationFailedError,
    compile_catalog,
    render_signature,
)
from compat_config.integrity import (
    PINFILE_NAME,
    CatalogIntegrityError,
    read_pinned_fingerprint,
    verify_fingerprint_pin,
    write_pinned_fingerprint,
)
from compat_config.lifecycle import CatalogStatus
from compat_config.schema import Category, ParameterDef
from compat_kernel.exceptions import EntryNotFoundError


class TestCompileCatalog:

    def test_entries_keep_declaration_order(self, catalog_factory, entry_factory):
        compiled = compile_catalog(
            catalog_factory([entry_factory("B_TWO"), entry_factory("A_ONE")])
        )
        assert compiled.names == ("B_TWO", "A_ONE")
        assert [e.position for e in compiled.entries] == [0, 1]

    def test_lookup_is_case_insensitive(self, catalog_factory):
        compiled = compile_catalog(catalog_factory())
        assert compiled.entry("double_it").name == "DOUBLE_IT"

    def test_lookup_unknown(self, catalog_factory):
        with pytest.raises(EntryNotFoundError):
            compile_catalog(catalog_factory()).entry("NOPE")

    def test_by_category(self, catalog_factory, entry_factory):
        compiled = compile_catalog(catalog_factory([
            entry_factory("A_ONE"),
            entry_factory("B_TWO", category=Category.STRING),
            entry_factory("C_THREE"),
        ]))
        assert [e.name for e in compiled.by_category[Category.NUMERIC]] == ["A_ONE", "C_THREE"]
        assert [e.name for e in compiled.by_category[Category.STRING]] == ["B_TWO"]

    def test_carries_identity_and_warnings(self, catalog_factory, entry_factory):
        catalog = catalog_factory([entry_factory(examples=())])
        compiled = compile_catalog(catalog)
        assert compiled.catalog_id == "test-catalog"
        assert compiled.checksum == catalog.checksum
        assert compiled.status is CatalogStatus.DRAFT
        assert compiled.warnings == ("Entry 'DOUBLE_IT' has no examples",)

    def test_validation_errors_fail_compilation(self, catalog_factory, entry_factory):
        catalog = catalog_factory([entry_factory("ABS")])
        with pytest.raises(CompilationFailedError) as exc_info:
            compile_catalog(catalog)
        err = exc_info.value
        assert err.code == "COMPILATION_FAILED"
        assert err.errors[0].category == "validation"
        assert "[validation]" in str(err)

    def test_missing_checksum_fails(self, catalog_factory):
        catalog = dataclasses.replace(catalog_factory(), checksum="")
        with pytest.raises(CompilationFailedError, match="no checksum"):
            compile_catalog(catalog)


class TestSignature:

    def test_render_signature(self, entry_factory):
        entry = entry_factory(
            "LOCATE",
            parameters=(
                ParameterDef("substr", "STRING"),
                ParameterDef("s", "STRING"),
                ParameterDef("pos", "INT64", default="1"),
            ),
        )
        assert render_signature("mysql", entry) == (
            "mysql.LOCATE(substr STRING, s STRING, pos INT64 DEFAULT 1) -> INT64"
        )

    def test_no_parameters(self, entry_factory):
        entry = entry_factory("PI", parameters=(), return_type="FLOAT64")
        assert render_signature("mysql", entry) == "mysql.PI() -> FLOAT64"


class TestFingerprint:

    def test_deterministic(self, catalog_factory):
        assert (
            compile_catalog(catalog_factory()).canonical_fingerprint
            == compile_catalog(catalog_factory()).canonical_fingerprint
        )

    def test_status_change_keeps_fingerprint(self, catalog_factory):
        draft = catalog_factory()
        approved = dataclasses.replace(draft, status=CatalogStatus.APPROVED)
        approved = dataclasses.replace(approved, checksum=catalog_checksum(approved))

        assert approved.checksum != draft.checksum
        assert (
            compile_catalog(approved).canonical_fingerprint
            == compile_catalog(draft).canonical_fingerprint
        )

    def test_entry_change_changes_fingerprint(self, catalog_factory, entry_factory):
        catalog = catalog_factory()
        edited = replace_entry(catalog, entry_factory(target_expression="x + x"))
        assert (
            compile_catalog(edited).canonical_fingerprint
            != compile_catalog(catalog).canonical_fingerprint
        )


class TestFingerprintPin:

    def test_no_pin_is_noop(self, tmp_path):
        assert read_pinned_fingerprint(tmp_path) is None
        verify_fingerprint_pin("test-catalog", "a" * 64, tmp_path)

    def test_matching_pin(self, tmp_path):
        path = write_pinned_fingerprint(tmp_path, "a" * 64)
        assert path == tmp_path / PINFILE_NAME
        assert read_pinned_fingerprint(tmp_path) == "a" * 64
        verify_fingerprint_pin("test-catalog", "a" * 64, tmp_path)

    def test_mismatched_pin(self, tmp_path):
        write_pinned_fingerprint(tmp_path, "a" * 64)
        with pytest.raises(CatalogIntegrityError) as exc_info:
            verify_fingerprint_pin("test-catalog", "b" * 64, tmp_path)
        err = exc_info.value
        assert err.code == "CATALOG_INTEGRITY_MISMATCH"
        assert err.expected == "a" * 64
        assert err.actual == "b" * 64
        assert err.pin_path == tmp_path / PINFILE_NAME
        assert "changed since approval" in str(err)
        assert "approve_catalog.py" in str(err)
