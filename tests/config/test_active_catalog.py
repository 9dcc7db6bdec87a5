"""Tests for get_active_catalog(): set selection, validation, tracing and pins."""

import pytest

from compat_config import CatalogIntegrityError, get_active_catalog, load_catalog_set
from compat_config.compiler import CompiledCatalog
from compat_config.integrity import write_pinned_fingerprint
from compat_config.lifecycle import CatalogStatus


class TestSetSelection:

    def test_single_set(self, write_catalog_set):
        set_dir = write_catalog_set()
        catalog = get_active_catalog(config_dir=set_dir.parent)
        assert isinstance(catalog, CompiledCatalog)
        assert catalog.names == ("DOUBLE_IT", "QUADRUPLE_IT")

    def test_by_catalog_id(self, write_catalog_set):
        write_catalog_set(catalog_id="first")
        set_dir = write_catalog_set(catalog_id="second")
        catalog = get_active_catalog(catalog_id="first", config_dir=set_dir.parent)
        assert catalog.catalog_id == "first"

    def test_published_preferred_over_newer_draft(self, write_catalog_set):
        write_catalog_set(version=1, status="published")
        set_dir = write_catalog_set(version=2, status="draft")
        catalog = get_active_catalog(config_dir=set_dir.parent)
        assert catalog.catalog_version == 1
        assert catalog.status is CatalogStatus.PUBLISHED

    def test_highest_published_version(self, write_catalog_set):
        write_catalog_set(version=1, status="published")
        set_dir = write_catalog_set(version=2, status="published")
        assert get_active_catalog(config_dir=set_dir.parent).catalog_version == 2

    def test_highest_version_without_published(self, write_catalog_set):
        write_catalog_set(version=1)
        set_dir = write_catalog_set(version=3, status="reviewed")
        assert get_active_catalog(config_dir=set_dir.parent).catalog_version == 3

    def test_directories_without_root_are_ignored(self, write_catalog_set):
        set_dir = write_catalog_set()
        (set_dir.parent / "scratch").mkdir()
        assert get_active_catalog(config_dir=set_dir.parent).catalog_id == "test-catalog"

    def test_missing_sets_directory(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="not found"):
            get_active_catalog(config_dir=tmp_path / "missing")

    def test_unknown_catalog_id(self, write_catalog_set):
        set_dir = write_catalog_set()
        with pytest.raises(FileNotFoundError, match="catalog_id='other'"):
            get_active_catalog(catalog_id="other", config_dir=set_dir.parent)

    def test_load_catalog_set_returns_source_and_directory(self, write_catalog_set):
        set_dir = write_catalog_set()
        catalog, fragment_dir = load_catalog_set(config_dir=set_dir.parent)
        assert fragment_dir == set_dir
        assert catalog.checksum


class TestValidationGate:

    def test_invalid_set_raises_value_error(self, write_catalog_set):
        set_dir = write_catalog_set(builtins=["DOUBLE_IT"])
        with pytest.raises(ValueError, match="collides with a host builtin"):
            get_active_catalog(config_dir=set_dir.parent)

    def test_call_order_enforced(self, write_catalog_set):
        entries = [
            {
                "name": "QUADRUPLE_IT",
                "returns": "INT64",
                "error_policy": "raise",
                "parameters": [{"name": "x", "type": "INT64"}],
                "expression": "mysql.DOUBLE_IT(mysql.DOUBLE_IT(x))",
            },
            {
                "name": "DOUBLE_IT",
                "returns": "INT64",
                "error_policy": "raise",
                "parameters": [{"name": "x", "type": "INT64"}],
                "expression": "x * 2",
            },
        ]
        set_dir = write_catalog_set(entries=entries)
        with pytest.raises(ValueError, match="declared after it"):
            get_active_catalog(config_dir=set_dir.parent)


class TestTrace:

    def test_trace_record(self, write_catalog_set, captured_logs):
        set_dir = write_catalog_set()
        catalog = get_active_catalog(config_dir=set_dir.parent)

        traces = [r for r in captured_logs() if r["message"] == "COMPAT_CATALOG_TRACE"]
        assert len(traces) == 1
        trace = traces[0]
        assert trace["catalog_id"] == "test-catalog"
        assert trace["catalog_version"] == 1
        assert trace["checksum"] == catalog.checksum
        assert trace["canonical_fingerprint"] == catalog.canonical_fingerprint
        assert trace["entry_count"] == 2
        assert trace["status"] == "draft"


class TestFingerprintPin:

    def test_matching_pin_loads(self, write_catalog_set):
        set_dir = write_catalog_set()
        fingerprint = get_active_catalog(config_dir=set_dir.parent).canonical_fingerprint
        write_pinned_fingerprint(set_dir, fingerprint)
        assert get_active_catalog(config_dir=set_dir.parent).canonical_fingerprint == fingerprint

    def test_edit_after_approval_is_rejected(self, write_catalog_set):
        set_dir = write_catalog_set()
        write_pinned_fingerprint(
            set_dir, get_active_catalog(config_dir=set_dir.parent).canonical_fingerprint
        )
        fragment = set_dir / "functions" / "01_numeric.yaml"
        fragment.write_text(fragment.read_text().replace("x * 2", "x + x"))

        with pytest.raises(CatalogIntegrityError):
            get_active_catalog(config_dir=set_dir.parent)

    def test_status_change_keeps_pin_valid(self, write_catalog_set):
        set_dir = write_catalog_set()
        write_pinned_fingerprint(
            set_dir, get_active_catalog(config_dir=set_dir.parent).canonical_fingerprint
        )
        root = set_dir / "root.yaml"
        root.write_text(root.read_text().replace("status: draft", "status: approved"))

        assert get_active_catalog(config_dir=set_dir.parent).status is CatalogStatus.APPROVED


class TestShippedSet:

    def test_shipped_set_is_default(self, shipped_catalog):
        assert get_active_catalog().catalog_id == shipped_catalog.catalog_id == "mysql-spanner-v1"

    def test_shipped_set_has_no_warnings(self, shipped_catalog):
        assert shipped_catalog.warnings == ()

    def test_shipped_namespace(self, shipped_catalog):
        assert shipped_catalog.namespace.name == "mysql"
