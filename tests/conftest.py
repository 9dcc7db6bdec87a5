"""
Pytest fixtures for the compatibility catalog test suite.

Provides:
- Structured logging capture
- The shipped catalog set, assembled and compiled
- Builders for small in-memory catalogs and on-disk catalog sets

No database is required: DDL is exercised through SQLAlchemy's mock engine.
"""

import dataclasses
import json
import logging
from io import StringIO
from pathlib import Path

import pytest
import yaml

from compat_config import get_active_catalog
from compat_config.assembler import catalog_checksum
from compat_config.lifecycle import CatalogStatus
from compat_config.schema import (
    Category,
    CompatibilityCatalog,
    ErrorPolicy,
    ExampleDef,
    MappingEntry,
    NamespaceDef,
    ParameterDef,
)
from compat_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from compat_kernel.reference import ReferenceEvaluator

SETS_DIR = Path(__file__).resolve().parent.parent / "compat_config" / "sets"
SHIPPED_SET_DIR = SETS_DIR / "mysql-spanner-v1"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture compat_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            get_active_catalog()
            logs = captured_logs()
            assert any(r["message"] == "COMPAT_CATALOG_TRACE" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("compat_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Shipped catalog
# =============================================================================


@pytest.fixture(scope="session")
def shipped_catalog():
    """The compiled mysql-spanner-v1 catalog."""
    return get_active_catalog(catalog_id="mysql-spanner-v1", config_dir=SETS_DIR)


@pytest.fixture
def evaluator() -> ReferenceEvaluator:
    return ReferenceEvaluator("UTC")


# =============================================================================
# In-memory catalog builders
# =============================================================================


def make_entry(name: str = "DOUBLE_IT", **overrides) -> MappingEntry:
    """A valid single-parameter entry; keyword overrides replace fields."""
    fields = dict(
        name=name,
        category=Category.NUMERIC,
        parameters=(ParameterDef("x", "INT64", "The value."),),
        return_type="INT64",
        target_expression="x * 2",
        error_policy=ErrorPolicy.RAISE,
        description="Double the argument.",
        deviations=("Only INT64 input is accepted.",),
        examples=(ExampleDef(args=(2,), returns=4),),
    )
    fields.update(overrides)
    return MappingEntry(**fields)


def make_catalog(
    entries=None,
    host_builtins=frozenset({"ABS", "CONCAT", "UPPER"}),
    reserved_keywords=frozenset({"SELECT", "FROM", "IF"}),
    **overrides,
) -> CompatibilityCatalog:
    """A checksummed catalog around ``entries`` (one valid entry by default)."""
    fields = dict(
        catalog_id="test-catalog",
        version=1,
        checksum="",
        status=CatalogStatus.DRAFT,
        source_dialect="mysql",
        target_dialect="googlesql",
        namespace=NamespaceDef("mysql", "Test functions."),
        entries=tuple(entries) if entries is not None else (make_entry(),),
        host_builtins=frozenset(host_builtins),
        reserved_keywords=frozenset(reserved_keywords),
    )
    fields.update(overrides)
    catalog = CompatibilityCatalog(**fields)
    return dataclasses.replace(catalog, checksum=catalog_checksum(catalog))


@pytest.fixture
def catalog_factory():
    return make_catalog


@pytest.fixture
def entry_factory():
    return make_entry


# =============================================================================
# On-disk catalog set builder
# =============================================================================


def _default_entries() -> list[dict]:
    return [
        {
            "name": "DOUBLE_IT",
            "description": "Double the argument.",
            "parameters": [{"name": "x", "type": "INT64", "description": "The value."}],
            "returns": "INT64",
            "error_policy": "raise",
            "expression": "x * 2",
            "deviations": ["Only INT64 input is accepted."],
            "examples": [{"args": [2], "returns": 4}],
        },
        {
            "name": "QUADRUPLE_IT",
            "description": "Quadruple the argument.",
            "parameters": [{"name": "x", "type": "INT64", "description": "The value."}],
            "returns": "INT64",
            "error_policy": "raise",
            "expression": "mysql.DOUBLE_IT(mysql.DOUBLE_IT(x))",
            "deviations": ["Only INT64 input is accepted."],
            "examples": [{"args": [3], "returns": 12}],
        },
    ]


@pytest.fixture
def write_catalog_set(tmp_path):
    """
    Write a catalog set directory under ``tmp_path/sets`` and return its path.

    Usage::

        set_dir = write_catalog_set(catalog_id="x", entries=[...])
        catalog = get_active_catalog(config_dir=set_dir.parent)
    """

    def _write(
        catalog_id: str = "test-catalog",
        version: int = 1,
        status: str = "draft",
        entries: list[dict] | None = None,
        builtins: list[str] | None = None,
        directory: str | None = None,
    ) -> Path:
        set_dir = tmp_path / "sets" / (directory or f"{catalog_id}-v{version}")
        (set_dir / "functions").mkdir(parents=True)
        root = {
            "catalog_id": catalog_id,
            "version": version,
            "status": status,
            "namespace": {"name": "mysql", "description": "Test functions."},
        }
        (set_dir / "root.yaml").write_text(yaml.safe_dump(root))
        (set_dir / "host_builtins.yaml").write_text(
            yaml.safe_dump({
                "builtins": builtins if builtins is not None else ["ABS", "UPPER"],
                "reserved_keywords": ["SELECT", "FROM"],
            })
        )
        fragment = {
            "category": "numeric",
            "entries": entries if entries is not None else _default_entries(),
        }
        (set_dir / "functions" / "01_numeric.yaml").write_text(
            yaml.safe_dump(fragment, sort_keys=False)
        )
        return set_dir

    return _write
