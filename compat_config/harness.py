"""
Reference harness (``compat_config.harness``).

Responsibility
--------------
Runs the examples authored next to every catalog entry against the kernel
reference evaluator, and checks that the catalog and the reference registry
agree on which entries exist and how many arguments they take.

Architecture position
---------------------
**Config layer** -- build/test tooling.  Reads a ``CompiledCatalog`` and
drives ``compat_kernel.reference.ReferenceEvaluator``; the kernel never sees
config types.

YAML example values are scalars.  They are converted to Python values by the
declared SQL type of the parameter (or the return type for expectations):

    INT64      int
    FLOAT64    float (``.inf`` / ``.nan`` accepted)
    NUMERIC    Decimal
    BOOL       bool
    STRING     str
    BYTES      bytes; ``"0x..."`` is hex, anything else is UTF-8 text
    DATE       date (ISO ``YYYY-MM-DD``)
    TIMESTAMP  aware datetime; a literal without an offset is read in the
               evaluator's time zone, as the host reads it in the database
               default time zone
    JSON       JSON text (non-string YAML values are serialized)

Failure modes
-------------
* Failures are collected in a ``HarnessReport``; nothing raises while
  running examples.
* ``verify_catalog`` raises ``CatalogVerificationError`` when the report or
  the coverage check has problems.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, tzinfo
from decimal import Decimal
from typing import Any

from compat_config.compiler import CompiledCatalog, CompiledEntry
from compat_config.schema import ExampleDef
from compat_kernel.exceptions import CompatKernelError, EvaluationAbortError
from compat_kernel.logging_config import LogContext, get_logger
from compat_kernel.reference import ReferenceEvaluator, ReferenceRegistry

logger = get_logger("config.harness")

FLOAT_REL_TOL = 1e-9
FLOAT_ABS_TOL = 1e-12


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ExampleFailure:
    """One example whose reference outcome differs from the authored one."""

    entry_name: str
    index: int
    args: tuple[Any, ...]
    reason: str


@dataclass
class HarnessReport:
    """Outcome of running every example in a catalog."""

    passed: int = 0
    failures: list[ExampleFailure] = field(default_factory=list)
    missing_reference: list[str] = field(default_factory=list)
    orphan_references: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def total(self) -> int:
        return self.passed + len(self.failures)

    def summary(self) -> str:
        return (
            f"{self.passed}/{self.total} examples passed, "
            f"{len(self.failures)} failed, "
            f"{len(self.missing_reference)} entries without reference, "
            f"{len(self.skipped)} non-deterministic entries skipped"
        )


class CatalogVerificationError(CompatKernelError):
    """Examples or reference coverage disagree with the catalog."""

    code: str = "CATALOG_VERIFICATION_FAILED"

    def __init__(self, failures: list[ExampleFailure], coverage_problems: list[str]):
        self.failures = failures
        self.coverage_problems = coverage_problems
        lines = [
            f"  {f.entry_name}[{f.index}] {f.args!r}: {f.reason}" for f in failures
        ] + [f"  {p}" for p in coverage_problems]
        super().__init__(
            f"Catalog verification failed with {len(lines)} problem(s):\n"
            + "\n".join(lines)
        )


# ---------------------------------------------------------------------------
# Value conversion
# ---------------------------------------------------------------------------


def to_python(value: Any, sql_type: str, tz: tzinfo) -> Any:
    """Convert a YAML scalar into the Python value for ``sql_type``."""
    if value is None:
        return None
    t = sql_type.strip().upper()

    if t.startswith("ARRAY<") and t.endswith(">"):
        inner = t[len("ARRAY<"):-1]
        return [to_python(v, inner, tz) for v in value]
    if t == "INT64":
        return int(value)
    if t in ("FLOAT64", "FLOAT32"):
        return float(value)
    if t == "NUMERIC":
        return Decimal(str(value))
    if t == "BOOL":
        if isinstance(value, str):
            return value.strip().lower() == "true"
        return bool(value)
    if t == "STRING":
        return value if isinstance(value, str) else str(value)
    if t == "BYTES":
        if isinstance(value, bytes):
            return value
        text = str(value)
        if text[:2].lower() == "0x":
            return bytes.fromhex(text[2:])
        return text.encode("utf-8")
    if t == "DATE":
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        return date.fromisoformat(str(value))
    if t == "TIMESTAMP":
        return _to_timestamp(value, tz)
    if t == "JSON":
        return value if isinstance(value, str) else json.dumps(value)
    raise ValueError(f"Unsupported SQL type {sql_type}")


def _to_timestamp(value: Any, tz: tzinfo) -> datetime:
    if isinstance(value, datetime):
        ts = value
    elif isinstance(value, date):
        ts = datetime(value.year, value.month, value.day)
    else:
        ts = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=tz)
    return ts.astimezone(UTC)


def values_equal(expected: Any, actual: Any) -> bool:
    """SQL-ish equality: NULL only equals NULL, floats compare with tolerance."""
    if expected is None or actual is None:
        return expected is None and actual is None
    if isinstance(expected, float) and isinstance(actual, (int, float)):
        if math.isnan(expected):
            return math.isnan(actual)
        if math.isinf(expected) or math.isinf(actual):
            return expected == actual
        return math.isclose(expected, actual, rel_tol=FLOAT_REL_TOL, abs_tol=FLOAT_ABS_TOL)
    if isinstance(expected, bool) != isinstance(actual, bool):
        return False
    return expected == actual


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------


def run_examples(
    catalog: CompiledCatalog, evaluator: ReferenceEvaluator | None = None
) -> HarnessReport:
    """Run every authored example through the reference evaluator."""
    evaluator = evaluator or ReferenceEvaluator()
    report = HarnessReport()

    for entry in catalog.entries:
        if not entry.deterministic:
            report.skipped.append(entry.name)
            continue
        if not evaluator.has(entry.name):
            report.missing_reference.append(entry.name)
            continue
        with LogContext.bind(catalog_id=catalog.catalog_id, entry_name=entry.name):
            for index, example in enumerate(entry.examples):
                failure = _run_example(entry, index, example, evaluator)
                if failure is None:
                    report.passed += 1
                else:
                    logger.warning("example_failed", extra={"reason": failure.reason})
                    report.failures.append(failure)

    catalog_names = {e.name.upper() for e in catalog.entries}
    report.orphan_references = [
        n for n in ReferenceRegistry.names() if n not in catalog_names
    ]

    logger.info(
        "examples_run",
        extra={
            "catalog_id": catalog.catalog_id,
            "passed": report.passed,
            "failed": len(report.failures),
            "missing_reference": list(report.missing_reference),
        },
    )
    return report


def _run_example(
    entry: CompiledEntry,
    index: int,
    example: ExampleDef,
    evaluator: ReferenceEvaluator,
) -> ExampleFailure | None:
    def fail(reason: str) -> ExampleFailure:
        return ExampleFailure(entry.name, index, example.args, reason)

    if len(example.args) > len(entry.parameters):
        return fail(
            f"{len(example.args)} arguments given, entry takes {len(entry.parameters)}"
        )

    tz = evaluator.time_zone
    try:
        args = [
            to_python(value, param.sql_type, tz)
            for value, param in zip(example.args, entry.parameters)
        ]
        expected = (
            to_python(example.returns, entry.return_type, tz)
            if example.raises is None
            else None
        )
    except (TypeError, ValueError) as exc:
        return fail(f"cannot convert example values: {exc}")

    try:
        actual = evaluator.evaluate(entry.name, *args)
    except EvaluationAbortError as exc:
        if example.raises is None:
            return fail(f"unexpected abort: {exc.detail}")
        if example.raises not in str(exc):
            return fail(f"abort message {exc.detail!r} does not contain {example.raises!r}")
        return None

    if example.raises is not None:
        return fail(f"expected abort containing {example.raises!r}, got {actual!r}")
    if not values_equal(expected, actual):
        return fail(f"expected {expected!r}, got {actual!r}")
    return None


# ---------------------------------------------------------------------------
# Coverage
# ---------------------------------------------------------------------------


def check_reference_coverage(catalog: CompiledCatalog) -> list[str]:
    """Agreement between catalog entries and their reference models.

    Every deterministic entry needs a model taking the same arguments, and
    non-deterministic entries must not have one.  Returns a list of
    problems; empty means the two agree.
    """
    problems: list[str] = []
    for entry in catalog.entries:
        if not ReferenceRegistry.has(entry.name):
            if entry.deterministic:
                problems.append(
                    f"Entry '{entry.name}' has no reference model; "
                    f"its examples are not checked"
                )
            continue
        impl = ReferenceRegistry.get(entry.name)
        if not entry.deterministic:
            problems.append(
                f"Entry '{entry.name}' is non-deterministic but has a reference model"
            )
            continue
        min_arity = sum(1 for p in entry.parameters if p.default is None)
        if (impl.arity, impl.min_arity) != (len(entry.parameters), min_arity):
            problems.append(
                f"Entry '{entry.name}' takes {min_arity}-{len(entry.parameters)} "
                f"arguments but its reference model takes "
                f"{impl.min_arity}-{impl.arity}"
            )
    return problems


def verify_catalog(
    catalog: CompiledCatalog, evaluator: ReferenceEvaluator | None = None
) -> HarnessReport:
    """Run examples and coverage checks.

    Raises:
        CatalogVerificationError: any example fails, a deterministic entry
            has no reference model, or an entry and its model disagree.
    """
    report = run_examples(catalog, evaluator)
    problems = check_reference_coverage(catalog)
    if report.failures or problems:
        raise CatalogVerificationError(list(report.failures), problems)
    return report
