"""
Catalog Compiler -- CompatibilityCatalog -> CompiledCatalog.

The compiler validates the catalog and produces a frozen, machine-validated
runtime artifact. The CompiledCatalog is the ONLY object that rendering,
installation and verification accept.

Compilation validates:
  - Every validator error (names, signatures, expressions, call order)
  - Every entry name is unique after case folding
  - The source checksum is present
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field

from compat_config.lifecycle import CatalogStatus
from compat_config.loader import entry_to_dict
from compat_config.schema import (
    Category,
    CompatibilityCatalog,
    ErrorPolicy,
    ExampleDef,
    MappingEntry,
    NamespaceDef,
    ParameterDef,
)
from compat_config.validator import validate_catalog
from compat_kernel.exceptions import CompatKernelError, EntryNotFoundError


# ---------------------------------------------------------------------------
# Compiled types (frozen, runtime-ready)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CompiledEntry:
    """Validated entry with its declaration position and rendered signature."""

    name: str
    position: int
    category: Category
    parameters: tuple[ParameterDef, ...]
    return_type: str
    target_expression: str
    error_policy: ErrorPolicy
    signature: str
    description: str
    deviations: tuple[str, ...]
    limitations: tuple[str, ...]
    deterministic: bool
    examples: tuple[ExampleDef, ...]
    source: MappingEntry = field(repr=False, compare=False)


@dataclass(frozen=True)
class CompiledCatalog:
    """Machine-validated, frozen runtime artifact.

    Attributes:
        catalog_id: Source catalog identifier
        catalog_version: Source catalog version
        checksum: Matches source CompatibilityCatalog
        status: Lifecycle status of the source set
        namespace: Schema every function is declared under
        entries: Compiled entries in declaration order
        index: Upper-cased name -> entry
        by_category: Category -> entries in declaration order
        canonical_fingerprint: Deterministic hash of everything compiled
        warnings: Validator warnings carried for review
    """

    catalog_id: str
    catalog_version: int
    checksum: str
    status: CatalogStatus
    namespace: NamespaceDef
    entries: tuple[CompiledEntry, ...]
    index: dict[str, CompiledEntry]
    by_category: dict[Category, tuple[CompiledEntry, ...]]
    canonical_fingerprint: str
    warnings: tuple[str, ...] = ()

    def entry(self, name: str) -> CompiledEntry:
        """Look up an entry by name (case-insensitive).

        Raises:
            EntryNotFoundError: if no entry has that name.
        """
        try:
            return self.index[name.upper()]
        except KeyError:
            raise EntryNotFoundError(name) from None

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(e.name for e in self.entries)


# ---------------------------------------------------------------------------
# Compilation errors
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CompilationError:
    """An error found during compilation."""

    category: str  # e.g., "validation", "checksum"
    message: str
    entry_name: str = ""
    severity: str = "error"  # "error" or "warning"


class CompilationFailedError(CompatKernelError):
    """Compilation produced errors that prevent creating a valid catalog."""

    code: str = "COMPILATION_FAILED"

    def __init__(self, errors: list[CompilationError]):
        self.errors = errors
        messages = [f"  [{e.category}] {e.message}" for e in errors if e.severity == "error"]
        super().__init__(
            f"Compilation failed with {len(messages)} error(s):\n"
            + "\n".join(messages)
        )


# ---------------------------------------------------------------------------
# Compiler
# ---------------------------------------------------------------------------


def compile_catalog(catalog: CompatibilityCatalog) -> CompiledCatalog:
    """Compile a CompatibilityCatalog into a CompiledCatalog.

    Raises:
        CompilationFailedError: If validation produces errors.
    """
    errors: list[CompilationError] = []

    # 1. Structural validation
    validation = validate_catalog(catalog)
    for msg in validation.errors:
        errors.append(CompilationError(category="validation", message=msg))

    if not catalog.checksum:
        errors.append(
            CompilationError(category="checksum", message="Catalog has no checksum")
        )

    if errors:
        raise CompilationFailedError(errors)

    # 2. Compile entries in declaration order
    namespace = catalog.namespace.name
    compiled = tuple(
        _compile_entry(entry, position, namespace)
        for position, entry in enumerate(catalog.entries)
    )

    # 3. Indexes
    index = {e.name.upper(): e for e in compiled}
    by_category: dict[Category, tuple[CompiledEntry, ...]] = {}
    for entry in compiled:
        by_category[entry.category] = by_category.get(entry.category, ()) + (entry,)

    # 4. Canonical fingerprint
    fingerprint = _compute_fingerprint(catalog)

    return CompiledCatalog(
        catalog_id=catalog.catalog_id,
        catalog_version=catalog.version,
        checksum=catalog.checksum,
        status=catalog.status,
        namespace=catalog.namespace,
        entries=compiled,
        index=index,
        by_category=by_category,
        canonical_fingerprint=fingerprint,
        warnings=tuple(validation.warnings),
    )


# ---------------------------------------------------------------------------
# Internal compilation steps
# ---------------------------------------------------------------------------


def render_signature(namespace: str, entry: MappingEntry) -> str:
    """``ns.NAME(p TYPE [DEFAULT v], ...) -> RETURN``."""
    params = []
    for p in entry.parameters:
        text = f"{p.name} {p.sql_type}"
        if p.default is not None:
            text += f" DEFAULT {p.default}"
        params.append(text)
    return f"{namespace}.{entry.name}({', '.join(params)}) -> {entry.return_type}"


def _compile_entry(entry: MappingEntry, position: int, namespace: str) -> CompiledEntry:
    return CompiledEntry(
        name=entry.name,
        position=position,
        category=entry.category,
        parameters=entry.parameters,
        return_type=entry.return_type,
        target_expression=entry.target_expression,
        error_policy=entry.error_policy,
        signature=render_signature(namespace, entry),
        description=entry.description,
        deviations=entry.deviations,
        limitations=entry.limitations,
        deterministic=entry.deterministic,
        examples=entry.examples,
        source=entry,
    )


def _compute_fingerprint(catalog: CompatibilityCatalog) -> str:
    """Compute deterministic fingerprint of the compiled catalog.

    Covers identity, the namespace and every entry definition in order, but
    not the lifecycle status, so approving a set does not invalidate its pin.
    """
    canonical = json.dumps(
        {
            "catalog_id": catalog.catalog_id,
            "version": catalog.version,
            "source_dialect": catalog.source_dialect,
            "target_dialect": catalog.target_dialect,
            "namespace": catalog.namespace.name,
            "entries": [entry_to_dict(e) for e in catalog.entries],
        },
        sort_keys=True,
        default=str,
    )
    return hashlib.sha256(canonical.encode()).hexdigest()
