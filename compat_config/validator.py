"""
Catalog Validator (``compat_config.validator``).

Responsibility
--------------
Validates a ``CompatibilityCatalog`` at build time, ensuring structural
integrity before the catalog is compiled and installed.

Architecture position
---------------------
**Config layer** -- build-time validation.  Called by
``compat_config.get_active_catalog()`` after assembly and before
compilation.  Has no dependency on services.

Invariants enforced
-------------------
* Name uniqueness -- names are compared case-insensitively; there is no
  overloading.
* No shadowing -- an entry must not share its name with a host builtin or a
  reserved keyword, or declaration fails on the host.
* Fixed signatures -- parameter names are valid and unique, at most one
  parameter has a default and it is the last one, every type is a GoogleSQL
  type.
* Expression safety -- every target expression passes the restricted
  expression checker (``expression_check.py``).
* Declaration order -- an entry may call another entry only if the callee
  is declared before it.

Failure modes
-------------
* Validation errors (``CatalogValidationResult.errors``)  -> catalog MUST
  NOT be compiled.
* Validation warnings (``CatalogValidationResult.warnings``)  -> catalog may
  be compiled but should be reviewed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from compat_config.expression_check import (
    namespace_calls,
    referenced_identifiers,
    validate_expression,
)
from compat_config.schema import CompatibilityCatalog, ErrorPolicy, MappingEntry

IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

SCALAR_TYPES: frozenset[str] = frozenset({
    "BOOL", "BYTES", "DATE", "FLOAT32", "FLOAT64", "INT64", "JSON",
    "NUMERIC", "STRING", "TIMESTAMP",
})

# Markers that show a null-policy entry guards its input.
NULL_GUARD_MARKERS: frozenset[str] = frozenset({
    "SAFE", "SAFE_CAST", "SAFE_IP_FROM_STRING", "NULL", "IFNULL", "COALESCE",
    "NULLIF",
})


@dataclass
class CatalogValidationResult:
    """
    Result of catalog validation.

    Contract
    --------
    * ``is_valid`` returns ``True`` only when ``errors`` is empty.
    * Warnings do not block compilation but should be reviewed.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def is_valid_type(sql_type: str) -> bool:
    """True for GoogleSQL scalar types and ``ARRAY<scalar>``."""
    t = sql_type.strip().upper()
    if t.startswith("ARRAY<") and t.endswith(">"):
        return t[len("ARRAY<"):-1].strip() in SCALAR_TYPES
    return t in SCALAR_TYPES


def validate_catalog(catalog: CompatibilityCatalog) -> CatalogValidationResult:
    """
    Validate a catalog.

    Preconditions:
        - ``catalog`` must be a fully assembled ``CompatibilityCatalog``.
    Postconditions:
        - Returns a ``CatalogValidationResult`` with errors and warnings.
        - A catalog with errors MUST NOT be compiled.
    """
    result = CatalogValidationResult()

    _validate_namespace(catalog, result)
    _validate_name_uniqueness(catalog, result)
    _validate_names(catalog, result)
    for entry in catalog.entries:
        _validate_signature(entry, result)
        _validate_expression(entry, catalog.namespace.name, result)
        _validate_documentation(entry, result)
    _validate_call_order(catalog, result)

    return result


def _validate_namespace(
    catalog: CompatibilityCatalog, result: CatalogValidationResult
) -> None:
    """The namespace must be a plain, non-default schema name."""
    name = catalog.namespace.name
    if not IDENTIFIER_RE.match(name):
        result.add_error(f"Namespace '{name}' is not a valid identifier")
    elif name.lower() == "default" or name.upper() in catalog.reserved_keywords:
        result.add_error(f"Namespace '{name}' cannot be used as a named schema")


def _validate_name_uniqueness(
    catalog: CompatibilityCatalog, result: CatalogValidationResult
) -> None:
    """Check that entry names are unique (case-insensitive)."""
    seen: dict[str, int] = {}
    for entry in catalog.entries:
        key = entry.name.upper()
        if key in seen:
            result.add_error(f"Duplicate entry: {key} appears more than once")
        seen[key] = seen.get(key, 0) + 1


def _validate_names(
    catalog: CompatibilityCatalog, result: CatalogValidationResult
) -> None:
    """Entry names must be identifiers that shadow nothing on the host."""
    for entry in catalog.entries:
        key = entry.name.upper()
        if not IDENTIFIER_RE.match(entry.name):
            result.add_error(f"Entry '{entry.name}' is not a valid identifier")
        if key in catalog.host_builtins:
            result.add_error(
                f"Entry '{entry.name}' collides with a host builtin function"
            )
        if key in catalog.reserved_keywords:
            result.add_error(f"Entry '{entry.name}' is a reserved keyword")


def _validate_signature(entry: MappingEntry, result: CatalogValidationResult) -> None:
    """Parameter names, types, and the single trailing default."""
    seen: set[str] = set()
    for param in entry.parameters:
        if not IDENTIFIER_RE.match(param.name):
            result.add_error(
                f"Entry '{entry.name}' parameter '{param.name}' is not a valid identifier"
            )
        if param.name.lower() in seen:
            result.add_error(
                f"Entry '{entry.name}' declares parameter '{param.name}' twice"
            )
        seen.add(param.name.lower())
        if not is_valid_type(param.sql_type):
            result.add_error(
                f"Entry '{entry.name}' parameter '{param.name}' has unknown "
                f"type {param.sql_type}"
            )

    defaults = [i for i, p in enumerate(entry.parameters) if p.default is not None]
    if len(defaults) > 1:
        result.add_error(
            f"Entry '{entry.name}' has {len(defaults)} defaulted parameters; "
            f"at most one is allowed"
        )
    elif defaults and defaults[0] != len(entry.parameters) - 1:
        result.add_error(
            f"Entry '{entry.name}' default must be on the last parameter"
        )

    if not is_valid_type(entry.return_type):
        result.add_error(
            f"Entry '{entry.name}' has unknown return type {entry.return_type}"
        )


def _validate_expression(
    entry: MappingEntry, namespace: str, result: CatalogValidationResult
) -> None:
    """Run the restricted expression checker and the reference checks."""
    errors = validate_expression(entry.target_expression, namespace)
    for err in errors:
        result.add_error(
            f"Entry '{entry.name}' expression: {err.message} (at offset {err.pos})"
        )
    if errors:
        return

    used = referenced_identifiers(entry.target_expression)
    for param in entry.parameters:
        if param.name.upper() not in used:
            result.add_warning(
                f"Entry '{entry.name}' never references parameter '{param.name}'"
            )

    if entry.error_policy is ErrorPolicy.NULL and not used & NULL_GUARD_MARKERS:
        result.add_warning(
            f"Entry '{entry.name}' has error_policy 'null' but no visible "
            f"NULL guard in its expression"
        )


def _validate_documentation(entry: MappingEntry, result: CatalogValidationResult) -> None:
    if entry.deterministic and not entry.examples:
        result.add_warning(f"Entry '{entry.name}' has no examples")
    if not entry.deviations and not entry.limitations:
        result.add_warning(
            f"Entry '{entry.name}' documents no deviations or limitations"
        )


def _validate_call_order(
    catalog: CompatibilityCatalog, result: CatalogValidationResult
) -> None:
    """Entries may only call entries declared before them."""
    position = {e.name.upper(): i for i, e in enumerate(catalog.entries)}
    ns = catalog.namespace.name
    for i, entry in enumerate(catalog.entries):
        for callee in namespace_calls(entry.target_expression, ns):
            if callee not in position:
                result.add_error(
                    f"Entry '{entry.name}' calls unknown function {ns}.{callee}"
                )
            elif position[callee] >= i:
                result.add_error(
                    f"Entry '{entry.name}' calls {ns}.{callee}, which is "
                    f"declared after it"
                )
