"""
Catalog Loader (``compat_config.loader``).

Responsibility
--------------
Loads individual YAML fragment files and parses them into typed
``compat_config.schema`` dataclass instances.  This is **build/test
tooling only** -- no service should call this directly.  The single public
entry point for runtime catalogs is ``compat_config.get_active_catalog()``.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  The loader is consumed by
``compat_config.assembler`` during catalog assembly.  It has no dependency on
services.

Invariants enforced
-------------------
* All parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; no silent defaults for required fields (``name``, ``category``,
  ``returns``, ``expression``, ``error_policy``).
* Every parsed object is a frozen dataclass from ``schema.py``.
* ``compute_checksum`` produces a deterministic SHA-256 hash for catalog
  identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Unknown category or error policy  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from compat_config.schema import (
    Category,
    ErrorPolicy,
    ExampleDef,
    MappingEntry,
    NamespaceDef,
    ParameterDef,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Preconditions:
        - ``path`` must point to an existing, readable YAML file.
    Postconditions:
        - Returns a ``dict`` (possibly empty if the YAML is empty).
    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def sql_literal(value: Any) -> str:
    """Render a YAML scalar default as GoogleSQL literal text.

    Strings are taken as already-written SQL (``"'abc'"``), so authors
    control quoting.
    """
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, str):
        return value
    raise ValueError(f"Unsupported default value {value!r}")


def parse_parameter(data: dict[str, Any]) -> ParameterDef:
    """Parse a ParameterDef from a dict."""
    default = data.get("default")
    return ParameterDef(
        name=data["name"],
        sql_type=str(data["type"]).upper(),
        description=data.get("description", ""),
        default=sql_literal(default) if default is not None else None,
    )


def parse_example(data: dict[str, Any]) -> ExampleDef:
    """
    Parse an ExampleDef from a dict.

    Raises:
        KeyError: if ``args`` is missing.
        ValueError: if neither ``returns`` nor ``raises`` is given.
    """
    if "returns" not in data and "raises" not in data:
        raise ValueError(f"Example {data!r} needs 'returns' or 'raises'")
    return ExampleDef(
        args=tuple(data["args"]),
        returns=data.get("returns"),
        raises=data.get("raises"),
    )


def _text_list(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value.strip(),)
    return tuple(str(v).strip() for v in value)


def parse_entry(data: dict[str, Any], default_category: str | None = None) -> MappingEntry:
    """
    Parse a ``MappingEntry`` from a dict.

    Preconditions:
        - ``data`` contains ``name``, ``returns``, ``expression`` and
          ``error_policy``; ``category`` may come from the fragment header.
    Postconditions:
        - Returns a fully populated ``MappingEntry`` frozen dataclass.
    Raises:
        KeyError: if required keys are missing.
        ValueError: if category or error policy are unknown.
    """
    category_value = data.get("category", default_category)
    if category_value is None:
        raise KeyError(f"Entry {data.get('name')!r} has no category")

    return MappingEntry(
        name=data["name"],
        category=Category(category_value),
        parameters=tuple(parse_parameter(p) for p in data.get("parameters", [])),
        return_type=str(data["returns"]).upper(),
        target_expression=str(data["expression"]).strip(),
        error_policy=ErrorPolicy(data["error_policy"]),
        description=str(data.get("description", "")).strip(),
        deviations=_text_list(data.get("deviations")),
        limitations=_text_list(data.get("limitations")),
        examples=tuple(parse_example(e) for e in data.get("examples", [])),
        deterministic=data.get("deterministic", True),
    )


def parse_namespace(data: dict[str, Any]) -> NamespaceDef:
    """Parse a NamespaceDef from a dict."""
    return NamespaceDef(
        name=data["name"],
        description=data.get("description", ""),
    )


def entry_to_dict(entry: MappingEntry) -> dict[str, Any]:
    """Canonical dict form of an entry, used for checksums and fingerprints."""
    return {
        "name": entry.name,
        "category": entry.category.value,
        "parameters": [
            {
                "name": p.name,
                "type": p.sql_type,
                "description": p.description,
                "default": p.default,
            }
            for p in entry.parameters
        ],
        "returns": entry.return_type,
        "expression": entry.target_expression,
        "error_policy": entry.error_policy.value,
        "description": entry.description,
        "deviations": list(entry.deviations),
        "limitations": list(entry.limitations),
        "examples": [
            {"args": list(e.args), "returns": e.returns, "raises": e.raises}
            for e in entry.examples
        ],
        "deterministic": entry.deterministic,
    }


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Postconditions:
        - Returns a hex-encoded SHA-256 hash string.
        - Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
