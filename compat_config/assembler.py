"""
compat_config.assembler -- composes YAML fragments into one CompatibilityCatalog.

Responsibility:
    Humans edit small, category-owned YAML fragments.  This module composes
    them into a single ``CompatibilityCatalog`` at build time, and applies
    create-or-replace / drop edits to an assembled catalog.

Architecture position:
    Configuration -- YAML-driven catalog pipeline, build-time validation.
    Called by ``compat_config.get_active_catalog()`` during the load phase and
    by tests that construct catalog fixtures.  The assembler reads the
    filesystem (I/O boundary); the resulting catalog is a frozen structure.

Fragment structure::

    sets/mysql-spanner-v1/
    +-- root.yaml              # Identity, dialects, namespace, status
    +-- host_builtins.yaml     # Native names an entry must not shadow
    +-- functions/             # One YAML per category, loaded in name order
    |   +-- 01_numeric.yaml
    |   +-- ...
    +-- APPROVED_FINGERPRINT   # Optional pin (see integrity.py)

Invariants enforced:
    - ``root.yaml`` must exist in every fragment directory.
    - Entry order is file-name order, then order within the file.
    - A deterministic SHA-256 checksum is computed over everything
      assembled; any edit to any entry changes it.
    - ``replace_entry`` keeps the replaced entry's position.

Failure modes:
    - ``AssemblyError`` -- fragment directory or ``root.yaml`` missing, or a
      fragment cannot be parsed.
    - ``yaml.YAMLError`` (propagated from loader) -- invalid YAML syntax.
    - ``EntryNotFoundError`` -- ``remove_entry`` for an unknown name.
"""

from __future__ import annotations

import dataclasses
from pathlib import Path
from typing import Any

from compat_config.lifecycle import CatalogStatus
from compat_config.loader import (
    compute_checksum,
    entry_to_dict,
    load_yaml_file,
    parse_entry,
    parse_namespace,
)
from compat_config.schema import CompatibilityCatalog, MappingEntry
from compat_kernel.exceptions import CompatKernelError, EntryNotFoundError


class AssemblyError(CompatKernelError):
    """Error during fragment assembly.

    Contract:
        Raised when a fragment directory is missing, ``root.yaml`` is
        absent, or an entry within a fragment cannot be parsed.

    Non-goals:
        Does not enumerate every field-level problem; the first fatal issue
        aborts assembly.  Structural problems that parse cleanly are the
        validator's job.
    """

    code: str = "ASSEMBLY_FAILED"


def assemble_from_directory(fragment_dir: Path) -> CompatibilityCatalog:
    """Compose fragments from a directory into one CompatibilityCatalog.

    Preconditions:
        - ``fragment_dir`` is an existing directory containing ``root.yaml``
          with at least ``catalog_id`` and ``namespace``.

    Postconditions:
        - Returns a frozen ``CompatibilityCatalog`` with a deterministic
          SHA-256 ``checksum``.

    Raises:
        AssemblyError: If required fragments are missing or malformed.
    """
    if not fragment_dir.is_dir():
        raise AssemblyError(f"Fragment directory not found: {fragment_dir}")

    # 1. root.yaml (required)
    root_path = fragment_dir / "root.yaml"
    if not root_path.exists():
        raise AssemblyError(f"root.yaml not found in {fragment_dir}")
    root_data = load_yaml_file(root_path)

    # 2. host_builtins.yaml (optional)
    builtins_path = fragment_dir / "host_builtins.yaml"
    host_builtins: frozenset[str] = frozenset()
    reserved_keywords: frozenset[str] = frozenset()
    if builtins_path.exists():
        builtins_data = load_yaml_file(builtins_path)
        host_builtins = frozenset(n.upper() for n in builtins_data.get("builtins", []))
        reserved_keywords = frozenset(
            k.upper() for k in builtins_data.get("reserved_keywords", [])
        )

    # 3. functions/*.yaml
    entries: list[MappingEntry] = []
    functions_dir = fragment_dir / "functions"
    if functions_dir.is_dir():
        for fragment in sorted(functions_dir.glob("*.yaml")):
            fragment_data = load_yaml_file(fragment)
            default_category = fragment_data.get("category")
            for raw in fragment_data.get("entries", []):
                try:
                    entries.append(parse_entry(raw, default_category))
                except (KeyError, ValueError) as exc:
                    raise AssemblyError(
                        f"{fragment.name}: cannot parse entry "
                        f"{raw.get('name', '?')!r}: {exc}"
                    ) from exc

    # 4. Root metadata
    try:
        namespace = parse_namespace(root_data["namespace"])
        catalog_id = root_data["catalog_id"]
    except KeyError as exc:
        raise AssemblyError(f"root.yaml in {fragment_dir} is missing {exc}") from exc
    status = CatalogStatus(root_data.get("status", "draft"))

    catalog = CompatibilityCatalog(
        catalog_id=catalog_id,
        version=root_data.get("version", 1),
        checksum="",
        status=status,
        source_dialect=root_data.get("source_dialect", "mysql"),
        target_dialect=root_data.get("target_dialect", "googlesql"),
        namespace=namespace,
        entries=tuple(entries),
        host_builtins=host_builtins,
        reserved_keywords=reserved_keywords,
        predecessor=root_data.get("predecessor"),
        description=str(root_data.get("description", "")).strip(),
    )
    return _with_checksum(catalog)


def catalog_checksum(catalog: CompatibilityCatalog) -> str:
    """Checksum over every assembled field except the checksum itself."""
    all_data: dict[str, Any] = {
        "catalog_id": catalog.catalog_id,
        "version": catalog.version,
        "status": catalog.status.value,
        "source_dialect": catalog.source_dialect,
        "target_dialect": catalog.target_dialect,
        "namespace": {
            "name": catalog.namespace.name,
            "description": catalog.namespace.description,
        },
        "entries": [entry_to_dict(e) for e in catalog.entries],
        "host_builtins": sorted(catalog.host_builtins),
        "reserved_keywords": sorted(catalog.reserved_keywords),
        "predecessor": catalog.predecessor,
    }
    checksum = compute_checksum(all_data)

    # INVARIANT: checksum must be a non-empty SHA-256 hex digest.
    assert checksum and len(checksum) == 64, (
        f"Checksum must be a 64-char SHA-256 hex digest, got {checksum!r}"
    )
    return checksum


def _with_checksum(catalog: CompatibilityCatalog) -> CompatibilityCatalog:
    return dataclasses.replace(catalog, checksum=catalog_checksum(catalog))


# ---------------------------------------------------------------------------
# Create-or-replace / drop
# ---------------------------------------------------------------------------


def replace_entry(
    catalog: CompatibilityCatalog, entry: MappingEntry
) -> CompatibilityCatalog:
    """Create-or-replace one entry.

    An existing entry with the same (case-insensitive) name is fully
    replaced in place, keeping its position; a new name is appended.
    Redefining an entry with an identical definition returns a catalog with
    the same checksum.
    """
    key = entry.name.upper()
    entries = list(catalog.entries)
    for i, existing in enumerate(entries):
        if existing.name.upper() == key:
            entries[i] = dataclasses.replace(entry, name=existing.name)
            break
    else:
        entries.append(entry)
    return _with_checksum(dataclasses.replace(catalog, entries=tuple(entries)))


def remove_entry(catalog: CompatibilityCatalog, name: str) -> CompatibilityCatalog:
    """Drop one entry by name.

    Raises:
        EntryNotFoundError: no entry has that name.
    """
    key = name.upper()
    remaining = tuple(e for e in catalog.entries if e.name.upper() != key)
    if len(remaining) == len(catalog.entries):
        raise EntryNotFoundError(name)
    return _with_checksum(dataclasses.replace(catalog, entries=remaining))
