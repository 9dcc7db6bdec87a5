"""
compat_config -- single public entrypoint for the compatibility catalog.

Responsibility:
    Provides the ONLY way to obtain the catalog at runtime through
    ``get_active_catalog()``.  No other component may read catalog files
    directly.  Returns a ``CompiledCatalog`` -- the sole runtime artifact.
    YAML loading is internal build/test tooling and never exposed to
    callers.

Architecture position:
    Configuration -- YAML-driven catalog pipeline, build-time validation.
    This package sits above ``compat_kernel`` and below
    ``compat_services``.  The kernel MUST NEVER import from
    ``compat_config``; bridges in this package translate compiled
    artifacts into kernel DTOs.

Invariants enforced:
    - Single entrypoint: all runtime catalog access flows through
      ``get_active_catalog()``.
    - Build-time validation: the catalog must pass name, signature and
      expression validation before a compiled catalog is produced.
    - Fingerprint pinning: when an APPROVED_FINGERPRINT file exists, the
      compiled canonical fingerprint must match the pinned value.
    - Deterministic compilation: same YAML fragments always produce the
      same checksum and canonical fingerprint.

Failure modes:
    - ``FileNotFoundError`` -- no catalog set (or not the requested one).
    - ``ValueError`` -- validation failures.
    - ``CompilationFailedError`` -- compilation errors.
    - ``CatalogIntegrityError`` -- fingerprint mismatch against an approved
      pin file.

Audit relevance:
    Every successful ``get_active_catalog()`` call emits a
    ``COMPAT_CATALOG_TRACE`` log entry with the catalog id, version,
    checksum, fingerprint and entry count.  It ties every installed
    function back to the exact catalog version that declared it.
"""

from __future__ import annotations

from pathlib import Path

from compat_config.assembler import assemble_from_directory
from compat_config.compiler import CompiledCatalog, compile_catalog
from compat_config.integrity import CatalogIntegrityError, verify_fingerprint_pin
from compat_config.lifecycle import CatalogStatus
from compat_config.schema import CompatibilityCatalog
from compat_config.validator import validate_catalog
from compat_kernel.logging_config import get_logger

__all__ = [
    "CatalogIntegrityError",
    "CompiledCatalog",
    "get_active_catalog",
    "load_catalog_set",
]

_logger = get_logger("config")

# Default catalog sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"


def get_active_catalog(
    catalog_id: str | None = None,
    config_dir: Path | None = None,
) -> CompiledCatalog:
    """The ONLY public catalog entrypoint.

    Guarantees:
        - The returned ``CompiledCatalog`` has passed validation and (when
          applicable) fingerprint-pin verification.
        - A ``COMPAT_CATALOG_TRACE`` log entry is emitted on every
          successful call.

    Non-goals:
        - Compiled catalogs are not cached across calls.

    Args:
        catalog_id: Request one catalog set by id.  When None, the
            highest-version PUBLISHED set is used, falling back to the
            highest version of any status.
        config_dir: Override path to the catalog sets directory.
            Defaults to compat_config/sets/.

    Raises:
        FileNotFoundError: If no matching catalog set is found.
        ValueError: If catalog validation fails.
        CompilationFailedError: If compilation produces errors.
        CatalogIntegrityError: If APPROVED_FINGERPRINT exists and does
            not match the compiled canonical fingerprint.
    """
    sets_dir = config_dir or _DEFAULT_CONFIG_DIR

    catalog, fragment_dir = _find_matching_catalog(sets_dir, catalog_id)

    # Validate
    validation = validate_catalog(catalog)
    if not validation.is_valid:
        raise ValueError(
            "Catalog validation failed:\n"
            + "\n".join(f"  - {e}" for e in validation.errors)
        )

    # Compile
    compiled = compile_catalog(catalog)

    # INVARIANT: compiled checksum must match assembled source checksum.
    assert compiled.checksum == catalog.checksum, (
        f"Checksum drift: compiled={compiled.checksum!r} != source={catalog.checksum!r}"
    )

    _logger.info(
        "COMPAT_CATALOG_TRACE",
        extra={
            "trace_type": "COMPAT_CATALOG_TRACE",
            "catalog_id": compiled.catalog_id,
            "catalog_version": compiled.catalog_version,
            "checksum": compiled.checksum,
            "canonical_fingerprint": compiled.canonical_fingerprint,
            "status": compiled.status.value,
            "namespace": compiled.namespace.name,
            "entry_count": len(compiled.entries),
            "warning_count": len(compiled.warnings),
        },
    )

    # Verify fingerprint against approved pin (no-op if no pin file)
    verify_fingerprint_pin(
        catalog_id=compiled.catalog_id,
        canonical_fingerprint=compiled.canonical_fingerprint,
        catalog_dir=fragment_dir,
    )

    return compiled


def load_catalog_set(
    catalog_id: str | None = None,
    config_dir: Path | None = None,
) -> tuple[CompatibilityCatalog, Path]:
    """Assemble the selected catalog set without validating it.

    Build tooling only (approval script, tests).
    """
    return _find_matching_catalog(config_dir or _DEFAULT_CONFIG_DIR, catalog_id)


def _find_matching_catalog(
    sets_dir: Path, catalog_id: str | None
) -> tuple[CompatibilityCatalog, Path]:
    """Find the catalog set to use, along with its fragment directory.

    Scans all subdirectories of *sets_dir* that contain a ``root.yaml``.
    With *catalog_id* the matching set is returned; otherwise PUBLISHED
    sets are preferred, then the highest version.

    Raises:
        FileNotFoundError: If ``sets_dir`` does not exist or no catalog set
            matches.
    """
    if not sets_dir.is_dir():
        raise FileNotFoundError(f"Catalog sets directory not found: {sets_dir}")

    candidates: list[tuple[CompatibilityCatalog, Path]] = []
    for subdir in sorted(sets_dir.iterdir()):
        if not subdir.is_dir() or not (subdir / "root.yaml").exists():
            continue
        catalog = assemble_from_directory(subdir)
        if catalog_id is None or catalog.catalog_id == catalog_id:
            candidates.append((catalog, subdir))

    if not candidates:
        wanted = f"catalog_id='{catalog_id}' " if catalog_id else ""
        raise FileNotFoundError(f"No catalog set {wanted}found in {sets_dir}")

    if len(candidates) == 1:
        return candidates[0]

    # Multiple matches: prefer PUBLISHED, then highest version
    published = [(c, p) for c, p in candidates if c.status == CatalogStatus.PUBLISHED]
    if published:
        return max(published, key=lambda pair: pair[0].version)

    return max(candidates, key=lambda pair: pair[0].version)
