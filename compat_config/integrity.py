"""
Fingerprint pin for approved catalog sets.

``scripts/approve_catalog.py`` records the canonical fingerprint of a
catalog set it has verified in ``APPROVED_FINGERPRINT``, next to the set's
``root.yaml``.  ``get_active_catalog()`` recompiles the set on every call and
refuses to hand out a catalog whose fingerprint no longer matches the pin:
an entry body edited after approval would otherwise be installed as
``CREATE OR REPLACE FUNCTION`` without its examples ever being re-checked.

The fingerprint ignores ``status``, so promoting an approved set to
published keeps its pin valid.  A set without a pin file is a working copy
and is not checked.
"""

from __future__ import annotations

from pathlib import Path

from compat_kernel.exceptions import CompatKernelError

PINFILE_NAME = "APPROVED_FINGERPRINT"


class CatalogIntegrityError(CompatKernelError):
    """The compiled catalog is not the one that was approved.

    Carries the catalog id, both fingerprints (``expected`` from the pin,
    ``actual`` from compilation) and the pin file path so the message can
    point at the set to re-approve.
    """

    code: str = "CATALOG_INTEGRITY_MISMATCH"

    def __init__(
        self,
        catalog_id: str,
        expected: str,
        actual: str,
        pin_path: Path,
    ):
        self.catalog_id = catalog_id
        self.expected = expected
        self.actual = actual
        self.pin_path = pin_path
        super().__init__(
            f"Catalog '{catalog_id}' changed since approval: "
            f"approved {expected[:16]}..., compiled {actual[:16]}... "
            f"Re-run scripts/approve_catalog.py after reviewing the change "
            f"(pin file: {pin_path})"
        )


def read_pinned_fingerprint(catalog_dir: Path) -> str | None:
    """The approved fingerprint of the set in ``catalog_dir``, if it has one."""
    pin_path = catalog_dir / PINFILE_NAME
    if not pin_path.is_file():
        return None
    return pin_path.read_text().strip()


def write_pinned_fingerprint(catalog_dir: Path, canonical_fingerprint: str) -> Path:
    pin_path = catalog_dir / PINFILE_NAME
    pin_path.write_text(canonical_fingerprint + "\n")
    return pin_path


def verify_fingerprint_pin(
    catalog_id: str,
    canonical_fingerprint: str,
    catalog_dir: Path,
) -> None:
    """Raise CatalogIntegrityError unless the set is unpinned or still matches."""
    pinned = read_pinned_fingerprint(catalog_dir)
    if pinned is None:
        return

    if canonical_fingerprint != pinned:
        raise CatalogIntegrityError(
            catalog_id=catalog_id,
            expected=pinned,
            actual=canonical_fingerprint,
            pin_path=catalog_dir / PINFILE_NAME,
        )
