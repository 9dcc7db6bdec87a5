#!/usr/bin/env python3
"""
Approve a catalog set by writing its canonical fingerprint to
APPROVED_FINGERPRINT.

Usage:
    python scripts/approve_catalog.py [catalog_set_directory]

If no directory is given, defaults to
compat_config/sets/mysql-spanner-v1/

The script:
  1. Assembles fragments from the directory and checks that its status
     (reviewed, approved or published) allows approval
  2. Validates the assembled catalog
  3. Compiles to CompiledCatalog
  4. Runs every authored example through the reference models
  5. Writes catalog.canonical_fingerprint to APPROVED_FINGERPRINT

The APPROVED_FINGERPRINT file is a separate artifact from the YAML
fragments; changing any fragment without re-running approval will cause
get_active_catalog() to raise CatalogIntegrityError.
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from compat_config.assembler import assemble_from_directory
from compat_config.compiler import compile_catalog
from compat_config.harness import CatalogVerificationError, verify_catalog
from compat_config.integrity import write_pinned_fingerprint
from compat_config.lifecycle import can_approve
from compat_config.validator import validate_catalog
from compat_kernel.reference import ReferenceEvaluator


def approve(fragment_dir: Path, time_zone: str = "UTC") -> str:
    """Assemble, validate, compile, verify, and write the pin file.

    Returns the canonical fingerprint that was written.
    """
    print(f"Assembling fragments from: {fragment_dir}")
    catalog = assemble_from_directory(fragment_dir)
    print(f"  catalog_id: {catalog.catalog_id}")
    print(f"  version:    {catalog.version}")
    print(f"  status:     {catalog.status.value}")
    print(f"  entries:    {len(catalog.entries)}")
    print(f"  checksum:   {catalog.checksum[:16]}...")

    if not can_approve(catalog.status):
        print(
            f"REFUSED: a {catalog.status.value} catalog set cannot be approved; "
            f"it must be reviewed first"
        )
        sys.exit(1)

    print("Validating...")
    result = validate_catalog(catalog)
    if not result.is_valid:
        print("VALIDATION FAILED:")
        for err in result.errors:
            print(f"  ERROR: {err}")
        sys.exit(1)
    for w in result.warnings:
        print(f"  WARNING: {w}")

    print("Compiling...")
    compiled = compile_catalog(catalog)
    fingerprint = compiled.canonical_fingerprint
    print(f"  canonical_fingerprint: {fingerprint}")

    print(f"Running examples (time zone {time_zone})...")
    try:
        report = verify_catalog(compiled, ReferenceEvaluator(time_zone))
    except CatalogVerificationError as exc:
        print("VERIFICATION FAILED:")
        print(str(exc))
        sys.exit(1)
    print(f"  {report.summary()}")

    pin_path = write_pinned_fingerprint(fragment_dir, fingerprint)
    print(f"Wrote {pin_path}")
    return fingerprint


def main():
    p = argparse.ArgumentParser(description="Pin a catalog set's canonical fingerprint")
    p.add_argument(
        "directory",
        nargs="?",
        type=Path,
        default=ROOT / "compat_config" / "sets" / "mysql-spanner-v1",
    )
    p.add_argument("--time-zone", default="UTC", help="Database default time zone for examples")
    args = p.parse_args()

    if not args.directory.is_dir():
        print(f"Error: directory not found: {args.directory}", file=sys.stderr)
        sys.exit(1)

    approve(args.directory, args.time_zone)
    print("Done. Catalog is now pinned.")


if __name__ == "__main__":
    main()
