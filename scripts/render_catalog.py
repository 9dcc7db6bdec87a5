#!/usr/bin/env python3
"""
Render the active compatibility catalog as a re-runnable DDL script.

Usage:
    python scripts/render_catalog.py [--catalog-id ID] [--output FILE]
                                     [--no-docs] [--drop [--drop-schema]] [NAME ...]

With no NAME every entry is rendered in declaration order.  ``--drop``
renders DROP FUNCTION statements instead (reverse declaration order when
no NAME is given).
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from compat_services import CatalogService


def _parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Render catalog DDL")
    p.add_argument("names", nargs="*", help="Entries to render (default: all)")
    p.add_argument("--catalog-id", default=None, help="Catalog set id (default: active set)")
    p.add_argument("--config-dir", type=Path, default=None, help="Catalog sets directory")
    p.add_argument("--output", "-o", type=Path, default=None, help="Write to FILE instead of stdout")
    p.add_argument("--no-docs", action="store_true", help="Omit per-function comment headers")
    p.add_argument("--drop", action="store_true", help="Render DROP FUNCTION statements")
    p.add_argument("--drop-schema", action="store_true", help="With --drop: end with DROP SCHEMA")
    return p.parse_args(argv)


def main(argv=None) -> int:
    args = _parse_args(argv)
    service = CatalogService.from_active_catalog(
        catalog_id=args.catalog_id, config_dir=args.config_dir
    )
    names = args.names or None
    if args.drop:
        script = service.render_drop_script(names, include_namespace=args.drop_schema)
    else:
        script = service.render_script(names, include_docs=not args.no_docs)

    if args.output is None:
        sys.stdout.write(script)
    else:
        args.output.write_text(script)
        print(f"Wrote {len(script.splitlines())} lines to {args.output}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
