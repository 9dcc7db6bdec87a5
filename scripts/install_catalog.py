#!/usr/bin/env python3
"""
Install or drop the active compatibility catalog on a database.

Usage:
  python3 scripts/install_catalog.py install [--database-url URL] [NAME ...]
  python3 scripts/install_catalog.py drop [--database-url URL] [--drop-schema] [NAME ...]
  python3 scripts/install_catalog.py install --dry-run

The database URL comes from --database-url or DATABASE_URL, e.g.
  spanner+spanner:///projects/p/instances/i/databases/d

--dry-run executes against a SQLAlchemy mock engine and prints each
statement instead of connecting.
"""

import argparse
import logging
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from sqlalchemy import create_mock_engine

from compat_kernel.db.engine import connection_scope, init_engine_from_url, reset_engine
from compat_kernel.exceptions import CompatKernelError
from compat_kernel.installer import CatalogInstaller
from compat_kernel.logging_config import configure_logging
from compat_services import CatalogService

DRY_RUN_URL = "sqlite://"


def _parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Install or drop the compatibility catalog")
    p.add_argument("action", choices=("install", "drop"))
    p.add_argument("names", nargs="*", help="Entries to act on (default: all)")
    p.add_argument(
        "--database-url",
        default=os.environ.get("DATABASE_URL"),
        help="SQLAlchemy database URL (default: DATABASE_URL)",
    )
    p.add_argument("--catalog-id", default=None, help="Catalog set id (default: active set)")
    p.add_argument("--config-dir", type=Path, default=None, help="Catalog sets directory")
    p.add_argument(
        "--skip-schema",
        action="store_true",
        help="Do not emit CREATE SCHEMA (the schema already exists)",
    )
    p.add_argument(
        "--drop-schema",
        action="store_true",
        help="With drop: also drop the schema after its functions",
    )
    p.add_argument("--dry-run", action="store_true", help="Print statements instead of executing")
    p.add_argument("--verbose", "-v", action="store_true", help="Log every statement")
    return p.parse_args(argv)


def _run(service: CatalogService, args: argparse.Namespace, connection, names):
    if args.action == "install":
        return service.install(connection, names)
    return service.drop(connection, names, drop_namespace=args.drop_schema)


def main(argv=None) -> int:
    args = _parse_args(argv)
    configure_logging(level=logging.DEBUG if args.verbose else logging.INFO)

    service = CatalogService.from_active_catalog(
        catalog_id=args.catalog_id,
        config_dir=args.config_dir,
        installer=CatalogInstaller(create_namespace=not args.skip_schema),
    )
    names = args.names or None

    if args.dry_run:
        def dump(sql, *multiparams, **params):
            print(str(sql.compile(dialect=engine.dialect)) + ";\n")

        engine = create_mock_engine(DRY_RUN_URL, dump)
        report = _run(service, args, engine, names)
        print(f"-- {report.statement_count} statements (dry run)", file=sys.stderr)
        return 0

    if not args.database_url:
        print("Error: --database-url or DATABASE_URL is required", file=sys.stderr)
        return 2

    init_engine_from_url(args.database_url)
    try:
        with connection_scope() as conn:
            report = _run(service, args, conn, names)
    except CompatKernelError as exc:
        print(f"Error [{exc.code}]: {exc}", file=sys.stderr)
        return 1
    finally:
        reset_engine()

    print(f"{args.action}: {report.statement_count} statements on schema {report.namespace}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
