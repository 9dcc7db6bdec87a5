"""
Module: compat_kernel.db.engine
Responsibility: SQLAlchemy engine initialization and the connection scope used
    to apply catalog DDL.  This is the single point of database connection
    configuration for the catalog tooling.
Architecture position: Kernel > DB.  MUST NOT import from compat_config or
    compat_services.

Invariants enforced:
    - The host dialect is whatever the URL names (the Spanner dialect in
      production); nothing here assumes PostgreSQL or SQLite.
    - Connections are pre-pinged so stale pooled connections are discarded.

Failure modes:
    - RuntimeError if get_engine/connection_scope called before
      init_engine_from_url().
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, Engine

from compat_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

# Module-level engine
_engine: Engine | None = None


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_pre_ping: bool = True,
) -> Engine:
    """
    Initialize the SQLAlchemy engine from a database URL.

    Preconditions: database_url names an installed SQLAlchemy dialect.
        A second call replaces the first engine.
    Postconditions: Module-level _engine is initialized.

    Args:
        database_url: SQLAlchemy URL, e.g.
            spanner+spanner:///projects/p/instances/i/databases/d
        echo: If True, log all SQL statements.
        pool_pre_ping: If True, test connections before use.

    Returns:
        SQLAlchemy Engine instance.
    """
    global _engine

    if _engine is not None:
        _engine.dispose()

    _engine = create_engine(
        database_url,
        echo=echo,
        pool_pre_ping=pool_pre_ping,
    )

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={
            "dialect": _engine.dialect.name,
            "echo": echo,
        },
    )

    return _engine


def get_engine() -> Engine:
    """
    Get the current engine instance.

    Raises:
        RuntimeError: If engine has not been initialized.
    """
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine


@contextmanager
def connection_scope() -> Generator[Connection, None, None]:
    """
    Provide a connection whose work is committed on normal exit.

    On exception the connection is rolled back and the exception re-raised.
    Spanner applies DDL outside transactions, so statements that already ran
    stay applied.

    Usage:
        with connection_scope() as conn:
            installer.install(conn, namespace, definitions)
    """
    engine = get_engine()
    with engine.connect() as conn:
        logger.debug("connection_opened")
        try:
            yield conn
            conn.commit()
            logger.debug("connection_committed")
        except Exception:
            conn.rollback()
            logger.warning("connection_rolled_back", exc_info=True)
            raise


def reset_engine() -> None:
    """
    Dispose of the engine.

    Useful for test cleanup.
    """
    global _engine

    if _engine is not None:
        _engine.dispose()
        _engine = None
