"""Database layer - engine bootstrap and transactional connection scope."""

from compat_kernel.db.engine import (
    connection_scope,
    get_engine,
    init_engine_from_url,
    reset_engine,
)

__all__ = [
    "connection_scope",
    "get_engine",
    "init_engine_from_url",
    "reset_engine",
]
