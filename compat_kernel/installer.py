"""
CatalogInstaller -- applies catalog DDL to a host database.

Responsibility:
    Executes the namespace statement followed by one create-or-replace
    statement per function definition, or one drop statement per name,
    through a SQLAlchemy connection.

Architecture position:
    Kernel -- imperative shell around ``compat_kernel.ddl``.
    Called by ``compat_services.catalog_service.CatalogService``.

Invariants enforced:
    - The namespace statement executes before any function statement.
    - Statements execute in catalog order.  Re-running an install is
      idempotent: the schema statement is IF NOT EXISTS and every function
      statement is create-or-replace.
    - A drop that includes the namespace drops the schema last.

Failure modes:
    - InstallationError: the host rejected a statement.  Statements that ran
      before it stay applied (host DDL is not transactional).
    - NamespaceNotDeclaredError: a definition belongs to another namespace.

Audit relevance:
    One structured log record per executed statement (entry name, statement
    kind), plus a summary record per install or drop.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.schema import ExecutableDDLElement

from compat_kernel.ddl import (
    CreateNamespace,
    CreateOrReplaceFunction,
    DropFunction,
    DropNamespace,
    build_drop_statements,
    build_install_statements,
    statement_sql,
)
from compat_kernel.domain.function_def import FunctionDefinition, NamespaceDefinition
from compat_kernel.exceptions import InstallationError
from compat_kernel.logging_config import LogContext, get_logger

logger = get_logger("installer")


@dataclass
class InstallReport:
    """What an install or drop run executed, in order."""

    namespace: str
    executed: list[str] = field(default_factory=list)
    entry_names: list[str] = field(default_factory=list)

    @property
    def statement_count(self) -> int:
        return len(self.executed)


class CatalogInstaller:
    """
    Applies compiled catalog definitions to a database connection.

    Contract:
        ``connection`` is anything exposing ``execute(statement)`` the way a
        SQLAlchemy ``Connection`` does (including the mock connection from
        ``sqlalchemy.create_mock_engine``).  The installer never commits;
        the caller owns the connection scope.

    Usage:
        installer = CatalogInstaller()
        with connection_scope() as conn:
            report = installer.install(conn, namespace, definitions)
    """

    def __init__(self, create_namespace: bool = True):
        self._create_namespace = create_namespace

    def install(
        self,
        connection: Any,
        namespace: NamespaceDefinition,
        definitions: Sequence[FunctionDefinition],
    ) -> InstallReport:
        statements = build_install_statements(namespace, definitions)
        if not self._create_namespace:
            statements = statements[1:]

        report = InstallReport(namespace=namespace.name)
        for statement in statements:
            self._execute(connection, statement, report)

        logger.info(
            "catalog_installed",
            extra={
                "namespace": namespace.name,
                "function_count": len(definitions),
                "statement_count": report.statement_count,
            },
        )
        return report

    def drop(
        self,
        connection: Any,
        namespace: NamespaceDefinition,
        names: Iterable[str],
        drop_namespace: bool = False,
    ) -> InstallReport:
        report = InstallReport(namespace=namespace.name)
        for statement in build_drop_statements(namespace, names, drop_namespace):
            self._execute(connection, statement, report)

        logger.info(
            "catalog_entries_dropped",
            extra={
                "namespace": namespace.name,
                "dropped": list(report.entry_names),
                "namespace_dropped": drop_namespace,
            },
        )
        return report

    def _execute(
        self,
        connection: Any,
        statement: ExecutableDDLElement,
        report: InstallReport,
    ) -> None:
        entry_name, kind = _describe(statement)
        sql = statement_sql(statement)
        with LogContext.bind(entry_name=entry_name, statement_kind=kind):
            try:
                connection.execute(statement)
            except SQLAlchemyError as exc:
                logger.error("ddl_statement_failed", exc_info=True)
                raise InstallationError(entry_name, sql, str(exc)) from exc
            logger.debug("ddl_statement_executed")

        report.executed.append(sql)
        if kind not in ("create_namespace", "drop_namespace"):
            report.entry_names.append(entry_name)


def _describe(statement: ExecutableDDLElement) -> tuple[str, str]:
    """Return (entry name, statement kind) for logging."""
    if isinstance(statement, CreateOrReplaceFunction):
        return statement.definition.name, "create_function"
    if isinstance(statement, DropFunction):
        return statement.name, "drop_function"
    if isinstance(statement, CreateNamespace):
        return statement.namespace.name, "create_namespace"
    if isinstance(statement, DropNamespace):
        return statement.namespace.name, "drop_namespace"
    return type(statement).__name__, "other"
