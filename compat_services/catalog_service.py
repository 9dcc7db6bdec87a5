"""
compat_services.catalog_service -- Render, install, drop and verify a catalog.

Responsibility:
    Binds one ``CompiledCatalog`` to the kernel: turns its entries into
    function definitions, renders the DDL script, applies or drops the
    functions through a database connection, and runs the reference
    harness over the authored examples.

Architecture position:
    Services -- composes ``compat_config`` (active catalog, bridges,
    harness) with ``compat_kernel`` (ddl, installer).

Invariants enforced:
    - Definitions always follow catalog declaration order, so an entry is
      declared after every entry its body calls.
    - Install and drop work on a caller-owned connection; this service never
      commits or opens connections itself.

Failure modes:
    - EntryNotFoundError: ``drop`` named an entry the catalog lacks.
    - InstallationError: the host rejected a statement.
    - CatalogVerificationError: ``verify`` found failing examples or a
      catalog/reference arity disagreement.

Usage:
    service = CatalogService.from_active_catalog()
    print(service.render_script())

    with connection_scope() as conn:
        service.install(conn)
"""

from __future__ import annotations

from datetime import tzinfo
from pathlib import Path
from typing import Any, Iterable

from compat_config import get_active_catalog
from compat_config.bridges import definitions_from_compiled, namespace_from_compiled
from compat_config.compiler import CompiledCatalog
from compat_config.harness import HarnessReport, verify_catalog
from compat_kernel.ddl import render_drop_script, render_script
from compat_kernel.domain.function_def import FunctionDefinition, NamespaceDefinition
from compat_kernel.installer import CatalogInstaller, InstallReport
from compat_kernel.logging_config import LogContext, get_logger
from compat_kernel.reference import ReferenceEvaluator

logger = get_logger("services.catalog")


class CatalogService:
    """
    One compiled catalog, ready to render, install or verify.

    Contract:
        The catalog passed in has already been validated and compiled
        (``get_active_catalog()`` guarantees both).  ``time_zone`` is the
        database default time zone the reference harness assumes.
    """

    def __init__(
        self,
        catalog: CompiledCatalog,
        time_zone: str | tzinfo = "UTC",
        installer: CatalogInstaller | None = None,
    ):
        self._catalog = catalog
        self._namespace = namespace_from_compiled(catalog)
        self._definitions = definitions_from_compiled(catalog)
        self._evaluator = ReferenceEvaluator(time_zone)
        self._installer = installer or CatalogInstaller()

    @classmethod
    def from_active_catalog(
        cls,
        catalog_id: str | None = None,
        config_dir: Path | None = None,
        time_zone: str | tzinfo = "UTC",
        installer: CatalogInstaller | None = None,
    ) -> CatalogService:
        return cls(
            get_active_catalog(catalog_id=catalog_id, config_dir=config_dir),
            time_zone=time_zone,
            installer=installer,
        )

    @property
    def catalog(self) -> CompiledCatalog:
        return self._catalog

    @property
    def namespace(self) -> NamespaceDefinition:
        return self._namespace

    @property
    def definitions(self) -> list[FunctionDefinition]:
        return list(self._definitions)

    def preamble(self) -> list[str]:
        """Header comment lines identifying the exact catalog rendered."""
        c = self._catalog
        return [
            f"{c.catalog_id} version {c.catalog_version} ({c.status.value})",
            f"fingerprint: {c.canonical_fingerprint}",
            f"{len(c.entries)} functions in schema {c.namespace.name}",
        ]

    def render_script(
        self,
        names: Iterable[str] | None = None,
        include_docs: bool = True,
    ) -> str:
        """Full DDL script, or the subset ``names`` in declaration order."""
        definitions = (
            self._definitions
            if names is None
            else definitions_from_compiled(self._catalog, names)
        )
        return render_script(
            self._namespace,
            definitions,
            include_docs=include_docs,
            preamble=self.preamble(),
        )

    def render_drop_script(
        self,
        names: Iterable[str] | None = None,
        include_namespace: bool = False,
    ) -> str:
        return render_drop_script(
            self._namespace, self._resolve_names(names), include_namespace
        )

    def install(
        self, connection: Any, names: Iterable[str] | None = None
    ) -> InstallReport:
        definitions = (
            self._definitions
            if names is None
            else definitions_from_compiled(self._catalog, names)
        )
        with LogContext.bind(catalog_id=self._catalog.catalog_id):
            logger.info(
                "catalog_install_started",
                extra={
                    "catalog_version": self._catalog.catalog_version,
                    "canonical_fingerprint": self._catalog.canonical_fingerprint,
                    "function_count": len(definitions),
                },
            )
            return self._installer.install(connection, self._namespace, definitions)

    def drop(
        self,
        connection: Any,
        names: Iterable[str] | None = None,
        drop_namespace: bool = False,
    ) -> InstallReport:
        """Drop the named entries; all entries in reverse order when omitted.

        With ``drop_namespace`` the schema itself is dropped afterwards.
        """
        resolved = self._resolve_names(names)
        with LogContext.bind(catalog_id=self._catalog.catalog_id):
            return self._installer.drop(
                connection, self._namespace, resolved, drop_namespace
            )

    def verify(self) -> HarnessReport:
        """Run every example through the reference models.

        Raises:
            CatalogVerificationError: an example failed, a deterministic
                entry has no reference model, or an entry and its model
                disagree on arity.
        """
        with LogContext.bind(catalog_id=self._catalog.catalog_id):
            report = verify_catalog(self._catalog, self._evaluator)
            logger.info("catalog_verified", extra={"summary": report.summary()})
        return report

    def _resolve_names(self, names: Iterable[str] | None) -> list[str]:
        # Reverse declaration order keeps callers dropped before callees.
        if names is None:
            return [e.name for e in reversed(self._catalog.entries)]
        return [self._catalog.entry(n).name for n in names]
