"""
compat_services -- Package init and public API.

Responsibility:
    Orchestration over the compiled catalog and the kernel.  This is the
    only layer that combines ``compat_config`` (catalog selection, bridges,
    reference harness) with ``compat_kernel`` (DDL, installer) and holds a
    database connection while doing so.

Architecture position:
    Services -- stateful orchestration over config + kernel.

    Dependency direction (enforced by tests/architecture/test_kernel_boundary.py):
        compat_services/ -> compat_config/   (allowed)
        compat_services/ -> compat_kernel/   (allowed)
        compat_config/   -> compat_services/ (FORBIDDEN)
        compat_kernel/   -> compat_services/ (FORBIDDEN)
"""

from compat_services.catalog_service import CatalogService

__all__ = ["CatalogService"]
