"""
Catalog set lifecycle status.

Catalog sets are append-only. Each version declares its predecessor.
Only PUBLISHED sets are preferred for installation. Superseded sets remain
for audit and rollback.
"""

from enum import Enum, unique


@unique
class CatalogStatus(str, Enum):
    """Lifecycle status for a catalog set."""

    DRAFT = "draft"
    REVIEWED = "reviewed"
    APPROVED = "approved"
    PUBLISHED = "published"
    SUPERSEDED = "superseded"


# Allowed status transitions (from -> set of valid next states)
ALLOWED_TRANSITIONS: dict[CatalogStatus, frozenset[CatalogStatus]] = {
    CatalogStatus.DRAFT: frozenset({CatalogStatus.REVIEWED}),
    CatalogStatus.REVIEWED: frozenset({CatalogStatus.APPROVED, CatalogStatus.DRAFT}),
    CatalogStatus.APPROVED: frozenset({CatalogStatus.PUBLISHED, CatalogStatus.DRAFT}),
    CatalogStatus.PUBLISHED: frozenset({CatalogStatus.SUPERSEDED}),
    CatalogStatus.SUPERSEDED: frozenset(),  # Terminal
}


def validate_transition(current: CatalogStatus, target: CatalogStatus) -> bool:
    """Check if a status transition is valid."""
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


# Statuses that already passed approval; re-pinning them needs no transition.
PINNABLE_STATUSES: frozenset[CatalogStatus] = frozenset({
    CatalogStatus.APPROVED,
    CatalogStatus.PUBLISHED,
})


def can_approve(status: CatalogStatus) -> bool:
    """Whether a set in ``status`` may have its fingerprint pinned."""
    return status in PINNABLE_STATUSES or validate_transition(
        status, CatalogStatus.APPROVED
    )
