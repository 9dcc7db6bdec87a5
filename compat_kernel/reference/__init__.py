"""
Reference model of catalog entries.

Responsibility:
    Python implementations of what each deterministic catalog entry computes
    on the host engine, including where it aborts and where its guard turns
    bad input into NULL.  Used by the validation harness to check authored
    examples and the catalog's testable properties without a live database.

Architecture position:
    Kernel -- pure functions plus a class-level registry.  Implementations
    self-register on import of this package.

Invariants enforced:
    - NULL in, NULL out, unless the implementation opts out
      (``null_propagating=False``), matching entries that turn NULL into a
      value.
    - Host aborts surface as ``EvaluationAbortError``; nothing is caught.
    - Argument counts are checked against the registered arity, allowing the
      single documented default.

Failure modes:
    - ReferenceNotFoundError: no reference model for the entry.
    - ArityMismatchError: wrong argument count.
    - EvaluationAbortError: the entry aborts for this input.
"""

from __future__ import annotations

from datetime import tzinfo
from typing import Any
from zoneinfo import ZoneInfo

# Implementations self-register on import
from compat_kernel.reference import encoding, network, numeric, strings, temporal  # noqa: F401
from compat_kernel.reference.registry import ReferenceImpl, ReferenceRegistry, reference
from compat_kernel.exceptions import ArityMismatchError

__all__ = [
    "ReferenceEvaluator",
    "ReferenceImpl",
    "ReferenceRegistry",
    "reference",
]


class ReferenceEvaluator:
    """Evaluates catalog entries against their reference models.

    ``time_zone`` stands in for the database default time zone that the host
    uses when reading TIMESTAMP values.
    """

    def __init__(self, time_zone: str | tzinfo = "UTC"):
        self._tz = ZoneInfo(time_zone) if isinstance(time_zone, str) else time_zone

    @property
    def time_zone(self) -> tzinfo:
        return self._tz

    def has(self, name: str) -> bool:
        return ReferenceRegistry.has(name)

    def evaluate(self, name: str, *args: Any) -> Any:
        impl = ReferenceRegistry.get(name)
        if not impl.min_arity <= len(args) <= impl.arity:
            expected = (
                str(impl.arity)
                if impl.min_arity == impl.arity
                else f"{impl.min_arity}-{impl.arity}"
            )
            raise ArityMismatchError(impl.name, expected, len(args))

        if impl.null_propagating and any(a is None for a in args):
            return None

        if impl.uses_time_zone:
            return impl.func(*args, tz=self._tz)
        return impl.func(*args)
