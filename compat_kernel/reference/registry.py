"""ReferenceRegistry -- entry name to reference implementation dispatch."""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Any, Callable, ClassVar

from compat_kernel.exceptions import ReferenceNotFoundError


@dataclass(frozen=True)
class ReferenceImpl:
    """A Python model of what one catalog entry computes on the host."""

    name: str
    func: Callable[..., Any]
    arity: int
    min_arity: int
    null_propagating: bool = True
    uses_time_zone: bool = False


class ReferenceRegistry:
    """Registry for reference implementations, keyed by upper-case name."""

    _impls: ClassVar[dict[str, ReferenceImpl]] = {}

    @classmethod
    def register(cls, impl: ReferenceImpl) -> None:
        key = impl.name.upper()
        if key in cls._impls:
            raise ValueError(f"Reference implementation already registered for {key}")
        cls._impls[key] = impl

    @classmethod
    def get(cls, name: str) -> ReferenceImpl:
        try:
            return cls._impls[name.upper()]
        except KeyError:
            raise ReferenceNotFoundError(name.upper()) from None

    @classmethod
    def has(cls, name: str) -> bool:
        return name.upper() in cls._impls

    @classmethod
    def names(cls) -> list[str]:
        return sorted(cls._impls)


def reference(
    name: str,
    *,
    null_propagating: bool = True,
    time_zone: bool = False,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Register the decorated function as the reference model for ``name``.

    Positional parameters define the entry's arity; a parameter with a
    default maps to the entry's documented default value.  Functions that
    read the session time zone take it as the keyword-only ``tz``.
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        params = [
            p for p in inspect.signature(func).parameters.values()
            if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)
        ]
        required = [p for p in params if p.default is p.empty]
        ReferenceRegistry.register(
            ReferenceImpl(
                name=name.upper(),
                func=func,
                arity=len(params),
                min_arity=len(required),
                null_propagating=null_propagating,
                uses_time_zone=time_zone,
            )
        )
        return func

    return decorator
