"""
Function definition DTOs.

Responsibility:
    Immutable, kernel-level description of what gets declared on the host
    engine: one namespace plus a list of scalar SQL functions, each with a
    typed parameter list, a return type, a single expression body and the
    documentation header printed above its DDL.

Architecture position:
    Kernel > Domain -- pure data, zero I/O.  Produced by
    ``compat_config.bridges`` from a compiled catalog; consumed by
    ``compat_kernel.ddl`` and ``compat_kernel.installer``.

Invariants enforced:
    - A definition has a non-empty name, return type and body.
    - At most one parameter carries a default, and only the last one.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class FunctionParameter:
    """One typed parameter in a function signature."""

    name: str
    sql_type: str
    default: str | None = None  # Rendered SQL literal, e.g. "1" or "'x'"

    def render(self) -> str:
        text = f"{self.name} {self.sql_type}"
        if self.default is not None:
            text += f" DEFAULT {self.default}"
        return text


@dataclass(frozen=True)
class NamespaceDefinition:
    """The non-default schema every catalog function lives under."""

    name: str
    description: str = ""


@dataclass(frozen=True)
class FunctionDefinition:
    """A complete create-or-replace function declaration."""

    namespace: str
    name: str
    parameters: tuple[FunctionParameter, ...]
    return_type: str
    body: str
    doc_lines: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("FunctionDefinition requires a name")
        if not self.return_type:
            raise ValueError(f"FunctionDefinition {self.name} requires a return type")
        if not self.body.strip():
            raise ValueError(f"FunctionDefinition {self.name} requires a body")
        defaults = [i for i, p in enumerate(self.parameters) if p.default is not None]
        if len(defaults) > 1 or (
            defaults and defaults[0] != len(self.parameters) - 1
        ):
            raise ValueError(
                f"FunctionDefinition {self.name}: only the last parameter "
                f"may carry a default value"
            )

    @property
    def qualified_name(self) -> str:
        return f"{self.namespace}.{self.name}"

    @property
    def signature(self) -> str:
        params = ", ".join(p.render() for p in self.parameters)
        return f"{self.qualified_name}({params})"
