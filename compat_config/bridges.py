"""
Config -> Kernel Bridges.

Functions that convert CompiledCatalog artifacts into kernel-compatible
inputs. These live in compat_config (the producer) because the kernel
must NEVER import compat_config.

Usage:
    from compat_config.bridges import definitions_from_compiled, namespace_from_compiled

    catalog = get_active_catalog()
    namespace = namespace_from_compiled(catalog)
    definitions = definitions_from_compiled(catalog)
"""

from __future__ import annotations

import textwrap
from typing import Iterable

from compat_config.compiler import CompiledCatalog, CompiledEntry
from compat_kernel.domain.function_def import (
    FunctionDefinition,
    FunctionParameter,
    NamespaceDefinition,
)

DOC_WIDTH = 96
_CONTINUATION = "   "


def namespace_from_compiled(catalog: CompiledCatalog) -> NamespaceDefinition:
    return NamespaceDefinition(
        name=catalog.namespace.name,
        description=catalog.namespace.description,
    )


def definitions_from_compiled(
    catalog: CompiledCatalog, names: Iterable[str] | None = None
) -> list[FunctionDefinition]:
    """Kernel definitions in declaration order.

    When ``names`` is given only those entries are returned, still in
    declaration order.

    Raises:
        EntryNotFoundError: a requested name is not in the catalog.
    """
    if names is None:
        entries = list(catalog.entries)
    else:
        wanted = {catalog.entry(n).name for n in names}
        entries = [e for e in catalog.entries if e.name in wanted]
    return [definition_from_entry(catalog.namespace.name, e) for e in entries]


def definition_from_entry(namespace: str, entry: CompiledEntry) -> FunctionDefinition:
    return FunctionDefinition(
        namespace=namespace,
        name=entry.name,
        parameters=tuple(
            FunctionParameter(name=p.name, sql_type=p.sql_type, default=p.default)
            for p in entry.parameters
        ),
        return_type=entry.return_type,
        body=entry.target_expression,
        doc_lines=build_doc_lines(entry),
    )


def build_doc_lines(entry: CompiledEntry) -> tuple[str, ...]:
    """The comment header printed above each function's DDL.

    Layout (one ``-- `` comment per line once rendered)::

        NAME : DAY
        TYPE : DATE AND TIME
        DESCRIPTION : ...
        RETURN_TYPE : INT64
        PARAMETERS : ts - The input TIMESTAMP value.
        DIFFERENCE FROM MYSQL : ...
        LIMITATIONS : ...
    """
    if entry.parameters:
        params = "; ".join(
            f"{p.name} - {p.description}".rstrip(" -")
            + (f" (default {p.default})" if p.default is not None else "")
            for p in entry.parameters
        )
    else:
        params = "None"

    lines: list[str] = []
    lines += _field("NAME", entry.name)
    lines += _field("TYPE", entry.category.label)
    lines += _field("DESCRIPTION", entry.description or entry.name)
    lines += _field("RETURN_TYPE", entry.return_type)
    lines += _field("PARAMETERS", params)
    lines += _listing("DIFFERENCE FROM MYSQL", entry.deviations)
    lines += _listing("LIMITATIONS", entry.limitations)
    return tuple(lines)


def _field(label: str, text: str) -> list[str]:
    return textwrap.wrap(
        f"{label} : {text}",
        width=DOC_WIDTH,
        subsequent_indent=_CONTINUATION,
        break_on_hyphens=False,
    )


def _listing(label: str, items: tuple[str, ...]) -> list[str]:
    if not items:
        return [f"{label} : None"]
    if len(items) == 1:
        return _field(label, items[0])
    lines = [f"{label} :"]
    for i, item in enumerate(items, start=1):
        lines += textwrap.wrap(
            f"{i}. {item}",
            width=DOC_WIDTH,
            subsequent_indent=_CONTINUATION,
            break_on_hyphens=False,
        )
    return lines
