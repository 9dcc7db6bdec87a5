"""
Module: compat_kernel.ddl
Responsibility: GoogleSQL DDL for catalog namespaces and functions, expressed
    as SQLAlchemy executable DDL elements so the same objects can be rendered
    to a script or executed on a live connection.
Architecture position: Kernel.  Depends on compat_kernel.domain only.

Invariants enforced:
    - Function declarations always use CREATE OR REPLACE (idempotent
      redefinition; a redeclared name fully replaces the prior body).
    - The namespace statement precedes every function statement in a script
      and tolerates an existing schema, so a script can be applied again.
    - A dropped namespace is dropped after every function in it.
    - Every function belongs to the declared namespace.

Failure modes:
    - NamespaceNotDeclaredError when a definition's namespace differs from the
      namespace being rendered.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from sqlalchemy.ext.compiler import compiles
from sqlalchemy.schema import ExecutableDDLElement

from compat_kernel.domain.function_def import FunctionDefinition, NamespaceDefinition
from compat_kernel.exceptions import NamespaceNotDeclaredError

STATEMENT_TERMINATOR = ";"


# ---------------------------------------------------------------------------
# DDL elements
# ---------------------------------------------------------------------------


class CreateNamespace(ExecutableDDLElement):
    """CREATE SCHEMA for the catalog namespace."""

    def __init__(self, namespace: NamespaceDefinition):
        self.namespace = namespace


class DropNamespace(ExecutableDDLElement):
    """DROP SCHEMA for the catalog namespace."""

    def __init__(self, namespace: NamespaceDefinition):
        self.namespace = namespace


class CreateOrReplaceFunction(ExecutableDDLElement):
    """CREATE OR REPLACE FUNCTION for one catalog entry."""

    def __init__(self, definition: FunctionDefinition):
        self.definition = definition


class DropFunction(ExecutableDDLElement):
    """DROP FUNCTION for one catalog entry, by name."""

    def __init__(self, namespace: str, name: str):
        self.namespace = namespace
        self.name = name


@compiles(CreateNamespace)
def _compile_create_namespace(element: CreateNamespace, compiler, **kw) -> str:
    return f"CREATE SCHEMA IF NOT EXISTS {element.namespace.name}"


@compiles(DropNamespace)
def _compile_drop_namespace(element: DropNamespace, compiler, **kw) -> str:
    return f"DROP SCHEMA {element.namespace.name}"


@compiles(CreateOrReplaceFunction)
def _compile_create_function(
    element: CreateOrReplaceFunction, compiler, **kw
) -> str:
    d = element.definition
    body = _indent(d.body.strip(), "    ")
    return (
        f"CREATE OR REPLACE FUNCTION {d.signature}\n"
        f"    RETURNS {d.return_type}\n"
        f"AS (\n"
        f"{body}\n"
        f"    )"
    )


@compiles(DropFunction)
def _compile_drop_function(element: DropFunction, compiler, **kw) -> str:
    return f"DROP FUNCTION {element.namespace}.{element.name}"


def _indent(text: str, prefix: str) -> str:
    return "\n".join(prefix + line if line.strip() else line for line in text.splitlines())


# ---------------------------------------------------------------------------
# Statement construction
# ---------------------------------------------------------------------------


def build_install_statements(
    namespace: NamespaceDefinition,
    definitions: Sequence[FunctionDefinition],
) -> list[ExecutableDDLElement]:
    """Namespace first, then one create-or-replace per definition, in order.

    Raises:
        NamespaceNotDeclaredError: a definition belongs to another namespace.
    """
    statements: list[ExecutableDDLElement] = [CreateNamespace(namespace)]
    for definition in definitions:
        _check_namespace(definition, namespace)
        statements.append(CreateOrReplaceFunction(definition))
    return statements


def build_drop_statements(
    namespace: NamespaceDefinition,
    names: Iterable[str],
    include_namespace: bool = False,
) -> list[ExecutableDDLElement]:
    """One DROP FUNCTION per name; DROP SCHEMA last when requested."""
    statements: list[ExecutableDDLElement] = [
        DropFunction(namespace.name, name) for name in names
    ]
    if include_namespace:
        statements.append(DropNamespace(namespace))
    return statements


def _check_namespace(
    definition: FunctionDefinition, namespace: NamespaceDefinition
) -> None:
    if definition.namespace != namespace.name:
        raise NamespaceNotDeclaredError(
            definition.name, definition.namespace, namespace.name
        )


def statement_sql(statement: ExecutableDDLElement) -> str:
    """Render one DDL element to GoogleSQL text without a terminator."""
    return str(statement.compile())


# ---------------------------------------------------------------------------
# Script rendering
# ---------------------------------------------------------------------------


def render_doc_header(doc_lines: Sequence[str]) -> str:
    return "\n".join(f"-- {line}" if line else "--" for line in doc_lines)


def render_script(
    namespace: NamespaceDefinition,
    definitions: Sequence[FunctionDefinition],
    include_docs: bool = True,
    preamble: Sequence[str] = (),
) -> str:
    """Render a complete, re-runnable DDL script.

    Output layout::

        -- <preamble lines>

        CREATE SCHEMA IF NOT EXISTS mysql;

        -- NAME : DAY
        -- ...
        CREATE OR REPLACE FUNCTION mysql.DAY(ts TIMESTAMP)
            RETURNS INT64
        AS (
            EXTRACT(DAY FROM ts)
            );
    """
    chunks: list[str] = []
    if preamble:
        chunks.append(render_doc_header(preamble))

    statements = build_install_statements(namespace, definitions)
    chunks.append(statement_sql(statements[0]) + STATEMENT_TERMINATOR)

    for definition, statement in zip(definitions, statements[1:]):
        sql = statement_sql(statement) + STATEMENT_TERMINATOR
        if include_docs and definition.doc_lines:
            sql = render_doc_header(definition.doc_lines) + "\n" + sql
        chunks.append(sql)

    return "\n\n".join(chunks) + "\n"


def render_drop_script(
    namespace: NamespaceDefinition,
    names: Iterable[str],
    include_namespace: bool = False,
) -> str:
    return "\n".join(
        statement_sql(s) + STATEMENT_TERMINATOR
        for s in build_drop_statements(namespace, names, include_namespace)
    ) + "\n"
