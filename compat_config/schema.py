"""
CompatibilityCatalog schema.

Defines the human-authored, reviewable source artifact for the MySQL
compatibility catalog. YAML fragments are parsed into these types by the
loader, composed by the assembler, and compiled into a CompiledCatalog by the
compiler.

Key distinction:
  CompatibilityCatalog = source artifact (human-authored, versioned)
  CompiledCatalog      = runtime artifact (machine-validated, frozen)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique
from typing import Any

from compat_config.lifecycle import CatalogStatus

# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


@unique
class Category(str, Enum):
    """Informational classification of an entry (MySQL manual chapter)."""

    NUMERIC = "numeric"
    DATE_AND_TIME = "date_and_time"
    STRING = "string"
    ENCRYPTION = "encryption"
    JSON = "json"
    MISCELLANEOUS = "miscellaneous"

    @property
    def label(self) -> str:
        return _CATEGORY_LABELS[self]


_CATEGORY_LABELS = {
    Category.NUMERIC: "NUMERIC",
    Category.DATE_AND_TIME: "DATE AND TIME",
    Category.STRING: "STRING",
    Category.ENCRYPTION: "ENCRYPTION",
    Category.JSON: "JSON",
    Category.MISCELLANEOUS: "MISCELLANEOUS",
}


@unique
class ErrorPolicy(str, Enum):
    """What the entry does with input the host primitive rejects.

    RAISE -- the stricter host error propagates and aborts the statement.
    NULL  -- a guard turns the invalid input into NULL, as MySQL does.
    """

    RAISE = "raise"
    NULL = "null"


# ---------------------------------------------------------------------------
# Entry definitions (declarative data, no executable logic)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ParameterDef:
    """One parameter of an entry's fixed signature."""

    name: str
    sql_type: str
    description: str = ""
    default: str | None = None  # SQL literal text, e.g. "1"


@dataclass(frozen=True)
class ExampleDef:
    """An authored input/outcome pair checked by the reference harness.

    Exactly one of ``returns`` / ``raises`` is meaningful: ``raises`` holds
    a substring of the expected abort message; otherwise ``returns`` is the
    expected value (None meaning SQL NULL).
    """

    args: tuple[Any, ...]
    returns: Any = None
    raises: str | None = None


@dataclass(frozen=True)
class MappingEntry:
    """One MySQL built-in mapped onto a GoogleSQL expression."""

    name: str
    category: Category
    parameters: tuple[ParameterDef, ...]
    return_type: str
    target_expression: str
    error_policy: ErrorPolicy
    description: str = ""
    deviations: tuple[str, ...] = ()
    limitations: tuple[str, ...] = ()
    examples: tuple[ExampleDef, ...] = ()
    deterministic: bool = True

    @property
    def arity(self) -> int:
        return len(self.parameters)

    @property
    def min_arity(self) -> int:
        return sum(1 for p in self.parameters if p.default is None)


# ---------------------------------------------------------------------------
# Namespace
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NamespaceDef:
    """The non-default schema that groups every entry."""

    name: str
    description: str = ""


# ---------------------------------------------------------------------------
# Complete catalog set
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CompatibilityCatalog:
    """The complete, human-authored catalog source artifact.

    Entries keep authoring order; that order is the order functions are
    declared in and the position a redefinition preserves.
    """

    catalog_id: str
    version: int
    checksum: str
    status: CatalogStatus
    source_dialect: str
    target_dialect: str
    namespace: NamespaceDef
    entries: tuple[MappingEntry, ...]
    host_builtins: frozenset[str] = frozenset()
    reserved_keywords: frozenset[str] = frozenset()
    predecessor: str | None = None
    description: str = ""

    def find_entry(self, name: str) -> MappingEntry | None:
        key = name.upper()
        for entry in self.entries:
            if entry.name.upper() == key:
                return entry
        return None
