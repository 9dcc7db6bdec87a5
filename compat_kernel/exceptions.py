"""
Typed Exception Hierarchy for the Compat Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

A compatibility catalog is consumed by build scripts, installers and test
harnesses. Each of them needs to react to a specific failure (a bad YAML
fragment, a fingerprint mismatch, a DDL statement the host refused) without
parsing message strings. Every error therefore:

  1. Has a TYPED exception class (catch by type, not message)
  2. Has a CODE attribute (machine-readable, log-safe)
  3. Carries structured DATA (entry name, catalog id, directive, ...)

Example:
    try:
        installer.install(conn, namespace, definitions)
    except InstallationError as e:
        log.error("install failed", extra={"entry": e.entry_name, "code": e.code})

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    CompatKernelError (base)
    |
    +-- CatalogError
    |   +-- EntryNotFoundError
    |   +-- NamespaceNotDeclaredError
    |
    +-- EvaluationError
    |   +-- EvaluationAbortError
    |   +-- ReferenceNotFoundError
    |   +-- ArityMismatchError
    |
    +-- DDLError
        +-- InstallationError

Config-layer errors (AssemblyError, CompilationFailedError,
CatalogIntegrityError, CatalogVerificationError) live next to the code that
raises them but also derive from CompatKernelError.

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category    | Code                     | When Raised
------------|--------------------------|---------------------------------------
Catalog     | ENTRY_NOT_FOUND          | Name not present in the catalog
            | NAMESPACE_NOT_DECLARED   | Function emitted before its schema
------------|--------------------------|---------------------------------------
Evaluation  | EVALUATION_ABORTED       | Entry aborts on the host (ERROR(...))
            | REFERENCE_NOT_FOUND      | No reference model for an entry
            | ARITY_MISMATCH           | Wrong number of arguments
------------|--------------------------|---------------------------------------
DDL         | INSTALLATION_FAILED      | Host rejected a DDL statement
"""


class CompatKernelError(Exception):
    """
    Base exception for all compat kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "COMPAT_KERNEL_ERROR"


# Catalog-related exceptions


class CatalogError(CompatKernelError):
    """Base exception for catalog structure errors."""

    code: str = "CATALOG_ERROR"


class EntryNotFoundError(CatalogError):
    """No entry with the given name exists."""

    code: str = "ENTRY_NOT_FOUND"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Catalog entry not found: {name}")




class NamespaceNotDeclaredError(CatalogError):
    """A function definition references a namespace that was not declared."""

    code: str = "NAMESPACE_NOT_DECLARED"

    def __init__(self, function_name: str, namespace: str, declared: str):
        self.function_name = function_name
        self.namespace = namespace
        self.declared = declared
        super().__init__(
            f"Function {function_name} belongs to namespace '{namespace}' "
            f"but the declared namespace is '{declared}'"
        )


# Evaluation-related exceptions


class EvaluationError(CompatKernelError):
    """Base exception for reference evaluation errors."""

    code: str = "EVALUATION_ERROR"


class EvaluationAbortError(EvaluationError):
    """The entry aborts the containing statement on the host engine.

    Mirrors an evaluation-time abort: either the host primitive raises or the
    entry routes the input through an explicit ERROR(...) call.
    """

    code: str = "EVALUATION_ABORTED"

    def __init__(self, function_name: str, message: str):
        self.function_name = function_name
        self.detail = message
        super().__init__(f"{function_name}: {message}")


class ReferenceNotFoundError(EvaluationError):
    """No reference implementation is registered for an entry."""

    code: str = "REFERENCE_NOT_FOUND"

    def __init__(self, function_name: str):
        self.function_name = function_name
        super().__init__(f"No reference implementation for {function_name}")


class ArityMismatchError(EvaluationError):
    """Wrong number of arguments supplied to an entry."""

    code: str = "ARITY_MISMATCH"

    def __init__(self, function_name: str, expected: str, actual: int):
        self.function_name = function_name
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{function_name} expects {expected} argument(s), got {actual}"
        )


# DDL-related exceptions


class DDLError(CompatKernelError):
    """Base exception for DDL rendering and installation errors."""

    code: str = "DDL_ERROR"


class InstallationError(DDLError):
    """The host engine rejected a DDL statement."""

    code: str = "INSTALLATION_FAILED"

    def __init__(self, entry_name: str, statement: str, reason: str):
        self.entry_name = entry_name
        self.statement = statement
        self.reason = reason
        super().__init__(
            f"Installing {entry_name} failed: {reason}"
        )
