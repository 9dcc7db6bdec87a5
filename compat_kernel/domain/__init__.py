"""
Pure domain layer.

Immutable data transfer objects with NO dependencies on:
- SQLAlchemy
- Database
- I/O
"""

from compat_kernel.domain.function_def import (
    FunctionDefinition,
    FunctionParameter,
    NamespaceDefinition,
)

__all__ = [
    "FunctionDefinition",
    "FunctionParameter",
    "NamespaceDefinition",
]
