"""
Compat Kernel - MySQL compatibility catalog for Spanner

Innermost layer of the catalog tooling:
- Typed exceptions with machine-readable codes
- Structured JSON logging
- Function definition DTOs and GoogleSQL DDL rendering
- DDL installation through SQLAlchemy
- Reference model of each catalog entry's host behaviour
"""

__version__ = "1.0.0"
