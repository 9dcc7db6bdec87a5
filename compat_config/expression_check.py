"""
Restricted checks for entry target expressions.

Target expressions are GoogleSQL text that ends up inside
``CREATE OR REPLACE FUNCTION ... AS ( <expression> )``.  This module tokenizes
them (quote- and comment-aware) and rejects anything that is not a single
expression body.

Allowed:
  - Any GoogleSQL expression, including scalar subqueries and
    ``EXISTS (SELECT ...)``
  - String, raw and bytes literals in every quoting form
  - Calls into the catalog namespace (``mysql.OTHER(...)``)

Rejected:
  - Unterminated literals, quoted identifiers or block comments
  - Unbalanced parentheses or brackets
  - Statement separators (``;``)
  - Statement keywords (CREATE, DROP, INSERT, ...)
  - The null-short-circuit prefix on calls into the catalog namespace
    (``SAFE.mysql.X``), which the host does not support for user functions
"""

from __future__ import annotations

from dataclasses import dataclass

STATEMENT_KEYWORDS: frozenset[str] = frozenset({
    "ALTER", "CREATE", "DELETE", "DROP", "GRANT", "INSERT", "MERGE",
    "RENAME", "REVOKE", "UPDATE",
})

_PAIRS = {")": "(", "]": "["}
_STRING_PREFIXES = frozenset({"R", "B", "RB", "BR"})


@dataclass(frozen=True)
class Token:
    kind: str  # "identifier", "quoted_identifier", "string", "number", "punct"
    text: str
    pos: int


@dataclass(frozen=True)
class ExpressionError:
    """A validation error found in a target expression."""

    expression: str
    message: str
    pos: int = 0


class _TokenizeError(Exception):
    def __init__(self, message: str, pos: int):
        self.message = message
        self.pos = pos
        super().__init__(message)


def tokenize(expression: str) -> list[Token]:
    """Split an expression into tokens, dropping whitespace and comments.

    Raises:
        _TokenizeError: on unterminated literals or comments.
    """
    tokens: list[Token] = []
    i = 0
    n = len(expression)
    while i < n:
        c = expression[i]

        if c.isspace():
            i += 1
            continue

        # Comments
        if expression.startswith("--", i) or c == "#":
            end = expression.find("\n", i)
            i = n if end < 0 else end + 1
            continue
        if expression.startswith("/*", i):
            end = expression.find("*/", i + 2)
            if end < 0:
                raise _TokenizeError("Unterminated block comment", i)
            i = end + 2
            continue

        # Identifiers (and literal prefixes r'', b'', rb'')
        if c.isalpha() or c == "_":
            j = i
            while j < n and (expression[j].isalnum() or expression[j] == "_"):
                j += 1
            word = expression[i:j]
            if j < n and expression[j] in "'\"" and word.upper() in _STRING_PREFIXES:
                end = _scan_string(expression, j, raw="R" in word.upper())
                tokens.append(Token("string", expression[i:end], i))
                i = end
                continue
            tokens.append(Token("identifier", word, i))
            i = j
            continue

        if c in "'\"":
            end = _scan_string(expression, i, raw=False)
            tokens.append(Token("string", expression[i:end], i))
            i = end
            continue

        if c == "`":
            end = expression.find("`", i + 1)
            if end < 0:
                raise _TokenizeError("Unterminated quoted identifier", i)
            tokens.append(Token("quoted_identifier", expression[i + 1:end], i))
            i = end + 1
            continue

        if c.isdigit():
            j = i
            while j < n and (expression[j].isalnum() or expression[j] == "."):
                j += 1
            tokens.append(Token("number", expression[i:j], i))
            i = j
            continue

        tokens.append(Token("punct", c, i))
        i += 1

    return tokens


def _scan_string(expression: str, start: int, raw: bool) -> int:
    """Return the index just past the literal that opens at ``start``."""
    quote = expression[start]
    triple = expression.startswith(quote * 3, start)
    delimiter = quote * 3 if triple else quote
    i = start + len(delimiter)
    n = len(expression)
    while i < n:
        c = expression[i]
        if c == "\\":
            # Raw literals still cannot end on an escaped quote
            i += 2
            continue
        if expression.startswith(delimiter, i):
            return i + len(delimiter)
        if c == "\n" and not triple:
            break
        i += 1
    raise _TokenizeError("Unterminated string literal", start)


def validate_expression(expression: str, namespace: str) -> list[ExpressionError]:
    """Validate a target expression.

    Returns a list of errors. Empty list means the expression is valid.
    """
    if not expression.strip():
        return [ExpressionError(expression, "Expression is empty")]

    try:
        tokens = tokenize(expression)
    except _TokenizeError as e:
        return [ExpressionError(expression, e.message, e.pos)]

    errors: list[ExpressionError] = []
    stack: list[Token] = []
    ns = namespace.upper()

    for i, tok in enumerate(tokens):
        if tok.kind == "punct":
            if tok.text in "([":
                stack.append(tok)
            elif tok.text in ")]":
                if not stack or stack[-1].text != _PAIRS[tok.text]:
                    errors.append(
                        ExpressionError(expression, f"Unbalanced '{tok.text}'", tok.pos)
                    )
                else:
                    stack.pop()
            elif tok.text == ";":
                errors.append(
                    ExpressionError(
                        expression, "Statement separator ';' not allowed", tok.pos
                    )
                )
        elif tok.kind == "identifier":
            word = tok.text.upper()
            if word in STATEMENT_KEYWORDS:
                errors.append(
                    ExpressionError(
                        expression, f"Statement keyword not allowed: {tok.text}", tok.pos
                    )
                )
            if word == "SAFE" and _is_dotted(tokens, i, ns):
                errors.append(
                    ExpressionError(
                        expression,
                        f"SAFE. prefix cannot be used on {namespace} functions",
                        tok.pos,
                    )
                )

    for tok in stack:
        errors.append(ExpressionError(expression, f"Unclosed '{tok.text}'", tok.pos))

    return errors


def _is_dotted(tokens: list[Token], i: int, upper_name: str) -> bool:
    """True if tokens[i] is followed by ``.`` and an identifier ``upper_name``."""
    return (
        i + 2 < len(tokens)
        and tokens[i + 1].text == "."
        and tokens[i + 2].kind == "identifier"
        and tokens[i + 2].text.upper() == upper_name
    )


def referenced_identifiers(expression: str) -> frozenset[str]:
    """Upper-case unquoted identifiers used in the expression.

    Returns an empty set for expressions that do not tokenize.
    """
    try:
        tokens = tokenize(expression)
    except _TokenizeError:
        return frozenset()
    return frozenset(t.text.upper() for t in tokens if t.kind == "identifier")


def namespace_calls(expression: str, namespace: str) -> list[str]:
    """Names of catalog functions called as ``<namespace>.NAME(``, in order."""
    try:
        tokens = tokenize(expression)
    except _TokenizeError:
        return []
    ns = namespace.upper()
    calls: list[str] = []
    for i, tok in enumerate(tokens):
        if (
            tok.kind == "identifier"
            and tok.text.upper() == ns
            and i + 3 < len(tokens)
            and tokens[i + 1].text == "."
            and tokens[i + 2].kind == "identifier"
            and tokens[i + 3].text == "("
        ):
            calls.append(tokens[i + 2].text.upper())
    return calls
