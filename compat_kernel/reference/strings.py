"""Reference models for the string entries.

Host STRING functions index by Unicode code point, as Python str does.
"""

from __future__ import annotations

import re

from compat_kernel.reference.registry import reference

_HEX_DIGITS = re.compile(r"[0-9a-fA-F]*")


@reference("BIT_LENGTH")
def bit_length(s: str) -> int:
    return len(s.encode("utf-8")) * 8


@reference("HEX")
def hex_(s: str) -> str:
    return s.encode("utf-8").hex().upper()


@reference("UNHEX")
def unhex(s: str) -> bytes | None:
    if not _HEX_DIGITS.fullmatch(s):
        return None
    if len(s) % 2:
        s = "0" + s
    return bytes.fromhex(s)


@reference("LCASE")
def lcase(s: str) -> str:
    return s.lower()


@reference("UCASE")
def ucase(s: str) -> str:
    return s.upper()


def _substr(s: str, pos: int, length: int | None = None) -> str:
    """Host SUBSTR: 1-based, negative positions count from the end."""
    if pos > 0:
        start = pos - 1
    elif pos < 0:
        start = max(len(s) + pos, 0)
    else:
        start = 0
    if length is None:
        return s[start:]
    return s[start:start + length]


def _strpos(s: str, sub: str) -> int:
    return s.find(sub) + 1


@reference("LOCATE")
def locate(substr: str, s: str, pos: int = 1) -> int:
    if pos < 1:
        return 0
    found = _strpos(_substr(s, pos), substr)
    if found == 0:
        return 0
    return found + pos - 1


@reference("MID")
def mid(s: str, pos: int, length: int) -> str:
    if pos == 0 or length <= 0:
        return ""
    return _substr(s, pos, length)


@reference("SPACE")
def space(n: int) -> str:
    if n < 0:
        return ""
    return " " * n


@reference("STRCMP")
def strcmp(a: str, b: str) -> int:
    if a < b:
        return -1
    if a > b:
        return 1
    return 0


@reference("SUBSTRING_INDEX")
def substring_index(s: str, delim: str, count: int) -> str:
    if count == 0 or delim == "":
        return ""
    parts = s.split(delim)
    if count > 0:
        return delim.join(parts[:count])
    return delim.join(parts[count:])


@reference("QUOTE", null_propagating=False)
def quote(s: str | None) -> str:
    if s is None:
        return "NULL"
    escaped = s.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


@reference("ORD")
def ord_(s: str) -> int:
    if s == "":
        return 0
    value = 0
    for b in s[0].encode("utf-8"):
        value = (value << 8) | b
    return value


@reference("REGEXP_LIKE")
def regexp_like(s: str, pattern: str) -> bool:
    return re.search(pattern, s) is not None
