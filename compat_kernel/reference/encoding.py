"""Reference models for the encryption and JSON entries."""

from __future__ import annotations

import hashlib
import json
import re
from typing import Any

from compat_kernel.exceptions import EvaluationAbortError
from compat_kernel.reference.registry import reference

_QUOTED = re.compile(r'".*"')


def _reject_constant(token: str) -> Any:
    raise ValueError(f"Invalid JSON constant: {token}")


def parse_json(text: str) -> Any:
    """Strict JSON parsing: NaN and Infinity are not JSON."""
    return json.loads(text, parse_constant=_reject_constant)


@reference("SHA")
def sha(s: str) -> str:
    return hashlib.sha1(s.encode("utf-8")).hexdigest()


@reference("SHA2")
def sha2(s: str, bits: int) -> str | None:
    if bits in (0, 256):
        return hashlib.sha256(s.encode("utf-8")).hexdigest()
    if bits == 512:
        return hashlib.sha512(s.encode("utf-8")).hexdigest()
    if bits in (224, 384):
        raise EvaluationAbortError("SHA2", f"SHA2: unsupported hash length {bits}")
    return None


@reference("JSON_QUOTE")
def json_quote(s: str) -> str:
    return json.dumps(s, ensure_ascii=False)


@reference("JSON_UNQUOTE")
def json_unquote(j: str) -> str:
    if not _QUOTED.fullmatch(j):
        return j
    try:
        value = parse_json(j)
    except ValueError as exc:
        raise EvaluationAbortError("JSON_UNQUOTE", f"Invalid JSON: {exc}") from None
    return value


@reference("JSON_VALID")
def json_valid(s: str) -> bool:
    try:
        parse_json(s)
    except ValueError:
        return False
    return True


@reference("JSON_LENGTH")
def json_length(j: Any) -> int:
    if isinstance(j, str):
        j = parse_json(j)
    if isinstance(j, (list, dict)):
        return len(j)
    return 1
