"""Reference models for the UUID and IP address entries."""

from __future__ import annotations

import ipaddress
import re

from compat_kernel.exceptions import EvaluationAbortError
from compat_kernel.reference.registry import reference

_HEX = "[0-9a-fA-F]"
CANONICAL_UUID = re.compile(
    rf"{_HEX}{{8}}-{_HEX}{{4}}-{_HEX}{{4}}-{_HEX}{{4}}-{_HEX}{{12}}"
)
_ANY_UUID = re.compile(
    rf"\{{{CANONICAL_UUID.pattern}\}}|{CANONICAL_UUID.pattern}|{_HEX}{{32}}"
)
_DOTTED_QUAD = re.compile(r"[0-9]{1,3}(\.[0-9]{1,3}){3}")


def _ip_bytes(s: str) -> bytes | None:
    """NET.SAFE_IP_FROM_STRING: packed address, or None when unparseable."""
    try:
        return ipaddress.ip_address(s).packed
    except ValueError:
        return None


@reference("BIN_TO_UUID")
def bin_to_uuid(b: bytes) -> str:
    if len(b) != 16:
        raise EvaluationAbortError(
            "BIN_TO_UUID", f"BIN_TO_UUID: expected 16 bytes, got {len(b)}"
        )
    h = b.hex()
    return f"{h[0:8]}-{h[8:12]}-{h[12:16]}-{h[16:20]}-{h[20:32]}"


@reference("UUID_TO_BIN")
def uuid_to_bin(s: str) -> bytes:
    if not CANONICAL_UUID.fullmatch(s):
        raise EvaluationAbortError(
            "UUID_TO_BIN", f"UUID_TO_BIN: invalid UUID string: {s}"
        )
    return bytes.fromhex(s.replace("-", ""))


@reference("IS_UUID")
def is_uuid(s: str) -> bool:
    return _ANY_UUID.fullmatch(s) is not None


@reference("INET_ATON")
def inet_aton(s: str) -> int | None:
    if not _DOTTED_QUAD.fullmatch(s):
        return None
    packed = _ip_bytes(s)
    if packed is None:
        return None
    return int.from_bytes(packed, "big")


@reference("INET_NTOA")
def inet_ntoa(n: int) -> str | None:
    if not 0 <= n <= 0xFFFFFFFF:
        return None
    return str(ipaddress.IPv4Address(n))


@reference("INET6_ATON")
def inet6_aton(s: str) -> bytes | None:
    return _ip_bytes(s)


@reference("INET6_NTOA")
def inet6_ntoa(b: bytes) -> str | None:
    if len(b) not in (4, 16):
        return None
    return str(ipaddress.ip_address(b))


@reference("IS_IPV4", null_propagating=False)
def is_ipv4(s: str | None) -> bool:
    if s is None:
        return False
    packed = _ip_bytes(s)
    return packed is not None and len(packed) == 4


@reference("IS_IPV6", null_propagating=False)
def is_ipv6(s: str | None) -> bool:
    if s is None:
        return False
    packed = _ip_bytes(s)
    return packed is not None and len(packed) == 16
