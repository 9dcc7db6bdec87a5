"""Reference models for the numeric entries."""

from __future__ import annotations

import math

from compat_kernel.exceptions import EvaluationAbortError
from compat_kernel.reference.registry import reference

# ACOS(-1) on the host; the catalog has no native PI.
_PI = math.acos(-1)


def _finite(name: str, value: float) -> float:
    if math.isinf(value) or math.isnan(value):
        raise EvaluationAbortError(name, "Floating point error in function")
    return value


@reference("PI")
def pi() -> float:
    return _PI


@reference("DEGREES")
def degrees(x: float) -> float:
    if math.isinf(x) or math.isnan(x):
        return x
    return _finite("DEGREES", x * (180 / _PI))


@reference("RADIANS")
def radians(x: float) -> float:
    return x * (_PI / 180)


@reference("LOG2")
def log2(x: float) -> float | None:
    if x <= 0:
        return None
    return math.log(x) / math.log(2)


@reference("COT")
def cot(x: float) -> float:
    t = math.tan(x)
    if t == 0:
        raise EvaluationAbortError("COT", "division by zero: 1 / 0")
    return 1 / t


@reference("TRUNCATE")
def truncate(x: float, d: int) -> float:
    if math.isinf(x) or math.isnan(x) or d > 308:
        return x
    if d < -308:
        return math.copysign(0.0, x)
    if d >= 0:
        factor = 10.0 ** d
        return math.trunc(x * factor) / factor
    factor = 10.0 ** (-d)
    return float(math.trunc(x / factor) * factor)


@reference("OCT")
def oct_(n: int) -> str:
    if n < 0:
        raise EvaluationAbortError("OCT", f"negative values are not supported: {n}")
    return format(n, "o")


@reference("BIN")
def bin_(n: int) -> str:
    if n < 0:
        raise EvaluationAbortError("BIN", f"negative values are not supported: {n}")
    return format(n, "b")
