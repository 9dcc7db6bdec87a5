"""
Reference models for the date and time entries.

Every TIMESTAMP argument is read in the evaluator's time zone, the way the
host reads it in the database default time zone.  Naive datetimes are taken
to be UTC.

Epoch bridging constants:
    MYSQL_DAY_OF_MIN_DATE  -- MySQL day number of 0001-01-01, the host's
                              earliest representable date.
    MYSQL_SECONDS_AT_EPOCH -- MySQL TO_SECONDS of 1970-01-01 00:00:00
                              (719528 days * 86400).
"""

from __future__ import annotations

import re
from datetime import UTC, date, datetime, timedelta, tzinfo

from compat_kernel.exceptions import EvaluationAbortError
from compat_kernel.reference.registry import reference

MYSQL_DAY_OF_MIN_DATE = 366
MYSQL_DAY_OF_UNIX_EPOCH = 719528
MYSQL_SECONDS_AT_EPOCH = MYSQL_DAY_OF_UNIX_EPOCH * 86400

_MIN_DATE = date(1, 1, 1)
_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_MAX_UNIX_SECONDS = 253402300799  # 9999-12-31 23:59:59 UTC

_DAY_NAMES = (
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday",
)
_MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June", "July",
    "August", "September", "October", "November", "December",
)

# DATE_FORMAT directives with no exact host equivalent.  Passing any of
# them aborts the statement instead of silently formatting differently.
UNSUPPORTED_FORMAT_DIRECTIVES: frozenset[str] = frozenset({
    "%c", "%D", "%e", "%f", "%k", "%l", "%u", "%V", "%X",
})

_FORMAT_TOKEN = re.compile(r"%.|[^%]+")


def _local(ts: datetime, tz: tzinfo) -> datetime:
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    return ts.astimezone(tz)


def _as_date(value: date | datetime, tz: tzinfo) -> date:
    if isinstance(value, datetime):
        return _local(value, tz).date()
    return value


def _unix_seconds(ts: datetime) -> int:
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    return (ts - _EPOCH) // timedelta(seconds=1)


def _sunday_week(d: datetime | date) -> int:
    """Week of year, weeks starting Sunday; days before the first Sunday are week 0."""
    yday = d.timetuple().tm_yday - 1
    wday = d.isoweekday() % 7
    return (yday + 7 - wday) // 7


# ---------------------------------------------------------------------------
# Date parts
# ---------------------------------------------------------------------------


@reference("DAY", time_zone=True)
def day(ts: datetime, *, tz: tzinfo) -> int:
    return _local(ts, tz).day


@reference("DAYOFMONTH", time_zone=True)
def dayofmonth(ts: datetime, *, tz: tzinfo) -> int:
    return _local(ts, tz).day


@reference("DAYNAME", time_zone=True)
def dayname(ts: datetime, *, tz: tzinfo) -> str:
    return _DAY_NAMES[_local(ts, tz).weekday()]


@reference("DAYOFWEEK", time_zone=True)
def dayofweek(ts: datetime, *, tz: tzinfo) -> int:
    return _local(ts, tz).isoweekday() % 7 + 1


@reference("DAYOFYEAR", time_zone=True)
def dayofyear(ts: datetime, *, tz: tzinfo) -> int:
    return _local(ts, tz).timetuple().tm_yday


@reference("HOUR", time_zone=True)
def hour(ts: datetime, *, tz: tzinfo) -> int:
    return _local(ts, tz).hour


@reference("MINUTE", time_zone=True)
def minute(ts: datetime, *, tz: tzinfo) -> int:
    return _local(ts, tz).minute


@reference("SECOND", time_zone=True)
def second(ts: datetime, *, tz: tzinfo) -> int:
    return _local(ts, tz).second


@reference("MICROSECOND", time_zone=True)
def microsecond(ts: datetime, *, tz: tzinfo) -> int:
    return _local(ts, tz).microsecond


@reference("MONTH", time_zone=True)
def month(ts: datetime, *, tz: tzinfo) -> int:
    return _local(ts, tz).month


@reference("MONTHNAME", time_zone=True)
def monthname(ts: datetime, *, tz: tzinfo) -> str:
    return _MONTH_NAMES[_local(ts, tz).month - 1]


@reference("QUARTER", time_zone=True)
def quarter(ts: datetime, *, tz: tzinfo) -> int:
    return (_local(ts, tz).month - 1) // 3 + 1


@reference("YEAR", time_zone=True)
def year(ts: datetime, *, tz: tzinfo) -> int:
    return _local(ts, tz).year


@reference("WEEK", time_zone=True)
def week(ts: datetime, *, tz: tzinfo) -> int:
    return _sunday_week(_local(ts, tz))


@reference("WEEKDAY", time_zone=True)
def weekday(ts: datetime, *, tz: tzinfo) -> int:
    return _local(ts, tz).weekday()


@reference("WEEKOFYEAR", time_zone=True)
def weekofyear(ts: datetime, *, tz: tzinfo) -> int:
    return _local(ts, tz).isocalendar()[1]


@reference("TIME_TO_SEC", time_zone=True)
def time_to_sec(ts: datetime, *, tz: tzinfo) -> int:
    local = _local(ts, tz)
    return local.hour * 3600 + local.minute * 60 + local.second


# ---------------------------------------------------------------------------
# Day numbers and epochs
# ---------------------------------------------------------------------------


@reference("TO_DAYS", time_zone=True)
def to_days(d: date, *, tz: tzinfo) -> int:
    return (_as_date(d, tz) - _MIN_DATE).days + MYSQL_DAY_OF_MIN_DATE


@reference("FROM_DAYS")
def from_days(n: int) -> date | None:
    # MySQL maps day numbers below 366 to the zero date, which has no
    # host representation.
    if n < MYSQL_DAY_OF_MIN_DATE:
        return None
    try:
        return _MIN_DATE + timedelta(days=n - MYSQL_DAY_OF_MIN_DATE)
    except OverflowError:
        raise EvaluationAbortError("FROM_DAYS", f"DATE value out of range: day {n}") from None


@reference("TO_SECONDS")
def to_seconds(ts: datetime) -> int:
    return _unix_seconds(ts) + MYSQL_SECONDS_AT_EPOCH


@reference("FROM_UNIXTIME")
def from_unixtime(n: int) -> datetime | None:
    if n < 0:
        return None
    if n > _MAX_UNIX_SECONDS:
        raise EvaluationAbortError("FROM_UNIXTIME", f"TIMESTAMP value out of range: {n}")
    return _EPOCH + timedelta(seconds=n)


@reference("UNIX_TIMESTAMP")
def unix_timestamp(ts: datetime) -> int:
    return _unix_seconds(ts)


@reference("DATEDIFF", time_zone=True)
def datediff(a: datetime, b: datetime, *, tz: tzinfo) -> int:
    return (_as_date(a, tz) - _as_date(b, tz)).days


@reference("MAKEDATE")
def makedate(year_: int, dayofyear_: int) -> date | None:
    if dayofyear_ <= 0:
        return None
    if not 1 <= year_ <= 9999:
        raise EvaluationAbortError("MAKEDATE", f"Invalid date: year {year_}")
    try:
        return date(year_, 1, 1) + timedelta(days=dayofyear_ - 1)
    except OverflowError:
        raise EvaluationAbortError(
            "MAKEDATE", f"DATE value out of range: {year_}, {dayofyear_}"
        ) from None


# ---------------------------------------------------------------------------
# Periods (YYYYMM or YYMM)
# ---------------------------------------------------------------------------


def _period_months(p: int) -> int:
    y, m = divmod(p, 100)
    if y < 70:
        y += 2000
    elif y < 100:
        y += 1900
    return y * 12 + m - 1


@reference("PERIOD_ADD")
def period_add(p: int, n: int) -> int:
    y, m = divmod(_period_months(p) + n, 12)
    return y * 100 + m + 1


@reference("PERIOD_DIFF")
def period_diff(p1: int, p2: int) -> int:
    return _period_months(p1) - _period_months(p2)


# ---------------------------------------------------------------------------
# DATE_FORMAT
# ---------------------------------------------------------------------------


def _hour12(local: datetime) -> str:
    return f"{(local.hour % 12) or 12:02d}"


def _ampm(local: datetime) -> str:
    return "AM" if local.hour < 12 else "PM"


_DIRECTIVES = {
    "%a": lambda t: _DAY_NAMES[t.weekday()][:3],
    "%b": lambda t: _MONTH_NAMES[t.month - 1][:3],
    "%d": lambda t: f"{t.day:02d}",
    "%H": lambda t: f"{t.hour:02d}",
    "%h": _hour12,
    "%I": _hour12,
    "%i": lambda t: f"{t.minute:02d}",
    "%j": lambda t: f"{t.timetuple().tm_yday:03d}",
    "%M": lambda t: _MONTH_NAMES[t.month - 1],
    "%m": lambda t: f"{t.month:02d}",
    "%p": _ampm,
    "%r": lambda t: f"{_hour12(t)}:{t.minute:02d}:{t.second:02d} {_ampm(t)}",
    "%S": lambda t: f"{t.second:02d}",
    "%s": lambda t: f"{t.second:02d}",
    "%T": lambda t: f"{t.hour:02d}:{t.minute:02d}:{t.second:02d}",
    "%U": lambda t: f"{_sunday_week(t):02d}",
    "%v": lambda t: f"{t.isocalendar()[1]:02d}",
    "%W": lambda t: _DAY_NAMES[t.weekday()],
    "%w": lambda t: str(t.isoweekday() % 7),
    "%x": lambda t: f"{t.isocalendar()[0]:04d}",
    "%Y": lambda t: f"{t.year:04d}",
    "%y": lambda t: f"{t.year % 100:02d}",
    "%%": lambda t: "%",
}


def format_tokens(fmt: str) -> list[str]:
    """Split a MySQL format string into directives and literal runs."""
    return _FORMAT_TOKEN.findall(fmt)


@reference("DATE_FORMAT", time_zone=True)
def date_format(ts: datetime, fmt: str, *, tz: tzinfo) -> str:
    if fmt == "":
        return ""
    tokens = format_tokens(fmt)
    for token in tokens:
        if token in UNSUPPORTED_FORMAT_DIRECTIVES:
            raise EvaluationAbortError(
                "DATE_FORMAT", f"DATE_FORMAT does not support format directive {token}"
            )

    local = _local(ts, tz)
    out: list[str] = []
    for token in tokens:
        render = _DIRECTIVES.get(token)
        if render is not None:
            out.append(render(local))
        elif token.startswith("%"):
            out.append(token[1:])
        else:
            out.append(token)
    return "".join(out)


# ---------------------------------------------------------------------------
# STR_TO_DATE
# ---------------------------------------------------------------------------
#
# The entry rewrites MySQL directives into host PARSE_TIMESTAMP elements
# (%i -> %M, %M -> %B, %f -> %E6S, %e -> %d, %c -> %m, ...).  Each directive
# here maps to the regex fragment that host element accepts, plus the field
# each capture group sets.  Numeric fields tolerate leading whitespace and
# accept one digit fewer than their width, as the host does.

def _names_pattern(names: tuple[str, ...]) -> str:
    choices = set(names) | {n[:3] for n in names}
    return "(" + "|".join(sorted(choices, key=len, reverse=True)) + ")"


_MONTH_NUMBERS = {
    **{n.lower(): i + 1 for i, n in enumerate(_MONTH_NAMES)},
    **{n[:3].lower(): i + 1 for i, n in enumerate(_MONTH_NAMES)},
}

_PARSE_DIRECTIVES: dict[str, tuple[str, tuple[str, ...]]] = {
    "%Y": (r"\s*(\d{1,4})", ("year",)),
    "%y": (r"\s*(\d{1,2})", ("year2",)),
    "%m": (r"\s*(\d{1,2})", ("month",)),
    "%c": (r"\s*(\d{1,2})", ("month",)),
    "%d": (r"\s*(\d{1,2})", ("day",)),
    "%e": (r"\s*(\d{1,2})", ("day",)),
    "%j": (r"\s*(\d{1,3})", ("yday",)),
    "%H": (r"\s*(\d{1,2})", ("hour",)),
    "%h": (r"\s*(\d{1,2})", ("hour12",)),
    "%I": (r"\s*(\d{1,2})", ("hour12",)),
    "%i": (r"\s*(\d{1,2})", ("minute",)),
    "%s": (r"\s*(\d{1,2})", ("second",)),
    "%S": (r"\s*(\d{1,2})", ("second",)),
    "%f": (r"\s*(\d{1,2})(?:\.(\d{1,6}))?", ("second", "fraction")),
    "%M": (r"\s*" + _names_pattern(_MONTH_NAMES), ("month_name",)),
    "%b": (r"\s*" + _names_pattern(_MONTH_NAMES), ("month_name",)),
    "%W": (r"\s*" + _names_pattern(_DAY_NAMES), ("weekday",)),
    "%a": (r"\s*" + _names_pattern(_DAY_NAMES), ("weekday",)),
    "%p": (r"\s*(AM|PM)", ("ampm",)),
    "%T": (r"\s*(\d{1,2}):(\d{1,2}):(\d{1,2})", ("hour", "minute", "second")),
    "%r": (
        r"\s*(\d{1,2}):(\d{1,2}):(\d{1,2})\s*(AM|PM)",
        ("hour12", "minute", "second", "ampm"),
    ),
    "%%": ("%", ()),
}


def _parse_pattern(fmt: str) -> tuple[re.Pattern[str], list[str]] | None:
    """Compile a MySQL format string; None when it uses an unsupported directive."""
    parts: list[str] = []
    fields: list[str] = []
    for token in format_tokens(fmt):
        if token.startswith("%"):
            directive = _PARSE_DIRECTIVES.get(token)
            if directive is None:
                return None
            parts.append(directive[0])
            fields.extend(directive[1])
            continue
        for ch in token:
            parts.append(r"\s*" if ch.isspace() else re.escape(ch))
    return re.compile("".join(parts), re.IGNORECASE), fields


def _two_digit_year(y: int) -> int:
    return 2000 + y if y < 69 else 1900 + y


@reference("STR_TO_DATE", time_zone=True)
def str_to_date(s: str, fmt: str, *, tz: tzinfo) -> datetime | None:
    compiled = _parse_pattern(fmt)
    if compiled is None:
        return None
    pattern, fields = compiled
    match = pattern.fullmatch(s.strip())
    if match is None:
        return None

    values: dict[str, str] = {}
    for field_name, group in zip(fields, match.groups()):
        if group is not None:
            values[field_name] = group

    year_ = 1970
    if "year" in values:
        year_ = int(values["year"])
    elif "year2" in values:
        year_ = _two_digit_year(int(values["year2"]))
    month_ = int(values.get("month", 1))
    if "month_name" in values:
        month_ = _MONTH_NUMBERS[values["month_name"].lower()]
    day_ = int(values.get("day", 1))

    hour_ = int(values.get("hour", 0))
    if "hour12" in values:
        h12 = int(values["hour12"])
        if not 1 <= h12 <= 12:
            return None
        hour_ = h12 % 12 + (12 if values.get("ampm", "").upper() == "PM" else 0)
    minute_ = int(values.get("minute", 0))
    second_ = int(values.get("second", 0))
    micro = int(values["fraction"].ljust(6, "0")) if "fraction" in values else 0

    try:
        if "yday" in values:
            start = date(year_, 1, 1) + timedelta(days=int(values["yday"]) - 1)
            if start.year != year_:
                return None
            month_, day_ = start.month, start.day
        return datetime(year_, month_, day_, hour_, minute_, second_, micro, tzinfo=tz)
    except (ValueError, OverflowError):
        return None
