"""Tests for the reference models (compat_kernel/reference)."""

from datetime import UTC, date, datetime

import pytest

from compat_kernel.exceptions import (
    ArityMismatchError,
    EvaluationAbortError,
    ReferenceNotFoundError,
)
from compat_kernel.reference import ReferenceEvaluator, ReferenceRegistry
from compat_kernel.reference.registry import ReferenceImpl
from compat_kernel.reference.temporal import UNSUPPORTED_FORMAT_DIRECTIVES, format_tokens


def ts(text: str) -> datetime:
    return datetime.fromisoformat(text).replace(tzinfo=UTC)


class TestRegistry:

    def test_lookup_is_case_insensitive(self):
        assert ReferenceRegistry.get("day").name == "DAY"

    def test_unknown_name(self):
        with pytest.raises(ReferenceNotFoundError) as exc_info:
            ReferenceRegistry.get("NOT_A_FUNCTION")
        assert exc_info.value.code == "REFERENCE_NOT_FOUND"

    def test_duplicate_registration_rejected(self):
        with pytest.raises(ValueError, match="already registered"):
            ReferenceRegistry.register(
                ReferenceImpl(name="day", func=lambda ts: 1, arity=1, min_arity=1)
            )

    def test_arity_from_signature(self):
        impl = ReferenceRegistry.get("LOCATE")
        assert (impl.min_arity, impl.arity) == (2, 3)

    def test_time_zone_flag(self):
        assert ReferenceRegistry.get("DAY").uses_time_zone
        assert not ReferenceRegistry.get("TO_SECONDS").uses_time_zone


class TestEvaluator:

    def test_null_propagates(self, evaluator):
        assert evaluator.evaluate("DAY", None) is None
        assert evaluator.evaluate("LOCATE", "a", None) is None

    def test_null_opt_out(self, evaluator):
        assert evaluator.evaluate("QUOTE", None) == "NULL"
        assert evaluator.evaluate("IS_IPV4", None) is False

    def test_arity_checked(self, evaluator):
        with pytest.raises(ArityMismatchError) as exc_info:
            evaluator.evaluate("LOCATE", "a")
        assert exc_info.value.expected == "2-3"
        assert exc_info.value.actual == 1

    def test_exact_arity_message(self, evaluator):
        with pytest.raises(ArityMismatchError, match="expects 1 argument"):
            evaluator.evaluate("DAY", ts("2024-01-01"), 1)

    def test_time_zone_changes_date_parts(self):
        instant = ts("2024-01-15 03:00:00")
        assert ReferenceEvaluator("UTC").evaluate("DAY", instant) == 15
        assert ReferenceEvaluator("America/Los_Angeles").evaluate("DAY", instant) == 14

    def test_time_zone_does_not_change_epoch_seconds(self):
        instant = ts("2009-11-29 13:43:32")
        assert (
            ReferenceEvaluator("UTC").evaluate("UNIX_TIMESTAMP", instant)
            == ReferenceEvaluator("Asia/Tokyo").evaluate("UNIX_TIMESTAMP", instant)
            == 1259502212
        )


class TestNumeric:

    def test_pi(self, evaluator):
        assert evaluator.evaluate("PI") == pytest.approx(3.141592653589793)

    def test_degrees_overflow_aborts(self, evaluator):
        with pytest.raises(EvaluationAbortError, match="Floating point error"):
            evaluator.evaluate("DEGREES", 1e307)

    def test_log2_non_positive_is_null(self, evaluator):
        assert evaluator.evaluate("LOG2", 0.0) is None
        assert evaluator.evaluate("LOG2", 8.0) == pytest.approx(3.0)

    def test_cot_zero_aborts(self, evaluator):
        with pytest.raises(EvaluationAbortError, match="division by zero"):
            evaluator.evaluate("COT", 0.0)

    @pytest.mark.parametrize("x,d,expected", [
        (1.223, 1, 1.2),
        (-1.999, 1, -1.9),
        (122.0, -2, 100.0),
        (1.5, 400, 1.5),
    ])
    def test_truncate(self, evaluator, x, d, expected):
        assert evaluator.evaluate("TRUNCATE", x, d) == pytest.approx(expected)

    def test_bin_and_oct(self, evaluator):
        assert evaluator.evaluate("BIN", 12) == "1100"
        assert evaluator.evaluate("OCT", 12) == "14"
        with pytest.raises(EvaluationAbortError, match="-3"):
            evaluator.evaluate("BIN", -3)


class TestTemporal:

    def test_dayofweek_and_weekday(self, evaluator):
        saturday = ts("2007-02-03 00:00:00")
        assert evaluator.evaluate("DAYOFWEEK", saturday) == 7
        assert evaluator.evaluate("WEEKDAY", saturday) == 5

    def test_week_mode_zero(self, evaluator):
        assert evaluator.evaluate("WEEK", ts("2024-01-01 00:00:00")) == 0
        assert evaluator.evaluate("WEEK", ts("2008-02-20 00:00:00")) == 7

    def test_to_days_anchors(self, evaluator):
        assert evaluator.evaluate("TO_DAYS", date(1, 1, 1)) == 366
        assert evaluator.evaluate("TO_DAYS", date(1970, 1, 1)) == 719528

    def test_from_days_below_minimum_is_null(self, evaluator):
        assert evaluator.evaluate("FROM_DAYS", 365) is None
        assert evaluator.evaluate("FROM_DAYS", 0) is None

    def test_from_days_out_of_range_aborts(self, evaluator):
        with pytest.raises(EvaluationAbortError, match="out of range"):
            evaluator.evaluate("FROM_DAYS", 3652425)

    def test_to_seconds_epoch(self, evaluator):
        assert evaluator.evaluate("TO_SECONDS", ts("1970-01-01 00:00:00")) == 62167219200

    def test_from_unixtime(self, evaluator):
        assert evaluator.evaluate("FROM_UNIXTIME", 0) == ts("1970-01-01 00:00:00")
        assert evaluator.evaluate("FROM_UNIXTIME", -5) is None

    def test_period_two_digit_years(self, evaluator):
        assert evaluator.evaluate("PERIOD_ADD", 6912, 1) == 207001
        assert evaluator.evaluate("PERIOD_ADD", 7001, 0) == 197001
        assert evaluator.evaluate("PERIOD_DIFF", 200802, 200703) == 11

    def test_makedate(self, evaluator):
        assert evaluator.evaluate("MAKEDATE", 2011, 32) == date(2011, 2, 1)
        assert evaluator.evaluate("MAKEDATE", 2011, 0) is None
        with pytest.raises(EvaluationAbortError, match="Invalid date"):
            evaluator.evaluate("MAKEDATE", 0, 1)

    def test_format_tokens(self):
        assert format_tokens("%Y-%m %%x") == ["%Y", "-", "%m", " ", "%%", "x"]

    def test_date_format_translation(self, evaluator):
        t = ts("2009-10-04 22:23:00")
        assert evaluator.evaluate("DATE_FORMAT", t, "%W %M %Y") == "Sunday October 2009"
        assert evaluator.evaluate("DATE_FORMAT", t, "%a %b %j") == "Sun Oct 277"
        assert evaluator.evaluate("DATE_FORMAT", t, "%q") == "q"

    @pytest.mark.parametrize("directive", sorted(UNSUPPORTED_FORMAT_DIRECTIVES))
    def test_date_format_unsupported_directive_aborts(self, evaluator, directive):
        with pytest.raises(EvaluationAbortError) as exc_info:
            evaluator.evaluate("DATE_FORMAT", ts("2024-01-15 10:30:00"), f"%Y {directive}")
        assert directive in exc_info.value.detail

    @pytest.mark.parametrize("text,fmt,expected", [
        ("01,5,2013", "%d,%m,%Y", "2013-05-01 00:00:00"),
        ("May 1, 2013", "%M %d,%Y", "2013-05-01 00:00:00"),
        ("sep 9 99", "%b %e %y", "1999-09-09 00:00:00"),
        ("2013-05-01 14:05:09.5", "%Y-%m-%d %H:%i:%f", "2013-05-01 14:05:09.500000"),
        ("03:04:05 PM", "%r", "1970-01-01 15:04:05"),
        ("12 AM", "%h %p", "1970-01-01 00:00:00"),
        ("2024 060", "%Y %j", "2024-02-29 00:00:00"),
        ("  2024-1-5  ", "%Y-%c-%e", "2024-01-05 00:00:00"),
        ("Friday 5 Jan 2024", "%W %e %b %Y", "2024-01-05 00:00:00"),
        ("10%", "%y%%", "2010-01-01 00:00:00"),
    ])
    def test_str_to_date_parses(self, evaluator, text, fmt, expected):
        assert evaluator.evaluate("STR_TO_DATE", text, fmt) == ts(expected)

    @pytest.mark.parametrize("text,fmt", [
        ("not a date", "%Y-%m-%d"),
        ("2013-02-30", "%Y-%m-%d"),
        ("2013-05-01 trailing", "%Y-%m-%d"),
        ("13 PM", "%h %p"),
        ("2023 366", "%Y %j"),
        ("2024 01", "%Y %U"),
    ])
    def test_str_to_date_mismatch_is_null(self, evaluator, text, fmt):
        assert evaluator.evaluate("STR_TO_DATE", text, fmt) is None

    def test_str_to_date_reads_in_session_time_zone(self):
        tokyo = ReferenceEvaluator("Asia/Tokyo")
        parsed = tokyo.evaluate("STR_TO_DATE", "2013-05-01 09:00", "%Y-%m-%d %H:%i")
        assert parsed == ts("2013-05-01 00:00:00")

    def test_str_to_date_null_arguments(self, evaluator):
        assert evaluator.evaluate("STR_TO_DATE", None, "%Y") is None
        assert evaluator.evaluate("STR_TO_DATE", "2013", None) is None


class TestStrings:

    def test_locate_default_position(self, evaluator):
        assert evaluator.evaluate("LOCATE", "bar", "foobarbar") == 4
        assert evaluator.evaluate("LOCATE", "bar", "foobarbar", 5) == 7

    def test_mid_negative_position(self, evaluator):
        assert evaluator.evaluate("MID", "Sakila", -3, 3) == "ila"

    def test_substring_index(self, evaluator):
        assert evaluator.evaluate("SUBSTRING_INDEX", "a.b.c", ".", -1) == "c"
        assert evaluator.evaluate("SUBSTRING_INDEX", "a.b.c", "", 1) == ""

    def test_quote_escapes(self, evaluator):
        assert evaluator.evaluate("QUOTE", "it's") == "'it\\'s'"

    def test_unhex_odd_length_and_invalid(self, evaluator):
        assert evaluator.evaluate("UNHEX", "abc") == b"\x0a\xbc"
        assert evaluator.evaluate("UNHEX", "zz") is None

    def test_ord_multibyte(self, evaluator):
        assert evaluator.evaluate("ORD", "é") == 0xC3A9


class TestEncodingAndNetwork:

    def test_sha2_lengths(self, evaluator):
        assert len(evaluator.evaluate("SHA2", "abc", 512)) == 128
        assert evaluator.evaluate("SHA2", "abc", 7) is None
        with pytest.raises(EvaluationAbortError, match="384"):
            evaluator.evaluate("SHA2", "abc", 384)

    def test_json_unquote_invalid_aborts(self, evaluator):
        with pytest.raises(EvaluationAbortError, match="Invalid JSON"):
            evaluator.evaluate("JSON_UNQUOTE", '"a"b"')

    def test_json_valid_rejects_nan(self, evaluator):
        assert evaluator.evaluate("JSON_VALID", "NaN") is False

    def test_uuid_round_trip(self, evaluator):
        text = "6ccd780c-baba-1026-9564-5b8c656024db"
        raw = evaluator.evaluate("UUID_TO_BIN", text)
        assert len(raw) == 16
        assert evaluator.evaluate("BIN_TO_UUID", raw) == text

    def test_inet_aton_requires_dotted_quad(self, evaluator):
        assert evaluator.evaluate("INET_ATON", "10.0.5.9") == 167773449
        assert evaluator.evaluate("INET_ATON", "::1") is None

    def test_inet6_ntoa_length_guard(self, evaluator):
        assert evaluator.evaluate("INET6_NTOA", b"\x7f\x00\x00\x01") == "127.0.0.1"
        assert evaluator.evaluate("INET6_NTOA", b"\x01") is None
