"""
Tests for date coercion helpers.
"""

from datetime import date, datetime, timedelta, timezone, UTC

import pytest

from paramcast.dates import (
    coerce_date,
    date_format,
    from_timestamp,
    parse_calendar_date,
    parse_generic_date,
)


FEB_20_2012 = datetime(2012, 2, 20, tzinfo=UTC)


class TestDateFormat:
    """Test normalization of calendar date strings."""

    def test_date_only(self):
        """Test that time and zone default to midnight UTC."""
        assert date_format("2012-02-20") == "2012-02-20 00:00:00 +0000"

    def test_missing_seconds(self):
        """Test that seconds are filled in."""
        assert date_format("02/20/2012 10:30 GMT") == "02/20/2012 10:30:00 GMT"

    def test_complete(self):
        """Test a complete string is unchanged."""
        assert date_format("02/20/2012 10:30:15 +0200") == "02/20/2012 10:30:15 +0200"

    def test_zone_without_time(self):
        """Test a zone directly after the date."""
        assert date_format("2012-02-20 UTC") == "2012-02-20 00:00:00 UTC"

    def test_no_date(self):
        """Test strings without a calendar date."""
        assert date_format("yesterday") is None


class TestCalendarDates:
    """Test calendar date parsing."""

    @pytest.mark.parametrize("text", [
        "2012-02-20 00:00:00 +0000",
        "2012/02/20 00:00:00 UTC",
        "02-20-2012 00:00:00 GMT",
        "02/20/12 00:00:00 +0000",
    ])
    def test_layouts(self, text):
        """Test year-first and month-first layouts."""
        assert parse_calendar_date(text) == FEB_20_2012

    def test_offset(self):
        """Test numeric offsets convert to UTC."""
        parsed = parse_calendar_date("2012-02-20 02:00:00 +0200")
        assert parsed == FEB_20_2012
        assert parsed.tzinfo == UTC

    def test_negative_offset(self):
        """Test negative numeric offsets."""
        assert parse_calendar_date("2012-02-19 19:00:00 -0500") == FEB_20_2012

    def test_named_zone(self):
        """Test named zone tokens."""
        assert parse_calendar_date("2012-02-19 16:00:00 PST") == FEB_20_2012

    def test_two_digit_years(self):
        """Test two digit year expansion."""
        assert parse_calendar_date("02/20/99 00:00:00 UTC").year == 1999
        assert parse_calendar_date("02/20/12 00:00:00 UTC").year == 2012

    def test_out_of_range(self):
        """Test impossible calendar values."""
        assert parse_calendar_date("2012-13-40 00:00:00 UTC") is None

    def test_unknown_zone(self):
        """Test unknown zone tokens."""
        assert parse_calendar_date("2012-02-20 00:00:00 XYZ") is None


class TestGenericDates:
    """Test the fallback parser."""

    def test_iso(self):
        """Test ISO 8601 with offset."""
        assert parse_generic_date("2012-02-20T01:00:00+01:00") == FEB_20_2012

    def test_naive_iso_is_utc(self):
        """Test naive ISO strings are read as UTC."""
        assert parse_generic_date("2012-02-20T00:00:00") == FEB_20_2012

    def test_rfc_2822(self):
        """Test RFC 2822 strings."""
        assert parse_generic_date("Mon, 20 Feb 2012 00:00:00 +0000") == FEB_20_2012

    @pytest.mark.parametrize("text", ["", "   ", "soon"])
    def test_unparseable(self, text):
        """Test strings that are not dates."""
        assert parse_generic_date(text) is None


class TestTimestamps:
    """Test timestamp interpretation."""

    def test_seconds(self):
        """Test 10 digit values."""
        assert from_timestamp(1329696000) == FEB_20_2012
        assert from_timestamp("1329696000") == FEB_20_2012

    def test_milliseconds(self):
        """Test 13 digit values."""
        assert from_timestamp(1329696000000) == FEB_20_2012
        assert from_timestamp(1329696000500) == FEB_20_2012 + timedelta(milliseconds=500)

    def test_integral_float(self):
        """Test floats without a fraction."""
        assert from_timestamp(1329696000.0) == FEB_20_2012

    @pytest.mark.parametrize("value", [1, 132969600, 13296960000, -1329696000, 1329696000.5, True, "abc", "1329696000.0"])
    def test_not_timestamps(self, value):
        """Test values of other lengths or kinds."""
        assert from_timestamp(value) is None

    def test_huge_values(self):
        """Test values far past the int/str conversion limit."""
        assert from_timestamp(10 ** 5000) is None
        assert from_timestamp("1" * 5000) is None
        assert coerce_date(10 ** 5000) is None
        assert coerce_date("1" * 5000) is None


class TestCoerceDate:
    """Test the combined coercion entry point."""

    def test_dates_pass_through(self):
        """Test date values are returned unchanged."""
        value = date(2012, 2, 20)
        assert coerce_date(value) is value

    def test_numeric_values_only_use_timestamps(self):
        """Test numeric strings never fall back to calendar parsing."""
        assert coerce_date("20120220") is None
        assert coerce_date("1329696000") == FEB_20_2012

    def test_calendar_then_generic(self):
        """Test calendar strings and the fallback."""
        assert coerce_date("02/20/2012") == FEB_20_2012
        assert coerce_date("2012-02-20T00:00:00Z") == FEB_20_2012

    def test_other_kinds(self):
        """Test values that cannot be dates."""
        assert coerce_date(["2012-02-20"]) is None
        assert coerce_date(None) is None
        assert coerce_date("whenever") is None

    def test_results_are_utc(self):
        """Test results carry the UTC zone."""
        parsed = coerce_date("02/20/2012 00:00:00 +0100")
        assert parsed.utcoffset() == timezone.utc.utcoffset(None)
