"""Tests for calendar arithmetic."""

from datetime import date, timedelta

import pytest

from canvas_updater.dates import CalendarDate, add_days, civil_from_days, days_from_civil, parse_start_date


class TestAddDays:
    def test_zero(self):
        d = CalendarDate(2024, 8, 19)
        assert add_days(d, 0) == d

    def test_month_rollover(self):
        result = add_days(CalendarDate(2024, 1, 31), 1)
        assert result == CalendarDate(2024, 2, 1)
        assert result.weekday == 3  # Thursday

    def test_year_rollover(self):
        result = add_days(CalendarDate(2024, 12, 31), 1)
        assert result == CalendarDate(2025, 1, 1)
        assert result.weekday == 2  # Wednesday

    def test_negative_underflow(self):
        assert add_days(CalendarDate(2024, 8, 19), -19) == CalendarDate(2024, 7, 31)
        assert add_days(CalendarDate(2025, 1, 1), -1) == CalendarDate(2024, 12, 31)

    def test_leap_years(self):
        assert add_days(CalendarDate(2024, 2, 28), 1) == CalendarDate(2024, 2, 29)
        assert add_days(CalendarDate(2023, 2, 28), 1) == CalendarDate(2023, 3, 1)
        assert add_days(CalendarDate(1900, 2, 28), 1) == CalendarDate(1900, 3, 1)
        assert add_days(CalendarDate(2000, 2, 28), 1) == CalendarDate(2000, 2, 29)

    @pytest.mark.parametrize("offset", [-100000, -3651, -366, -1, 1, 59, 180, 365, 1000, 100000])
    def test_matches_datetime(self, offset):
        base = date(2024, 8, 19)
        expected = base + timedelta(days=offset)
        result = add_days(CalendarDate.from_date(base), offset)
        assert result.to_date() == expected
        assert result.weekday == expected.weekday()

    def test_beyond_datetime_range(self):
        assert add_days(CalendarDate(9999, 12, 31), 1) == CalendarDate(10000, 1, 1)
        assert add_days(CalendarDate(1, 1, 1), -1) == CalendarDate(0, 12, 31)

    def test_huge_offset_round_trip(self):
        start = CalendarDate(2024, 8, 19)
        far = add_days(start, 10**9)
        assert add_days(far, -(10**9)) == start


class TestCalendarDate:
    def test_epoch(self):
        assert days_from_civil(1970, 1, 1) == 0
        assert civil_from_days(0) == (1970, 1, 1)
        assert CalendarDate(1970, 1, 1).weekday == 3

    def test_weekday_start_date(self):
        assert CalendarDate(2024, 8, 19).weekday == 0  # Monday

    def test_isoformat(self):
        assert CalendarDate(2024, 8, 9).isoformat() == "2024-08-09"
        assert str(CalendarDate(2024, 8, 9)) == "2024-08-09"

    def test_frozen(self):
        d = CalendarDate(2024, 8, 19)
        with pytest.raises(AttributeError):
            d.day = 20  # type: ignore

    def test_ordering(self):
        assert CalendarDate(2024, 1, 31) < CalendarDate(2024, 2, 1)


class TestParseStartDate:
    def test_us_format(self):
        assert parse_start_date("08/19/2024") == CalendarDate(2024, 8, 19)

    def test_iso_format(self):
        assert parse_start_date("2024-08-19") == CalendarDate(2024, 8, 19)

    def test_strips_whitespace(self):
        assert parse_start_date("  08/19/2024 ") == CalendarDate(2024, 8, 19)

    @pytest.mark.parametrize("value", ["", "19/08/2024", "2024/08/19", "02/30/2024", "tomorrow"])
    def test_invalid(self, value):
        assert parse_start_date(value) is None
