"""Tests for time parsing, duration arithmetic and wall-clock fallback."""

from datetime import datetime, timezone

import pytest

from errors import ValidationError
from timeutils import (
    format_duration, minutes_between, month_bounds, parse_hhmm, previous_month, resolve_moment,
    validate_timezone, wall_clock,
)


class TestDurations:
    def test_same_day_shift(self):
        assert minutes_between("09:00", "17:30") == 510
        assert format_duration(510) == "8h 30m"

    def test_zero_length_shift(self):
        assert minutes_between("12:15", "12:15") == 0
        assert format_duration(0) == "0h 0m"

    def test_shift_crossing_midnight_rolls_over(self):
        assert minutes_between("22:00", "06:15") == 8 * 60 + 15

    def test_malformed_time_is_rejected(self):
        with pytest.raises(ValidationError):
            minutes_between("9am", "17:00")

    def test_parse_hhmm(self):
        assert parse_hhmm("00:00") == 0
        assert parse_hhmm("23:59") == 23 * 60 + 59
        with pytest.raises(ValidationError):
            parse_hhmm("24:00")


class TestResolveMoment:
    def test_explicit_values_are_kept(self):
        assert resolve_moment("2026-03-10", "09:00", "Europe/Berlin") == (
            "2026-03-10", "09:00", "Europe/Berlin"
        )

    def test_missing_values_fall_back_to_server_clock(self):
        now = datetime(2026, 3, 10, 7, 45)
        assert resolve_moment(None, None, None, now=now) == ("2026-03-10", "07:45", None)

    def test_missing_time_uses_client_timezone(self):
        now = datetime(2026, 3, 10, 23, 30, tzinfo=timezone.utc)
        assert resolve_moment(None, None, "Europe/Berlin", now=now) == (
            "2026-03-11", "00:30", "Europe/Berlin"
        )

    def test_unknown_timezone_is_rejected(self):
        with pytest.raises(ValidationError):
            validate_timezone("Mars/Olympus_Mons")

    def test_bad_date_is_rejected(self):
        with pytest.raises(ValidationError):
            resolve_moment("10/03/2026", "09:00")

    def test_wall_clock_without_timezone(self):
        assert wall_clock(now=datetime(2026, 1, 2, 3, 4)) == ("2026-01-02", "03:04")


def test_month_bounds_handles_leap_years():
    assert month_bounds(2024, 2) == ("2024-02-01", "2024-02-29")
    assert month_bounds(2026, 2) == ("2026-02-01", "2026-02-28")


def test_previous_month_wraps_year():
    assert previous_month(datetime(2026, 1, 1)) == (2025, 12)
    assert previous_month(datetime(2026, 7, 1)) == (2026, 6)
