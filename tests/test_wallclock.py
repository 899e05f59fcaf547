"""
Unit tests for naive wall-clock parsing.
"""

from datetime import date

import pytest

from vetdirectory.core.wallclock import WallClockError, day_of_week, format_minutes, parse_date, parse_time


class TestParseDate:
    """Calendar dates are taken verbatim, never shifted through UTC."""

    def test_plain_date(self):
        assert parse_date("2025-06-10") == date(2025, 6, 10)

    def test_timestamp_keeps_calendar_part(self):
        """A late-evening timestamp with an offset stays on its own calendar day."""
        assert parse_date("2025-06-08T23:30:00-05:00") == date(2025, 6, 8)
        assert parse_date("2025-06-08 00:00:00") == date(2025, 6, 8)

    def test_strict_rejects_timestamp(self):
        with pytest.raises(WallClockError):
            parse_date("2025-06-08T10:00:00", strict=True)

    @pytest.mark.parametrize("value", ["", "   ", None, "10/06/2025", "2025-6-10", "2025-02-30", "tomorrow"])
    def test_invalid(self, value):
        with pytest.raises(WallClockError):
            parse_date(value)


class TestParseTime:
    def test_minutes_since_midnight(self):
        assert parse_time("00:00") == 0
        assert parse_time("09:30") == 570
        assert parse_time("23:59") == 1439

    @pytest.mark.parametrize("value", ["24:00", "9:00", "09:60", "0900", "", None, "ab:cd"])
    def test_invalid(self, value):
        with pytest.raises(WallClockError):
            parse_time(value)

    def test_format_round_trip(self):
        assert format_minutes(570) == "09:30"
        assert format_minutes(0) == "00:00"


class TestDayOfWeek:
    def test_sunday_is_zero_saturday_is_six(self):
        assert day_of_week(date(2025, 6, 8)) == 0
        assert day_of_week(date(2025, 6, 10)) == 2
        assert day_of_week(date(2025, 6, 14)) == 6
