"""Tests for weekly availability parsing."""
from datetime import date, datetime

import pytest
from pydantic import ValidationError

from appointment_engine.availability import (
    TimeRange,
    WeeklyAvailability,
    day_of_week,
    minutes_of_day,
    time_to_minutes,
)


class TestTimeHelpers:
    """Wall-clock conversions."""

    def test_time_to_minutes(self):
        assert time_to_minutes("00:00") == 0
        assert time_to_minutes("08:30") == 510
        assert time_to_minutes("23:59") == 1439

    def test_minutes_of_day_ignores_seconds(self):
        assert minutes_of_day(datetime(2030, 1, 7, 9, 15, 42)) == 555

    def test_day_of_week_starts_on_sunday(self):
        """Sunday is 0, Monday 1 ... Saturday 6."""
        assert day_of_week(date(2030, 1, 6)) == 0  # Sunday
        assert day_of_week(date(2030, 1, 7)) == 1  # Monday
        assert day_of_week(date(2030, 1, 12)) == 6  # Saturday


class TestTimeRange:
    """Individual ranges."""

    def test_minutes_properties(self):
        time_range = TimeRange(start="08:00", end="12:00")
        assert time_range.start_minutes == 480
        assert time_range.end_minutes == 720
        assert not time_range.is_empty

    def test_end_before_start_is_empty(self):
        """Malformed ranges are accepted but never hold a slot."""
        assert TimeRange(start="12:00", end="08:00").is_empty
        assert TimeRange(start="09:00", end="09:00").is_empty

    def test_rejects_non_time_strings(self):
        with pytest.raises(ValidationError):
            TimeRange(start="morning", end="12:00")


class TestWeeklyAvailability:
    """Weekly pattern lookups."""

    def test_from_entries_and_lookup(self):
        availability = WeeklyAvailability.from_entries([
            {"day": 1, "ranges": [{"start": "08:00", "end": "12:00"}, {"start": "14:00", "end": "16:00"}]},
            {"day": 3, "ranges": [{"start": "10:00", "end": "11:00"}]},
        ])

        monday = availability.ranges_for(1)
        assert [(r.start, r.end) for r in monday] == [("08:00", "12:00"), ("14:00", "16:00")]
        assert availability.ranges_for(2) == []

    def test_none_means_no_availability(self):
        assert WeeklyAvailability.from_entries(None).days == []

    def test_first_entry_for_a_day_wins(self):
        availability = WeeklyAvailability.from_entries([
            {"day": 1, "ranges": [{"start": "08:00", "end": "09:00"}]},
            {"day": 1, "ranges": [{"start": "15:00", "end": "16:00"}]},
        ])
        assert [r.start for r in availability.ranges_for(1)] == ["08:00"]

    def test_rejects_invalid_weekday(self):
        with pytest.raises(ValidationError):
            WeeklyAvailability.from_entries([{"day": 7, "ranges": []}])

    def test_to_entries_matches_storage_format(self):
        entries = [{"day": 5, "ranges": [{"start": "09:00", "end": "10:00"}]}]
        assert WeeklyAvailability.from_entries(entries).to_entries() == entries
