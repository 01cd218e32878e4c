"""Weekly availability model for doctors.

A doctor declares, per weekday (0 = Sunday ... 6 = Saturday), a list of
wall-clock ranges during which bookings are accepted. The model is owned by
doctor-profile management; the engine only reads it.

Malformed ranges (end <= start) and overlapping ranges are tolerated here and
handled by consumers, which treat every range independently.
"""
from datetime import date, datetime
from typing import List

from pydantic import BaseModel, Field

MINUTES_PER_DAY = 24 * 60


def time_to_minutes(value: str) -> int:
    """
    Convert an "HH:MM" wall-clock string into minutes since midnight.

    Args:
        value: Time string (e.g. "08:30")

    Returns:
        Minutes since midnight (e.g. 510)
    """
    hours, minutes = str(value).split(":")
    return int(hours) * 60 + int(minutes)


def minutes_of_day(instant: datetime) -> int:
    """Minutes elapsed since midnight for a datetime."""
    return instant.hour * 60 + instant.minute


def day_of_week(day: date) -> int:
    """Weekday index with 0 = Sunday (Python's weekday() uses 0 = Monday)."""
    return (day.weekday() + 1) % 7


class TimeRange(BaseModel):
    """One open interval on a weekday."""
    start: str = Field(..., pattern=r"^\d{1,2}:\d{2}$", description="Range start (HH:MM)")
    end: str = Field(..., pattern=r"^\d{1,2}:\d{2}$", description="Range end (HH:MM)")

    @property
    def start_minutes(self) -> int:
        return time_to_minutes(self.start)

    @property
    def end_minutes(self) -> int:
        return time_to_minutes(self.end)

    @property
    def is_empty(self) -> bool:
        """True for malformed ranges that can never hold a slot."""
        return self.end_minutes <= self.start_minutes


class DayAvailability(BaseModel):
    """Open ranges for a single weekday."""
    day: int = Field(..., ge=0, le=6, description="Weekday (0 = Sunday)")
    ranges: List[TimeRange] = Field(default_factory=list)


class WeeklyAvailability(BaseModel):
    """Recurring weekly pattern of open hours."""
    days: List[DayAvailability] = Field(default_factory=list)

    @classmethod
    def from_entries(cls, entries) -> "WeeklyAvailability":
        """
        Build from the raw list stored on a doctor profile.

        Args:
            entries: [{"day": 1, "ranges": [{"start": "08:00", "end": "12:00"}]}, ...]

        Returns:
            WeeklyAvailability instance (empty for None)
        """
        return cls(days=[DayAvailability(**entry) for entry in (entries or [])])

    def ranges_for(self, weekday: int) -> List[TimeRange]:
        """
        Get the declared ranges for a weekday.

        Args:
            weekday: 0 = Sunday ... 6 = Saturday

        Returns:
            Ranges in declaration order, empty if the doctor has no entry
        """
        for entry in self.days:
            if entry.day == weekday:
                return list(entry.ranges)
        return []

    def to_entries(self) -> list:
        """Serialize back to the profile storage format."""
        return [entry.model_dump() for entry in self.days]
