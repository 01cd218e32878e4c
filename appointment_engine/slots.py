"""Slot generation from weekly availability.

Turns a doctor's availability for one date into candidate slot start times,
minus the instants already claimed. The result is advisory: the claim taken
at commit time in the store is the authoritative conflict check.
"""
from datetime import date, datetime, time, timedelta
from typing import Iterable, Iterator

from appointment_engine.availability import MINUTES_PER_DAY, day_of_week
from appointment_engine.doctors import Doctor


def first_aligned_minute(start_minutes: int, slot_minutes: int) -> int:
    """Smallest multiple of slot_minutes that is >= start_minutes."""
    return -(-start_minutes // slot_minutes) * slot_minutes


def generate_slots(
    doctor: Doctor,
    day: date,
    now: datetime,
    claimed_instants: Iterable[datetime] = ()
) -> Iterator[datetime]:
    """
    Lazily yield bookable slot start times for a doctor on a date.

    Ranges are walked in declaration order, each one chronologically; no
    global re-sort happens. A range with end <= start is skipped. A slot is
    emitted only when it fits entirely inside its range, starts strictly
    after `now`, and is not in `claimed_instants`.

    Walking starts at the first aligned minute of each range, not at the raw
    range start, and a trailing partial slot is dropped: every emitted slot
    passes `validate_booking` unchanged.

    Args:
        doctor: Doctor with availability and slot granularity
        day: Calendar date to generate slots for
        now: Current wall-clock time (naive)
        claimed_instants: Snapshot of instants held by active appointments

    Yields:
        Naive datetimes bound to `day`

    Example:
        >>> list(generate_slots(doctor, date(2030, 1, 7), now))  # Mon 08:00-09:00
        [datetime(2030, 1, 7, 8, 0), datetime(2030, 1, 7, 8, 30)]
    """
    claimed = frozenset(claimed_instants)
    step = doctor.slot_minutes
    midnight = datetime.combine(day, time.min)

    for time_range in doctor.availability.ranges_for(day_of_week(day)):
        if time_range.is_empty:
            continue

        range_end = min(time_range.end_minutes, MINUTES_PER_DAY)
        cursor = first_aligned_minute(time_range.start_minutes, step)

        while cursor + step <= range_end:
            instant = midnight + timedelta(minutes=cursor)
            if instant > now and instant not in claimed:
                yield instant
            cursor += step
