"""Booking validation for a requested (doctor, instant) pair.

Steps, first failure wins:
1. Floor the requested instant to the doctor's slot granularity
2. Reject slots at or before now
3. Reject slots whose full duration does not fit inside one range
"""
from datetime import datetime

from appointment_engine.availability import day_of_week, minutes_of_day
from appointment_engine.doctors import Doctor
from appointment_engine.errors import OutsideAvailabilityError, PastSlotError


def align_to_slot(instant: datetime, slot_minutes: int) -> datetime:
    """
    Round an instant DOWN to the nearest slot boundary within its day.

    Seconds and microseconds are always dropped.

    Args:
        instant: Requested time
        slot_minutes: Slot granularity in minutes

    Returns:
        Aligned datetime on the same date

    Example:
        >>> align_to_slot(datetime(2030, 1, 7, 7, 50), 30)
        datetime.datetime(2030, 1, 7, 7, 30)
    """
    minutes = minutes_of_day(instant)
    aligned = (minutes // slot_minutes) * slot_minutes
    return instant.replace(
        hour=aligned // 60,
        minute=aligned % 60,
        second=0,
        microsecond=0
    )


def slot_fits_availability(doctor: Doctor, slot: datetime) -> bool:
    """
    Check that the entire slot (start to start + granularity) fits in one range.

    Args:
        doctor: Doctor with availability and slot granularity
        slot: Aligned slot start

    Returns:
        True if some range of the slot's weekday contains the whole slot
    """
    start = minutes_of_day(slot)
    end = start + doctor.slot_minutes

    return any(
        time_range.start_minutes <= start and end <= time_range.end_minutes
        for time_range in doctor.availability.ranges_for(day_of_week(slot.date()))
        if not time_range.is_empty
    )


def validate_booking(doctor: Doctor, requested: datetime, now: datetime) -> datetime:
    """
    Validate a requested booking time for a doctor.

    Args:
        doctor: Doctor with availability and slot granularity
        requested: Requested instant (naive wall-clock)
        now: Current wall-clock time

    Returns:
        The aligned slot start

    Raises:
        PastSlotError: If the aligned slot starts at or before now
        OutsideAvailabilityError: If the full slot is not inside a range
    """
    aligned = align_to_slot(requested, doctor.slot_minutes)

    if aligned <= now:
        raise PastSlotError(f"Cannot book a slot in the past ({aligned.isoformat()})")

    if not slot_fits_availability(doctor, aligned):
        raise OutsideAvailabilityError(
            f"Selected time {aligned.isoformat()} is not in doctor availability"
        )

    return aligned
