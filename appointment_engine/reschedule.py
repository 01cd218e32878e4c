"""Reschedule engine: move a pending appointment to a new slot.

Flow:
1. Load the appointment (NotFoundError)
2. Owning patient only (ForbiddenError)
3. Pending only (InvalidStateError)
4. Validate the new instant against the same doctor's availability
5. Claim new slot, release old one and update the instant in one store
   transaction (SlotTakenError leaves the original untouched)
"""
from datetime import datetime

from appointment_engine.doctors import DoctorDirectory
from appointment_engine.logging_config import get_logger
from appointment_engine.state import Action, Actor, authorize_transition
from appointment_engine.store import Appointment, AppointmentStore
from appointment_engine.validator import validate_booking

logger = get_logger(__name__)


class RescheduleEngine:
    """Composes validator, store and state machine for rescheduling."""

    def __init__(self, store: AppointmentStore, directory: DoctorDirectory):
        self.store = store
        self.directory = directory

    def reschedule(
        self,
        appointment_id: str,
        new_instant: datetime,
        actor: Actor,
        now: datetime
    ) -> Appointment:
        """
        Move an appointment to a new slot; the status stays pending.

        Args:
            appointment_id: Appointment identifier
            new_instant: Requested new start (floored to the slot grid)
            actor: Caller (must be the booking patient)
            now: Current wall-clock time

        Returns:
            Updated appointment

        Raises:
            NotFoundError: If the appointment does not exist
            ForbiddenError: If the caller is not the owning patient
            InvalidStateError: If the appointment is not pending
            PastSlotError, OutsideAvailabilityError: If the new slot is invalid
            SlotTakenError: If the new slot is held by another appointment
        """
        appointment = self.store.get(appointment_id)
        authorize_transition(Action.RESCHEDULE, actor, appointment)

        doctor = self.directory.get_doctor(appointment.doctor_id)
        slot = validate_booking(doctor, new_instant, now)

        if slot == appointment.instant:
            return appointment

        old_instant = appointment.instant
        updated = self.store.move_appointment(appointment, slot)

        logger.info(
            "appointment_rescheduled",
            appointment_id=appointment_id,
            doctor_id=appointment.doctor_id,
            old_instant=old_instant.isoformat(),
            new_instant=slot.isoformat()
        )
        return updated
