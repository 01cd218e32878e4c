"""Booking service: create, decide, cancel and list appointments.

Request flows:
- booking: validate → atomic claim + insert → pending
- status change: capability check → persist (claim released when the
  appointment leaves the active set)

`now` is always passed in by the caller; nothing here reads the clock.
"""
from datetime import date, datetime
from typing import List

from appointment_engine.doctors import DoctorDirectory
from appointment_engine.errors import ForbiddenError, SlotTakenError
from appointment_engine.logging_config import get_logger
from appointment_engine.slots import generate_slots
from appointment_engine.state import (
    Action,
    Actor,
    Role,
    action_for_decision,
    authorize_transition,
)
from appointment_engine.store import Appointment, AppointmentStore
from appointment_engine.validator import validate_booking

logger = get_logger(__name__)


class BookingService:
    """Engine entry points for everything except rescheduling."""

    def __init__(self, store: AppointmentStore, directory: DoctorDirectory):
        self.store = store
        self.directory = directory

    def available_slots(self, doctor_id: str, day: date, now: datetime) -> List[datetime]:
        """
        Compute the bookable slots of a doctor for one date.

        Args:
            doctor_id: Doctor profile identifier
            day: Calendar date
            now: Current wall-clock time

        Returns:
            Slot starts (empty when the doctor has no availability that day)

        Raises:
            NotFoundError: If the doctor does not exist
        """
        doctor = self.directory.get_doctor(doctor_id)
        claimed = self.store.claimed_instants(doctor_id, day)
        return list(generate_slots(doctor, day, now, claimed))

    def book(self, actor: Actor, doctor_id: str, requested: datetime, now: datetime) -> Appointment:
        """
        Book a slot with a doctor for the calling patient.

        Args:
            actor: Caller (must be a patient)
            doctor_id: Doctor profile identifier
            requested: Requested start time (floored to the slot grid)
            now: Current wall-clock time

        Returns:
            Created appointment with status pending

        Raises:
            ForbiddenError: If the caller is not a patient
            NotFoundError: If the doctor does not exist
            PastSlotError, OutsideAvailabilityError: If validation fails
            SlotTakenError: If the slot is already held
        """
        authorize_transition(Action.CREATE, actor)

        doctor = self.directory.get_doctor(doctor_id)
        slot = validate_booking(doctor, requested, now)

        # Early exit only; the claim inside create_appointment decides
        if self.store.is_claimed(doctor.id, slot):
            raise SlotTakenError("This slot is already booked")

        appointment = self.store.create_appointment(
            patient_id=actor.user_id,
            doctor_id=doctor.id,
            instant=slot,
            patient_name=actor.name,
            patient_email=actor.email
        )

        logger.info(
            "appointment_booked",
            appointment_id=appointment.id,
            doctor_id=doctor.id,
            patient_id=actor.user_id,
            instant=slot.isoformat()
        )
        return appointment

    def decide(self, actor: Actor, appointment_id: str, status: str) -> Appointment:
        """
        Approve or reject a pending appointment as its doctor.

        Args:
            actor: Caller (must be the appointment's doctor)
            appointment_id: Appointment identifier
            status: "approved" or "rejected"

        Returns:
            Updated appointment

        Raises:
            InvalidInputError: If status is not approved/rejected
            NotFoundError: If the appointment does not exist
            ForbiddenError: If the caller is not the owning doctor
            InvalidStateError: If the appointment is not pending
        """
        action = action_for_decision(status)
        appointment = self.store.get(appointment_id)
        target = authorize_transition(action, actor, appointment)

        updated = self.store.update_status(appointment, target)
        logger.info(
            "appointment_decided",
            appointment_id=appointment_id,
            status=target.value,
            doctor_id=actor.doctor_profile_id
        )
        return updated

    def cancel(self, actor: Actor, appointment_id: str) -> Appointment:
        """
        Cancel a pending or approved appointment.

        Patients cancel into cancelled_by_patient; doctors and admins into
        cancelled_by_doctor. The slot becomes bookable again immediately.

        Raises:
            NotFoundError: If the appointment does not exist
            ForbiddenError: If the caller is not a party (admins excepted)
            InvalidStateError: If the appointment is not cancellable
        """
        appointment = self.store.get(appointment_id)
        target = authorize_transition(Action.CANCEL, actor, appointment)

        updated = self.store.update_status(appointment, target)
        logger.info(
            "appointment_cancelled",
            appointment_id=appointment_id,
            status=target.value,
            role=actor.role.value
        )
        return updated

    def get_appointment(self, actor: Actor, appointment_id: str) -> Appointment:
        """
        Fetch one appointment visible to the caller.

        Raises:
            NotFoundError: If the appointment does not exist
            ForbiddenError: If the caller is neither a party nor an admin
        """
        appointment = self.store.get(appointment_id)
        if actor.role != Role.ADMIN and not actor.owns(appointment):
            raise ForbiddenError("Not your appointment")
        return appointment

    def list_appointments(self, actor: Actor) -> List[Appointment]:
        """
        List the caller's appointments.

        Patients see their own bookings, doctors the bookings on their
        profile, admins everything.
        """
        if actor.role == Role.PATIENT:
            return self.store.find_by_party(patient_id=actor.user_id)

        if actor.role == Role.DOCTOR:
            if actor.doctor_profile_id is None:
                return []
            return self.store.find_by_party(doctor_id=actor.doctor_profile_id)

        return self.store.find_by_party()
