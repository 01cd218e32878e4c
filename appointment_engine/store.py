"""Appointment persistence with atomic slot claims.

Responsibilities:
- Claim (doctor, instant) pairs through the slot_claims primary key
- Create appointments and their claim in one transaction
- Persist status and instant changes, keeping claims in step
- Lookups by identity and by party

Pattern: Thin wrapper around SQLAlchemy. The database constraint decides
every conflict; nothing here reads "is the slot free" and then writes.
"""
import uuid
from datetime import date, datetime, time, timedelta
from enum import Enum
from functools import wraps
from typing import List, Optional, Set

from pydantic import BaseModel, ConfigDict
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from appointment_engine import config
from appointment_engine.circuit_breaker import CircuitBreaker
from appointment_engine.database import store_errors
from appointment_engine.database_models import Appointment as AppointmentRecord
from appointment_engine.database_models import SlotClaim, utc_now
from appointment_engine.errors import (
    InvalidStateError,
    NotFoundError,
    SlotTakenError,
)
from appointment_engine.logging_config import get_logger
from appointment_engine.state import AppointmentStatus, is_active

logger = get_logger(__name__)


class Appointment(BaseModel):
    """Appointment as returned by the store (detached from any session)."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    patient_id: str
    doctor_id: str
    instant: datetime
    status: AppointmentStatus
    patient_name_at_booking: Optional[str] = None
    patient_email_at_booking: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return is_active(self.status)


class ClaimResult(str, Enum):
    """Outcome of an atomic claim attempt."""
    CLAIMED = "claimed"
    ALREADY_CLAIMED = "already_claimed"


def _guarded(method):
    """Run a store operation through the store's circuit breaker."""
    @wraps(method)
    def wrapper(self, *args, **kwargs):
        return self.breaker.call(method, self, *args, **kwargs)
    return wrapper


def _new_appointment_id() -> str:
    return f"appt-{uuid.uuid4().hex[:16]}"


class AppointmentStore:
    """
    Store adapter consumed by the booking and reschedule engines.

    Every public method runs in exactly one database transaction.
    """

    def __init__(self, session_factory: sessionmaker, breaker: Optional[CircuitBreaker] = None):
        """
        Initialize the store.

        Args:
            session_factory: Session factory bound to the shared engine
            breaker: Circuit breaker for store calls (created from config if omitted)
        """
        self.SessionLocal = session_factory
        self.breaker = breaker or CircuitBreaker(
            failure_threshold=config.STORE_FAILURE_THRESHOLD,
            timeout=config.STORE_RECOVERY_TIMEOUT
        )

    @_guarded
    def try_claim(self, doctor_id: str, instant: datetime, appointment_id: str) -> ClaimResult:
        """
        Atomically reserve (doctor_id, instant) for an appointment.

        Only one concurrent caller can succeed for a given pair while it is
        held; the primary key on slot_claims enforces it.

        Args:
            doctor_id: Doctor profile identifier
            instant: Aligned slot start
            appointment_id: Appointment that will hold the claim

        Returns:
            ClaimResult.CLAIMED or ClaimResult.ALREADY_CLAIMED
        """
        with store_errors("try_claim"), self.SessionLocal() as db:
            db.add(SlotClaim(doctor_id=doctor_id, instant=instant, appointment_id=appointment_id))
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                logger.info("claim_lost", doctor_id=doctor_id, instant=instant.isoformat())
                return ClaimResult.ALREADY_CLAIMED

        return ClaimResult.CLAIMED

    @_guarded
    def release_claim(self, doctor_id: str, instant: datetime) -> None:
        """
        Release a (doctor_id, instant) claim. Releasing a free slot is a no-op.

        Args:
            doctor_id: Doctor profile identifier
            instant: Slot start
        """
        with store_errors("release_claim"), self.SessionLocal() as db:
            db.query(SlotClaim).filter(
                SlotClaim.doctor_id == doctor_id,
                SlotClaim.instant == instant
            ).delete(synchronize_session=False)
            db.commit()

    @_guarded
    def is_claimed(self, doctor_id: str, instant: datetime) -> bool:
        """Snapshot read of a claim. Never use it to decide a commit."""
        with store_errors("is_claimed"), self.SessionLocal() as db:
            return db.get(SlotClaim, (doctor_id, instant)) is not None

    @_guarded
    def claimed_instants(self, doctor_id: str, day: date) -> Set[datetime]:
        """
        Instants held by active appointments of a doctor on one date.

        Args:
            doctor_id: Doctor profile identifier
            day: Calendar date

        Returns:
            Set of claimed slot starts
        """
        day_start = datetime.combine(day, time.min)
        day_end = day_start + timedelta(days=1)

        with store_errors("claimed_instants"), self.SessionLocal() as db:
            rows = db.query(SlotClaim.instant).filter(
                SlotClaim.doctor_id == doctor_id,
                SlotClaim.instant >= day_start,
                SlotClaim.instant < day_end
            ).all()

        return {row.instant for row in rows}

    @_guarded
    def create_appointment(
        self,
        patient_id: str,
        doctor_id: str,
        instant: datetime,
        patient_name: Optional[str] = None,
        patient_email: Optional[str] = None
    ) -> Appointment:
        """
        Claim the slot and insert a pending appointment in one transaction.

        Args:
            patient_id: Booking patient
            doctor_id: Doctor profile identifier
            instant: Validated, aligned slot start
            patient_name: Patient name snapshot at booking time
            patient_email: Patient email snapshot at booking time

        Returns:
            Created appointment

        Raises:
            SlotTakenError: If another active appointment holds the slot
        """
        appointment_id = _new_appointment_id()

        with store_errors("create_appointment"), self.SessionLocal() as db:
            db.add(SlotClaim(doctor_id=doctor_id, instant=instant, appointment_id=appointment_id))
            record = AppointmentRecord(
                id=appointment_id,
                patient_id=patient_id,
                doctor_id=doctor_id,
                instant=instant,
                status=AppointmentStatus.PENDING.value,
                patient_name_at_booking=patient_name,
                patient_email_at_booking=patient_email
            )
            db.add(record)

            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                logger.info("claim_lost", doctor_id=doctor_id, instant=instant.isoformat())
                raise SlotTakenError("This slot is already booked")

            return Appointment.model_validate(record)

    @_guarded
    def find_by_id(self, appointment_id: str) -> Optional[Appointment]:
        """
        Get an appointment by id.

        Returns:
            Appointment, or None if it does not exist
        """
        with store_errors("find_by_id"), self.SessionLocal() as db:
            record = db.get(AppointmentRecord, appointment_id)
            return Appointment.model_validate(record) if record else None

    def get(self, appointment_id: str) -> Appointment:
        """
        Get an appointment by id.

        Raises:
            NotFoundError: If it does not exist
        """
        appointment = self.find_by_id(appointment_id)
        if appointment is None:
            raise NotFoundError(f"Appointment {appointment_id} not found")
        return appointment

    @_guarded
    def find_by_party(
        self,
        patient_id: Optional[str] = None,
        doctor_id: Optional[str] = None
    ) -> List[Appointment]:
        """
        List appointments filtered by patient and/or doctor, by instant.

        With no filter, every appointment is returned.
        """
        with store_errors("find_by_party"), self.SessionLocal() as db:
            query = db.query(AppointmentRecord)
            if patient_id is not None:
                query = query.filter(AppointmentRecord.patient_id == patient_id)
            if doctor_id is not None:
                query = query.filter(AppointmentRecord.doctor_id == doctor_id)

            records = query.order_by(AppointmentRecord.instant, AppointmentRecord.created_at).all()
            return [Appointment.model_validate(record) for record in records]

    @_guarded
    def save(
        self,
        appointment: Appointment,
        expected_status: Optional[AppointmentStatus] = None,
        expected_instant: Optional[datetime] = None
    ) -> Appointment:
        """
        Persist status and instant of an appointment, reconciling its claim.

        The row is written with a conditional UPDATE that matches only the
        status and instant read at the start of the transaction. A concurrent
        transition that committed in between makes it match no row, and the
        claim table is never touched. This holds on SQLite, which has no
        row-level locks.

        In the same transaction, for the winner only:
        - the old claim is released when the appointment leaves the active
          set or moves to another instant
        - a new claim is taken when it stays active at a new instant

        patient_id and doctor_id are immutable and never written.

        Args:
            appointment: Appointment with the desired status/instant
            expected_status: Status the stored row must still have
            expected_instant: Instant the stored row must still have

        Returns:
            Persisted appointment

        Raises:
            NotFoundError: If the appointment does not exist
            InvalidStateError: If the stored row changed concurrently
            SlotTakenError: If the new instant is held by another appointment
        """
        with store_errors("save"), self.SessionLocal() as db:
            record = db.get(AppointmentRecord, appointment.id)

            if record is None:
                raise NotFoundError(f"Appointment {appointment.id} not found")

            current_status = AppointmentStatus(record.status)
            current_instant = record.instant
            doctor_id = record.doctor_id

            if expected_status is not None and current_status != AppointmentStatus(expected_status):
                raise InvalidStateError(
                    f"Appointment {appointment.id} is now {current_status.value}"
                )
            if expected_instant is not None and current_instant != expected_instant:
                raise InvalidStateError(
                    f"Appointment {appointment.id} was moved to {current_instant.isoformat()}"
                )

            new_status = AppointmentStatus(appointment.status)
            result = db.execute(
                update(AppointmentRecord)
                .where(
                    AppointmentRecord.id == record.id,
                    AppointmentRecord.status == current_status.value,
                    AppointmentRecord.instant == current_instant
                )
                .values(
                    status=new_status.value,
                    instant=appointment.instant,
                    updated_at=utc_now()
                )
                .execution_options(synchronize_session=False)
            )

            if result.rowcount == 0:
                db.rollback()
                logger.info("transition_lost", appointment_id=appointment.id)
                raise InvalidStateError(
                    f"Appointment {appointment.id} was changed by another request"
                )

            was_active = is_active(current_status)
            now_active = is_active(new_status)
            moved = current_instant != appointment.instant

            if was_active and (moved or not now_active):
                db.query(SlotClaim).filter(
                    SlotClaim.doctor_id == doctor_id,
                    SlotClaim.instant == current_instant
                ).delete(synchronize_session=False)

            if now_active and (moved or not was_active):
                db.add(SlotClaim(
                    doctor_id=doctor_id,
                    instant=appointment.instant,
                    appointment_id=appointment.id
                ))

            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                logger.info(
                    "claim_lost",
                    doctor_id=doctor_id,
                    instant=appointment.instant.isoformat()
                )
                raise SlotTakenError("This slot is already booked")

            db.refresh(record)
            return Appointment.model_validate(record)

    def update_status(
        self,
        appointment: Appointment,
        status: AppointmentStatus
    ) -> Appointment:
        """Persist a status transition; frees the slot when leaving the active set."""
        return self.save(
            appointment.model_copy(update={"status": status}),
            expected_status=appointment.status,
            expected_instant=appointment.instant
        )

    def move_appointment(self, appointment: Appointment, new_instant: datetime) -> Appointment:
        """Claim new_instant, release the old claim and update the instant atomically."""
        return self.save(
            appointment.model_copy(update={"instant": new_instant}),
            expected_status=appointment.status,
            expected_instant=appointment.instant
        )
