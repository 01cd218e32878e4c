"""SQLAlchemy database models for the scheduling store."""
from datetime import datetime, UTC

from sqlalchemy import Column, DateTime, Index, Integer, JSON, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utc_now():
    """Get current UTC timestamp."""
    return datetime.now(UTC)


class DoctorProfile(Base):
    """Doctor profile with weekly availability (owned by the directory)."""
    __tablename__ = "doctor_profiles"

    id = Column(String(64), primary_key=True, index=True)
    # Doctor accounts resolve to their profile through this email
    email = Column(String(255), nullable=False, unique=True, index=True)
    full_name = Column(String(200), nullable=True)
    department = Column(String(200), nullable=True)
    availability = Column(JSON, nullable=False, default=list)  # [{"day": 1, "ranges": [...]}]
    slot_minutes = Column(Integer, nullable=False, default=30)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    def __repr__(self):
        return f"<DoctorProfile(id={self.id}, email={self.email})>"


class Appointment(Base):
    """Booked appointment. Never deleted; cancellation is a status change."""
    __tablename__ = "appointments"

    id = Column(String(64), primary_key=True, index=True)
    patient_id = Column(String(64), nullable=False, index=True)
    doctor_id = Column(String(64), nullable=False, index=True)
    instant = Column(DateTime, nullable=False)
    status = Column(String(32), nullable=False, default="pending", index=True)
    patient_name_at_booking = Column(String(200), nullable=True)
    patient_email_at_booking = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    __table_args__ = (
        Index("ix_appointments_doctor_instant", "doctor_id", "instant"),
    )

    def __repr__(self):
        return f"<Appointment(id={self.id}, doctor={self.doctor_id}, status={self.status})>"


class SlotClaim(Base):
    """
    Reservation of a (doctor, instant) pair by an active appointment.

    The composite primary key is the uniqueness constraint that serializes
    concurrent bookings. A row exists only while its appointment is pending
    or approved.
    """
    __tablename__ = "slot_claims"

    doctor_id = Column(String(64), primary_key=True)
    instant = Column(DateTime, primary_key=True)
    appointment_id = Column(String(64), nullable=False, index=True)
    created_at = Column(DateTime, default=utc_now, nullable=False)

    def __repr__(self):
        return f"<SlotClaim(doctor={self.doctor_id}, instant={self.instant})>"
