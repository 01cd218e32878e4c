"""Doctor directory adapter.

Doctor profiles are managed outside the engine. This adapter gives the engine
the two lookups it needs: a doctor's schedule by profile id, and the profile
id behind a doctor account (accounts and profiles have distinct identities,
linked by email).

Pattern: Separate database persistence from domain models.
Doctor (domain) vs DoctorProfile (database).
"""
import uuid
from typing import List, Optional

from pydantic import BaseModel, Field
from sqlalchemy.orm import sessionmaker

from appointment_engine import config
from appointment_engine.availability import WeeklyAvailability
from appointment_engine.database import store_errors
from appointment_engine.database_models import DoctorProfile
from appointment_engine.errors import NotFoundError


class Doctor(BaseModel):
    """Doctor schedule as seen by the scheduling engine."""
    id: str
    email: str
    full_name: Optional[str] = None
    department: Optional[str] = None
    availability: WeeklyAvailability = Field(default_factory=WeeklyAvailability)
    slot_minutes: int = Field(default=config.DEFAULT_SLOT_MINUTES, gt=0, le=24 * 60)


def _to_domain(profile: DoctorProfile) -> Doctor:
    return Doctor(
        id=profile.id,
        email=profile.email,
        full_name=profile.full_name,
        department=profile.department,
        availability=WeeklyAvailability.from_entries(profile.availability),
        slot_minutes=profile.slot_minutes or config.DEFAULT_SLOT_MINUTES
    )


class DoctorDirectory:
    """Read access to doctor profiles, plus registration for operators and tests."""

    def __init__(self, session_factory: sessionmaker):
        """Initialize with a session factory bound to the shared engine."""
        self.SessionLocal = session_factory

    def get_doctor(self, doctor_id: str) -> Doctor:
        """
        Load a doctor's schedule by profile id.

        Args:
            doctor_id: Doctor profile identifier

        Returns:
            Doctor instance

        Raises:
            NotFoundError: If no profile has this id
        """
        with store_errors("get_doctor"), self.SessionLocal() as db:
            profile = db.get(DoctorProfile, doctor_id)

            if not profile:
                raise NotFoundError(f"Doctor {doctor_id} not found")

            return _to_domain(profile)

    def resolve_profile_id(self, email: str) -> Optional[str]:
        """
        Resolve a doctor account to its profile id.

        Args:
            email: Email of the authenticated doctor account

        Returns:
            Profile id, or None if the account has no doctor profile
        """
        with store_errors("resolve_profile_id"), self.SessionLocal() as db:
            profile = db.query(DoctorProfile).filter(
                DoctorProfile.email == email
            ).first()

            return profile.id if profile else None

    def register_doctor(
        self,
        email: str,
        availability: Optional[List[dict]] = None,
        slot_minutes: int = config.DEFAULT_SLOT_MINUTES,
        full_name: Optional[str] = None,
        department: Optional[str] = None,
        doctor_id: Optional[str] = None
    ) -> Doctor:
        """
        Create or replace a doctor profile.

        Args:
            email: Doctor account email (unique)
            availability: Raw availability entries ({"day", "ranges"})
            slot_minutes: Slot granularity
            full_name: Display name
            department: Department name
            doctor_id: Explicit profile id (generated if omitted)

        Returns:
            Registered Doctor
        """
        # Validate before touching the database
        schedule = WeeklyAvailability.from_entries(availability)

        with store_errors("register_doctor"), self.SessionLocal() as db:
            profile = db.query(DoctorProfile).filter(
                DoctorProfile.email == email
            ).first()

            if profile is None:
                profile = DoctorProfile(
                    id=doctor_id or f"doc-{uuid.uuid4().hex[:12]}",
                    email=email
                )
                db.add(profile)

            profile.full_name = full_name
            profile.department = department
            profile.availability = schedule.to_entries()
            profile.slot_minutes = slot_minutes
            db.commit()

            return _to_domain(profile)
