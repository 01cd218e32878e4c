"""FastAPI dependency injection functions."""
from datetime import datetime
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from appointment_engine.booking import BookingService
from appointment_engine.database import create_session_factory, get_engine
from appointment_engine.doctors import DoctorDirectory
from appointment_engine.reschedule import RescheduleEngine
from appointment_engine.state import Actor, Role
from appointment_engine.store import AppointmentStore


@lru_cache(maxsize=1)
def get_store() -> AppointmentStore:
    """
    Get the appointment store (cached singleton).

    Pattern: One engine and one circuit breaker per process, reused across
    requests.
    """
    return AppointmentStore(create_session_factory(get_engine()))


@lru_cache(maxsize=1)
def get_doctor_directory() -> DoctorDirectory:
    """Get the doctor directory adapter (cached singleton)."""
    return DoctorDirectory(create_session_factory(get_engine()))


def get_booking_service(
    store: AppointmentStore = Depends(get_store),
    directory: DoctorDirectory = Depends(get_doctor_directory)
) -> BookingService:
    """Booking service wired to the shared store and directory."""
    return BookingService(store, directory)


def get_reschedule_engine(
    store: AppointmentStore = Depends(get_store),
    directory: DoctorDirectory = Depends(get_doctor_directory)
) -> RescheduleEngine:
    """Reschedule engine wired to the shared store and directory."""
    return RescheduleEngine(store, directory)


def get_now() -> datetime:
    """
    Current local wall-clock time.

    The only place the service reads the clock; tests override it.
    """
    return datetime.now()


async def get_current_actor(
    x_user_id: Optional[str] = Header(None, description="Authenticated user id"),
    x_user_role: Optional[str] = Header(None, description="patient | doctor | admin"),
    x_user_email: Optional[str] = Header(None, description="Authenticated user email"),
    x_user_name: Optional[str] = Header(None, description="Display name of the authenticated user"),
    directory: DoctorDirectory = Depends(get_doctor_directory)
) -> Actor:
    """
    FastAPI dependency building the caller identity.

    Identity headers are set by the upstream authentication gateway. Doctor
    accounts are resolved to their doctor profile through their email.

    Returns:
        Actor for the current request

    Raises:
        HTTPException 401: If identity headers are missing or the role is unknown
    """
    if not x_user_id or not x_user_role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing caller identity",
        )

    try:
        role = Role(x_user_role.lower())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Unknown role '{x_user_role}'",
        )

    if role == Role.DOCTOR:
        profile_id = directory.resolve_profile_id(x_user_email) if x_user_email else None
        return Actor.doctor(x_user_id, profile_id, email=x_user_email)

    if role == Role.ADMIN:
        return Actor.admin(x_user_id, email=x_user_email)

    return Actor.patient(x_user_id, email=x_user_email, name=x_user_name)


def require_role(*roles: Role):
    """
    Build a dependency that restricts an endpoint to some roles.

    Raises:
        HTTPException 403: If the caller's role is not allowed
    """
    async def _check(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Forbidden: insufficient role",
            )
        return actor

    return _check
