"""Shared test fixtures."""
from datetime import date, datetime

import pytest

from appointment_engine.booking import BookingService
from appointment_engine.circuit_breaker import CircuitBreaker
from appointment_engine.database import build_engine, create_session_factory, init_database
from appointment_engine.doctors import DoctorDirectory
from appointment_engine.reschedule import RescheduleEngine
from appointment_engine.state import Actor
from appointment_engine.store import AppointmentStore

# 2030-01-07 is a Monday (weekday index 1)
MONDAY = date(2030, 1, 7)
TUESDAY = date(2030, 1, 8)

DOCTOR_ID = "doc-house"
DOCTOR_EMAIL = "dr.house@clinic.com"

MONDAY_MORNINGS = [
    {"day": 1, "ranges": [{"start": "08:00", "end": "12:00"}]},
]


def at(hour: int, minute: int = 0, day: date = MONDAY) -> datetime:
    """Naive wall-clock instant on a test date."""
    return datetime(day.year, day.month, day.day, hour, minute)


@pytest.fixture
def engine():
    """Fresh in-memory database per test."""
    engine = build_engine("sqlite:///:memory:")
    init_database(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def store(session_factory) -> AppointmentStore:
    return AppointmentStore(session_factory, breaker=CircuitBreaker(failure_threshold=3, timeout=1))


@pytest.fixture
def directory(session_factory) -> DoctorDirectory:
    return DoctorDirectory(session_factory)


@pytest.fixture
def doctor(directory):
    """Doctor available Mondays 08:00-12:00 with 30 minute slots."""
    return directory.register_doctor(
        DOCTOR_EMAIL,
        availability=MONDAY_MORNINGS,
        slot_minutes=30,
        full_name="Gregory House",
        department="Diagnostics",
        doctor_id=DOCTOR_ID
    )


@pytest.fixture
def now() -> datetime:
    """Early Monday morning, before the doctor's first slot."""
    return at(7, 0)


@pytest.fixture
def patient() -> Actor:
    return Actor.patient("patient-1", email="ana@example.com")


@pytest.fixture
def other_patient() -> Actor:
    return Actor.patient("patient-2", email="ben@example.com")


@pytest.fixture
def doctor_actor(doctor) -> Actor:
    """Doctor account resolved to the seeded profile."""
    return Actor.doctor("user-doc-1", doctor.id, email=DOCTOR_EMAIL)


@pytest.fixture
def other_doctor_actor() -> Actor:
    return Actor.doctor("user-doc-2", "doc-wilson", email="dr.wilson@clinic.com")


@pytest.fixture
def admin() -> Actor:
    return Actor.admin("admin-1")


@pytest.fixture
def booking(store, directory) -> BookingService:
    return BookingService(store, directory)


@pytest.fixture
def rescheduler(store, directory) -> RescheduleEngine:
    return RescheduleEngine(store, directory)
