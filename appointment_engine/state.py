"""Appointment state machine and role-based transition authorization.

Best Practices:
- Enums for discrete statuses, roles and actions
- One capability table consulted uniformly by every operation
- Failed checks raise before anything is mutated
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from appointment_engine.errors import (
    ForbiddenError,
    InvalidInputError,
    InvalidStateError,
)


class AppointmentStatus(str, Enum):
    """Lifecycle statuses of an appointment."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED_BY_PATIENT = "cancelled_by_patient"
    CANCELLED_BY_DOCTOR = "cancelled_by_doctor"


# Statuses that hold a (doctor, instant) claim
ACTIVE_STATUSES: FrozenSet[AppointmentStatus] = frozenset({
    AppointmentStatus.PENDING,
    AppointmentStatus.APPROVED,
})


def is_active(status: AppointmentStatus) -> bool:
    """True if the status occupies its slot."""
    return AppointmentStatus(status) in ACTIVE_STATUSES


class Role(str, Enum):
    """Caller roles provided by the identity collaborator."""
    PATIENT = "patient"
    DOCTOR = "doctor"
    ADMIN = "admin"


class Action(str, Enum):
    """Operations that create or move an appointment through its lifecycle."""
    CREATE = "create"
    APPROVE = "approve"
    REJECT = "reject"
    CANCEL = "cancel"
    RESCHEDULE = "reschedule"


@dataclass(frozen=True)
class Actor:
    """
    Authenticated caller with a resolved owning identity.

    For doctors, `doctor_profile_id` is the profile identity appointments
    reference; it differs from the account `user_id` and is resolved by the
    doctor directory. It is None when the account has no profile.
    """
    role: Role
    user_id: str
    doctor_profile_id: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None

    @classmethod
    def patient(cls, user_id: str, email: Optional[str] = None, name: Optional[str] = None) -> "Actor":
        return cls(role=Role.PATIENT, user_id=user_id, email=email, name=name)

    @classmethod
    def doctor(cls, user_id: str, doctor_profile_id: Optional[str], email: Optional[str] = None) -> "Actor":
        return cls(role=Role.DOCTOR, user_id=user_id, doctor_profile_id=doctor_profile_id, email=email)

    @classmethod
    def admin(cls, user_id: str, email: Optional[str] = None) -> "Actor":
        return cls(role=Role.ADMIN, user_id=user_id, email=email)

    def owns(self, appointment) -> bool:
        """
        Check whether this actor is a party to the appointment.

        Args:
            appointment: Object exposing patient_id and doctor_id

        Returns:
            True for the booking patient or the appointment's doctor profile
        """
        if self.role == Role.PATIENT:
            return appointment.patient_id == self.user_id
        if self.role == Role.DOCTOR:
            return (
                self.doctor_profile_id is not None
                and appointment.doctor_id == self.doctor_profile_id
            )
        return False


@dataclass(frozen=True)
class TransitionRule:
    """What one role may do with one action."""
    sources: FrozenSet[Optional[AppointmentStatus]]
    target: AppointmentStatus
    requires_ownership: bool = True


_CANCELLABLE = frozenset({AppointmentStatus.PENDING, AppointmentStatus.APPROVED})

# Capability table: Action → Role → rule
# None as a source means "no appointment yet" (creation)
CAPABILITIES: Dict[Action, Dict[Role, TransitionRule]] = {
    Action.CREATE: {
        Role.PATIENT: TransitionRule(
            sources=frozenset({None}),
            target=AppointmentStatus.PENDING,
            requires_ownership=False,
        ),
    },
    Action.APPROVE: {
        Role.DOCTOR: TransitionRule(
            sources=frozenset({AppointmentStatus.PENDING}),
            target=AppointmentStatus.APPROVED,
        ),
    },
    Action.REJECT: {
        Role.DOCTOR: TransitionRule(
            sources=frozenset({AppointmentStatus.PENDING}),
            target=AppointmentStatus.REJECTED,
        ),
    },
    Action.CANCEL: {
        Role.PATIENT: TransitionRule(
            sources=_CANCELLABLE,
            target=AppointmentStatus.CANCELLED_BY_PATIENT,
        ),
        Role.DOCTOR: TransitionRule(
            sources=_CANCELLABLE,
            target=AppointmentStatus.CANCELLED_BY_DOCTOR,
        ),
        # Admin cancellations are recorded as doctor-side cancellations
        Role.ADMIN: TransitionRule(
            sources=_CANCELLABLE,
            target=AppointmentStatus.CANCELLED_BY_DOCTOR,
            requires_ownership=False,
        ),
    },
    Action.RESCHEDULE: {
        Role.PATIENT: TransitionRule(
            sources=frozenset({AppointmentStatus.PENDING}),
            target=AppointmentStatus.PENDING,
        ),
    },
}


# State machine transition map
# Pattern: Current status → [allowed next statuses]
VALID_TRANSITIONS: Dict[AppointmentStatus, List[AppointmentStatus]] = {
    AppointmentStatus.PENDING: [
        AppointmentStatus.PENDING,  # Reschedule keeps the status
        AppointmentStatus.APPROVED,
        AppointmentStatus.REJECTED,
        AppointmentStatus.CANCELLED_BY_PATIENT,
        AppointmentStatus.CANCELLED_BY_DOCTOR,
    ],
    AppointmentStatus.APPROVED: [
        AppointmentStatus.CANCELLED_BY_PATIENT,
        AppointmentStatus.CANCELLED_BY_DOCTOR,
    ],
    # Terminal statuses
    AppointmentStatus.REJECTED: [],
    AppointmentStatus.CANCELLED_BY_PATIENT: [],
    AppointmentStatus.CANCELLED_BY_DOCTOR: [],
}


def validate_transition(
    current: AppointmentStatus,
    intended: AppointmentStatus
) -> bool:
    """
    Validate a status transition, regardless of who asks for it.

    Args:
        current: Current appointment status
        intended: Intended next status

    Returns:
        True if transition is valid

    Example:
        >>> validate_transition(AppointmentStatus.PENDING, AppointmentStatus.APPROVED)
        True
    """
    allowed = VALID_TRANSITIONS.get(AppointmentStatus(current), [])
    return AppointmentStatus(intended) in allowed


def authorize_transition(action: Action, actor: Actor, appointment=None) -> AppointmentStatus:
    """
    Check an action against the capability table and return the target status.

    Checks run in order: role, ownership, source status. Nothing is mutated.

    Args:
        action: Requested action
        actor: Authenticated caller
        appointment: Current appointment (None for CREATE)

    Returns:
        Status the appointment moves to

    Raises:
        ForbiddenError: If the role may not perform the action, or the actor
            is not a party to the appointment
        InvalidStateError: If the current status does not allow the action
    """
    rule = CAPABILITIES[action].get(actor.role)
    if rule is None:
        raise ForbiddenError(f"Role '{actor.role.value}' may not {action.value} appointments")

    if appointment is None:
        if None not in rule.sources:
            raise InvalidStateError(f"Cannot {action.value} without an existing appointment")
        return rule.target

    if rule.requires_ownership and not actor.owns(appointment):
        raise ForbiddenError("Not your appointment")

    current = AppointmentStatus(appointment.status)
    if current not in rule.sources:
        raise InvalidStateError(
            f"Cannot {action.value} an appointment that is {current.value}"
        )

    return rule.target


def action_for_decision(status: str) -> Action:
    """
    Map a doctor's requested status to its action.

    Args:
        status: "approved" or "rejected"

    Returns:
        Action.APPROVE or Action.REJECT

    Raises:
        InvalidInputError: For any other status
    """
    if status == AppointmentStatus.APPROVED.value:
        return Action.APPROVE
    if status == AppointmentStatus.REJECTED.value:
        return Action.REJECT
    raise InvalidInputError("Status must be approved or rejected")
