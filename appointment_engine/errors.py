"""Error taxonomy for the scheduling engine.

Every failed operation raises exactly one of these. The HTTP layer maps
`status_code` and `code` straight into the error envelope.
"""


class SchedulingError(Exception):
    """Base class for all engine errors."""
    code = "SCHEDULING_ERROR"
    status_code = 500


class NotFoundError(SchedulingError):
    """Raised when an appointment or doctor does not exist."""
    code = "NOT_FOUND"
    status_code = 404


class ForbiddenError(SchedulingError):
    """Raised when the caller is authenticated but not allowed to act."""
    code = "FORBIDDEN"
    status_code = 403


class InvalidStateError(SchedulingError):
    """Raised when the action is not valid for the current status."""
    code = "INVALID_STATE"
    status_code = 409


class InvalidInputError(SchedulingError):
    """Raised for malformed, unaligned or past slot requests."""
    code = "INVALID_INPUT"
    status_code = 400


class PastSlotError(InvalidInputError):
    """Raised when the aligned slot starts at or before now."""
    code = "PAST_SLOT"


class OutsideAvailabilityError(InvalidInputError):
    """Raised when the full slot does not fit inside one availability range."""
    code = "OUTSIDE_AVAILABILITY"


class SlotTakenError(SchedulingError):
    """Raised when the atomic claim on (doctor, instant) was lost."""
    code = "SLOT_TAKEN"
    status_code = 409


class StoreUnavailableError(SchedulingError):
    """Raised when the backing store cannot be reached.

    Never raised for a lost claim: a timed-out write may still have
    succeeded, so callers must re-read before retrying.
    """
    code = "STORE_UNAVAILABLE"
    status_code = 503
