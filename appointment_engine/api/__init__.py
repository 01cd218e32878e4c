"""API package initialization."""
from appointment_engine.api.models import (
    AppointmentListResponse,
    AppointmentOut,
    AppointmentResponse,
    BookingRequest,
    ErrorResponse,
    RescheduleRequest,
    SlotsResponse,
    StatusUpdateRequest,
)

__all__ = [
    "AppointmentListResponse",
    "AppointmentOut",
    "AppointmentResponse",
    "BookingRequest",
    "ErrorResponse",
    "RescheduleRequest",
    "SlotsResponse",
    "StatusUpdateRequest",
]
