"""Pydantic models for API request/response validation."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from appointment_engine.state import AppointmentStatus


def _wall_clock(value: datetime) -> datetime:
    """Instants are naive local wall-clock; any offset sent by a client is dropped."""
    return value.replace(tzinfo=None) if value.tzinfo is not None else value


class BookingRequest(BaseModel):
    """Request schema for POST /api/v1/appointments."""
    doctor_id: str = Field(
        ...,
        min_length=1,
        max_length=64,
        description="Doctor profile identifier",
        examples=["doc-3f9a1c2b7d4e"]
    )
    instant: datetime = Field(
        ...,
        description="Requested slot start (local wall-clock, floored to the slot grid)",
        examples=["2030-01-07T09:00:00"]
    )

    @field_validator("instant")
    @classmethod
    def strip_timezone(cls, value: datetime) -> datetime:
        return _wall_clock(value)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "doctor_id": "doc-3f9a1c2b7d4e",
                "instant": "2030-01-07T09:00:00"
            }
        }
    )


class StatusUpdateRequest(BaseModel):
    """Request schema for PATCH /api/v1/appointments/{id}/status."""
    status: str = Field(
        ...,
        description="New status: approved or rejected",
        examples=["approved"]
    )


class RescheduleRequest(BaseModel):
    """Request schema for PATCH /api/v1/appointments/{id}/reschedule."""
    instant: datetime = Field(
        ...,
        description="New slot start (local wall-clock)",
        examples=["2030-01-07T10:00:00"]
    )

    @field_validator("instant")
    @classmethod
    def strip_timezone(cls, value: datetime) -> datetime:
        return _wall_clock(value)


class AppointmentOut(BaseModel):
    """Appointment representation returned by the API."""
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


class AppointmentResponse(BaseModel):
    """Single appointment envelope."""
    appointment: AppointmentOut
    message: Optional[str] = Field(None, description="Human readable outcome")


class AppointmentListResponse(BaseModel):
    """Role-scoped appointment listing."""
    appointments: List[AppointmentOut]
    total: int


class SlotsResponse(BaseModel):
    """Available slots for one doctor on one date."""
    doctor_id: str
    date: str = Field(..., description="Date (YYYY-MM-DD)")
    slots: List[datetime] = Field(default_factory=list, description="ISO slot starts")


class ErrorResponse(BaseModel):
    """Error response schema."""
    error: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Detailed error information")
    code: Optional[str] = Field(None, description="Error code")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "Slot Taken",
                "detail": "This slot is already booked",
                "code": "SLOT_TAKEN"
            }
        }
    )
