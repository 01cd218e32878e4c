"""FastAPI server for the appointment scheduling engine.

Features:
- Booking, available slots, approval/rejection, cancellation, rescheduling
- Global exception handling with a single error envelope
- Request IDs bound into structured logs
- Health check endpoint
"""
from contextlib import asynccontextmanager
from datetime import date, datetime

from fastapi import Depends, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from appointment_engine import config
from appointment_engine.api.dependencies import (
    get_booking_service,
    get_current_actor,
    get_now,
    get_reschedule_engine,
    require_role,
)
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
from appointment_engine.booking import BookingService
from appointment_engine.errors import SchedulingError
from appointment_engine.logging_config import (
    bind_request_id,
    generate_request_id,
    get_logger,
    setup_structured_logging,
)
from appointment_engine.reschedule import RescheduleEngine
from appointment_engine.state import Actor, Role

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown logic."""
    from appointment_engine.database import close_engine, get_engine

    setup_structured_logging(config.LOG_LEVEL)
    logger.info("server_starting")

    try:
        get_engine()
        logger.info("database_initialized")
    except Exception:
        logger.exception("database_initialization_failed")
        raise

    yield

    close_engine()
    logger.info("server_stopped")


app = FastAPI(
    title="Appointment Scheduling API",
    description="Availability-driven slot scheduling and booking for patients and doctors",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Attach a request id to logs and to the response headers."""
    request_id = request.headers.get("X-Request-ID") or generate_request_id()
    bind_request_id(request_id)

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


def _error_title(code: str) -> str:
    return code.replace("_", " ").title()


# Global exception handlers
@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError):
    """Map engine errors to their HTTP status."""
    logger.info("request_rejected", code=exc.code, detail=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=_error_title(exc.code),
            detail=str(exc),
            code=exc.code
        ).model_dump()
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Keep authentication/authorization failures in the same envelope."""
    code = {
        status.HTTP_401_UNAUTHORIZED: "UNAUTHENTICATED",
        status.HTTP_403_FORBIDDEN: "FORBIDDEN",
        status.HTTP_404_NOT_FOUND: "NOT_FOUND",
    }.get(exc.status_code, "HTTP_ERROR")
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=_error_title(code),
            detail=str(exc.detail),
            code=code
        ).model_dump(),
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors consistently."""
    logger.warning("validation_error", errors=str(exc.errors()))
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(
            error="Validation Error",
            detail=str(exc.errors()),
            code="VALIDATION_ERROR"
        ).model_dump()
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch-all handler for unexpected exceptions."""
    logger.error("unexpected_error", error=str(exc), exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            error="Internal Server Error",
            detail="An unexpected error occurred. Please try again later.",
            code="INTERNAL_ERROR"
        ).model_dump()
    )


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for load balancers."""
    return {
        "status": "healthy",
        "service": "appointment-scheduling-api",
        "version": "1.0.0"
    }


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API info."""
    return {
        "message": "Appointment Scheduling API",
        "docs": "/docs",
        "health": "/health"
    }


@app.get("/api/v1/doctors/{doctor_id}/slots", tags=["Slots"], response_model=SlotsResponse)
def available_slots(
    doctor_id: str,
    day: date = Query(..., alias="date", description="Date (YYYY-MM-DD)"),
    actor: Actor = Depends(get_current_actor),
    service: BookingService = Depends(get_booking_service),
    now: datetime = Depends(get_now)
):
    """
    List bookable slots for a doctor on a date.

    Returns an empty list (not an error) when the doctor has no availability
    that day.
    """
    slots = service.available_slots(doctor_id, day, now)
    return SlotsResponse(doctor_id=doctor_id, date=day.isoformat(), slots=slots)


@app.post(
    "/api/v1/appointments",
    tags=["Appointments"],
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED
)
def create_appointment(
    request: BookingRequest,
    actor: Actor = Depends(require_role(Role.PATIENT)),
    service: BookingService = Depends(get_booking_service),
    now: datetime = Depends(get_now)
):
    """
    Book a slot with a doctor.

    Raises:
        400: Past slot or outside availability
        404: Doctor not found
        409: Slot already taken
    """
    appointment = service.book(actor, request.doctor_id, request.instant, now)
    return AppointmentResponse(
        appointment=AppointmentOut.model_validate(appointment),
        message="Appointment requested"
    )


@app.get("/api/v1/appointments", tags=["Appointments"], response_model=AppointmentListResponse)
def list_appointments(
    actor: Actor = Depends(get_current_actor),
    service: BookingService = Depends(get_booking_service)
):
    """List the caller's appointments (admins see all)."""
    appointments = service.list_appointments(actor)
    return AppointmentListResponse(
        appointments=[AppointmentOut.model_validate(a) for a in appointments],
        total=len(appointments)
    )


@app.get(
    "/api/v1/appointments/{appointment_id}",
    tags=["Appointments"],
    response_model=AppointmentResponse
)
def get_appointment(
    appointment_id: str,
    actor: Actor = Depends(get_current_actor),
    service: BookingService = Depends(get_booking_service)
):
    """Fetch one appointment the caller is a party to."""
    appointment = service.get_appointment(actor, appointment_id)
    return AppointmentResponse(appointment=AppointmentOut.model_validate(appointment))


@app.patch(
    "/api/v1/appointments/{appointment_id}/status",
    tags=["Appointments"],
    response_model=AppointmentResponse
)
def update_status(
    appointment_id: str,
    request: StatusUpdateRequest,
    actor: Actor = Depends(require_role(Role.DOCTOR)),
    service: BookingService = Depends(get_booking_service)
):
    """
    Approve or reject a pending appointment (owning doctor only).

    Raises:
        400: Status other than approved/rejected
        403: Not the owning doctor
        404: Appointment not found
        409: Appointment is not pending
    """
    appointment = service.decide(actor, appointment_id, request.status)
    return AppointmentResponse(
        appointment=AppointmentOut.model_validate(appointment),
        message="Updated"
    )


@app.patch(
    "/api/v1/appointments/{appointment_id}/cancel",
    tags=["Appointments"],
    response_model=AppointmentResponse
)
def cancel_appointment(
    appointment_id: str,
    actor: Actor = Depends(get_current_actor),
    service: BookingService = Depends(get_booking_service)
):
    """
    Cancel a pending or approved appointment.

    Cancelling does NOT delete the appointment, it only changes its status
    and frees the slot.
    """
    appointment = service.cancel(actor, appointment_id)
    return AppointmentResponse(
        appointment=AppointmentOut.model_validate(appointment),
        message="Cancelled"
    )


@app.patch(
    "/api/v1/appointments/{appointment_id}/reschedule",
    tags=["Appointments"],
    response_model=AppointmentResponse
)
def reschedule_appointment(
    appointment_id: str,
    request: RescheduleRequest,
    actor: Actor = Depends(require_role(Role.PATIENT)),
    engine: RescheduleEngine = Depends(get_reschedule_engine),
    now: datetime = Depends(get_now)
):
    """
    Move a pending appointment to a new slot (owning patient only).

    Raises:
        400: New slot in the past or outside availability
        403: Not the owning patient
        404: Appointment not found
        409: Not pending, or new slot already taken
    """
    appointment = engine.reschedule(appointment_id, request.instant, actor, now)
    return AppointmentResponse(
        appointment=AppointmentOut.model_validate(appointment),
        message="Appointment rescheduled"
    )


def main():
    """Run the API with uvicorn."""
    import uvicorn

    uvicorn.run(
        "appointment_engine.api_server:app",
        host=config.API_HOST,
        port=config.API_PORT,
        log_level=config.LOG_LEVEL.lower()
    )


if __name__ == "__main__":
    main()
