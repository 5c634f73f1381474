"""Appointment schemas for request/response validation."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator

from samagra.core.timeslots import is_valid_date, is_valid_time


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    REQUESTED = "requested"
    APPROVED = "approved"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"
    BLOCKED = "blocked"


# Every status change goes through this table. Statuses without an entry are terminal.
STATUS_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.REQUESTED: frozenset(
        {AppointmentStatus.APPROVED, AppointmentStatus.CANCELLED, AppointmentStatus.RESCHEDULED}
    ),
    AppointmentStatus.APPROVED: frozenset(
        {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED, AppointmentStatus.RESCHEDULED}
    ),
}

# Statuses that hold a slot on the doctor's calendar
SLOT_HOLDING_STATUSES = (
    AppointmentStatus.REQUESTED.value,
    AppointmentStatus.APPROVED.value,
    AppointmentStatus.BLOCKED.value,
)

# Statuses shown in upcoming-appointment listings
ACTIVE_STATUSES = (
    AppointmentStatus.REQUESTED.value,
    AppointmentStatus.APPROVED.value,
)

# Values a doctor may set through the status endpoint
DOCTOR_SETTABLE_STATUSES = frozenset(
    {AppointmentStatus.APPROVED, AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED}
)

# Values accepted by the doctor's history listing
HISTORY_STATUSES = frozenset({AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED})


def can_transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    """Check whether the lifecycle allows moving from ``current`` to ``target``."""
    return target in STATUS_TRANSITIONS.get(current, frozenset())


class RecurrenceType(str, Enum):
    """Recurrence kind enumeration."""

    NONE = "none"
    WEEKLY = "weekly"


class ParentRelation(str, Enum):
    """How a record relates to its parent appointment."""

    RESCHEDULED_FROM = "rescheduled_from"
    RECURRENCE_OF = "recurrence_of"


class CreatorRole(str, Enum):
    """Role that created the record."""

    PATIENT = "patient"
    DOCTOR = "doctor"


class SlotFields(BaseModel):
    """Date and time range shared by every slot-reserving request."""

    appointment_date: str
    start_time: str
    end_time: str

    @field_validator("appointment_date")
    @classmethod
    def validate_date(cls, v: str) -> str:
        """Validate date format."""
        if not is_valid_date(v):
            raise ValueError("Invalid date, expected YYYY-MM-DD")
        return v

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        """Validate time format."""
        if not is_valid_time(v):
            raise ValueError("Invalid time, expected HH:MM")
        return v

    @model_validator(mode="after")
    def validate_range(self) -> "SlotFields":
        """Validate end time is after start time."""
        if self.end_time <= self.start_time:
            raise ValueError("End time must be after start time")
        return self


class AppointmentCreate(SlotFields):
    """Schema for a patient requesting an appointment."""

    doctor_id: str = Field(..., min_length=1, max_length=128)
    reason: str = Field(default="", max_length=1000)
    is_recurring: bool = False
    recurrence_type: RecurrenceType = RecurrenceType.NONE

    @field_validator("doctor_id")
    @classmethod
    def validate_doctor_id(cls, v: str) -> str:
        """Reject blank doctor ids."""
        if not v.strip():
            raise ValueError("Doctor ID required")
        return v.strip()


class CalendarBlockCreate(SlotFields):
    """Schema for a doctor blocking part of their calendar."""

    reason: str | None = Field(None, max_length=1000)


class AppointmentReschedule(BaseModel):
    """Schema for moving an appointment to a new slot."""

    new_date: str
    new_start_time: str
    new_end_time: str

    @field_validator("new_date")
    @classmethod
    def validate_date(cls, v: str) -> str:
        """Validate date format."""
        if not is_valid_date(v):
            raise ValueError("Invalid date, expected YYYY-MM-DD")
        return v

    @field_validator("new_start_time", "new_end_time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        """Validate time format."""
        if not is_valid_time(v):
            raise ValueError("Invalid time, expected HH:MM")
        return v

    @model_validator(mode="after")
    def validate_range(self) -> "AppointmentReschedule":
        """Validate end time is after start time."""
        if self.new_end_time <= self.new_start_time:
            raise ValueError("End time must be after start time")
        return self


class AppointmentStatusUpdate(BaseModel):
    """Schema for updating appointment status.

    Kept as a plain string so unknown values are rejected by the lifecycle
    rules with a uniform ``Invalid status`` error.
    """

    status: str


class AppointmentReport(BaseModel):
    """Schema for attaching a clinical report."""

    report: str = Field(default="", max_length=20000)


class AppointmentResponse(BaseModel):
    """Schema for appointment response."""

    id: str
    patient_id: str | None = None
    patient_name: str | None = None
    doctor_id: str
    doctor_name: str | None = None
    appointment_date: str
    start_time: str
    end_time: str
    status: AppointmentStatus
    reason: str
    is_recurring: bool
    recurrence_type: RecurrenceType
    parent_appointment_id: str | None = None
    parent_relation: ParentRelation | None = None
    rescheduled_to: str | None = None
    report: str | None = None
    created_by: CreatorRole
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class AppointmentListResponse(BaseModel):
    """Schema for appointment list response."""

    success: bool = True
    appointments: list[AppointmentResponse]


class AppointmentDetailResponse(BaseModel):
    """Schema for a single appointment response."""

    success: bool = True
    appointment: AppointmentResponse


class AppointmentCreatedResponse(BaseModel):
    """Schema returned after a new record is created."""

    success: bool = True
    message: str
    appointment_id: str


class AppointmentRescheduledResponse(BaseModel):
    """Schema returned after a reschedule."""

    success: bool = True
    message: str
    new_appointment_id: str


class MessageResponse(BaseModel):
    """Generic success response."""

    success: bool = True
    message: str


class AvailabilityResponse(BaseModel):
    """Schema for a slot availability check."""

    success: bool = True
    doctor_id: str
    appointment_date: str
    start_time: str
    end_time: str
    available: bool


class DoctorPatient(BaseModel):
    """A patient seen in a doctor's appointments."""

    patient_id: str
    patient_name: str


class DoctorPatientListResponse(BaseModel):
    """Schema for the doctor's patient roster."""

    success: bool = True
    patients: list[DoctorPatient]
