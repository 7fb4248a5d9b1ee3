"""Pydantic schemas for ClinicOS API I/O.

Fields are snake_case in Python and camelCase on the wire; requests accept
either spelling.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Annotated, Any, Generic, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, StringConstraints
from pydantic.alias_generators import to_camel

from clinic_os.core.messages import BilingualMessage

T = TypeVar("T")

TIME_PATTERN = r"^([0-1][0-9]|2[0-3]):[0-5][0-9]$"

ServiceName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=100)]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# --- Envelope ---

class ErrorBody(BaseModel):
    code: str
    message: BilingualMessage
    details: Optional[Any] = None


class ApiResponse(BaseModel, Generic[T]):
    success: bool
    data: Optional[T] = None
    message: Optional[BilingualMessage] = None
    error: Optional[ErrorBody] = None


# --- Auth ---

class LoginRequest(CamelModel):
    email: str
    password: str


class TokenResponse(CamelModel):
    access_token: str
    token_type: str = "bearer"
    role: str


# --- Sessions ---

class SessionIn(CamelModel):
    """A session as submitted by a client.

    ``order`` accepts floats so that non-integer values are rejected by the
    session validator with its own error code.
    """

    id: Optional[str] = None
    name: Optional[str] = None
    duration: Optional[int] = None
    order: Union[int, float]


class SessionOut(CamelModel):
    id: str
    name: str
    duration: Optional[int] = None
    order: int


# --- Services ---

class ServiceCreate(CamelModel):
    name: ServiceName
    clinic_id: Optional[uuid.UUID] = None
    description: Optional[str] = None
    duration_minutes: int = Field(default=30, ge=1)
    price: float = Field(default=0, ge=0)
    sessions: Optional[list[SessionIn]] = None


class ServiceUpdate(CamelModel):
    name: Optional[ServiceName] = None
    description: Optional[str] = None
    duration_minutes: Optional[int] = Field(default=None, ge=1)
    price: Optional[float] = Field(default=None, ge=0)
    is_active: Optional[bool] = None
    sessions: Optional[list[SessionIn]] = None
    removed_session_ids: Optional[list[str]] = None


class ServiceRead(CamelModel):
    id: uuid.UUID
    clinic_id: Optional[uuid.UUID] = None
    name: str
    description: Optional[str] = None
    duration_minutes: int
    price: float
    sessions: list[SessionOut] = []
    is_active: bool
    created_at: datetime
    updated_at: datetime


# --- Appointments ---

class AppointmentCreate(CamelModel):
    patient_id: uuid.UUID
    doctor_id: uuid.UUID
    clinic_id: uuid.UUID
    service_id: uuid.UUID
    session_id: Optional[str] = None
    appointment_date: date
    appointment_time: str = Field(pattern=TIME_PATTERN)
    duration_minutes: Optional[int] = Field(default=None, ge=1)
    notes: Optional[str] = None


class SessionBookingIn(CamelModel):
    session_id: str
    appointment_date: date
    appointment_time: str = Field(pattern=TIME_PATTERN)


class BatchBookingRequest(CamelModel):
    patient_id: uuid.UUID
    doctor_id: uuid.UUID
    service_id: uuid.UUID
    clinic_id: uuid.UUID
    session_bookings: list[SessionBookingIn] = Field(min_length=1, max_length=10)
    notes: Optional[str] = None


class SessionInfo(CamelModel):
    session_id: str
    name: str
    order: int
    duration: int


class AppointmentRead(CamelModel):
    id: uuid.UUID
    patient_id: uuid.UUID
    doctor_id: uuid.UUID
    clinic_id: uuid.UUID
    service_id: uuid.UUID
    session_id: Optional[str] = None
    appointment_date: date
    appointment_time: str
    duration_minutes: int
    status: str
    notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    rescheduling_reason: Optional[str] = None
    created_at: datetime
    session_info: Optional[SessionInfo] = None


class AppointmentStatusUpdate(CamelModel):
    status: str
    reason: Optional[str] = None


class BatchBookingResult(CamelModel):
    total_requested: int
    success_count: int
    failure_count: int
    appointments: list[AppointmentRead]


class SessionProgressItem(CamelModel):
    session_id: str
    session_name: str
    session_order: int
    appointment_id: Optional[uuid.UUID] = None
    status: str
    appointment_date: Optional[date] = None
    appointment_time: Optional[str] = None
    is_completed: bool


class SessionProgress(CamelModel):
    patient_id: uuid.UUID
    service_id: uuid.UUID
    service_name: str
    total_sessions: int
    completed_sessions: int
    completion_percentage: int
    sessions: list[SessionProgressItem]


# --- Clinics ---

class ClinicStatusChange(CamelModel):
    status: str = Field(pattern=r"^(active|inactive|suspended)$")
    reason: Optional[str] = None
    transfer_doctors: Optional[bool] = None
    transfer_staff: Optional[bool] = None
    target_clinic_id: Optional[uuid.UUID] = None
    doctor_ids: Optional[list[uuid.UUID]] = None
    staff_ids: Optional[list[uuid.UUID]] = None


class StaffTransferRequest(CamelModel):
    target_clinic_id: uuid.UUID
    transfer_doctors: bool = True
    transfer_staff: bool = True
    doctor_ids: Optional[list[uuid.UUID]] = None
    staff_ids: Optional[list[uuid.UUID]] = None


class ClinicRead(CamelModel):
    id: uuid.UUID
    name: str
    status: str
    is_active: bool
    max_doctors: int
    max_staff: int
    max_patients: int
    deactivated_at: Optional[datetime] = None
    deactivation_reason: Optional[str] = None


class ClinicStatusResult(CamelModel):
    clinic: ClinicRead
    doctors_transferred: Optional[int] = None
    staff_transferred: Optional[int] = None
    appointments_affected: Optional[int] = None
    appointments_rescheduled: Optional[int] = None


class StaffTransferResult(CamelModel):
    source_clinic_id: uuid.UUID
    target_clinic_id: uuid.UUID
    doctors_transferred: int
    staff_transferred: int
    appointments_transferred: int


class PersonnelEntry(CamelModel):
    id: uuid.UUID
    name: str
    role: str
    email: str


class CapacityMetric(CamelModel):
    max: int
    current: int
    available: int
    percentage: int
    is_exceeded: bool


class PersonnelCapacity(CapacityMetric):
    personnel: list[PersonnelEntry] = []


class CapacityStatus(CamelModel):
    clinic_id: uuid.UUID
    clinic_name: str
    doctors: PersonnelCapacity
    staff: PersonnelCapacity
    patients: CapacityMetric
    recommendations: list[str]
    generated_at: datetime
