"""Appointment booking, status and session progress routes."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_os.api.dependencies import CLINICAL_ROLES, require_roles
from clinic_os.api.responses import ok
from clinic_os.core.database import get_db
from clinic_os.core.errors import NotFoundError
from clinic_os.core.models import User
from clinic_os.core.repository import AppointmentRepository
from clinic_os.core.schemas import (
    ApiResponse,
    AppointmentCreate,
    AppointmentRead,
    AppointmentStatusUpdate,
    BatchBookingRequest,
    BatchBookingResult,
    SessionProgress,
)
from clinic_os.scheduling.appointment_sessions import AppointmentSessionService
from clinic_os.scheduling.appointment_status import AppointmentStatusService

router = APIRouter(prefix="/appointments", tags=["appointments"])


@router.post("", response_model=ApiResponse[AppointmentRead], status_code=201)
async def create_appointment(
    body: AppointmentCreate,
    current_user: User = Depends(require_roles(*CLINICAL_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    sessions = AppointmentSessionService(db)
    appt = await sessions.book_session(body, created_by=current_user.id)
    return ok(await sessions.enrich_appointment_with_session(appt), "APPOINTMENT_CREATED")


@router.post("/batch", response_model=ApiResponse[BatchBookingResult], status_code=201)
async def batch_book_sessions(
    body: BatchBookingRequest,
    current_user: User = Depends(require_roles(*CLINICAL_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    result = await AppointmentSessionService(db).batch_book_sessions(body, created_by=current_user.id)
    return ok(result, "BATCH_BOOKING_SUCCEEDED")


@router.get("/progress", response_model=ApiResponse[SessionProgress])
async def get_session_progress(
    patient_id: uuid.UUID = Query(...),
    service_id: uuid.UUID = Query(...),
    current_user: User = Depends(require_roles(*CLINICAL_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    progress = await AppointmentSessionService(db).get_session_progress(patient_id, service_id)
    return ok(progress)


@router.get("/{appointment_id}", response_model=ApiResponse[AppointmentRead])
async def get_appointment(
    appointment_id: uuid.UUID,
    current_user: User = Depends(require_roles(*CLINICAL_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    appt = await AppointmentRepository(db).get_by_id(appointment_id)
    if appt is None:
        raise NotFoundError("APPOINTMENT_NOT_FOUND", {"appointmentId": str(appointment_id)})
    return ok(await AppointmentSessionService(db).enrich_appointment_with_session(appt))


@router.patch("/{appointment_id}/status", response_model=ApiResponse[AppointmentRead])
async def update_appointment_status(
    appointment_id: uuid.UUID,
    body: AppointmentStatusUpdate,
    current_user: User = Depends(require_roles(*CLINICAL_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    appt = await AppointmentStatusService(db).change_status(
        appointment_id, body.status, reason=body.reason, user_id=current_user.id
    )
    return ok(AppointmentRead.model_validate(appt), "APPOINTMENT_STATUS_UPDATED")
