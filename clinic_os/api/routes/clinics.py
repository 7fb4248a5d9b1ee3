"""Clinic status, staff transfer and capacity routes."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_os.api.dependencies import ADMIN_ROLES, MANAGER_ROLES, require_roles
from clinic_os.api.responses import ok
from clinic_os.clinics.capacity import ClinicCapacityService
from clinic_os.clinics.status import ClinicStatusService
from clinic_os.core.database import get_db
from clinic_os.core.models import User
from clinic_os.core.schemas import (
    ApiResponse,
    CapacityStatus,
    ClinicStatusChange,
    ClinicStatusResult,
    StaffTransferRequest,
    StaffTransferResult,
)

router = APIRouter(prefix="/clinics", tags=["clinics"])


@router.patch("/{clinic_id}/status", response_model=ApiResponse[ClinicStatusResult])
async def change_clinic_status(
    clinic_id: uuid.UUID,
    body: ClinicStatusChange,
    current_user: User = Depends(require_roles(*ADMIN_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    result = await ClinicStatusService(db).change_status(clinic_id, body, user_id=current_user.id)
    return ok(result, "CLINIC_STATUS_UPDATED")


@router.post("/{clinic_id}/transfer-staff", response_model=ApiResponse[StaffTransferResult])
async def transfer_staff(
    clinic_id: uuid.UUID,
    body: StaffTransferRequest,
    current_user: User = Depends(require_roles(*ADMIN_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    result = await ClinicStatusService(db).transfer_staff(clinic_id, body, user_id=current_user.id)
    return ok(result, "STAFF_TRANSFERRED")


@router.get("/{clinic_id}/capacity", response_model=ApiResponse[CapacityStatus])
async def get_clinic_capacity(
    clinic_id: uuid.UUID,
    current_user: User = Depends(require_roles(*MANAGER_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    return ok(await ClinicCapacityService(db).get_capacity_status(clinic_id))
