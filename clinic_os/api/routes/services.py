"""Service catalogue routes."""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_os.api.dependencies import CLINICAL_ROLES, MANAGER_ROLES, require_roles
from clinic_os.api.responses import ok
from clinic_os.core.database import get_db
from clinic_os.core.models import User
from clinic_os.core.schemas import ApiResponse, ServiceCreate, ServiceRead, ServiceUpdate
from clinic_os.scheduling.service_catalog import ServiceCatalog

router = APIRouter(prefix="/services", tags=["services"])


@router.get("", response_model=ApiResponse[list[ServiceRead]])
async def list_services(
    clinic_id: Optional[uuid.UUID] = Query(None),
    offset: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    current_user: User = Depends(require_roles(*CLINICAL_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    services = await ServiceCatalog(db).list(clinic_id=clinic_id, offset=offset, limit=limit)
    return ok([ServiceRead.model_validate(s) for s in services])


@router.get("/{service_id}", response_model=ApiResponse[ServiceRead])
async def get_service(
    service_id: uuid.UUID,
    current_user: User = Depends(require_roles(*CLINICAL_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    service = await ServiceCatalog(db).get(service_id)
    return ok(ServiceRead.model_validate(service))


@router.post("", response_model=ApiResponse[ServiceRead], status_code=201)
async def create_service(
    body: ServiceCreate,
    current_user: User = Depends(require_roles(*MANAGER_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    service = await ServiceCatalog(db).create(body)
    return ok(ServiceRead.model_validate(service), "SERVICE_CREATED")


@router.put("/{service_id}", response_model=ApiResponse[ServiceRead])
async def update_service(
    service_id: uuid.UUID,
    body: ServiceUpdate,
    current_user: User = Depends(require_roles(*MANAGER_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    service = await ServiceCatalog(db).update(service_id, body)
    return ok(ServiceRead.model_validate(service), "SERVICE_UPDATED")


@router.delete("/{service_id}", response_model=ApiResponse[None])
async def delete_service(
    service_id: uuid.UUID,
    current_user: User = Depends(require_roles(*MANAGER_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    await ServiceCatalog(db).soft_delete(service_id, user_id=current_user.id)
    return ok(code="SERVICE_DELETED")
