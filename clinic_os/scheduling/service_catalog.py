"""Service catalogue: create, update and soft-delete services with sessions."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from clinic_os.core.errors import BadRequestError, ConflictError, NotFoundError
from clinic_os.core.models import Service
from clinic_os.core.repository import AppointmentRepository, ServiceRepository
from clinic_os.core.schemas import ServiceCreate, ServiceUpdate, SessionIn
from clinic_os.scheduling.session_manager import SessionManager, validate_and_process_sessions

logger = logging.getLogger(__name__)


class ServiceCatalog:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.services = ServiceRepository(db)
        self.appointments = AppointmentRepository(db)
        self.session_manager = SessionManager(db)

    async def get(self, service_id: uuid.UUID) -> Service:
        service = await self.services.get_by_id(service_id)
        if service is None or service.deleted_at is not None:
            raise NotFoundError("SERVICE_NOT_FOUND", {"serviceId": str(service_id)})
        return service

    async def list(
        self, clinic_id: Optional[uuid.UUID] = None, offset: int = 0, limit: int = 50
    ) -> Sequence[Service]:
        return await self.services.list(clinic_id=clinic_id, offset=offset, limit=limit)

    async def _ensure_unique_name(
        self, name: str, clinic_id: Optional[uuid.UUID], exclude_id: Optional[uuid.UUID] = None
    ) -> None:
        if await self.services.find_by_name(name, clinic_id, exclude_id=exclude_id):
            raise ConflictError("SERVICE_NAME_EXISTS", {"name": name})

    async def create(self, data: ServiceCreate) -> Service:
        await self._ensure_unique_name(data.name, data.clinic_id)

        sessions = []
        if data.sessions:
            # Ids are assigned here; any supplied by the client are ignored
            fresh = [s.model_copy(update={"id": None}) for s in data.sessions]
            sessions = validate_and_process_sessions(fresh, data.duration_minutes)

        service = await self.services.create(
            clinic_id=data.clinic_id,
            name=data.name,
            description=data.description,
            duration_minutes=data.duration_minutes,
            price=data.price,
            sessions=sessions,
        )
        logger.info("Created service %s with %d sessions", service.id, len(sessions))
        return service

    async def update(self, service_id: uuid.UUID, data: ServiceUpdate) -> Service:
        service = await self.get(service_id)

        if data.name is not None and data.name.lower() != service.name.lower():
            await self._ensure_unique_name(data.name, service.clinic_id, exclude_id=service.id)

        duration = data.duration_minutes or service.duration_minutes
        new_sessions = None
        removed: set[str] = set(data.removed_session_ids or ())

        if data.sessions is not None:
            current_ids = {s["id"] for s in service.sessions or ()}
            self._check_known_ids(data.sessions, current_ids)
            new_sessions = validate_and_process_sessions(data.sessions, duration)
            kept = {s["id"] for s in new_sessions}
            removed |= current_ids - kept

        await self.session_manager.validate_session_removal(service.id, sorted(removed))

        for field in ("name", "description", "duration_minutes", "price", "is_active"):
            value = getattr(data, field)
            if value is not None:
                setattr(service, field, value)
        if new_sessions is not None:
            service.sessions = new_sessions
        service.updated_at = datetime.now(timezone.utc)
        await self.db.flush()

        logger.info("Updated service %s (removed sessions: %d)", service.id, len(removed))
        return service

    @staticmethod
    def _check_known_ids(sessions: Sequence[SessionIn], current_ids: set[str]) -> None:
        for session in sessions:
            if session.id and session.id not in current_ids:
                raise BadRequestError(
                    "INVALID_SESSION_ID",
                    {"sessionId": session.id, "availableSessionIds": sorted(current_ids)},
                )

    async def soft_delete(self, service_id: uuid.UUID, user_id: Optional[uuid.UUID] = None) -> Service:
        service = await self.get(service_id)
        blocking = await self.appointments.find_blocking_service_delete(service.id)
        if blocking is not None:
            raise ConflictError(
                "SERVICE_HAS_ACTIVE_APPOINTMENTS",
                {
                    "serviceId": str(service.id),
                    "existingAppointmentId": str(blocking.id),
                    "existingAppointmentStatus": blocking.status,
                },
            )
        service.deleted_at = datetime.now(timezone.utc)
        service.deleted_by = user_id
        service.is_active = False
        await self.db.flush()
        logger.info("Soft-deleted service %s", service.id)
        return service
