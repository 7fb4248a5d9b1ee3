"""Appointment status transitions."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from clinic_os.core.errors import BadRequestError, NotFoundError
from clinic_os.core.models import Appointment
from clinic_os.core.repository import AppointmentRepository, AuditRepository
from clinic_os.scheduling.models import VALID_STATUS_TRANSITIONS, AppointmentStatus

logger = logging.getLogger(__name__)


def is_valid_status_transition(current: str, new: str) -> bool:
    return new in VALID_STATUS_TRANSITIONS.get(current, frozenset())


class AppointmentStatusService:
    def __init__(self, db: AsyncSession):
        self.appointments = AppointmentRepository(db)
        self.audit = AuditRepository(db)

    async def change_status(
        self,
        appointment_id: uuid.UUID,
        new_status: str,
        reason: Optional[str] = None,
        user_id: Optional[uuid.UUID] = None,
    ) -> Appointment:
        appt = await self.appointments.get_by_id(appointment_id)
        if appt is None:
            raise NotFoundError("APPOINTMENT_NOT_FOUND", {"appointmentId": str(appointment_id)})

        current = appt.status
        if not is_valid_status_transition(current, new_status):
            raise BadRequestError(
                "INVALID_STATUS_TRANSITION",
                {
                    "currentStatus": current,
                    "requestedStatus": new_status,
                    "allowedStatuses": sorted(VALID_STATUS_TRANSITIONS.get(current, ())),
                },
            )

        appt.status = new_status
        if new_status == AppointmentStatus.cancelled.value:
            appt.cancellation_reason = reason
        appt.updated_at = datetime.now(timezone.utc)
        await self.appointments.session.flush()

        await self.audit.log_action(
            action="status_change",
            resource_type="appointment",
            resource_id=str(appt.id),
            user_id=str(user_id) if user_id else None,
            details={"from": current, "to": new_status, "reason": reason},
        )
        logger.info("Appointment %s status changed from %s to %s", appt.id, current, new_status)
        return appt
