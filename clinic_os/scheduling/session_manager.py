"""Session list processing for service create/update."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Iterable, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from clinic_os.core.errors import ConflictError
from clinic_os.core.repository import AppointmentRepository
from clinic_os.core.schemas import SessionIn
from clinic_os.scheduling.session_validation import validate_session_structure

logger = logging.getLogger(__name__)


def auto_generate_session_names(sessions: Sequence[SessionIn]) -> list[SessionIn]:
    """Return copies of *sessions* with missing names set to ``Session {order}``."""
    named: list[SessionIn] = []
    for session in sessions:
        if session.name:
            named.append(session.model_copy())
        else:
            named.append(session.model_copy(update={"name": f"Session {int(session.order)}"}))
    return named


def normalize_sessions(
    sessions: Sequence[SessionIn], default_duration: int
) -> list[dict[str, Any]]:
    """Convert sessions to their stored form, sorted by order.

    A caller-supplied id is kept; otherwise a fresh one is assigned.
    """
    normalized = [
        {
            "id": session.id or str(uuid.uuid4()),
            "name": session.name,
            "duration": session.duration if session.duration is not None else default_duration,
            "order": int(session.order),
        }
        for session in sessions
    ]
    return sorted(normalized, key=lambda s: s["order"])


def validate_and_process_sessions(
    sessions: Sequence[SessionIn], default_duration: int
) -> list[dict[str, Any]]:
    validate_session_structure(sessions)
    return normalize_sessions(auto_generate_session_names(sessions), default_duration)


def find_session_by_id(
    sessions: Optional[Sequence[dict[str, Any]]], session_id: str
) -> Optional[dict[str, Any]]:
    for session in sessions or ():
        if str(session.get("id")) == session_id:
            return session
    return None


class SessionManager:
    """Guards changes to a service's session list against live bookings."""

    def __init__(self, db: AsyncSession):
        self.appointments = AppointmentRepository(db)

    async def validate_session_removal(
        self, service_id: uuid.UUID, removed_session_ids: Iterable[str]
    ) -> None:
        removed = [sid for sid in removed_session_ids if sid]
        if not removed:
            return
        blocking = await self.appointments.find_blocking_session_removal(service_id, removed)
        if blocking is not None:
            logger.info(
                "Refusing to remove session %s from service %s: appointment %s is %s",
                blocking.session_id, service_id, blocking.id, blocking.status,
            )
            raise ConflictError(
                "CANNOT_REMOVE_SESSION_WITH_ACTIVE_APPOINTMENTS",
                {
                    "sessionId": blocking.session_id,
                    "existingAppointmentId": str(blocking.id),
                    "existingAppointmentStatus": blocking.status,
                },
            )
