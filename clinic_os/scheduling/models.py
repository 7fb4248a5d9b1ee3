"""Scheduling domain constants and value objects."""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass
from datetime import date
from typing import Any, Optional


MAX_SESSIONS_PER_SERVICE = 50
MIN_SESSION_DURATION = 5
MAX_SESSION_DURATION = 480


class AppointmentStatus(str, enum.Enum):
    scheduled = "scheduled"
    confirmed = "confirmed"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"
    no_show = "no_show"


class ClinicStatus(str, enum.Enum):
    active = "active"
    inactive = "inactive"
    suspended = "suspended"


# Statuses that do not count as an active booking
INACTIVE_STATUSES = frozenset({AppointmentStatus.cancelled.value, AppointmentStatus.no_show.value})

# Statuses that prevent a session from being removed from its service
SESSION_REMOVAL_BLOCKING_STATUSES = frozenset(
    {AppointmentStatus.scheduled.value, AppointmentStatus.confirmed.value}
)

# Statuses that prevent a service from being deleted
SERVICE_DELETE_BLOCKING_STATUSES = frozenset(
    {
        AppointmentStatus.scheduled.value,
        AppointmentStatus.confirmed.value,
        AppointmentStatus.in_progress.value,
    }
)

# Upcoming appointments that must be handled when a clinic shuts down
UPCOMING_STATUSES = SESSION_REMOVAL_BLOCKING_STATUSES

STATUS_PRIORITY: dict[str, int] = {
    AppointmentStatus.completed.value: 6,
    AppointmentStatus.in_progress.value: 5,
    AppointmentStatus.confirmed.value: 4,
    AppointmentStatus.scheduled.value: 3,
    AppointmentStatus.no_show.value: 2,
    AppointmentStatus.cancelled.value: 1,
}

VALID_STATUS_TRANSITIONS: dict[str, frozenset[str]] = {
    AppointmentStatus.scheduled.value: frozenset(
        {
            AppointmentStatus.confirmed.value,
            AppointmentStatus.cancelled.value,
            AppointmentStatus.no_show.value,
        }
    ),
    AppointmentStatus.confirmed.value: frozenset(
        {
            AppointmentStatus.in_progress.value,
            AppointmentStatus.cancelled.value,
            AppointmentStatus.no_show.value,
        }
    ),
    AppointmentStatus.in_progress.value: frozenset({AppointmentStatus.completed.value}),
    AppointmentStatus.completed.value: frozenset(),
    AppointmentStatus.cancelled.value: frozenset(),
    AppointmentStatus.no_show.value: frozenset(),
}

NOT_BOOKED = "not_booked"


def status_priority(status: Optional[str]) -> int:
    """Rank a status for progress resolution; unknown statuses rank 0."""
    if status is None:
        return 0
    return STATUS_PRIORITY.get(status, 0)


def is_active_status(status: str) -> bool:
    return status not in INACTIVE_STATUSES


@dataclass(frozen=True)
class SessionRef:
    """A session id that has been checked against its service's session list.

    Built by the booking service once the id is found in the service; the
    insert path takes these instead of bare strings.
    """

    service_id: uuid.UUID
    session_id: str
    name: str
    order: int
    duration: Optional[int] = None

    @classmethod
    def from_session(cls, service_id: uuid.UUID, session: dict[str, Any]) -> SessionRef:
        return cls(
            service_id=service_id,
            session_id=str(session["id"]),
            name=session.get("name") or "",
            order=session["order"],
            duration=session.get("duration"),
        )


@dataclass(frozen=True)
class SessionBooking:
    """One validated slot in a batch, ready to be inserted."""

    ref: SessionRef
    appointment_date: date
    appointment_time: str
    duration_minutes: int
