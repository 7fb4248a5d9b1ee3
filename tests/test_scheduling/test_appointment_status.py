"""Tests for appointment status transitions."""

import uuid

import pytest

from clinic_os.core.errors import BadRequestError, NotFoundError
from clinic_os.core.repository import AuditRepository
from clinic_os.scheduling.appointment_status import (
    AppointmentStatusService,
    is_valid_status_transition,
)


@pytest.mark.parametrize(
    "current,new,expected",
    [
        ("scheduled", "confirmed", True),
        ("scheduled", "cancelled", True),
        ("scheduled", "completed", False),
        ("confirmed", "in_progress", True),
        ("in_progress", "completed", True),
        ("in_progress", "cancelled", False),
        ("completed", "scheduled", False),
        ("cancelled", "scheduled", False),
        ("unknown", "scheduled", False),
    ],
)
def test_transition_table(current, new, expected):
    assert is_valid_status_transition(current, new) is expected


async def test_full_lifecycle(session, seed, add_appointment):
    appt = await add_appointment(status="scheduled")
    svc = AppointmentStatusService(session)
    for status in ("confirmed", "in_progress", "completed"):
        appt = await svc.change_status(appt.id, status)
    assert appt.status == "completed"


async def test_cancel_stores_reason_and_audits(session, seed, add_appointment):
    appt = await add_appointment(status="confirmed")
    user_id = uuid.uuid4()
    updated = await AppointmentStatusService(session).change_status(
        appt.id, "cancelled", reason="Patient travelling", user_id=user_id
    )
    assert updated.cancellation_reason == "Patient travelling"

    entries = await AuditRepository(session).get_by_resource("appointment", str(appt.id))
    assert len(entries) == 1
    assert entries[0].details == {"from": "confirmed", "to": "cancelled", "reason": "Patient travelling"}
    assert entries[0].user_id == str(user_id)


async def test_invalid_transition(session, seed, add_appointment):
    appt = await add_appointment(status="completed")
    with pytest.raises(BadRequestError) as exc_info:
        await AppointmentStatusService(session).change_status(appt.id, "scheduled")
    assert exc_info.value.code == "INVALID_STATUS_TRANSITION"
    assert exc_info.value.details["allowedStatuses"] == []


async def test_missing_appointment(session, seed):
    with pytest.raises(NotFoundError) as exc_info:
        await AppointmentStatusService(session).change_status(uuid.uuid4(), "confirmed")
    assert exc_info.value.code == "APPOINTMENT_NOT_FOUND"


async def test_soft_deleted_appointment_not_found(session, seed, add_appointment):
    appt = await add_appointment(is_deleted=True)
    with pytest.raises(NotFoundError):
        await AppointmentStatusService(session).change_status(appt.id, "confirmed")
