"""Tests for clinic status changes and staff transfers."""

import uuid

import pytest
from sqlalchemy import select

from clinic_os.clinics.capacity import CapacityCache
from clinic_os.clinics.status import RESCHEDULING_REASON, ClinicStatusService
from clinic_os.core.errors import BadRequestError, ConflictError, NotFoundError
from clinic_os.core.models import AuditLog, Clinic, User
from clinic_os.core.repository import AppointmentRepository
from clinic_os.core.schemas import ClinicStatusChange, StaffTransferRequest

ACTOR = uuid.UUID("bbbbbbbb-bbbb-bbbb-bbbb-bbbbbbbbbbbb")


@pytest.fixture
def cache():
    return CapacityCache(ttl_seconds=300)


@pytest.fixture
def service(session, cache):
    return ClinicStatusService(session, cache=cache)


async def _audit_actions(session, clinic_id):
    result = await session.execute(
        select(AuditLog).where(AuditLog.resource_id == str(clinic_id)).order_by(AuditLog.action)
    )
    return [row.action for row in result.scalars().all()]


class TestRequiresTransfer:
    async def test_deactivation_without_decision_conflicts(self, service, seed, add_appointment):
        await add_appointment()
        with pytest.raises(ConflictError) as exc_info:
            await service.change_status(seed["clinic"].id, ClinicStatusChange(status="inactive"))
        err = exc_info.value
        assert err.code == "CLINIC_REQUIRES_TRANSFER"
        assert err.status_code == 409
        assert err.details == {
            "requiresTransfer": True,
            "activeAppointments": 1,
            "assignedDoctors": 1,
            "assignedStaff": 1,
        }

    async def test_past_and_cancelled_appointments_not_counted(self, service, seed, add_appointment):
        await add_appointment(days_ahead=-3)
        await add_appointment(session_id="s2", status="cancelled")
        with pytest.raises(ConflictError) as exc_info:
            await service.change_status(seed["clinic"].id, ClinicStatusChange(status="suspended"))
        assert exc_info.value.details["activeAppointments"] == 0

    async def test_empty_clinic_deactivates_directly(self, session, service, seed):
        empty = Clinic(name="Empty Clinic")
        session.add(empty)
        await session.commit()

        result = await service.change_status(
            empty.id, ClinicStatusChange(status="inactive", reason="Closed"), user_id=ACTOR
        )
        assert result.clinic.status == "inactive"
        assert result.clinic.is_active is False
        assert result.clinic.deactivation_reason == "Closed"
        assert empty.deactivated_by == ACTOR
        assert result.doctors_transferred is None
        assert result.appointments_rescheduled is None

    async def test_missing_clinic(self, service, seed):
        with pytest.raises(NotFoundError) as exc_info:
            await service.change_status(uuid.uuid4(), ClinicStatusChange(status="inactive"))
        assert exc_info.value.code == "CLINIC_NOT_FOUND"


class TestTargetValidation:
    async def test_target_required_when_transferring(self, service, seed):
        with pytest.raises(BadRequestError) as exc_info:
            await service.change_status(
                seed["clinic"].id, ClinicStatusChange(status="inactive", transfer_doctors=True)
            )
        assert exc_info.value.code == "TARGET_CLINIC_REQUIRED"

    async def test_unknown_target(self, service, seed):
        with pytest.raises(NotFoundError) as exc_info:
            await service.change_status(
                seed["clinic"].id,
                ClinicStatusChange(status="inactive", transfer_staff=True, target_clinic_id=uuid.uuid4()),
            )
        assert exc_info.value.code == "TARGET_CLINIC_NOT_FOUND"

    async def test_same_clinic_is_invalid_target(self, service, seed):
        with pytest.raises(BadRequestError) as exc_info:
            await service.transfer_staff(
                seed["clinic"].id, StaffTransferRequest(target_clinic_id=seed["clinic"].id)
            )
        assert exc_info.value.code == "INVALID_TARGET_CLINIC"

    async def test_inactive_target_is_invalid(self, session, service, seed):
        seed["other_clinic"].status = "suspended"
        await session.commit()
        with pytest.raises(BadRequestError) as exc_info:
            await service.change_status(
                seed["clinic"].id,
                ClinicStatusChange(
                    status="inactive", transfer_doctors=True, target_clinic_id=seed["other_clinic"].id
                ),
            )
        assert exc_info.value.code == "INVALID_TARGET_CLINIC"
        assert exc_info.value.details["targetStatus"] == "suspended"


class TestDeactivationWithTransfer:
    async def test_moves_personnel_and_appointments(self, session, service, seed, add_appointment):
        appt = await add_appointment()
        past = await add_appointment(session_id="s2", days_ahead=-5)
        clinic, other = seed["clinic"], seed["other_clinic"]

        result = await service.change_status(
            clinic.id,
            ClinicStatusChange(
                status="inactive",
                reason="Renovation",
                transfer_doctors=True,
                transfer_staff=True,
                target_clinic_id=other.id,
            ),
            user_id=ACTOR,
        )

        assert result.doctors_transferred == 1
        assert result.staff_transferred == 1
        assert result.appointments_affected == 1
        assert result.appointments_rescheduled is None

        for obj in (seed["doctor"], seed["staff"], appt, past):
            await session.refresh(obj)
        assert seed["doctor"].clinic_id == other.id
        assert seed["staff"].clinic_id == other.id
        assert appt.clinic_id == other.id
        assert appt.rescheduling_reason is None
        assert past.clinic_id == clinic.id

        assert clinic.status == "inactive"
        assert clinic.is_active is False
        assert clinic.deactivated_at is not None
        assert await _audit_actions(session, clinic.id) == ["staff_transfer", "status_change"]

    async def test_kept_doctors_flag_appointments_for_rescheduling(
        self, session, service, seed, add_appointment
    ):
        appt = await add_appointment()
        result = await service.change_status(
            seed["clinic"].id,
            ClinicStatusChange(
                status="suspended", transfer_staff=True, target_clinic_id=seed["other_clinic"].id
            ),
        )
        assert result.staff_transferred == 1
        assert result.doctors_transferred is None
        assert result.appointments_rescheduled == 1

        await session.refresh(appt)
        assert appt.clinic_id == seed["clinic"].id
        assert appt.status == "scheduled"
        assert appt.rescheduling_reason == RESCHEDULING_REASON
        assert appt.marked_for_rescheduling_at is not None

    async def test_invalidates_both_clinics(self, service, seed, cache):
        cache.set(seed["clinic"].id, "source")
        cache.set(seed["other_clinic"].id, "target")
        await service.change_status(
            seed["clinic"].id,
            ClinicStatusChange(
                status="inactive",
                transfer_doctors=True,
                transfer_staff=True,
                target_clinic_id=seed["other_clinic"].id,
            ),
        )
        assert len(cache) == 0

    async def test_failure_rolls_back_everything(self, session, service, seed, add_appointment, monkeypatch):
        await add_appointment()
        clinic = seed["clinic"]
        cache_key = clinic.id
        service.cache.set(cache_key, "snapshot")

        async def _boom(self, *args, **kwargs):
            raise RuntimeError("db went away")

        monkeypatch.setattr(AppointmentRepository, "mark_upcoming_for_rescheduling", _boom)

        with pytest.raises(RuntimeError):
            await service.change_status(
                clinic.id,
                ClinicStatusChange(
                    status="inactive", transfer_staff=True, target_clinic_id=seed["other_clinic"].id
                ),
            )

        await session.refresh(clinic)
        await session.refresh(seed["staff"])
        assert clinic.status == "active"
        assert clinic.is_active is True
        assert seed["staff"].clinic_id == clinic.id
        assert await _audit_actions(session, clinic.id) == []
        assert service.cache.get(cache_key) == "snapshot"


class TestReactivation:
    async def test_reactivate_clears_active_flag(self, session, service, seed):
        clinic = seed["clinic"]
        clinic.status = "inactive"
        clinic.is_active = False
        await session.commit()

        result = await service.change_status(clinic.id, ClinicStatusChange(status="active"))
        assert result.clinic.status == "active"
        assert result.clinic.is_active is True
        assert await _audit_actions(session, clinic.id) == ["status_change"]


class TestTransferStaff:
    async def test_selected_doctors_only(self, session, service, seed, add_appointment):
        second = User(
            first_name="Karim", last_name="Aziz", email="karim@example.com",
            role="doctor", clinic_id=seed["clinic"].id,
        )
        session.add(second)
        await session.commit()
        await add_appointment(doctor_id=second.id)
        kept = await add_appointment(session_id="s2")

        result = await service.transfer_staff(
            seed["clinic"].id,
            StaffTransferRequest(
                target_clinic_id=seed["other_clinic"].id,
                transfer_staff=False,
                doctor_ids=[second.id],
            ),
            user_id=ACTOR,
        )
        assert result.doctors_transferred == 1
        assert result.staff_transferred == 0
        assert result.appointments_transferred == 1

        for obj in (second, seed["doctor"], kept):
            await session.refresh(obj)
        assert second.clinic_id == seed["other_clinic"].id
        assert seed["doctor"].clinic_id == seed["clinic"].id
        assert kept.clinic_id == seed["clinic"].id
        assert await _audit_actions(session, seed["clinic"].id) == ["staff_transfer"]

    async def test_nothing_to_move_writes_no_audit(self, session, service, seed):
        result = await service.transfer_staff(
            seed["clinic"].id,
            StaffTransferRequest(
                target_clinic_id=seed["other_clinic"].id,
                transfer_doctors=False,
                transfer_staff=False,
            ),
        )
        assert (result.doctors_transferred, result.staff_transferred) == (0, 0)
        assert await _audit_actions(session, seed["clinic"].id) == []
