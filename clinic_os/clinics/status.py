"""Clinic status changes and staff transfers between clinics.

Deactivating a clinic that still has doctors, staff or upcoming appointments
requires an explicit decision: transfer personnel to another active clinic,
or keep them (appointments are then flagged for rescheduling). Every row
touched by one status change is committed together or not at all; audit
entries and capacity cache invalidation follow the commit.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_os.clinics.capacity import CapacityCache, get_capacity_cache
from clinic_os.core.errors import BadRequestError, ConflictError, NotFoundError
from clinic_os.core.models import Clinic
from clinic_os.core.repository import (
    AppointmentRepository,
    AuditRepository,
    ClinicRepository,
    UserRepository,
)
from clinic_os.core.schemas import (
    ClinicRead,
    ClinicStatusChange,
    ClinicStatusResult,
    StaffTransferRequest,
    StaffTransferResult,
)
from clinic_os.scheduling.models import ClinicStatus

logger = logging.getLogger(__name__)

RESCHEDULING_REASON = "Clinic status changed"

_DEACTIVATED = (ClinicStatus.inactive.value, ClinicStatus.suspended.value)


@dataclass
class TransferContext:
    source: Clinic
    target: Clinic
    doctors_transferred: int = 0
    staff_transferred: int = 0
    appointments_transferred: int = 0

    @property
    def moved_anyone(self) -> bool:
        return bool(self.doctors_transferred or self.staff_transferred)


class ClinicStatusService:
    def __init__(self, db: AsyncSession, cache: Optional[CapacityCache] = None):
        self.db = db
        self.clinics = ClinicRepository(db)
        self.users = UserRepository(db)
        self.appointments = AppointmentRepository(db)
        self.audit = AuditRepository(db)
        self.cache = cache if cache is not None else get_capacity_cache()

    async def _get_clinic(self, clinic_id: uuid.UUID) -> Clinic:
        clinic = await self.clinics.get_by_id(clinic_id)
        if clinic is None:
            raise NotFoundError("CLINIC_NOT_FOUND", {"clinicId": str(clinic_id)})
        return clinic

    async def _get_target(self, source: Clinic, target_id: Optional[uuid.UUID]) -> Clinic:
        if target_id is None:
            raise BadRequestError("TARGET_CLINIC_REQUIRED")
        target = await self.clinics.get_by_id(target_id)
        if target is None:
            raise NotFoundError("TARGET_CLINIC_NOT_FOUND", {"targetClinicId": str(target_id)})
        if target.id == source.id or target.status != ClinicStatus.active.value:
            raise BadRequestError(
                "INVALID_TARGET_CLINIC",
                {"targetClinicId": str(target.id), "targetStatus": target.status},
            )
        return target

    # ------------------------------------------------------------------
    # Transfer
    # ------------------------------------------------------------------

    async def _transfer(
        self,
        source: Clinic,
        target: Clinic,
        *,
        transfer_doctors: bool,
        transfer_staff: bool,
        doctor_ids: Optional[list[uuid.UUID]] = None,
        staff_ids: Optional[list[uuid.UUID]] = None,
        today: date,
    ) -> TransferContext:
        ctx = TransferContext(source=source, target=target)
        if transfer_doctors:
            moved = await self.users.move_doctors(source.id, target.id, doctor_ids or None)
            ctx.doctors_transferred = len(moved)
            ctx.appointments_transferred = await self.appointments.move_upcoming_for_doctors(
                source.id, target.id, moved, today
            )
        if transfer_staff:
            moved = await self.users.move_staff(source.id, target.id, staff_ids or None)
            ctx.staff_transferred = len(moved)
        logger.info(
            "Transferred %d doctors, %d staff and %d appointments from clinic %s to %s",
            ctx.doctors_transferred, ctx.staff_transferred, ctx.appointments_transferred,
            source.id, target.id,
        )
        return ctx

    async def transfer_staff(
        self,
        clinic_id: uuid.UUID,
        options: StaffTransferRequest,
        user_id: Optional[uuid.UUID] = None,
    ) -> StaffTransferResult:
        source = await self._get_clinic(clinic_id)
        target = await self._get_target(source, options.target_clinic_id)
        try:
            ctx = await self._transfer(
                source,
                target,
                transfer_doctors=options.transfer_doctors,
                transfer_staff=options.transfer_staff,
                doctor_ids=options.doctor_ids,
                staff_ids=options.staff_ids,
                today=date.today(),
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            logger.warning("Staff transfer from clinic %s rolled back", clinic_id)
            raise

        if ctx.moved_anyone:
            await self._record_audit(user_id, [self._transfer_audit(ctx)])
        self._invalidate(source.id, target.id)
        return StaffTransferResult(
            source_clinic_id=source.id,
            target_clinic_id=target.id,
            doctors_transferred=ctx.doctors_transferred,
            staff_transferred=ctx.staff_transferred,
            appointments_transferred=ctx.appointments_transferred,
        )

    # ------------------------------------------------------------------
    # Status change
    # ------------------------------------------------------------------

    async def change_status(
        self,
        clinic_id: uuid.UUID,
        options: ClinicStatusChange,
        user_id: Optional[uuid.UUID] = None,
    ) -> ClinicStatusResult:
        clinic = await self._get_clinic(clinic_id)
        old_status = clinic.status
        today = date.today()

        active_appointments = await self.appointments.count_upcoming(clinic.id, today)
        assigned_doctors = await self.users.count_doctors(clinic.id)
        assigned_staff = await self.users.count_staff(clinic.id)

        deactivating = options.status in _DEACTIVATED
        undecided = (
            not options.transfer_doctors
            and not options.transfer_staff
            and options.target_clinic_id is None
        )
        if deactivating and undecided and (active_appointments or assigned_doctors or assigned_staff):
            raise ConflictError(
                "CLINIC_REQUIRES_TRANSFER",
                {
                    "requiresTransfer": True,
                    "activeAppointments": active_appointments,
                    "assignedDoctors": assigned_doctors,
                    "assignedStaff": assigned_staff,
                },
            )

        ctx: Optional[TransferContext] = None
        rescheduled = 0
        try:
            if options.transfer_doctors or options.transfer_staff:
                target = await self._get_target(clinic, options.target_clinic_id)
                ctx = await self._transfer(
                    clinic,
                    target,
                    transfer_doctors=bool(options.transfer_doctors),
                    transfer_staff=bool(options.transfer_staff),
                    doctor_ids=options.doctor_ids,
                    staff_ids=options.staff_ids,
                    today=today,
                )

            if active_appointments and not options.transfer_doctors:
                rescheduled = await self.appointments.mark_upcoming_for_rescheduling(
                    clinic.id, today, RESCHEDULING_REASON
                )

            now = datetime.now(timezone.utc)
            clinic.status = options.status
            if deactivating:
                clinic.deactivated_at = now
                clinic.deactivated_by = user_id
                clinic.deactivation_reason = options.reason
                clinic.is_active = False
            else:
                clinic.is_active = True
            clinic.updated_at = now
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            logger.warning("Status change for clinic %s rolled back", clinic_id)
            raise

        logger.info("Clinic %s status changed from %s to %s", clinic.id, old_status, clinic.status)

        entries = [
            {
                "action": "status_change",
                "resource_id": str(clinic.id),
                "details": {"from": old_status, "to": clinic.status, "reason": options.reason},
            }
        ]
        if ctx is not None and ctx.moved_anyone:
            entries.append(self._transfer_audit(ctx))
        await self._record_audit(user_id, entries)
        self._invalidate(clinic.id, ctx.target.id if ctx else None)

        return ClinicStatusResult(
            clinic=ClinicRead.model_validate(clinic),
            doctors_transferred=(ctx.doctors_transferred or None) if ctx else None,
            staff_transferred=(ctx.staff_transferred or None) if ctx else None,
            appointments_affected=(ctx.appointments_transferred or None) if ctx else None,
            appointments_rescheduled=rescheduled or None,
        )

    # ------------------------------------------------------------------
    # After-commit bookkeeping
    # ------------------------------------------------------------------

    @staticmethod
    def _transfer_audit(ctx: TransferContext) -> dict:
        return {
            "action": "staff_transfer",
            "resource_id": str(ctx.source.id),
            "details": {
                "targetClinicId": str(ctx.target.id),
                "doctorsTransferred": ctx.doctors_transferred,
                "staffTransferred": ctx.staff_transferred,
                "appointmentsTransferred": ctx.appointments_transferred,
            },
        }

    async def _record_audit(self, user_id: Optional[uuid.UUID], entries: list[dict]) -> None:
        """Write audit rows in their own commit; failures are logged, not raised."""
        try:
            for entry in entries:
                await self.audit.log_action(
                    resource_type="clinic",
                    user_id=str(user_id) if user_id else None,
                    **entry,
                )
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            logger.error("Failed to write clinic audit entries", exc_info=True)

    def _invalidate(self, *clinic_ids: Optional[uuid.UUID]) -> None:
        for clinic_id in clinic_ids:
            if clinic_id is not None:
                self.cache.invalidate(clinic_id)
