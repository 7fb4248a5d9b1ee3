"""CRUD repositories for the clinic models."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Iterable, Optional, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_os.core.models import (
    Appointment,
    AuditLog,
    Clinic,
    Patient,
    Service,
    User,
    UserRole,
)
from clinic_os.core.utils import overlaps, to_minutes
from clinic_os.scheduling.models import (
    INACTIVE_STATUSES,
    SERVICE_DELETE_BLOCKING_STATUSES,
    SESSION_REMOVAL_BLOCKING_STATUSES,
    UPCOMING_STATUSES,
    AppointmentStatus,
    SessionBooking,
)

# Roles that are neither clinicians nor patients
STAFF_EXCLUDED_ROLES = (UserRole.doctor.value, UserRole.patient.value)


class ClinicRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **kwargs) -> Clinic:
        clinic = Clinic(**kwargs)
        self.session.add(clinic)
        await self.session.flush()
        return clinic

    async def get_by_id(self, clinic_id: uuid.UUID) -> Optional[Clinic]:
        return await self.session.get(Clinic, clinic_id)


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **kwargs) -> User:
        user = User(**kwargs)
        self.session.add(user)
        await self.session.flush()
        return user

    async def get_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        return await self.session.get(User, user_id)

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    def _doctors(self, clinic_id: uuid.UUID):
        return select(User).where(
            User.clinic_id == clinic_id,
            User.is_active.is_(True),
            User.role == UserRole.doctor.value,
        )

    def _staff(self, clinic_id: uuid.UUID):
        return select(User).where(
            User.clinic_id == clinic_id,
            User.is_active.is_(True),
            User.role.not_in(STAFF_EXCLUDED_ROLES),
        )

    async def list_doctors(self, clinic_id: uuid.UUID) -> Sequence[User]:
        stmt = self._doctors(clinic_id).order_by(User.last_name, User.first_name)
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def list_staff(self, clinic_id: uuid.UUID) -> Sequence[User]:
        stmt = self._staff(clinic_id).order_by(User.last_name, User.first_name)
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def count_doctors(self, clinic_id: uuid.UUID) -> int:
        stmt = select(func.count()).select_from(self._doctors(clinic_id).subquery())
        return (await self.session.execute(stmt)).scalar_one()

    async def count_staff(self, clinic_id: uuid.UUID) -> int:
        stmt = select(func.count()).select_from(self._staff(clinic_id).subquery())
        return (await self.session.execute(stmt)).scalar_one()

    async def move_doctors(
        self,
        source_id: uuid.UUID,
        target_id: uuid.UUID,
        user_ids: Optional[Iterable[uuid.UUID]] = None,
    ) -> list[uuid.UUID]:
        """Move active doctors to another clinic; returns the ids moved."""
        stmt = select(User.id).where(
            User.clinic_id == source_id,
            User.is_active.is_(True),
            User.role == UserRole.doctor.value,
        )
        return await self._move(stmt, target_id, user_ids)

    async def move_staff(
        self,
        source_id: uuid.UUID,
        target_id: uuid.UUID,
        user_ids: Optional[Iterable[uuid.UUID]] = None,
    ) -> list[uuid.UUID]:
        """Move active non-doctor staff to another clinic; returns the ids moved."""
        stmt = select(User.id).where(
            User.clinic_id == source_id,
            User.is_active.is_(True),
            User.role.not_in(STAFF_EXCLUDED_ROLES),
        )
        return await self._move(stmt, target_id, user_ids)

    async def _move(self, stmt, target_id: uuid.UUID, user_ids) -> list[uuid.UUID]:
        if user_ids is not None:
            stmt = stmt.where(User.id.in_(list(user_ids)))
        ids = list((await self.session.execute(stmt)).scalars().all())
        if ids:
            await self.session.execute(
                update(User).where(User.id.in_(ids)).values(clinic_id=target_id)
            )
        return ids


class PatientRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **kwargs) -> Patient:
        patient = Patient(**kwargs)
        self.session.add(patient)
        await self.session.flush()
        return patient

    async def get_by_id(self, patient_id: uuid.UUID) -> Optional[Patient]:
        return await self.session.get(Patient, patient_id)


class ServiceRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **kwargs) -> Service:
        service = Service(**kwargs)
        self.session.add(service)
        await self.session.flush()
        return service

    async def get_by_id(self, service_id: uuid.UUID) -> Optional[Service]:
        return await self.session.get(Service, service_id)

    async def list(
        self, clinic_id: Optional[uuid.UUID] = None, offset: int = 0, limit: int = 50
    ) -> Sequence[Service]:
        stmt = select(Service).where(Service.deleted_at.is_(None))
        if clinic_id is not None:
            stmt = stmt.where(Service.clinic_id == clinic_id)
        stmt = stmt.order_by(Service.name).offset(offset).limit(limit)
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def find_by_name(
        self,
        name: str,
        clinic_id: Optional[uuid.UUID],
        exclude_id: Optional[uuid.UUID] = None,
    ) -> Optional[Service]:
        """Case-insensitive lookup of a live service name within one clinic."""
        stmt = select(Service).where(
            func.lower(Service.name) == name.lower(),
            Service.deleted_at.is_(None),
        )
        if clinic_id is None:
            stmt = stmt.where(Service.clinic_id.is_(None))
        else:
            stmt = stmt.where(Service.clinic_id == clinic_id)
        if exclude_id is not None:
            stmt = stmt.where(Service.id != exclude_id)
        result = await self.session.execute(stmt.limit(1))
        return result.scalar_one_or_none()


class AppointmentRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **kwargs) -> Appointment:
        appt = Appointment(**kwargs)
        self.session.add(appt)
        await self.session.flush()
        return appt

    async def bulk_create(
        self,
        bookings: Sequence[SessionBooking],
        *,
        patient_id: uuid.UUID,
        doctor_id: uuid.UUID,
        clinic_id: uuid.UUID,
        created_by: Optional[uuid.UUID] = None,
        notes: Optional[str] = None,
    ) -> list[Appointment]:
        """Insert one scheduled appointment per validated booking, in order."""
        appts = [
            Appointment(
                patient_id=patient_id,
                doctor_id=doctor_id,
                clinic_id=clinic_id,
                service_id=booking.ref.service_id,
                session_id=booking.ref.session_id,
                appointment_date=booking.appointment_date,
                appointment_time=booking.appointment_time,
                duration_minutes=booking.duration_minutes,
                status=AppointmentStatus.scheduled.value,
                notes=notes,
                created_by=created_by,
            )
            for booking in bookings
        ]
        self.session.add_all(appts)
        await self.session.flush()
        return appts

    async def get_by_id(self, appointment_id: uuid.UUID) -> Optional[Appointment]:
        appt = await self.session.get(Appointment, appointment_id)
        if appt is None or appt.is_deleted:
            return None
        return appt

    def _for_triple(self, patient_id: uuid.UUID, service_id: uuid.UUID):
        return select(Appointment).where(
            Appointment.patient_id == patient_id,
            Appointment.service_id == service_id,
            Appointment.is_deleted.is_(False),
        )

    async def find_active_for_session(
        self, patient_id: uuid.UUID, service_id: uuid.UUID, session_id: str
    ) -> Optional[Appointment]:
        stmt = self._for_triple(patient_id, service_id).where(
            Appointment.session_id == session_id,
            Appointment.status.not_in(INACTIVE_STATUSES),
        )
        result = await self.session.execute(stmt.order_by(Appointment.created_at).limit(1))
        return result.scalar_one_or_none()

    async def find_active_for_sessions(
        self, patient_id: uuid.UUID, service_id: uuid.UUID, session_ids: Iterable[str]
    ) -> Sequence[Appointment]:
        stmt = self._for_triple(patient_id, service_id).where(
            Appointment.session_id.in_(list(session_ids)),
            Appointment.status.not_in(INACTIVE_STATUSES),
        )
        result = await self.session.execute(stmt.order_by(Appointment.created_at))
        return result.scalars().all()

    async def find_completed_for_session(
        self, patient_id: uuid.UUID, service_id: uuid.UUID, session_id: str
    ) -> Optional[Appointment]:
        stmt = self._for_triple(patient_id, service_id).where(
            Appointment.session_id == session_id,
            Appointment.status == AppointmentStatus.completed.value,
        )
        result = await self.session.execute(stmt.order_by(Appointment.created_at).limit(1))
        return result.scalar_one_or_none()

    async def list_for_patient_service(
        self, patient_id: uuid.UUID, service_id: uuid.UUID
    ) -> Sequence[Appointment]:
        stmt = self._for_triple(patient_id, service_id).order_by(
            Appointment.appointment_date, Appointment.appointment_time, Appointment.created_at
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def find_doctor_conflicts(
        self,
        doctor_id: uuid.UUID,
        appointment_date: date,
        appointment_time: str,
        duration_minutes: int,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> list[Appointment]:
        """Active appointments of the doctor on that date whose slot overlaps the given one."""
        stmt = select(Appointment).where(
            Appointment.doctor_id == doctor_id,
            Appointment.appointment_date == appointment_date,
            Appointment.status.not_in(INACTIVE_STATUSES),
            Appointment.is_deleted.is_(False),
        )
        if exclude_id is not None:
            stmt = stmt.where(Appointment.id != exclude_id)
        result = await self.session.execute(stmt.order_by(Appointment.appointment_time))
        start = to_minutes(appointment_time)
        return [
            appt
            for appt in result.scalars().all()
            if overlaps(start, duration_minutes, to_minutes(appt.appointment_time), appt.duration_minutes)
        ]

    async def find_blocking_session_removal(
        self, service_id: uuid.UUID, session_ids: Iterable[str]
    ) -> Optional[Appointment]:
        stmt = select(Appointment).where(
            Appointment.service_id == service_id,
            Appointment.session_id.in_(list(session_ids)),
            Appointment.status.in_(SESSION_REMOVAL_BLOCKING_STATUSES),
            Appointment.is_deleted.is_(False),
        )
        result = await self.session.execute(stmt.order_by(Appointment.created_at).limit(1))
        return result.scalar_one_or_none()

    async def find_blocking_service_delete(self, service_id: uuid.UUID) -> Optional[Appointment]:
        stmt = select(Appointment).where(
            Appointment.service_id == service_id,
            Appointment.status.in_(SERVICE_DELETE_BLOCKING_STATUSES),
            Appointment.is_deleted.is_(False),
        )
        result = await self.session.execute(stmt.limit(1))
        return result.scalar_one_or_none()

    def _upcoming(self, clinic_id: uuid.UUID, today: date):
        return select(Appointment).where(
            Appointment.clinic_id == clinic_id,
            Appointment.appointment_date >= today,
            Appointment.status.in_(UPCOMING_STATUSES),
            Appointment.is_deleted.is_(False),
        )

    async def count_upcoming(self, clinic_id: uuid.UUID, today: date) -> int:
        stmt = select(func.count()).select_from(self._upcoming(clinic_id, today).subquery())
        return (await self.session.execute(stmt)).scalar_one()

    async def move_upcoming_for_doctors(
        self,
        source_id: uuid.UUID,
        target_id: uuid.UUID,
        doctor_ids: Sequence[uuid.UUID],
        today: date,
    ) -> int:
        """Carry the doctors' upcoming appointments to the target clinic."""
        if not doctor_ids:
            return 0
        stmt = (
            update(Appointment)
            .where(
                Appointment.clinic_id == source_id,
                Appointment.doctor_id.in_(list(doctor_ids)),
                Appointment.appointment_date >= today,
                Appointment.status.in_(UPCOMING_STATUSES),
                Appointment.is_deleted.is_(False),
            )
            .values(clinic_id=target_id, updated_at=datetime.now(timezone.utc))
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    async def mark_upcoming_for_rescheduling(
        self, clinic_id: uuid.UUID, today: date, reason: str
    ) -> int:
        now = datetime.now(timezone.utc)
        stmt = (
            update(Appointment)
            .where(
                Appointment.clinic_id == clinic_id,
                Appointment.appointment_date >= today,
                Appointment.status.in_(UPCOMING_STATUSES),
                Appointment.is_deleted.is_(False),
            )
            .values(rescheduling_reason=reason, marked_for_rescheduling_at=now, updated_at=now)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    async def count_distinct_patients(self, clinic_id: uuid.UUID) -> int:
        stmt = select(func.count(Appointment.patient_id.distinct())).where(
            Appointment.clinic_id == clinic_id,
            Appointment.is_deleted.is_(False),
        )
        return (await self.session.execute(stmt)).scalar_one()


class AuditRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def log_action(
        self,
        action: str,
        resource_type: str,
        resource_id: str,
        user_id: Optional[str] = None,
        details: Optional[dict] = None,
        ip_address: Optional[str] = None,
    ) -> AuditLog:
        entry = AuditLog(
            user_id=user_id,
            action=action,
            resource_type=resource_type,
            resource_id=str(resource_id),
            details=details,
            ip_address=ip_address,
        )
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def get_by_resource(self, resource_type: str, resource_id: str, limit: int = 50) -> Sequence[AuditLog]:
        stmt = (
            select(AuditLog)
            .where(AuditLog.resource_type == resource_type, AuditLog.resource_id == resource_id)
            .order_by(AuditLog.timestamp.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()
