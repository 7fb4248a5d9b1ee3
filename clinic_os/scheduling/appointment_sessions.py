"""Session-aware appointment booking and treatment progress."""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from clinic_os.core.errors import BadRequestError, ClinicOSError, ConflictError, NotFoundError
from clinic_os.core.models import Appointment, Service
from clinic_os.core.repository import AppointmentRepository, ServiceRepository
from clinic_os.core.schemas import (
    AppointmentCreate,
    AppointmentRead,
    BatchBookingRequest,
    BatchBookingResult,
    SessionInfo,
    SessionProgress,
    SessionProgressItem,
)
from clinic_os.core.utils import percent_of
from clinic_os.scheduling.models import (
    NOT_BOOKED,
    AppointmentStatus,
    SessionBooking,
    SessionRef,
    status_priority,
)
from clinic_os.scheduling.session_manager import find_session_by_id

logger = logging.getLogger(__name__)


def get_session_duration(session_duration: Optional[int], default_duration: int) -> int:
    """Session-specific duration when set and non-zero, else the service default."""
    return session_duration or default_duration


class AppointmentSessionService:
    """Books appointments against a service's sessions and reports progress."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.services = ServiceRepository(db)
        self.appointments = AppointmentRepository(db)

    # ------------------------------------------------------------------
    # Reference and duplicate checks
    # ------------------------------------------------------------------

    async def _load_service(self, service_id: uuid.UUID) -> Service:
        service = await self.services.get_by_id(service_id)
        if service is None:
            raise NotFoundError("SERVICE_NOT_FOUND", {"serviceId": str(service_id)})
        return service

    @staticmethod
    def _resolve_session(service: Service, session_id: str) -> SessionRef:
        if not service.sessions:
            raise BadRequestError("SERVICE_HAS_NO_SESSIONS", {"serviceId": str(service.id)})
        session = find_session_by_id(service.sessions, session_id)
        if session is None:
            raise BadRequestError(
                "INVALID_SESSION_ID",
                {
                    "sessionId": session_id,
                    "serviceId": str(service.id),
                    "availableSessions": [
                        {"id": s["id"], "name": s["name"], "order": s["order"]}
                        for s in service.sessions
                    ],
                },
            )
        return SessionRef.from_session(service.id, session)

    async def validate_session_reference(
        self, service_id: uuid.UUID, session_id: str
    ) -> SessionRef:
        service = await self._load_service(service_id)
        return self._resolve_session(service, session_id)

    async def check_duplicate_session_booking(
        self, patient_id: uuid.UUID, service_id: uuid.UUID, session_id: str
    ) -> None:
        existing = await self.appointments.find_active_for_session(patient_id, service_id, session_id)
        if existing is not None:
            raise ConflictError("DUPLICATE_SESSION_BOOKING", _duplicate_details(existing))

    async def check_completed_session_rebooking(
        self, patient_id: uuid.UUID, service_id: uuid.UUID, session_id: str
    ) -> None:
        completed = await self.appointments.find_completed_for_session(patient_id, service_id, session_id)
        if completed is not None:
            raise ConflictError(
                "COMPLETED_SESSION_REBOOKING",
                {
                    "patientId": str(patient_id),
                    "serviceId": str(service_id),
                    "sessionId": session_id,
                    "completedAppointmentId": str(completed.id),
                    "completedDate": completed.appointment_date.isoformat(),
                },
            )

    async def check_doctor_availability(
        self,
        doctor_id: uuid.UUID,
        appointment_date: date,
        appointment_time: str,
        duration_minutes: int,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        """Reject a slot that overlaps another active appointment of the same doctor."""
        conflicts = await self.appointments.find_doctor_conflicts(
            doctor_id, appointment_date, appointment_time, duration_minutes, exclude_id=exclude_id
        )
        if not conflicts:
            return
        logger.warning(
            "Found %d conflicting appointment(s) for doctor %s on %s at %s",
            len(conflicts), doctor_id, appointment_date, appointment_time,
        )
        raise ConflictError(
            "APPOINTMENT_CONFLICT",
            {
                "doctorId": str(doctor_id),
                "appointmentDate": appointment_date.isoformat(),
                "appointmentTime": appointment_time,
                "durationMinutes": duration_minutes,
                "conflicts": [
                    {
                        "appointmentId": str(c.id),
                        "appointmentTime": c.appointment_time,
                        "durationMinutes": c.duration_minutes,
                    }
                    for c in conflicts
                ],
            },
        )

    async def _check_bookable(
        self, service: Service, patient_id: uuid.UUID, session_id: str
    ) -> SessionRef:
        ref = self._resolve_session(service, session_id)
        await self.check_duplicate_session_booking(patient_id, service.id, session_id)
        await self.check_completed_session_rebooking(patient_id, service.id, session_id)
        return ref

    @staticmethod
    def _ensure_bookable_service(service: Service) -> None:
        if service.deleted_at is not None:
            raise BadRequestError("SERVICE_DELETED_CANNOT_BOOK", {"serviceId": str(service.id)})

    # ------------------------------------------------------------------
    # Booking
    # ------------------------------------------------------------------

    async def batch_book_sessions(
        self, request: BatchBookingRequest, created_by: Optional[uuid.UUID] = None
    ) -> BatchBookingResult:
        """Book several sessions of one service for one patient, all or nothing."""
        total = len(request.session_bookings)
        logger.info(
            "Batch booking %d sessions: patient=%s service=%s",
            total, request.patient_id, request.service_id,
        )

        service = await self._load_service(request.service_id)
        self._ensure_bookable_service(service)
        if not service.sessions:
            raise BadRequestError("SERVICE_HAS_NO_SESSIONS", {"serviceId": str(service.id)})

        failures: list[dict[str, Any]] = []
        bookings: list[SessionBooking] = []
        seen: set[str] = set()

        for item in request.session_bookings:
            try:
                if item.session_id in seen:
                    raise ConflictError(
                        "DUPLICATE_SESSION_BOOKING",
                        {"sessionId": item.session_id, "duplicateInRequest": True},
                    )
                seen.add(item.session_id)
                ref = await self._check_bookable(service, request.patient_id, item.session_id)
            except ClinicOSError as exc:
                failures.append(
                    {
                        "sessionId": item.session_id,
                        "appointmentDate": item.appointment_date.isoformat(),
                        "appointmentTime": item.appointment_time,
                        "error": {"code": exc.code, "message": exc.message.model_dump()},
                    }
                )
                continue
            bookings.append(
                SessionBooking(
                    ref=ref,
                    appointment_date=item.appointment_date,
                    appointment_time=item.appointment_time,
                    duration_minutes=get_session_duration(ref.duration, service.duration_minutes),
                )
            )

        if failures:
            logger.warning(
                "Batch booking rejected: %d of %d sessions failed validation",
                len(failures), total,
            )
            raise BadRequestError(
                "BATCH_BOOKING_FAILED",
                {
                    "totalRequested": total,
                    "successCount": 0,
                    "failureCount": len(failures),
                    "failures": failures,
                },
            )

        try:
            # A concurrent request may have booked one of these sessions since validation
            conflicts = await self.appointments.find_active_for_sessions(
                request.patient_id, service.id, [b.ref.session_id for b in bookings]
            )
            if conflicts:
                raise ConflictError("DUPLICATE_SESSION_BOOKING", _duplicate_details(conflicts[0]))

            created = await self.appointments.bulk_create(
                bookings,
                patient_id=request.patient_id,
                doctor_id=request.doctor_id,
                clinic_id=request.clinic_id,
                created_by=created_by,
                notes=request.notes,
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            logger.warning("Batch booking rolled back for patient %s", request.patient_id)
            raise

        logger.info("Batch booking created %d appointments", len(created))
        return BatchBookingResult(
            total_requested=total,
            success_count=len(created),
            failure_count=0,
            appointments=[AppointmentRead.model_validate(a) for a in created],
        )

    async def book_session(
        self, request: AppointmentCreate, created_by: Optional[uuid.UUID] = None
    ) -> Appointment:
        """Book a single appointment, enforcing the session rules when applicable."""
        service = await self._load_service(request.service_id)
        self._ensure_bookable_service(service)

        duration = request.duration_minutes or service.duration_minutes
        session_id: Optional[str] = None
        if service.sessions:
            if not request.session_id:
                raise BadRequestError("SESSION_ID_REQUIRED", {"serviceId": str(service.id)})
            ref = await self._check_bookable(service, request.patient_id, request.session_id)
            session_id = ref.session_id
            duration = request.duration_minutes or get_session_duration(
                ref.duration, service.duration_minutes
            )
        elif request.session_id:
            raise BadRequestError("SERVICE_HAS_NO_SESSIONS", {"serviceId": str(service.id)})

        await self.check_doctor_availability(
            request.doctor_id, request.appointment_date, request.appointment_time, duration
        )

        appt = await self.appointments.create(
            patient_id=request.patient_id,
            doctor_id=request.doctor_id,
            clinic_id=request.clinic_id,
            service_id=service.id,
            session_id=session_id,
            appointment_date=request.appointment_date,
            appointment_time=request.appointment_time,
            duration_minutes=duration,
            status=AppointmentStatus.scheduled.value,
            notes=request.notes,
            created_by=created_by,
        )
        logger.info("Booked appointment %s (service=%s session=%s)", appt.id, service.id, session_id)
        return appt

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    async def get_session_progress(
        self, patient_id: uuid.UUID, service_id: uuid.UUID
    ) -> SessionProgress:
        service = await self._load_service(service_id)
        if not service.sessions:
            raise BadRequestError("SERVICE_HAS_NO_SESSIONS", {"serviceId": str(service_id)})

        chosen: dict[str, Appointment] = {}
        for appt in await self.appointments.list_for_patient_service(patient_id, service_id):
            if not appt.session_id:
                continue
            current = chosen.get(appt.session_id)
            if current is None or status_priority(appt.status) > status_priority(current.status):
                chosen[appt.session_id] = appt

        items: list[SessionProgressItem] = []
        for session in sorted(service.sessions, key=lambda s: s["order"]):
            appt = chosen.get(session["id"])
            items.append(
                SessionProgressItem(
                    session_id=session["id"],
                    session_name=session["name"],
                    session_order=session["order"],
                    appointment_id=appt.id if appt else None,
                    status=appt.status if appt else NOT_BOOKED,
                    appointment_date=appt.appointment_date if appt else None,
                    appointment_time=appt.appointment_time if appt else None,
                    is_completed=appt is not None and appt.status == AppointmentStatus.completed.value,
                )
            )

        completed = sum(1 for item in items if item.is_completed)
        percentage = percent_of(completed, len(items))
        logger.debug("Session progress: %d/%d (%d%%)", completed, len(items), percentage)
        return SessionProgress(
            patient_id=patient_id,
            service_id=service_id,
            service_name=service.name,
            total_sessions=len(items),
            completed_sessions=completed,
            completion_percentage=percentage,
            sessions=items,
        )

    # ------------------------------------------------------------------
    # Enrichment
    # ------------------------------------------------------------------

    def populate_session_info(self, appointment: Appointment, service: Optional[Service]) -> AppointmentRead:
        """Attach session details to an appointment read model when resolvable."""
        read = AppointmentRead.model_validate(appointment)
        if not appointment.session_id or service is None:
            return read
        session = find_session_by_id(service.sessions, appointment.session_id)
        if session is None:
            logger.warning(
                "Appointment %s references session %s which no longer exists in service %s",
                appointment.id, appointment.session_id, service.id,
            )
            return read
        read.session_info = SessionInfo(
            session_id=session["id"],
            name=session["name"],
            order=session["order"],
            duration=get_session_duration(session.get("duration"), service.duration_minutes),
        )
        return read

    async def enrich_appointment_with_session(self, appointment: Appointment) -> AppointmentRead:
        if not appointment.session_id:
            return AppointmentRead.model_validate(appointment)
        service = await self.services.get_by_id(appointment.service_id)
        return self.populate_session_info(appointment, service)


def _duplicate_details(existing: Appointment) -> dict[str, Any]:
    return {
        "patientId": str(existing.patient_id),
        "serviceId": str(existing.service_id),
        "sessionId": existing.session_id,
        "existingAppointmentId": str(existing.id),
        "existingAppointmentStatus": existing.status,
        "existingAppointmentDate": existing.appointment_date.isoformat(),
        "existingAppointmentTime": existing.appointment_time,
    }
