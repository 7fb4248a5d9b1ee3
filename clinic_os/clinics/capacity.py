"""Clinic capacity snapshots behind an in-memory TTL cache."""

from __future__ import annotations

import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from clinic_os.config import get_settings
from clinic_os.core.errors import NotFoundError
from clinic_os.core.models import User
from clinic_os.core.repository import AppointmentRepository, ClinicRepository, UserRepository
from clinic_os.core.schemas import CapacityMetric, CapacityStatus, PersonnelCapacity, PersonnelEntry
from clinic_os.core.utils import percent_of

logger = logging.getLogger(__name__)


class CapacityCache:
    """Process-local cache of capacity snapshots keyed by clinic id.

    Entries expire ``ttl_seconds`` after they are stored. Not shared between
    worker processes.
    """

    def __init__(self, ttl_seconds: float = 300, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        # clinic id -> (stored at, snapshot)
        self._entries: dict[str, tuple[float, CapacityStatus]] = {}

    def get(self, clinic_id: uuid.UUID) -> Optional[CapacityStatus]:
        key = str(clinic_id)
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, snapshot = entry
        if self._clock() - stored_at >= self.ttl_seconds:
            del self._entries[key]
            return None
        return snapshot

    def set(self, clinic_id: uuid.UUID, snapshot: CapacityStatus) -> None:
        self._entries[str(clinic_id)] = (self._clock(), snapshot)

    def invalidate(self, clinic_id: uuid.UUID) -> None:
        if self._entries.pop(str(clinic_id), None) is not None:
            logger.debug("Capacity cache invalidated for clinic %s", clinic_id)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


_cache: Optional[CapacityCache] = None


def get_capacity_cache() -> CapacityCache:
    global _cache
    if _cache is None:
        _cache = CapacityCache(ttl_seconds=get_settings().capacity_cache_ttl_seconds)
    return _cache


def _metric(maximum: int, current: int) -> dict:
    return {
        "max": maximum,
        "current": current,
        "available": maximum - current,
        "percentage": percent_of(current, maximum),
        "is_exceeded": current > maximum,
    }


def _personnel(users: Sequence[User]) -> list[PersonnelEntry]:
    return [
        PersonnelEntry(
            id=u.id,
            name=f"{u.first_name} {u.last_name}",
            role=u.role,
            email=u.email,
        )
        for u in users
    ]


def build_recommendations(
    doctors: CapacityMetric, staff: CapacityMetric, patients: CapacityMetric
) -> list[str]:
    recommendations: list[str] = []
    if doctors.is_exceeded:
        recommendations.append(
            "Doctor capacity exceeded. Consider increasing maxDoctors or redistributing workload."
        )
    if staff.is_exceeded:
        recommendations.append(
            "Staff capacity exceeded. Consider hiring more staff or increasing maxStaff limit."
        )
    if patients.is_exceeded:
        recommendations.append(
            "Patient capacity exceeded. Consider expanding facilities or limiting patient intake."
        )
    return recommendations


class ClinicCapacityService:
    def __init__(self, db: AsyncSession, cache: Optional[CapacityCache] = None):
        self.clinics = ClinicRepository(db)
        self.users = UserRepository(db)
        self.appointments = AppointmentRepository(db)
        self.cache = cache if cache is not None else get_capacity_cache()

    async def get_capacity_status(self, clinic_id: uuid.UUID) -> CapacityStatus:
        cached = self.cache.get(clinic_id)
        if cached is not None:
            return cached

        clinic = await self.clinics.get_by_id(clinic_id)
        if clinic is None:
            raise NotFoundError("CLINIC_NOT_FOUND", {"clinicId": str(clinic_id)})

        doctors = await self.users.list_doctors(clinic_id)
        staff = await self.users.list_staff(clinic_id)
        patient_count = await self.appointments.count_distinct_patients(clinic_id)

        doctor_metric = PersonnelCapacity(
            **_metric(clinic.max_doctors or 0, len(doctors)), personnel=_personnel(doctors)
        )
        staff_metric = PersonnelCapacity(
            **_metric(clinic.max_staff or 0, len(staff)), personnel=_personnel(staff)
        )
        patient_metric = CapacityMetric(**_metric(clinic.max_patients or 0, patient_count))

        snapshot = CapacityStatus(
            clinic_id=clinic.id,
            clinic_name=clinic.name,
            doctors=doctor_metric,
            staff=staff_metric,
            patients=patient_metric,
            recommendations=build_recommendations(doctor_metric, staff_metric, patient_metric),
            generated_at=datetime.now(timezone.utc),
        )
        self.cache.set(clinic_id, snapshot)
        logger.debug("Capacity computed for clinic %s", clinic_id)
        return snapshot

    def invalidate(self, clinic_id: uuid.UUID) -> None:
        self.cache.invalidate(clinic_id)
