"""Pytest configuration and fixtures."""

import uuid
from datetime import date, timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from clinic_os.clinics.capacity import get_capacity_cache
from clinic_os.core.models import Appointment, Base, Clinic, Patient, Service, User


# ---------------------------------------------------------------------------
# Auth override for tests: bypass get_current_user dependency
# ---------------------------------------------------------------------------

class _MockUser:
    """Lightweight stand-in for the User ORM model used in tests."""

    def __init__(self):
        self.id = uuid.UUID("bbbbbbbb-bbbb-bbbb-bbbb-bbbbbbbbbbbb")
        self.first_name = "Test"
        self.last_name = "Admin"
        self.email = "admin@example.com"
        self.role = "super_admin"
        self.clinic_id = None
        self.is_active = True
        self.password_hash = None


@pytest.fixture
def current_user():
    """Mutable mock user; change ``role`` to exercise RBAC."""
    return _MockUser()


@pytest.fixture(autouse=True)
def clear_capacity_cache():
    get_capacity_cache().clear()
    yield
    get_capacity_cache().clear()


# ---------------------------------------------------------------------------
# In-memory SQLite engine + session
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine("sqlite+aiosqlite://", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session(engine):
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as sess:
        yield sess


def _make_sessions(count: int, duration: int = 45) -> list[dict]:
    return [
        {"id": f"s{i}", "name": f"Session {i}", "duration": duration, "order": i}
        for i in range(1, count + 1)
    ]


@pytest_asyncio.fixture
async def seed(session: AsyncSession):
    """Two clinics, a doctor, a staff member, a patient and a 3-session service."""
    clinic = Clinic(name="Main Clinic", max_doctors=2, max_staff=2, max_patients=10)
    other = Clinic(name="Branch Clinic", max_doctors=5, max_staff=5, max_patients=50)
    session.add_all([clinic, other])
    await session.flush()

    doctor = User(
        first_name="Sara", last_name="Haddad", email="sara@example.com",
        role="doctor", clinic_id=clinic.id,
    )
    staff = User(
        first_name="Omar", last_name="Nasser", email="omar@example.com",
        role="staff", clinic_id=clinic.id,
    )
    patient = Patient(first_name="Lina", last_name="Khalil", clinic_id=clinic.id)
    service = Service(
        name="Physiotherapy Course",
        clinic_id=clinic.id,
        duration_minutes=30,
        sessions=_make_sessions(3),
    )
    plain = Service(name="Consultation", clinic_id=clinic.id, duration_minutes=20, sessions=[])
    session.add_all([doctor, staff, patient, service, plain])
    await session.commit()
    return {
        "clinic": clinic,
        "other_clinic": other,
        "doctor": doctor,
        "staff": staff,
        "patient": patient,
        "service": service,
        "plain_service": plain,
    }


@pytest.fixture
def add_appointment(session: AsyncSession, seed: dict):
    """Insert appointments directly, bypassing booking rules."""

    async def _add(
        session_id: str | None = "s1",
        status: str = "scheduled",
        days_ahead: int = 7,
        **overrides,
    ) -> Appointment:
        values = dict(
            patient_id=seed["patient"].id,
            doctor_id=seed["doctor"].id,
            clinic_id=seed["clinic"].id,
            service_id=seed["service"].id,
            session_id=session_id,
            appointment_date=date.today() + timedelta(days=days_ahead),
            appointment_time="10:00",
            duration_minutes=45,
            status=status,
        )
        values.update(overrides)
        appt = Appointment(**values)
        session.add(appt)
        await session.commit()
        return appt

    return _add


# ---------------------------------------------------------------------------
# API client
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def client(engine, seed, current_user):
    """AsyncClient bound to the full app using the test DB."""
    from clinic_os.api.app import create_app
    from clinic_os.api.dependencies import get_current_user
    from clinic_os.core.database import get_db

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def _override_get_db():
        async with factory() as sess:
            try:
                yield sess
                await sess.commit()
            except Exception:
                await sess.rollback()
                raise

    app = create_app()
    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_current_user] = lambda: current_user

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
