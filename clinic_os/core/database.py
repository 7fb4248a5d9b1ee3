"""Database engine and async session factory."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from functools import lru_cache

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from clinic_os.config import get_settings
from clinic_os.core.models import Base, User, UserRole

logger = logging.getLogger(__name__)


def get_database_url() -> str:
    return get_settings().database_url


@lru_cache
def _get_engine():
    settings = get_settings()
    if settings.is_sqlite:
        # SQLite uses a static pool; sizing arguments are rejected
        return create_async_engine(get_database_url(), echo=False)
    return create_async_engine(
        get_database_url(),
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        echo=False,
    )


@lru_cache
def _get_session_factory():
    return async_sessionmaker(_get_engine(), class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields an async session."""
    async with _get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def session_scope() -> AsyncSession:
    """Open a standalone session for CLI commands and background work."""
    return _get_session_factory()()


async def ping() -> bool:
    """Return True when the database answers a trivial query."""
    try:
        async with _get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception:
        logger.warning("Database ping failed", exc_info=True)
        return False


async def init_db() -> None:
    """Create all tables (dev only; production uses migrations)."""
    engine = _get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await seed_admin()


async def seed_admin() -> None:
    """Create the first super admin if configured and not yet present."""
    settings = get_settings()
    if not settings.first_admin_email or not settings.first_admin_password:
        return

    from clinic_os.core.auth import hash_password

    async with _get_session_factory()() as session:
        result = await session.execute(
            select(User).where(User.email == settings.first_admin_email)
        )
        if result.scalar_one_or_none():
            return

        admin = User(
            first_name="Admin",
            last_name="User",
            email=settings.first_admin_email,
            role=UserRole.super_admin.value,
            password_hash=hash_password(settings.first_admin_password),
        )
        session.add(admin)
        await session.commit()
        logger.info("Seeded admin user: %s", settings.first_admin_email)


async def dispose_engine() -> None:
    """Close pooled connections on shutdown."""
    await _get_engine().dispose()
