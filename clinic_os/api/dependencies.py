"""FastAPI auth dependencies: bearer JWT or API key, plus role checks."""

from __future__ import annotations

import hmac
import uuid
from typing import Callable

from fastapi import Depends, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_os.config import get_settings
from clinic_os.core.auth import decode_token
from clinic_os.core.database import get_db
from clinic_os.core.models import User, UserRole

ADMIN_ROLES = (UserRole.super_admin.value, UserRole.owner.value, UserRole.admin.value)
MANAGER_ROLES = ADMIN_ROLES + (UserRole.manager.value,)
CLINICAL_ROLES = MANAGER_ROLES + (UserRole.doctor.value, UserRole.staff.value)


async def _load_active_user(db: AsyncSession, user_id: str) -> User | None:
    try:
        uid = uuid.UUID(user_id)
    except ValueError:
        return None
    result = await db.execute(select(User).where(User.id == uid, User.is_active.is_(True)))
    return result.scalar_one_or_none()


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the authenticated user.

    Priority:
    1. ``Authorization: Bearer <jwt>`` → decode → load User
    2. API key (``X-API-Key``) + ``X-User-Id`` header → load User
    3. Raise 401
    """
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        claims = decode_token(auth_header[7:])
        if claims and claims.get("type") == "access" and claims.get("sub"):
            user = await _load_active_user(db, claims["sub"])
            if user:
                return user

    settings = get_settings()
    api_key = request.headers.get("X-API-Key")
    if settings.api_key and api_key and hmac.compare_digest(api_key, settings.api_key):
        user_id = request.headers.get("X-User-Id")
        if not user_id:
            raise HTTPException(status_code=400, detail="X-User-Id header required")
        user = await _load_active_user(db, user_id)
        if user:
            return user

    raise HTTPException(status_code=401, detail="Not authenticated")


def require_roles(*roles: str) -> Callable:
    """Dependency factory rejecting users whose role is not in *roles*."""

    async def _check(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise HTTPException(status_code=403, detail="Insufficient role")
        return current_user

    return _check
