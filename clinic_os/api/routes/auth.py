"""Auth routes: password login issuing a bearer token."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_os.api.responses import ok
from clinic_os.core.auth import create_access_token, verify_password
from clinic_os.core.database import get_db
from clinic_os.core.repository import UserRepository
from clinic_os.core.schemas import ApiResponse, LoginRequest, TokenResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth")


@router.post("/login", response_model=ApiResponse[TokenResponse])
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    user = await UserRepository(db).get_by_email(body.email)
    if not user or not user.password_hash or not verify_password(body.password, user.password_hash):
        logger.warning("Failed login attempt for %s", body.email)
        raise HTTPException(status_code=401, detail="Invalid email or password")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account is deactivated")

    token = create_access_token(
        str(user.id), user.role, str(user.clinic_id) if user.clinic_id else None
    )
    return ok(TokenResponse(access_token=token, role=user.role))
