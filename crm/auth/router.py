"""Auth router — password login and current user profile."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from crm.auth.dependencies import get_current_user
from crm.auth.schemas import LoginRequest, TokenResponse
from crm.auth.security import create_access_token, verify_password
from crm.common.constants import UserStatus
from crm.common.exceptions import UnauthorizedException
from crm.common.rate_limit import limiter
from crm.config import settings
from crm.database import get_db
from crm.users.models import User
from crm.users.schemas import UserOut
from crm.users.service import UserService

router = APIRouter(prefix="", tags=["auth"])


# ── POST /login ─────────────────────────────────────────────────────

@router.post("/login", response_model=TokenResponse)
@limiter.limit("10/minute")
async def login(
    request: Request,
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    user = await UserService.get_by_email(db, body.email)
    if user is None or not verify_password(body.password, user.password_hash):
        raise UnauthorizedException("Invalid credentials.")
    if user.status != UserStatus.active:
        raise UnauthorizedException("User account is inactive.")

    return TokenResponse(
        access_token=create_access_token(user.id, user.role),
        expires_in=settings.JWT_EXPIRY_HOURS * 3600,
        user=UserOut.model_validate(user),
    )


# ── GET /me ─────────────────────────────────────────────────────────

@router.get("/me", response_model=UserOut)
async def me(user: User = Depends(get_current_user)):
    return user
