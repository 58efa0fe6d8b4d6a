"""Auth dependencies — JWT validation, role enforcement."""

from __future__ import annotations

import uuid
from typing import Callable

from fastapi import Depends, Request
from jose import ExpiredSignatureError, JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from crm.auth.security import decode_access_token
from crm.common.constants import UserRole, UserStatus
from crm.common.exceptions import ForbiddenException, UnauthorizedException
from crm.database import get_db
from crm.users.models import User

# Role hierarchy: each role implicitly includes lower roles.
# Clients sit outside the staff ladder.
_ROLE_HIERARCHY: dict[UserRole, set[UserRole]] = {
    UserRole.superadmin: {
        UserRole.superadmin, UserRole.admin, UserRole.team_leader, UserRole.employee,
    },
    UserRole.admin: {UserRole.admin, UserRole.team_leader, UserRole.employee},
    UserRole.team_leader: {UserRole.team_leader, UserRole.employee},
    UserRole.employee: {UserRole.employee},
    UserRole.client: {UserRole.client},
}


def _extract_bearer(request: Request) -> str:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise UnauthorizedException("Missing or invalid Authorization header.")
    return auth_header[7:]


async def resolve_token_user(db: AsyncSession, token: str) -> User:
    """Decode *token* and load its active user. Shared by HTTP and WebSocket auth."""
    try:
        payload = decode_access_token(token)
    except ExpiredSignatureError:
        raise UnauthorizedException("Token has expired.")
    except JWTError:
        raise UnauthorizedException("Invalid token.")

    if payload.get("type") != "access":
        raise UnauthorizedException("Invalid token type.")

    try:
        user_id = uuid.UUID(payload["sub"])
    except (KeyError, ValueError):
        raise UnauthorizedException("Invalid token subject.")

    user = await db.get(User, user_id)
    if user is None or user.status != UserStatus.active:
        raise UnauthorizedException("User account is inactive or not found.")
    return user


# ── Core dependency ─────────────────────────────────────────────────

async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    """Validate the bearer JWT and return the authenticated User."""
    user = await resolve_token_user(db, _extract_bearer(request))
    request.state.user_role = user.role
    return user


# ── Role-based dependency ───────────────────────────────────────────

def require_role(*allowed_roles: UserRole) -> Callable:
    """Return a FastAPI dependency that enforces role membership.

    Respects hierarchy — e.g. Superadmin can access Admin endpoints.
    """

    async def _check(user: User = Depends(get_current_user)) -> User:
        effective_roles = _ROLE_HIERARCHY.get(user.role, {user.role})
        if not effective_roles.intersection(allowed_roles):
            raise ForbiddenException(
                detail=(
                    f"Role '{user.role.value}' is not permitted. "
                    f"Required: {[r.value for r in allowed_roles]}."
                ),
            )
        return user

    return _check


def role_covers(user_role: UserRole, required: UserRole) -> bool:
    """True when *user_role* may act as *required*."""
    return required in _ROLE_HIERARCHY.get(user_role, {user_role})
