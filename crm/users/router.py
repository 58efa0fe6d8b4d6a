"""Users and teams router."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from crm.auth.dependencies import get_current_user, require_role
from crm.common.constants import UserRole
from crm.database import get_db
from crm.realtime.dependencies import get_notifier
from crm.realtime.port import NotificationPort
from crm.realtime.service import broadcast_presence
from crm.users.models import User
from crm.users.schemas import (
    ChatUserOut,
    PresenceUpdate,
    TeamCreate,
    TeamDetail,
    TeamOut,
    TeamUpdate,
    UserCreate,
    UserOut,
    UserTransfer,
    UserUpdate,
)
from crm.users.service import UserService

router = APIRouter(prefix="", tags=["users"])
teams_router = APIRouter(prefix="", tags=["teams"])


# ── GET / ───────────────────────────────────────────────────────────

@router.get("", response_model=list[UserOut])
async def list_users(
    type: Optional[str] = Query(None, description='"eod" limits to EOD-reporting roles'),
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await UserService.list_users(db, eod_only=type == "eod")


# ── POST / ──────────────────────────────────────────────────────────

@router.post("", response_model=UserOut, status_code=201)
async def create_user(
    body: UserCreate,
    _: User = Depends(require_role(UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    return await UserService.create_user(db, body)


# ── GET /chat-list ──────────────────────────────────────────────────

@router.get("/chat-list", response_model=list[ChatUserOut])
async def chat_list(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Other users, most recent conversation first."""
    return await UserService.list_chat_users(db, current_user.id)


# ── PUT /me/presence ────────────────────────────────────────────────

@router.put("/me/presence", response_model=UserOut)
async def update_my_presence(
    body: PresenceUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationPort = Depends(get_notifier),
):
    previous = current_user.presence
    user = await UserService.update_presence(db, current_user.id, body.presence)
    await broadcast_presence(notifier, user, previous)
    return user


# ── GET /{id} ───────────────────────────────────────────────────────

@router.get("/{user_id}", response_model=UserOut)
async def get_user(
    user_id: uuid.UUID,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await UserService.get_user(db, user_id)


# ── PUT /{id} ───────────────────────────────────────────────────────

@router.put("/{user_id}", response_model=UserOut)
async def update_user(
    user_id: uuid.UUID,
    body: UserUpdate,
    _: User = Depends(require_role(UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    return await UserService.update_user(db, user_id, body)


# ── PUT /{id}/transfer ──────────────────────────────────────────────

@router.put("/{user_id}/transfer", response_model=UserOut)
async def transfer_user(
    user_id: uuid.UUID,
    body: UserTransfer,
    _: User = Depends(require_role(UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    return await UserService.transfer_user(db, user_id, body.team_id)


# ── DELETE /{id} ────────────────────────────────────────────────────

@router.delete("/{user_id}")
async def delete_user(
    user_id: uuid.UUID,
    _: User = Depends(require_role(UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    await UserService.delete_user(db, user_id)
    return {"message": "User deleted"}


# ═════════════════════════════════════════════════════════════════════
# Teams
# ═════════════════════════════════════════════════════════════════════


@teams_router.get("", response_model=list[TeamOut])
async def list_teams(
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await UserService.list_teams(db)


@teams_router.post("", response_model=TeamOut, status_code=201)
async def create_team(
    body: TeamCreate,
    _: User = Depends(require_role(UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    return await UserService.create_team(db, body)


@teams_router.get("/{team_id}", response_model=TeamDetail)
async def get_team(
    team_id: uuid.UUID,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await UserService.get_team_detail(db, team_id)


@teams_router.put("/{team_id}", response_model=TeamDetail)
async def update_team(
    team_id: uuid.UUID,
    body: TeamUpdate,
    _: User = Depends(require_role(UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    await UserService.update_team(db, team_id, body)
    return await UserService.get_team_detail(db, team_id)


@teams_router.delete("/{team_id}")
async def delete_team(
    team_id: uuid.UUID,
    _: User = Depends(require_role(UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    await UserService.delete_team(db, team_id)
    return {"message": "Team deleted successfully"}
