"""Leave router — apply, balances, pending queues, approve/reject."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from crm.auth.dependencies import get_current_user, require_role, role_covers
from crm.common.constants import ApprovalLevel, UserRole
from crm.common.dates import local_now
from crm.common.exceptions import ForbiddenException
from crm.database import get_db
from crm.leave.schemas import (
    LeaveApplyRequest,
    LeaveBalanceOut,
    LeaveRequestOut,
    LeaveStatusUpdate,
)
from crm.leave.service import LeaveService
from crm.realtime.dependencies import get_notifier
from crm.realtime.port import NotificationPort
from crm.users.models import User

router = APIRouter(prefix="", tags=["leave"])


# ── POST / ──────────────────────────────────────────────────────────

@router.post("", response_model=LeaveRequestOut, status_code=201)
async def apply_leave(
    body: LeaveApplyRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationPort = Depends(get_notifier),
):
    """Apply for leave. Rejected with 400 when the balance is too low."""
    user_id = body.user_id or user.id
    if user_id != user.id and not role_covers(user.role, UserRole.admin):
        raise ForbiddenException("You can only apply for leave for yourself.")
    return await LeaveService.apply_leave(db, notifier, user_id, body)


# ── GET /my/{user_id} ───────────────────────────────────────────────

@router.get("/my/{user_id}", response_model=list[LeaveRequestOut])
async def my_leaves(
    user_id: uuid.UUID,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.get_my_leaves(db, user_id)


# ── GET /balance/{user_id} ──────────────────────────────────────────

@router.get("/balance/{user_id}", response_model=Optional[LeaveBalanceOut])
async def leave_balance(
    user_id: uuid.UUID,
    year: Optional[int] = Query(None, ge=2000, le=2100),
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Remaining days per type; null counters are unbounded."""
    return await LeaveService.get_balance(db, user_id, year or local_now().year)


# ── GET /pending ────────────────────────────────────────────────────

@router.get("/pending", response_model=list[LeaveRequestOut])
async def pending_leaves(
    role: Optional[str] = Query(None),
    team_id: Optional[uuid.UUID] = Query(None),
    _: User = Depends(require_role(UserRole.team_leader)),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.get_pending_leaves(db, role=role, team_id=team_id)


# ── GET /all ────────────────────────────────────────────────────────

@router.get("/all", response_model=list[LeaveRequestOut])
async def all_leaves(
    _: User = Depends(require_role(UserRole.team_leader)),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.get_all_leaves(db)


# ── PATCH /{id}/status ──────────────────────────────────────────────

@router.patch("/{leave_id}/status", response_model=LeaveRequestOut)
async def update_leave_status(
    leave_id: uuid.UUID,
    body: LeaveStatusUpdate,
    user: User = Depends(require_role(UserRole.team_leader)),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationPort = Depends(get_notifier),
):
    """Approve or reject at the caller's rung."""
    if body.role != ApprovalLevel.completed and not role_covers(
        user.role, UserRole(body.role.value),
    ):
        raise ForbiddenException(
            f"Role '{user.role.value}' cannot act as '{body.role.value}'.",
        )
    return await LeaveService.update_leave_status(db, notifier, leave_id, body)
