"""Work sessions router — start/stop, EOD, history, monthly attendance."""

import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from crm.attendance.schemas import (
    EodRequest,
    MonthlyAttendance,
    SessionHistory,
    SessionResponse,
    WorkStartRequest,
    WorkStopRequest,
)
from crm.attendance.service import AttendanceService, WorkSessionService
from crm.auth.dependencies import get_current_user, require_role
from crm.common.constants import UserRole
from crm.common.dates import local_now
from crm.database import get_db
from crm.realtime.dependencies import get_notifier
from crm.realtime.port import NotificationPort
from crm.users.models import User

router = APIRouter(prefix="", tags=["work-sessions"])


# ── POST /start ─────────────────────────────────────────────────────

@router.post("/start", response_model=SessionResponse, status_code=201)
async def start_work(
    body: Optional[WorkStartRequest] = None,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationPort = Depends(get_notifier),
):
    session = await WorkSessionService.start_session(db, notifier, user, body)
    return {"session": session}


# ── POST /stop ──────────────────────────────────────────────────────

@router.post("/stop", response_model=SessionResponse)
async def stop_work(
    body: WorkStopRequest,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationPort = Depends(get_notifier),
):
    session = await WorkSessionService.stop_session(db, notifier, body.session_id)
    return {"session": session}


# ── POST /eod ───────────────────────────────────────────────────────

@router.post("/eod", response_model=SessionResponse)
async def add_eod(
    body: EodRequest,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return {"session": await WorkSessionService.add_eod(db, body)}


# ── GET /today ──────────────────────────────────────────────────────

@router.get("/today", response_model=SessionHistory)
async def all_todays_sessions(
    _: User = Depends(require_role(UserRole.team_leader)),
    db: AsyncSession = Depends(get_db),
):
    return await WorkSessionService.todays_sessions(db)


# ── GET /today/{user_id} ────────────────────────────────────────────

@router.get("/today/{user_id}", response_model=SessionHistory)
async def todays_session(
    user_id: uuid.UUID,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await WorkSessionService.todays_sessions(db, user_id)


# ── GET /range ──────────────────────────────────────────────────────

@router.get("/range", response_model=SessionHistory)
async def sessions_by_range(
    start: date = Query(...),
    end: date = Query(...),
    _: User = Depends(require_role(UserRole.team_leader)),
    db: AsyncSession = Depends(get_db),
):
    return await WorkSessionService.sessions_in_range(db, start, end)


# ── GET /attendance ─────────────────────────────────────────────────

@router.get("/attendance", response_model=MonthlyAttendance)
async def monthly_attendance(
    user_id: Optional[uuid.UUID] = Query(None, description="Defaults to the caller"),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    month: Optional[int] = Query(None, ge=1, le=12),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    today = local_now()
    return await AttendanceService.get_monthly_attendance(
        db, user_id or user.id, year or today.year, month or today.month,
    )
