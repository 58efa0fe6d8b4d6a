"""Attendance service — work sessions, overtime reminders, monthly reconciliation.

Business logic:
  - One session per user per local calendar day
  - Stopping at or after the work-end hour raises an overtime alert and a
    STOP_WORK_WARNING notification
  - Open sessions get a single "not stopped work yet" reminder from the
    reminder time onward
  - Monthly attendance splits a month into present / on-leave / absent dates
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from itertools import groupby
from typing import Optional, Sequence

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crm.alerts.models import Alert
from crm.alerts.service import AlertDispatcher
from crm.attendance.models import WorkSession
from crm.attendance.schemas import (
    EodRequest,
    MonthlyAttendance,
    SessionDay,
    SessionHistory,
    WorkSessionOut,
    WorkStartRequest,
)
from crm.common.constants import HISTORY_DATE_FORMAT, AlertType, NotificationType
from crm.common.dates import (
    daterange,
    local_date,
    local_day_bounds,
    local_now,
    month_bounds,
    parse_hhmm,
)
from crm.common.exceptions import BadRequestException, NotFoundException
from crm.config import settings
from crm.database import utcnow
from crm.leave.service import LeaveService
from crm.notifications.service import NotificationService
from crm.realtime.port import NotificationPort
from crm.users.models import User

logger = structlog.get_logger(__name__)

OVERTIME_REMINDER = (
    "It's 7:30 PM. You have not stopped work yet. "
    "If you continue, it will be counted as overtime."
)
OVERTIME_REMINDER_MARKER = "not stopped work yet"
OVERTIME_STOP_MESSAGE = "You stopped after 8:00 PM. This will be counted as overtime."


def _clock(moment: datetime) -> str:
    return local_now(moment).strftime("%H:%M:%S")


def _group_by_day(sessions: Sequence[WorkSession]) -> SessionHistory:
    """Group sessions (already in login order) by local login day."""
    return SessionHistory(
        history=[
            SessionDay(
                date=day.strftime(HISTORY_DATE_FORMAT),
                sessions=[WorkSessionOut.model_validate(s) for s in rows],
            )
            for day, rows in groupby(sessions, key=lambda s: local_date(s.login_time))
        ]
    )


# ═════════════════════════════════════════════════════════════════════
# WorkSessionService
# ═════════════════════════════════════════════════════════════════════


class WorkSessionService:
    """Async work-session operations."""

    @staticmethod
    async def get_session(db: AsyncSession, session_id: uuid.UUID) -> WorkSession:
        session = await db.get(WorkSession, session_id)
        if session is None:
            raise NotFoundException("Work session", session_id)
        return session

    # ─────────────────────────────────────────────────────────────────
    # Start / stop / EOD
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def start_session(
        db: AsyncSession,
        notifier: NotificationPort,
        user: User,
        data: Optional[WorkStartRequest] = None,
        now: Optional[datetime] = None,
    ) -> WorkSession:
        data = data or WorkStartRequest()
        now = now or utcnow()
        user_id = data.user_id or user.id
        today = local_date(now)

        existing = await db.execute(
            select(WorkSession.id).where(
                WorkSession.user_id == user_id,
                WorkSession.work_day == today,
            )
        )
        if existing.first() is not None:
            raise BadRequestException("You have already started today!")

        session = WorkSession(
            user_id=user_id,
            name=data.name or user.name,
            email=data.email or user.email,
            login_time=now,
            work_day=today,
            total_hours=0.0,
            date=now,
        )
        db.add(session)
        await db.flush()

        logger.info("work_started", session_id=str(session.id), user_id=str(user_id))
        await AlertDispatcher.send_alert(
            db, notifier,
            user_id,
            f"Work started at {_clock(now)}",
            AlertType.work,
            session.id,
        )
        return session

    @staticmethod
    async def stop_session(
        db: AsyncSession,
        notifier: NotificationPort,
        session_id: uuid.UUID,
        now: Optional[datetime] = None,
    ) -> WorkSession:
        """Close a session and compute its hours.

        Raises:
            NotFoundException: unknown session.
            BadRequestException: session already stopped.
        """
        session = await WorkSessionService.get_session(db, session_id)
        if session.logout_time is not None:
            raise BadRequestException("Already stopped")

        now = now or utcnow()
        session.logout_time = now
        session.total_hours = (now - session.login_time).total_seconds() / 3600
        await db.flush()

        logger.info(
            "work_stopped",
            session_id=str(session.id),
            total_hours=round(session.total_hours, 2),
        )
        await AlertDispatcher.send_alert(
            db, notifier,
            session.user_id,
            f"Work stopped at {_clock(now)}",
            AlertType.work,
            session.id,
        )

        if local_now(now).hour >= settings.WORK_END_HOUR:
            await AlertDispatcher.send_alert(
                db, notifier,
                session.user_id,
                OVERTIME_STOP_MESSAGE,
                AlertType.work,
                session.id,
            )
            await NotificationService.create_notification(
                db, notifier,
                user_id=session.user_id,
                message=OVERTIME_STOP_MESSAGE,
                type=NotificationType.stop_work_warning,
                item_id=session.id,
            )
        return session

    @staticmethod
    async def add_eod(db: AsyncSession, data: EodRequest) -> WorkSession:
        """Fill in the end-of-day report; omitted fields keep their values."""
        session = await WorkSessionService.get_session(db, data.session_id)
        if data.eod:
            session.eod = data.eod
        if data.account_ids:
            session.account_ids = [str(i) for i in data.account_ids]
        if data.service_ids:
            session.service_ids = [str(i) for i in data.service_ids]
        if data.date is not None:
            session.date = data.date
        await db.flush()
        return session

    # ─────────────────────────────────────────────────────────────────
    # History
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def _between(
        db: AsyncSession,
        start: datetime,
        end: datetime,
        user_id: Optional[uuid.UUID] = None,
    ) -> Sequence[WorkSession]:
        query = select(WorkSession).where(
            WorkSession.login_time >= start,
            WorkSession.login_time < end,
        )
        if user_id is not None:
            query = query.where(WorkSession.user_id == user_id)
        result = await db.execute(query.order_by(WorkSession.login_time.asc()))
        return result.scalars().all()

    @staticmethod
    async def todays_sessions(
        db: AsyncSession,
        user_id: Optional[uuid.UUID] = None,
        now: Optional[datetime] = None,
    ) -> SessionHistory:
        """Today's sessions for one user, or for everyone when *user_id* is None."""
        start, end = local_day_bounds(local_date(now or utcnow()))
        return _group_by_day(await WorkSessionService._between(db, start, end, user_id))

    @staticmethod
    async def sessions_in_range(
        db: AsyncSession, start: date, end: date,
    ) -> SessionHistory:
        """Sessions logged in on local days *start* through *end*."""
        if end < start:
            raise BadRequestException("End date must not be before start date")
        range_start, _ = local_day_bounds(start)
        _, range_end = local_day_bounds(end)
        return _group_by_day(
            await WorkSessionService._between(db, range_start, range_end)
        )

    # ─────────────────────────────────────────────────────────────────
    # Overtime reminder (scheduled)
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def check_overtime(
        db: AsyncSession,
        notifier: NotificationPort,
        now: Optional[datetime] = None,
    ) -> int:
        """Remind every user still working today, once per session.

        Does nothing before the reminder time. Returns the number of
        reminders sent.
        """
        local = local_now(now or utcnow())
        if local.time() < parse_hhmm(settings.OVERTIME_REMINDER_TIME):
            return 0

        result = await db.execute(
            select(WorkSession).where(
                WorkSession.logout_time.is_(None),
                WorkSession.work_day == local.date(),
            )
        )
        sent = 0
        for session in result.scalars().all():
            already = await db.execute(
                select(Alert.id).where(
                    Alert.user_id == session.user_id,
                    Alert.ref_id == session.id,
                    Alert.type == AlertType.work,
                    Alert.message.ilike(f"%{OVERTIME_REMINDER_MARKER}%"),
                )
            )
            if already.first() is not None:
                continue
            alert = await AlertDispatcher.send_alert(
                db, notifier,
                session.user_id,
                OVERTIME_REMINDER,
                AlertType.work,
                session.id,
            )
            if alert is not None:
                sent += 1

        logger.info("overtime_check_done", reminders=sent)
        return sent


# ═════════════════════════════════════════════════════════════════════
# Attendance reconciliation
# ═════════════════════════════════════════════════════════════════════


class AttendanceService:
    """Monthly present / leave / absent breakdown."""

    @staticmethod
    async def get_monthly_attendance(
        db: AsyncSession, user_id: uuid.UUID, year: int, month: int,
    ) -> MonthlyAttendance:
        """Reconcile one user's month.

        Leave dates come from the full range of every approved leave that
        touches the month, so they can fall outside it. ``absent_days`` is
        ``max(total - present - leave, 0)``, which is only non-zero in
        degenerate cases; ``absent_dates`` lists the actual uncovered days.
        """
        if not 1 <= month <= 12:
            raise BadRequestException("Month must be between 1 and 12")
        first, last = month_bounds(year, month)

        range_start, _ = local_day_bounds(first)
        _, range_end = local_day_bounds(last)
        sessions = await WorkSessionService._between(db, range_start, range_end, user_id)
        present = {local_date(s.login_time) for s in sessions}

        leaves = await LeaveService.get_approved_leaves_overlapping(db, user_id, first, last)
        on_leave: set[date] = set()
        for leave in leaves:
            on_leave.update(daterange(leave.from_date, leave.to_date))

        absent = [d for d in daterange(first, last) if d not in present and d not in on_leave]
        total = len(present | on_leave)

        return MonthlyAttendance(
            user_id=user_id,
            month=f"{month}-{year}",
            total_days=total,
            present_days=len(present),
            leave_days=len(on_leave),
            absent_days=max(total - len(present) - len(on_leave), 0),
            present_dates=[d.isoformat() for d in sorted(present)],
            leave_dates=[d.isoformat() for d in sorted(on_leave)],
            absent_dates=[d.isoformat() for d in absent],
        )
