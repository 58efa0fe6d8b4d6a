"""Attendance test suite — work sessions, overtime, history and monthly
reconciliation.

All instants are built in UTC; the business timezone is Asia/Kolkata
(UTC+05:30), so 09:00 local is 03:30 UTC.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone

import pytest

from crm.alerts.service import AlertService
from crm.attendance.schemas import EodRequest
from crm.attendance.service import (
    OVERTIME_REMINDER,
    OVERTIME_STOP_MESSAGE,
    AttendanceService,
    WorkSessionService,
)
from crm.common.constants import (
    ApprovalLevel,
    LeaveStatus,
    LeaveType,
    NotificationType,
    RealtimeEvent,
    UserRole,
)
from crm.common.exceptions import BadRequestException, NotFoundException
from crm.leave.models import LeaveRequest
from crm.notifications.service import NotificationService
from tests.conftest import auth_headers_for, make_user


def _utc(day: int, hour: int, minute: int = 0, month: int = 3) -> datetime:
    return datetime(2026, month, day, hour, minute, tzinfo=timezone.utc)


# 09:00 / 18:00 / 21:00 local on 2 Mar 2026
MORNING = _utc(2, 3, 30)
EVENING = _utc(2, 12, 30)
LATE = _utc(2, 15, 30)


async def _approved_leave(db, user, start: date, end: date) -> LeaveRequest:
    leave = LeaveRequest(
        user_id=user.id,
        type=LeaveType.casual,
        from_date=start,
        to_date=end,
        reason="Family function",
        status=LeaveStatus.approved,
        current_level=ApprovalLevel.completed,
    )
    db.add(leave)
    await db.flush()
    return leave


# ═════════════════════════════════════════════════════════════════════
# Start / stop
# ═════════════════════════════════════════════════════════════════════


class TestWorkSessions:

    async def test_start_records_local_day_and_alerts(self, db, notifier):
        user = await make_user(db, name="Esha")
        session = await WorkSessionService.start_session(db, notifier, user, now=MORNING)

        assert session.work_day == date(2026, 3, 2)
        assert session.name == "Esha"
        assert session.email == user.email
        assert session.logout_time is None

        alerts = await AlertService.list_alerts(db, user.id)
        assert [a.message for a in alerts] == ["Work started at 09:00:00"]

    async def test_second_start_same_day_rejected(self, db, notifier):
        user = await make_user(db)
        await WorkSessionService.start_session(db, notifier, user, now=MORNING)

        with pytest.raises(BadRequestException) as exc_info:
            await WorkSessionService.start_session(db, notifier, user, now=EVENING)
        assert exc_info.value.detail == "You have already started today!"

    async def test_next_local_day_is_allowed(self, db, notifier):
        user = await make_user(db)
        await WorkSessionService.start_session(db, notifier, user, now=MORNING)

        # 05:30 local on 3 Mar, still 2 Mar in UTC
        tomorrow = _utc(3, 0, 0)
        session = await WorkSessionService.start_session(db, notifier, user, now=tomorrow)
        assert session.work_day == date(2026, 3, 3)

    async def test_stop_computes_hours(self, db, notifier):
        user = await make_user(db)
        session = await WorkSessionService.start_session(db, notifier, user, now=MORNING)

        session = await WorkSessionService.stop_session(db, notifier, session.id, now=EVENING)

        assert session.total_hours == pytest.approx(9.0)
        messages = {a.message for a in await AlertService.list_alerts(db, user.id)}
        assert "Work stopped at 18:00:00" in messages
        assert OVERTIME_STOP_MESSAGE not in messages
        assert notifier.events(RealtimeEvent.new_notification.value) == []

    async def test_late_stop_warns_about_overtime(self, db, notifier):
        user = await make_user(db)
        session = await WorkSessionService.start_session(db, notifier, user, now=MORNING)

        await WorkSessionService.stop_session(db, notifier, session.id, now=LATE)

        messages = {a.message for a in await AlertService.list_alerts(db, user.id)}
        assert OVERTIME_STOP_MESSAGE in messages

        notifications = await NotificationService.get_notifications(db, user.id)
        assert [(n.type, n.item_id) for n in notifications] == [
            (NotificationType.stop_work_warning, session.id),
        ]
        pushed = notifier.events(RealtimeEvent.new_notification.value)
        assert pushed[0][0] == str(user.id)

    async def test_stop_twice_rejected(self, db, notifier):
        user = await make_user(db)
        session = await WorkSessionService.start_session(db, notifier, user, now=MORNING)
        await WorkSessionService.stop_session(db, notifier, session.id, now=EVENING)

        with pytest.raises(BadRequestException):
            await WorkSessionService.stop_session(db, notifier, session.id, now=LATE)

    async def test_stop_unknown_session(self, db, notifier):
        with pytest.raises(NotFoundException):
            await WorkSessionService.stop_session(db, notifier, uuid.uuid4())

    async def test_eod_keeps_omitted_fields(self, db, notifier):
        user = await make_user(db)
        session = await WorkSessionService.start_session(db, notifier, user, now=MORNING)
        account_id = uuid.uuid4()

        session = await WorkSessionService.add_eod(
            db, EodRequest(session_id=session.id, eod="Shipped banner", account_ids=[account_id]),
        )
        session = await WorkSessionService.add_eod(
            db, EodRequest(session_id=session.id, service_ids=[uuid.uuid4()]),
        )

        assert session.eod == "Shipped banner"
        assert session.account_ids == [str(account_id)]
        assert len(session.service_ids) == 1


# ═════════════════════════════════════════════════════════════════════
# Overtime reminder
# ═════════════════════════════════════════════════════════════════════


class TestOvertimeCheck:

    async def test_nothing_before_reminder_time(self, db, notifier):
        user = await make_user(db)
        await WorkSessionService.start_session(db, notifier, user, now=MORNING)

        # 19:00 local
        assert await WorkSessionService.check_overtime(db, notifier, now=_utc(2, 13, 30)) == 0

    async def test_reminds_open_sessions_once(self, db, notifier):
        working = await make_user(db)
        stopped = await make_user(db)
        await WorkSessionService.start_session(db, notifier, working, now=MORNING)
        done = await WorkSessionService.start_session(db, notifier, stopped, now=MORNING)
        await WorkSessionService.stop_session(db, notifier, done.id, now=EVENING)

        # 19:45 and 20:15 local
        assert await WorkSessionService.check_overtime(db, notifier, now=_utc(2, 14, 15)) == 1
        assert await WorkSessionService.check_overtime(db, notifier, now=_utc(2, 14, 45)) == 0

        messages = [a.message for a in await AlertService.list_alerts(db, working.id)]
        assert messages.count(OVERTIME_REMINDER) == 1
        stopped_messages = [a.message for a in await AlertService.list_alerts(db, stopped.id)]
        assert OVERTIME_REMINDER not in stopped_messages

    async def test_previous_days_are_ignored(self, db, notifier):
        user = await make_user(db)
        await WorkSessionService.start_session(db, notifier, user, now=_utc(1, 3, 30))

        assert await WorkSessionService.check_overtime(db, notifier, now=_utc(2, 14, 15)) == 0


# ═════════════════════════════════════════════════════════════════════
# History
# ═════════════════════════════════════════════════════════════════════


class TestHistory:

    async def test_todays_sessions(self, db, notifier):
        a = await make_user(db)
        b = await make_user(db)
        await WorkSessionService.start_session(db, notifier, a, now=MORNING)
        await WorkSessionService.start_session(db, notifier, b, now=EVENING)

        everyone = await WorkSessionService.todays_sessions(db, now=LATE)
        assert [d.date for d in everyone.history] == ["02-03-2026"]
        assert len(everyone.history[0].sessions) == 2

        only_b = await WorkSessionService.todays_sessions(db, b.id, now=LATE)
        assert [s.user_id for s in only_b.history[0].sessions] == [b.id]

    async def test_range_groups_by_local_day(self, db, notifier):
        user = await make_user(db)
        await WorkSessionService.start_session(db, notifier, user, now=_utc(1, 3, 30))
        await WorkSessionService.start_session(db, notifier, user, now=MORNING)
        await WorkSessionService.start_session(db, notifier, user, now=_utc(9, 3, 30))

        history = await WorkSessionService.sessions_in_range(
            db, date(2026, 3, 1), date(2026, 3, 2),
        )
        assert [d.date for d in history.history] == ["01-03-2026", "02-03-2026"]

    async def test_range_end_before_start(self, db):
        with pytest.raises(BadRequestException):
            await WorkSessionService.sessions_in_range(db, date(2026, 3, 2), date(2026, 3, 1))


# ═════════════════════════════════════════════════════════════════════
# Monthly attendance
# ═════════════════════════════════════════════════════════════════════


class TestMonthlyAttendance:

    async def test_present_leave_and_absent(self, db, notifier):
        user = await make_user(db)
        await WorkSessionService.start_session(db, notifier, user, now=MORNING)
        await WorkSessionService.start_session(db, notifier, user, now=_utc(3, 3, 30))
        await _approved_leave(db, user, date(2026, 3, 5), date(2026, 3, 6))

        report = await AttendanceService.get_monthly_attendance(db, user.id, 2026, 3)

        assert report.month == "3-2026"
        assert report.present_dates == ["2026-03-02", "2026-03-03"]
        assert report.leave_dates == ["2026-03-05", "2026-03-06"]
        assert report.total_days == 4
        assert report.absent_days == 0
        assert len(report.absent_dates) == 27
        assert "2026-03-04" in report.absent_dates

    async def test_leave_spanning_month_end_keeps_full_range(self, db):
        user = await make_user(db)
        await _approved_leave(db, user, date(2026, 3, 30), date(2026, 4, 2))

        report = await AttendanceService.get_monthly_attendance(db, user.id, 2026, 3)

        assert report.leave_dates == ["2026-03-30", "2026-03-31", "2026-04-01", "2026-04-02"]
        assert report.leave_days == 4
        assert len(report.absent_dates) == 29

    async def test_pending_leave_is_ignored(self, db):
        user = await make_user(db)
        leave = await _approved_leave(db, user, date(2026, 3, 10), date(2026, 3, 10))
        leave.status = LeaveStatus.pending
        await db.flush()

        report = await AttendanceService.get_monthly_attendance(db, user.id, 2026, 3)
        assert report.leave_dates == []

    async def test_invalid_month(self, db):
        with pytest.raises(BadRequestException):
            await AttendanceService.get_monthly_attendance(db, uuid.uuid4(), 2026, 13)


# ═════════════════════════════════════════════════════════════════════
# API
# ═════════════════════════════════════════════════════════════════════


class TestWorkSessionAPI:

    async def test_start_stop_and_eod(self, client, db):
        user = await make_user(db)
        await db.commit()
        headers = auth_headers_for(user)

        resp = await client.post("/api/v1/work-sessions/start", headers=headers)
        assert resp.status_code == 201
        session_id = resp.json()["session"]["id"]

        resp = await client.post("/api/v1/work-sessions/start", headers=headers)
        assert resp.status_code == 400

        resp = await client.post(
            "/api/v1/work-sessions/eod",
            json={"session_id": session_id, "eod": "Wrapped up"},
            headers=headers,
        )
        assert resp.status_code == 200
        assert resp.json()["session"]["eod"] == "Wrapped up"

        resp = await client.post(
            "/api/v1/work-sessions/stop", json={"session_id": session_id}, headers=headers,
        )
        assert resp.status_code == 200
        assert resp.json()["session"]["logout_time"] is not None

    async def test_all_todays_sessions_needs_team_leader(self, client, db):
        employee = await make_user(db)
        leader = await make_user(db, role=UserRole.team_leader)
        await db.commit()

        resp = await client.get(
            "/api/v1/work-sessions/today", headers=auth_headers_for(employee),
        )
        assert resp.status_code == 403

        resp = await client.get(
            "/api/v1/work-sessions/today", headers=auth_headers_for(leader),
        )
        assert resp.status_code == 200

    async def test_monthly_attendance_defaults_to_caller(self, client, db):
        user = await make_user(db)
        await db.commit()

        resp = await client.get(
            "/api/v1/work-sessions/attendance",
            params={"year": 2026, "month": 2},
            headers=auth_headers_for(user),
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["user_id"] == str(user.id)
        assert body["month"] == "2-2026"
        assert len(body["absent_dates"]) == 28
