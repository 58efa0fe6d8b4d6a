"""Leave service layer — balance ledger and the approval state machine.

Business logic:
  - Lazily created per-year balances seeded with the default allowance
  - Apply: inclusive day count checked against the finite counter only
  - Three-rung approval chain (Team Leader → Admin → Superadmin)
  - Deduction happens exactly once, when the last rung approves
  - Every transition alerts the affected user and emits a socket event
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import Optional, Sequence

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crm.alerts.service import AlertDispatcher
from crm.common.constants import (
    APPROVAL_CHAIN,
    DEFAULT_LEAVE_ALLOWANCE,
    DISPLAY_DATE_FORMAT,
    AlertType,
    ApprovalLevel,
    LeaveStatus,
    LeaveType,
    RealtimeEvent,
    UserRole,
)
from crm.common.exceptions import (
    AlreadyTerminalException,
    BadRequestException,
    ConflictError,
    InsufficientBalanceException,
    NotFoundException,
)
from crm.leave.models import LeaveBalance, LeaveRequest
from crm.leave.schemas import LeaveApplyRequest, LeaveRequestOut, LeaveStatusUpdate
from crm.realtime.port import NotificationPort, push_to_all, push_to_user
from crm.users.models import User
from crm.users.service import UserService

logger = structlog.get_logger(__name__)

_TERMINAL = (LeaveStatus.approved, LeaveStatus.rejected)


def next_level(level: ApprovalLevel) -> ApprovalLevel:
    """The rung after *level*; Completed after the last one."""
    idx = APPROVAL_CHAIN.index(level)
    if idx + 1 < len(APPROVAL_CHAIN):
        return APPROVAL_CHAIN[idx + 1]
    return ApprovalLevel.completed


def _fmt(d: date) -> str:
    return d.strftime(DISPLAY_DATE_FORMAT)


# ═════════════════════════════════════════════════════════════════════
# LeaveService
# ═════════════════════════════════════════════════════════════════════


class LeaveService:
    """Async leave operations: balances, applications, approvals."""

    # ─────────────────────────────────────────────────────────────────
    # Balance ledger
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def get_or_create_balance(
        db: AsyncSession, user_id: uuid.UUID, year: int,
    ) -> LeaveBalance:
        result = await db.execute(
            select(LeaveBalance).where(
                LeaveBalance.user_id == user_id,
                LeaveBalance.year == year,
            )
        )
        balance = result.scalars().first()
        if balance is not None:
            return balance

        balance = LeaveBalance(user_id=user_id, year=year)
        for leave_type, allowance in DEFAULT_LEAVE_ALLOWANCE.items():
            balance.set_remaining(leave_type, allowance)
        db.add(balance)
        await db.flush()
        logger.info("leave_balance_created", user_id=str(user_id), year=year)
        return balance

    @staticmethod
    async def get_balance(
        db: AsyncSession, user_id: uuid.UUID, year: int,
    ) -> Optional[LeaveBalance]:
        result = await db.execute(
            select(LeaveBalance).where(
                LeaveBalance.user_id == user_id,
                LeaveBalance.year == year,
            )
        )
        return result.scalars().first()

    @staticmethod
    def _deduct(balance: LeaveBalance, leave_type: LeaveType, days: int) -> None:
        remaining = balance.remaining(leave_type)
        if remaining is None:
            return
        balance.set_remaining(leave_type, max(remaining - days, 0))

    # ─────────────────────────────────────────────────────────────────
    # Apply
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def apply_leave(
        db: AsyncSession,
        notifier: NotificationPort,
        user_id: uuid.UUID,
        data: LeaveApplyRequest,
    ) -> LeaveRequest:
        """Create a Pending request at the Team Leader rung.

        The balance is only checked here; nothing is deducted until the
        final approval.
        """
        employee = await UserService.get_user(db, user_id)

        days = (data.to_date - data.from_date).days + 1
        balance = await LeaveService.get_or_create_balance(
            db, employee.id, data.from_date.year,
        )
        remaining = balance.remaining(data.type)
        if remaining is not None and remaining < days:
            raise InsufficientBalanceException(data.type.value, remaining, days)

        leave = LeaveRequest(
            user_id=employee.id,
            type=data.type,
            from_date=data.from_date,
            to_date=data.to_date,
            reason=data.reason,
            status=LeaveStatus.pending,
            current_level=ApprovalLevel.team_leader,
        )
        db.add(leave)
        await db.flush()
        await db.refresh(leave, attribute_names=["employee"])

        logger.info(
            "leave_applied",
            leave_id=str(leave.id),
            user_id=str(employee.id),
            leave_type=data.type.value,
            days=days,
        )

        await AlertDispatcher.send_alert(
            db, notifier,
            employee.id,
            f"Leave Requested ({_fmt(data.from_date)} - {_fmt(data.to_date)})",
            AlertType.leave,
            leave.id,
        )

        team_leader = await UserService.find_team_leader(db, employee.team_id)
        if team_leader is not None and team_leader.id != employee.id:
            await AlertDispatcher.send_alert(
                db, notifier,
                team_leader.id,
                f"{employee.name} requested leave",
                AlertType.leave,
                leave.id,
            )

        await push_to_all(
            notifier,
            RealtimeEvent.leave_request_received.value,
            LeaveRequestOut.model_validate(leave).model_dump(mode="json"),
        )
        return leave

    # ─────────────────────────────────────────────────────────────────
    # Approval state machine
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def update_leave_status(
        db: AsyncSession,
        notifier: NotificationPort,
        leave_id: uuid.UUID,
        data: LeaveStatusUpdate,
    ) -> LeaveRequest:
        """Apply one rung's decision.

        Raises:
            NotFoundException: unknown request.
            AlreadyTerminalException: request already Approved / Rejected.
            ConflictError: the acting rung is not the request's current level.
            BadRequestException: invalid decision or missing reject reason.
        """
        leave = await LeaveService.get_leave(db, leave_id)

        if leave.status in _TERMINAL:
            raise AlreadyTerminalException("Leave request", leave.status.value)

        acting = data.role
        if acting == ApprovalLevel.completed:
            raise BadRequestException("'Completed' is not an approver role.")
        if acting != leave.current_level:
            raise ConflictError(
                "role",
                acting.value,
                detail=(
                    f"Leave request is awaiting '{leave.current_level.value}', "
                    f"not '{acting.value}'."
                ),
            )

        approval = dict(leave.approval or {})
        notify_to: Optional[uuid.UUID] = leave.user_id
        message: str

        if data.status == LeaveStatus.rejected:
            reason = (data.reject_reason or "").strip()
            if not reason:
                raise BadRequestException(
                    "A reject reason is required.",
                    errors={"reject_reason": ["This field is required when rejecting."]},
                )
            approval[acting.value] = LeaveStatus.rejected.value
            leave.status = LeaveStatus.rejected
            leave.current_level = ApprovalLevel.completed
            leave.reject_reason = reason
            message = f"❌ Leave Rejected: {reason}"

        elif data.status == LeaveStatus.approved:
            approval[acting.value] = LeaveStatus.approved.value
            following = next_level(acting)

            if following != ApprovalLevel.completed:
                leave.current_level = following
                next_user = await UserService.find_first_by_role(
                    db, UserRole(following.value),
                )
                notify_to = next_user.id if next_user else None
                message = f"{acting.value} Approved. Waiting for {following.value}"
            else:
                leave.status = LeaveStatus.approved
                leave.current_level = ApprovalLevel.completed
                balance = await LeaveService.get_or_create_balance(
                    db, leave.user_id, leave.from_date.year,
                )
                LeaveService._deduct(balance, leave.type, leave.days)
                message = "🎉 Leave Fully Approved"

        else:
            raise BadRequestException(
                "Status must be 'Approved' or 'Rejected'.",
                errors={"status": [f"'{data.status.value}' is not a decision."]},
            )

        leave.approval = approval
        await db.flush()

        logger.info(
            "leave_status_updated",
            leave_id=str(leave.id),
            role=acting.value,
            decision=data.status.value,
            current_level=leave.current_level.value,
        )

        await AlertDispatcher.send_alert(
            db, notifier, notify_to, message, AlertType.leave, leave.id,
        )
        await push_to_user(
            notifier,
            leave.user_id,
            RealtimeEvent.leave_status_update.value,
            {"leave_id": str(leave.id), "status": leave.status.value},
        )
        return leave

    # ─────────────────────────────────────────────────────────────────
    # Reads
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def get_leave(db: AsyncSession, leave_id: uuid.UUID) -> LeaveRequest:
        result = await db.execute(select(LeaveRequest).where(LeaveRequest.id == leave_id))
        leave = result.scalars().first()
        if leave is None:
            raise NotFoundException("Leave request", leave_id)
        return leave

    @staticmethod
    async def get_my_leaves(db: AsyncSession, user_id: uuid.UUID) -> Sequence[LeaveRequest]:
        result = await db.execute(
            select(LeaveRequest)
            .where(LeaveRequest.user_id == user_id)
            .order_by(LeaveRequest.created_at.desc())
        )
        return result.scalars().all()

    @staticmethod
    async def get_pending_leaves(
        db: AsyncSession,
        role: Optional[str] = None,
        team_id: Optional[uuid.UUID] = None,
    ) -> Sequence[LeaveRequest]:
        """Pending requests waiting on *role*'s rung.

        Team Leaders may narrow to their own team; unknown roles see every
        Pending request.
        """
        query = select(LeaveRequest).where(LeaveRequest.status == LeaveStatus.pending)

        if role == ApprovalLevel.team_leader.value:
            query = query.where(LeaveRequest.current_level == ApprovalLevel.team_leader)
            if team_id is not None:
                query = query.join(User, User.id == LeaveRequest.user_id).where(
                    User.team_id == team_id
                )
        elif role in (ApprovalLevel.admin.value, ApprovalLevel.superadmin.value):
            query = query.where(LeaveRequest.current_level == ApprovalLevel(role))

        result = await db.execute(query.order_by(LeaveRequest.created_at.asc()))
        return result.scalars().all()

    @staticmethod
    async def get_all_leaves(db: AsyncSession) -> Sequence[LeaveRequest]:
        result = await db.execute(
            select(LeaveRequest).order_by(LeaveRequest.created_at.desc())
        )
        return result.scalars().all()

    @staticmethod
    async def get_approved_leaves_overlapping(
        db: AsyncSession, user_id: uuid.UUID, start: date, end: date,
    ) -> Sequence[LeaveRequest]:
        """Approved requests whose range touches [start, end]."""
        result = await db.execute(
            select(LeaveRequest).where(
                LeaveRequest.user_id == user_id,
                LeaveRequest.status == LeaveStatus.approved,
                LeaveRequest.from_date <= end,
                LeaveRequest.to_date >= start,
            )
        )
        return result.scalars().all()
