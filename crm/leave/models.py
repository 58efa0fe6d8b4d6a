"""Leave ORM models: LeaveBalance, LeaveRequest."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from crm.common.constants import (
    APPROVAL_CHAIN,
    DEFAULT_LEAVE_ALLOWANCE,
    ApprovalLevel,
    LeaveStatus,
    LeaveType,
)
from crm.database import Base, TZDateTime, enum_column, utcnow
from crm.users.models import User


def _pending_approval() -> dict[str, str]:
    return {level.value: LeaveStatus.pending.value for level in APPROVAL_CHAIN}


class LeaveBalance(Base):
    """Remaining days per leave type for one user and year.

    A NULL counter means the type is unbounded.
    """

    __tablename__ = "leave_balances"
    __table_args__ = (
        sa.UniqueConstraint("user_id", "year", name="uq_leave_balance_user_year"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    year: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    sick: Mapped[Optional[int]] = mapped_column(
        sa.Integer, default=DEFAULT_LEAVE_ALLOWANCE[LeaveType.sick],
    )
    casual: Mapped[Optional[int]] = mapped_column(
        sa.Integer, default=DEFAULT_LEAVE_ALLOWANCE[LeaveType.casual],
    )
    medical: Mapped[Optional[int]] = mapped_column(
        sa.Integer, default=DEFAULT_LEAVE_ALLOWANCE[LeaveType.medical],
    )
    paid: Mapped[Optional[int]] = mapped_column(sa.Integer)
    unpaid: Mapped[Optional[int]] = mapped_column(sa.Integer)
    created_at: Mapped[datetime] = mapped_column(TZDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        TZDateTime, default=utcnow, onupdate=utcnow,
    )

    def remaining(self, leave_type: LeaveType) -> Optional[int]:
        return getattr(self, leave_type.name)

    def set_remaining(self, leave_type: LeaveType, value: Optional[int]) -> None:
        setattr(self, leave_type.name, value)


class LeaveRequest(Base):
    __tablename__ = "leave_requests"
    __table_args__ = (
        sa.Index("ix_leave_requests_level_status", "current_level", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False, index=True,
    )
    type: Mapped[LeaveType] = mapped_column(
        enum_column(LeaveType, "leave_type"), nullable=False,
    )
    from_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    to_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    reason: Mapped[str] = mapped_column(sa.Text, nullable=False)
    status: Mapped[LeaveStatus] = mapped_column(
        enum_column(LeaveStatus, "leave_status"),
        default=LeaveStatus.pending,
        nullable=False,
    )
    # {"Team Leader": "Pending", "Admin": "Pending", "Superadmin": "Pending"}
    approval: Mapped[dict] = mapped_column(JSONB, default=_pending_approval, nullable=False)
    current_level: Mapped[ApprovalLevel] = mapped_column(
        enum_column(ApprovalLevel, "approval_level"),
        default=ApprovalLevel.team_leader,
        nullable=False,
    )
    reject_reason: Mapped[Optional[str]] = mapped_column(sa.Text)
    created_at: Mapped[datetime] = mapped_column(TZDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        TZDateTime, default=utcnow, onupdate=utcnow,
    )

    # Relationships
    employee: Mapped[Optional[User]] = relationship(
        User,
        primaryjoin="foreign(LeaveRequest.user_id) == User.id",
        viewonly=True,
        lazy="selectin",
    )

    @property
    def days(self) -> int:
        """Inclusive day count of the requested range."""
        return (self.to_date - self.from_date).days + 1
