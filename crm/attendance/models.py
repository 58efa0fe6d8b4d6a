"""Attendance ORM model: one WorkSession per user per local day."""

from __future__ import annotations

import uuid
import datetime as dt
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from crm.database import Base, TZDateTime, utcnow


class WorkSession(Base):
    __tablename__ = "work_sessions"
    __table_args__ = (
        sa.UniqueConstraint("user_id", "work_day", name="uq_work_session_user_day"),
        sa.Index("ix_work_sessions_login_time", "login_time"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    email: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    login_time: Mapped[dt.datetime] = mapped_column(TZDateTime, nullable=False)
    logout_time: Mapped[Optional[dt.datetime]] = mapped_column(TZDateTime)
    # Local calendar day of login_time.
    work_day: Mapped[dt.date] = mapped_column(sa.Date, nullable=False)
    total_hours: Mapped[float] = mapped_column(sa.Float, default=0.0, nullable=False)
    eod: Mapped[str] = mapped_column(sa.Text, default="", nullable=False)
    date: Mapped[dt.datetime] = mapped_column(TZDateTime, default=utcnow)
    account_ids: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)
    service_ids: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)
