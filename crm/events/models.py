"""Calendar event ORM model."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from crm.common.constants import UserRole
from crm.database import Base, TZDateTime, enum_column, utcnow


class CalendarEvent(Base):
    __tablename__ = "calendar_events"
    __table_args__ = (
        sa.Index("ix_calendar_events_user_start", "user_id", "start_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    # Owner's role when the event was created
    role: Mapped[Optional[UserRole]] = mapped_column(enum_column(UserRole, "user_role"))
    title: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(sa.Text)
    start_at: Mapped[datetime] = mapped_column(TZDateTime, nullable=False)
    end_at: Mapped[Optional[datetime]] = mapped_column(TZDateTime)
    all_day: Mapped[bool] = mapped_column(sa.Boolean, default=False, nullable=False)
    account_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    service_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    created_at: Mapped[datetime] = mapped_column(TZDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        TZDateTime, default=utcnow, onupdate=utcnow,
    )
