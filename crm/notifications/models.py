"""Notification ORM model — system notices such as work-stop warnings."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from crm.common.constants import NotificationType
from crm.database import Base, TZDateTime, enum_column, utcnow


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False, index=True,
    )
    message: Mapped[str] = mapped_column(sa.Text, nullable=False)
    type: Mapped[NotificationType] = mapped_column(
        enum_column(NotificationType, "notification_type"),
        default=NotificationType.info,
        nullable=False,
    )
    read: Mapped[bool] = mapped_column(sa.Boolean, default=False, nullable=False)
    # Item that triggered it, e.g. a work session.
    item_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    created_at: Mapped[datetime] = mapped_column(TZDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        TZDateTime, default=utcnow, onupdate=utcnow,
    )
