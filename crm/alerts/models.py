"""Alert ORM model — in-app alerts shown in the bell menu."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from crm.common.constants import AlertType
from crm.database import Base, TZDateTime, enum_column, utcnow


class Alert(Base):
    __tablename__ = "alerts"
    __table_args__ = (
        sa.Index("ix_alerts_user_created", "user_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    message: Mapped[str] = mapped_column(sa.Text, nullable=False)
    type: Mapped[AlertType] = mapped_column(
        enum_column(AlertType, "alert_type"), default=AlertType.general, nullable=False,
    )
    ref_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    is_read: Mapped[bool] = mapped_column(sa.Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(TZDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        TZDateTime, default=utcnow, onupdate=utcnow,
    )
