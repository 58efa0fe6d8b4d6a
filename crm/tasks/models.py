"""Task ORM model."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from crm.common.constants import TaskStatus
from crm.database import Base, TZDateTime, enum_column, utcnow
from crm.users.models import User


class Task(Base):
    __tablename__ = "tasks"
    __table_args__ = (
        sa.Index("ix_tasks_assignee_status", "assigned_to_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    title: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(sa.Text)
    assigned_to_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    assigned_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    account_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    service_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    status: Mapped[TaskStatus] = mapped_column(
        enum_column(TaskStatus, "task_status"),
        default=TaskStatus.to_do,
        nullable=False,
    )
    assigned_date: Mapped[datetime] = mapped_column(TZDateTime, default=utcnow)
    due_date: Mapped[Optional[datetime]] = mapped_column(TZDateTime)
    # Attachment URLs
    attachments: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)
    created_at: Mapped[datetime] = mapped_column(TZDateTime, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(
        TZDateTime, default=utcnow, onupdate=utcnow,
    )

    # Relationships
    assignee: Mapped[Optional[User]] = relationship(
        User,
        primaryjoin="foreign(Task.assigned_to_id) == User.id",
        viewonly=True,
        lazy="selectin",
    )
    assigner: Mapped[Optional[User]] = relationship(
        User,
        primaryjoin="foreign(Task.assigned_by_id) == User.id",
        viewonly=True,
        lazy="selectin",
    )
