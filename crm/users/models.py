"""User and Team ORM models."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from crm.common.constants import Presence, UserRole, UserStatus
from crm.database import Base, TZDateTime, enum_column, utcnow


class Team(Base):
    __tablename__ = "teams"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(sa.String(100), unique=True, nullable=False)
    team_leader_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    created_at: Mapped[datetime] = mapped_column(TZDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        TZDateTime, default=utcnow, onupdate=utcnow,
    )


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    email: Mapped[str] = mapped_column(sa.String(255), unique=True, nullable=False)
    mobile: Mapped[Optional[str]] = mapped_column(sa.String(20))
    password_hash: Mapped[Optional[str]] = mapped_column(sa.String(255))
    profile_image: Mapped[Optional[str]] = mapped_column(sa.String(500))
    role: Mapped[UserRole] = mapped_column(
        enum_column(UserRole, "user_role"), default=UserRole.employee, nullable=False,
    )
    # Clients are linked to the account they log in for.
    business_account_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    team_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), index=True)
    status: Mapped[UserStatus] = mapped_column(
        enum_column(UserStatus, "user_status"), default=UserStatus.active, nullable=False,
    )
    presence: Mapped[Presence] = mapped_column(
        enum_column(Presence, "presence"), default=Presence.offline, nullable=False,
    )
    previous_presence: Mapped[Optional[Presence]] = mapped_column(
        enum_column(Presence, "presence"), default=Presence.offline,
    )
    last_seen: Mapped[Optional[datetime]] = mapped_column(TZDateTime)
    last_active_at: Mapped[Optional[datetime]] = mapped_column(TZDateTime, default=utcnow)
    last_message_at: Mapped[Optional[datetime]] = mapped_column(TZDateTime)
    created_at: Mapped[datetime] = mapped_column(TZDateTime, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(
        TZDateTime, default=utcnow, onupdate=utcnow,
    )
