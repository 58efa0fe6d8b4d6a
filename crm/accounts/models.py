"""Business account ORM models: BusinessAccount, AccountNote, FollowUp."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from crm.common.constants import AccountStatus, BillingCycle, FollowUpStatus
from crm.database import Base, TZDateTime, enum_column, utcnow
from crm.users.models import User


class BusinessAccount(Base):
    """A lead or customer. ``is_customer`` mirrors ``status == Customer``."""

    __tablename__ = "business_accounts"
    __table_args__ = (
        sa.Index(
            "uq_business_accounts_name_ci",
            sa.func.lower(sa.text("business_name")),
            unique=True,
        ),
        sa.Index("ix_business_accounts_status", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    business_name: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    owner_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    # Fallback alert receiver.
    selected_user_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))

    contact_name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    contact_email: Mapped[Optional[str]] = mapped_column(sa.String(255))
    contact_number: Mapped[str] = mapped_column(sa.String(30), nullable=False)
    # [{"name", "email", "phone_number"}]
    additional_contacts: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)

    gst_number: Mapped[Optional[str]] = mapped_column(sa.String(20))
    address_line1: Mapped[Optional[str]] = mapped_column(sa.String(255))
    address_line2: Mapped[Optional[str]] = mapped_column(sa.String(255))
    city: Mapped[Optional[str]] = mapped_column(sa.String(100))
    state: Mapped[Optional[str]] = mapped_column(sa.String(100))
    country: Mapped[Optional[str]] = mapped_column(sa.String(100))
    pincode: Mapped[Optional[str]] = mapped_column(sa.String(10))
    website: Mapped[Optional[str]] = mapped_column(sa.String(500))
    lead_types: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)

    status: Mapped[AccountStatus] = mapped_column(
        enum_column(AccountStatus, "account_status"),
        default=AccountStatus.active,
        nullable=False,
    )
    source_type: Mapped[str] = mapped_column(sa.String(100), default="Direct", nullable=False)
    assigned_to_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), index=True,
    )

    # Pricing, stamped from the catalog on every write.
    selected_service_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    selected_plan_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    billing_cycle: Mapped[BillingCycle] = mapped_column(
        enum_column(BillingCycle, "billing_cycle"),
        default=BillingCycle.monthly,
        nullable=False,
    )
    total_price: Mapped[int] = mapped_column(sa.Integer, default=0, nullable=False)
    gst_rate: Mapped[Decimal] = mapped_column(sa.Numeric(5, 2), default=Decimal("18"))

    # Client user ids (str), in link order.
    client_ids: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)
    is_customer: Mapped[bool] = mapped_column(sa.Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(TZDateTime, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(
        TZDateTime, default=utcnow, onupdate=utcnow,
    )

    # Relationships
    assignee: Mapped[Optional[User]] = relationship(
        User,
        primaryjoin="foreign(BusinessAccount.assigned_to_id) == User.id",
        viewonly=True,
        lazy="selectin",
    )
    notes: Mapped[list[AccountNote]] = relationship(
        back_populates="account",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="AccountNote.created_at",
    )
    follow_ups: Mapped[list[FollowUp]] = relationship(
        back_populates="account",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="FollowUp.created_at",
    )

    def alert_receiver(self) -> Optional[uuid.UUID]:
        """Owner, else the first linked client, else nobody."""
        if self.owner_id:
            return self.owner_id
        if self.client_ids:
            return uuid.UUID(str(self.client_ids[0]))
        return None


class AccountNote(Base):
    __tablename__ = "account_notes"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    account_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("business_accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    text: Mapped[str] = mapped_column(sa.Text, nullable=False)
    author: Mapped[Optional[str]] = mapped_column(sa.String(200))
    timestamp: Mapped[datetime] = mapped_column(TZDateTime, default=utcnow)
    created_at: Mapped[datetime] = mapped_column(TZDateTime, default=utcnow)

    account: Mapped[BusinessAccount] = relationship(back_populates="notes")


class FollowUp(Base):
    __tablename__ = "account_follow_ups"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    account_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("business_accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    date: Mapped[Optional[datetime]] = mapped_column(TZDateTime)
    note: Mapped[Optional[str]] = mapped_column(sa.Text)
    added_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    status: Mapped[FollowUpStatus] = mapped_column(
        enum_column(FollowUpStatus, "follow_up_status"),
        default=FollowUpStatus.pending,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(TZDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        TZDateTime, default=utcnow, onupdate=utcnow,
    )

    account: Mapped[BusinessAccount] = relationship(back_populates="follow_ups")
