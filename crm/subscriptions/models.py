"""Subscription ORM models: Subscription and its plan-change history."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from crm.accounts.models import BusinessAccount
from crm.catalog.models import BrandService
from crm.common.constants import BillingCycle, SubscriptionStatus
from crm.database import Base, TZDateTime, enum_column, utcnow


class Subscription(Base):
    """A sold plan. Name and prices are snapshots taken at purchase time."""

    __tablename__ = "subscriptions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    business_account_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False, index=True,
    )
    service_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    plan_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))

    plan_name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    plan_price_monthly: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), default=Decimal("0"))
    plan_price_yearly: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), default=Decimal("0"))
    plan_price_one_time: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), default=Decimal("0"))

    billing_cycle: Mapped[BillingCycle] = mapped_column(
        enum_column(BillingCycle, "billing_cycle"),
        default=BillingCycle.monthly,
        nullable=False,
    )
    amount_paid: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), default=Decimal("0"))
    gst_rate: Mapped[Decimal] = mapped_column(sa.Numeric(5, 2), default=Decimal("18"))
    total_with_gst: Mapped[int] = mapped_column(sa.Integer, default=0, nullable=False)
    order_id: Mapped[Optional[str]] = mapped_column(sa.String(100))
    payment_id: Mapped[Optional[str]] = mapped_column(sa.String(100))

    purchase_date: Mapped[datetime] = mapped_column(TZDateTime, default=utcnow)
    renewal_date: Mapped[Optional[datetime]] = mapped_column(TZDateTime, index=True)
    status: Mapped[SubscriptionStatus] = mapped_column(
        enum_column(SubscriptionStatus, "subscription_status"),
        default=SubscriptionStatus.active,
        nullable=False,
    )
    auto_renew: Mapped[bool] = mapped_column(sa.Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(TZDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        TZDateTime, default=utcnow, onupdate=utcnow,
    )

    # Relationships
    account: Mapped[Optional[BusinessAccount]] = relationship(
        BusinessAccount,
        primaryjoin="foreign(Subscription.business_account_id) == BusinessAccount.id",
        viewonly=True,
        lazy="selectin",
    )
    service: Mapped[Optional[BrandService]] = relationship(
        BrandService,
        primaryjoin="foreign(Subscription.service_id) == BrandService.id",
        viewonly=True,
        lazy="selectin",
    )
    history: Mapped[list[SubscriptionHistory]] = relationship(
        back_populates="subscription",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="SubscriptionHistory.changed_at",
    )

    @property
    def service_name(self) -> Optional[str]:
        return self.service.service_name if self.service is not None else None

    @property
    def business_name(self) -> Optional[str]:
        return self.account.business_name if self.account is not None else None


class SubscriptionHistory(Base):
    """Append-only plan change record."""

    __tablename__ = "subscription_history"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    subscription_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("subscriptions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    previous_plan_name: Mapped[Optional[str]] = mapped_column(sa.String(100))
    new_plan_name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    changed_by: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True))
    changed_at: Mapped[datetime] = mapped_column(TZDateTime, default=utcnow)
    note: Mapped[Optional[str]] = mapped_column(sa.Text)

    subscription: Mapped[Subscription] = relationship(back_populates="history")
