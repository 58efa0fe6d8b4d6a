"""Catalog ORM models: BrandService and its pricing Plans."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from crm.database import Base, TZDateTime, utcnow


def _public_service_id() -> str:
    return str(uuid.uuid4())


class BrandService(Base):
    __tablename__ = "brand_services"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    # Public identifier shown to clients.
    service_id: Mapped[str] = mapped_column(
        sa.String(36), unique=True, nullable=False, default=_public_service_id,
    )
    service_name: Mapped[str] = mapped_column(sa.String(200), nullable=False, index=True)
    category: Mapped[Optional[str]] = mapped_column(sa.String(100))
    description: Mapped[Optional[str]] = mapped_column(sa.Text)
    base_price: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(12, 2))
    gst_rate: Mapped[Decimal] = mapped_column(sa.Numeric(5, 2), default=Decimal("18"))
    is_active: Mapped[bool] = mapped_column(sa.Boolean, default=True, nullable=False)
    # [{"text": ..., "timestamp": ..., "author": ...}], replaced wholesale.
    notes: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)
    created_at: Mapped[datetime] = mapped_column(TZDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        TZDateTime, default=utcnow, onupdate=utcnow,
    )

    # Relationships
    plans: Mapped[list[Plan]] = relationship(
        back_populates="service",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="Plan.created_at",
    )

    def find_plan(self, plan_id: Optional[uuid.UUID | str]) -> Optional[Plan]:
        if not plan_id:
            return None
        key = str(plan_id)
        return next((p for p in self.plans if str(p.id) == key), None)


class Plan(Base):
    __tablename__ = "service_plans"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    service_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("brand_services.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    price_monthly: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), default=Decimal("0"))
    price_yearly: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), default=Decimal("0"))
    price_one_time: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), default=Decimal("0"))
    script_based: Mapped[bool] = mapped_column(sa.Boolean, default=False, nullable=False)
    # Feature names, in display order.
    features: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)
    is_active: Mapped[bool] = mapped_column(sa.Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(TZDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        TZDateTime, default=utcnow, onupdate=utcnow,
    )

    # Relationships
    service: Mapped[BrandService] = relationship(back_populates="plans")
