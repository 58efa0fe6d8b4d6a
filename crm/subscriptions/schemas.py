"""Subscription Pydantic v2 schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from crm.common.constants import BillingCycle, SubscriptionStatus


class SubscriptionCreate(BaseModel):
    # Optional so a missing reference is a 400 rather than a schema error.
    business_account_id: Optional[uuid.UUID] = None
    service_id: Optional[uuid.UUID] = None
    plan_id: Optional[uuid.UUID] = None
    billing_cycle: BillingCycle = BillingCycle.monthly
    amount_paid: Decimal = Field(Decimal("0"), ge=0)
    gst_rate: Optional[Decimal] = None
    order_id: Optional[str] = Field(None, max_length=100)
    payment_id: Optional[str] = Field(None, max_length=100)


class PlanChangeRequest(BaseModel):
    service_id: uuid.UUID
    plan_id: uuid.UUID
    changed_by: Optional[uuid.UUID] = None
    note: Optional[str] = None


class SubscriptionHistoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    previous_plan_name: Optional[str] = None
    new_plan_name: str
    changed_by: Optional[uuid.UUID] = None
    changed_at: datetime
    note: Optional[str] = None


class SubscriptionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    business_account_id: uuid.UUID
    business_name: Optional[str] = None
    service_id: uuid.UUID
    service_name: Optional[str] = None
    plan_id: Optional[uuid.UUID] = None
    plan_name: str
    plan_price_monthly: Decimal
    plan_price_yearly: Decimal
    plan_price_one_time: Decimal
    billing_cycle: BillingCycle
    amount_paid: Decimal
    gst_rate: Decimal
    total_with_gst: int
    order_id: Optional[str] = None
    payment_id: Optional[str] = None
    purchase_date: datetime
    renewal_date: Optional[datetime] = None
    status: SubscriptionStatus
    auto_renew: bool
    history: list[SubscriptionHistoryOut] = []
    created_at: datetime
    updated_at: datetime


class SubscriptionDetails(BaseModel):
    """Summary card: the subscription plus the live feature list of its plan."""

    id: uuid.UUID
    business_name: Optional[str] = None
    service_name: Optional[str] = None
    billing_cycle: BillingCycle
    status: SubscriptionStatus
    renewal_date: Optional[datetime] = None
    amount_paid: Decimal
    gst_rate: Decimal
    total_with_gst: int
    order_id: Optional[str] = None
    plan_name: str
    plan_features: list[str] = []


class SubscriptionActionResponse(BaseModel):
    message: str
    subscription: SubscriptionOut
