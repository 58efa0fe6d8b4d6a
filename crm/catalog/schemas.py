"""Catalog Pydantic v2 schemas — services, plans, price quotes."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from crm.common.constants import BillingCycle


def _feature_names(value: Any) -> list[str]:
    """Accept ``["SEO"]`` or ``[{"name": "SEO"}]``."""
    names: list[str] = []
    for item in value or []:
        name = item.get("name") if isinstance(item, dict) else item
        if name:
            names.append(str(name).strip())
    return names


# ═════════════════════════════════════════════════════════════════════
# Plans
# ═════════════════════════════════════════════════════════════════════


class PlanCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    price_monthly: Decimal = Field(Decimal("0"), ge=0)
    price_yearly: Decimal = Field(Decimal("0"), ge=0)
    price_one_time: Decimal = Field(Decimal("0"), ge=0)
    script_based: bool = False
    features: list[str] = Field(default_factory=list)
    is_active: bool = True

    @field_validator("features", mode="before")
    @classmethod
    def _names(cls, v: Any) -> list[str]:
        return _feature_names(v)


class PlanUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    price_monthly: Optional[Decimal] = Field(None, ge=0)
    price_yearly: Optional[Decimal] = Field(None, ge=0)
    price_one_time: Optional[Decimal] = Field(None, ge=0)
    script_based: Optional[bool] = None
    features: Optional[list[str]] = None
    is_active: Optional[bool] = None

    @field_validator("features", mode="before")
    @classmethod
    def _names(cls, v: Any) -> Optional[list[str]]:
        return None if v is None else _feature_names(v)


class PlanOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    price_monthly: Decimal
    price_yearly: Decimal
    price_one_time: Decimal
    script_based: bool
    features: list[str]
    is_active: bool


# ═════════════════════════════════════════════════════════════════════
# Services
# ═════════════════════════════════════════════════════════════════════


class ServiceNote(BaseModel):
    text: str
    timestamp: Optional[str] = None
    author: Optional[str] = None


class BrandServiceCreate(BaseModel):
    service_name: str = Field(..., min_length=1, max_length=200)
    category: Optional[str] = None
    description: Optional[str] = None
    base_price: Optional[Decimal] = Field(None, ge=0)
    gst_rate: Decimal = Decimal("18")
    is_active: bool = True
    notes: list[ServiceNote] = Field(default_factory=list)
    plans: list[PlanCreate] = Field(default_factory=list)


class BrandServiceUpdate(BaseModel):
    service_name: Optional[str] = Field(None, min_length=1, max_length=200)
    category: Optional[str] = None
    description: Optional[str] = None
    base_price: Optional[Decimal] = Field(None, ge=0)
    gst_rate: Optional[Decimal] = None
    is_active: Optional[bool] = None


class ServiceNotesUpdate(BaseModel):
    notes: list[ServiceNote]


class BrandServiceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    service_id: str
    service_name: str
    category: Optional[str] = None
    description: Optional[str] = None
    base_price: Optional[Decimal] = None
    gst_rate: Decimal
    is_active: bool
    notes: list[ServiceNote]
    plans: list[PlanOut]
    created_at: datetime


class PriceQuote(BaseModel):
    service_id: uuid.UUID
    plan_id: Optional[uuid.UUID] = None
    billing_cycle: BillingCycle
    gst_rate: Decimal
    total_price: int
