"""Business account Pydantic v2 schemas.

Naming conventions:
  - *Create / *Update  → request bodies (write)
  - *Out               → response bodies (read)
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from crm.common.constants import AccountStatus, BillingCycle, FollowUpStatus, LeadType
from crm.users.schemas import UserBrief


# ═════════════════════════════════════════════════════════════════════
# Embedded / shared
# ═════════════════════════════════════════════════════════════════════


class ContactPerson(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None


class NoteCreate(BaseModel):
    text: str = Field(..., min_length=1)
    author: Optional[str] = None
    timestamp: Optional[datetime] = None


class NoteOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    text: str
    author: Optional[str] = None
    timestamp: datetime


class FollowUpCreate(BaseModel):
    date: Optional[datetime] = None
    note: Optional[str] = None
    added_by_id: Optional[uuid.UUID] = None
    status: FollowUpStatus = FollowUpStatus.pending


class FollowUpUpdate(BaseModel):
    date: Optional[datetime] = None
    note: Optional[str] = None
    status: Optional[FollowUpStatus] = None


class FollowUpOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    date: Optional[datetime] = None
    note: Optional[str] = None
    added_by_id: Optional[uuid.UUID] = None
    status: FollowUpStatus
    created_at: datetime


# ═════════════════════════════════════════════════════════════════════
# Account
# ═════════════════════════════════════════════════════════════════════


class AccountBase(BaseModel):
    contact_email: Optional[EmailStr] = None
    additional_contacts: list[ContactPerson] = Field(default_factory=list)
    gst_number: Optional[str] = None
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    pincode: Optional[str] = None
    website: Optional[str] = None
    lead_types: list[LeadType] = Field(default_factory=list)
    status: AccountStatus = AccountStatus.active
    source_type: str = "Direct"
    assigned_to_id: Optional[uuid.UUID] = None
    selected_user_id: Optional[uuid.UUID] = None
    selected_service_id: Optional[uuid.UUID] = None
    selected_plan_id: Optional[uuid.UUID] = None
    billing_cycle: BillingCycle = BillingCycle.monthly
    client_ids: list[uuid.UUID] = Field(default_factory=list)


class AccountCreate(AccountBase):
    """``owner_id`` defaults to the creating user."""

    business_name: str = Field(..., min_length=1, max_length=255)
    owner_id: Optional[uuid.UUID] = None
    contact_name: str = Field(..., min_length=1, max_length=200)
    contact_number: str = Field(..., min_length=1, max_length=30)

    @field_validator("business_name", "contact_name")
    @classmethod
    def _strip(cls, v: str) -> str:
        return v.strip()


class AccountUpdate(BaseModel):
    """Partial update, merged over the stored account before re-pricing."""

    business_name: Optional[str] = Field(None, min_length=1, max_length=255)
    owner_id: Optional[uuid.UUID] = None
    contact_name: Optional[str] = Field(None, min_length=1, max_length=200)
    contact_number: Optional[str] = Field(None, min_length=1, max_length=30)
    contact_email: Optional[EmailStr] = None
    additional_contacts: Optional[list[ContactPerson]] = None
    gst_number: Optional[str] = None
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    pincode: Optional[str] = None
    website: Optional[str] = None
    lead_types: Optional[list[LeadType]] = None
    status: Optional[AccountStatus] = None
    source_type: Optional[str] = None
    assigned_to_id: Optional[uuid.UUID] = None
    selected_user_id: Optional[uuid.UUID] = None
    selected_service_id: Optional[uuid.UUID] = None
    selected_plan_id: Optional[uuid.UUID] = None
    billing_cycle: Optional[BillingCycle] = None
    client_ids: Optional[list[uuid.UUID]] = None


class AccountOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    business_name: str
    owner_id: Optional[uuid.UUID] = None
    selected_user_id: Optional[uuid.UUID] = None
    contact_name: str
    contact_email: Optional[str] = None
    contact_number: str
    additional_contacts: list[ContactPerson]
    gst_number: Optional[str] = None
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    pincode: Optional[str] = None
    website: Optional[str] = None
    lead_types: list[str]
    status: AccountStatus
    source_type: str
    assigned_to_id: Optional[uuid.UUID] = None
    assignee: Optional[UserBrief] = None
    selected_service_id: Optional[uuid.UUID] = None
    selected_plan_id: Optional[uuid.UUID] = None
    billing_cycle: BillingCycle
    total_price: int
    gst_rate: Decimal
    client_ids: list[uuid.UUID]
    is_customer: bool
    notes: list[NoteOut]
    follow_ups: list[FollowUpOut]
    created_at: datetime
    updated_at: datetime


class AccountCounts(BaseModel):
    all: int = 0
    active: int = 0
    pipeline: int = 0
    quotations: int = 0
    customers: int = 0
    closed: int = 0
    target_leads: int = 0


class BulkStatusUpdate(BaseModel):
    ids: list[uuid.UUID] = Field(..., min_length=1)
    status: AccountStatus
