"""Leave Pydantic v2 schemas — request / response validation."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from crm.common.constants import ApprovalLevel, LeaveStatus, LeaveType
from crm.users.schemas import UserBrief


class LeaveApplyRequest(BaseModel):
    """Body of ``POST /leaves``. ``user_id`` defaults to the caller."""

    user_id: Optional[uuid.UUID] = None
    type: LeaveType
    from_date: date
    to_date: date
    reason: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def _check_range(self) -> "LeaveApplyRequest":
        if self.from_date > self.to_date:
            raise ValueError("from_date must be on or before to_date")
        return self


class LeaveStatusUpdate(BaseModel):
    """Body of ``PATCH /leaves/{id}/status``."""

    role: ApprovalLevel
    status: LeaveStatus
    reject_reason: Optional[str] = None


class LeaveRequestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    employee: Optional[UserBrief] = None
    type: LeaveType
    from_date: date
    to_date: date
    days: int
    reason: str
    status: LeaveStatus
    approval: dict[str, LeaveStatus]
    current_level: ApprovalLevel
    reject_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class LeaveBalanceOut(BaseModel):
    """Remaining days per type; ``None`` means unbounded."""

    model_config = ConfigDict(from_attributes=True)

    user_id: uuid.UUID
    year: int
    sick: Optional[int] = None
    casual: Optional[int] = None
    medical: Optional[int] = None
    paid: Optional[int] = None
    unpaid: Optional[int] = None
