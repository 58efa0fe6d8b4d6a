"""Calendar event Pydantic v2 schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from crm.common.constants import UserRole


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    start_at: datetime
    end_at: Optional[datetime] = None
    all_day: bool = False
    account_id: Optional[uuid.UUID] = None
    service_id: Optional[uuid.UUID] = None

    @model_validator(mode="after")
    def _end_after_start(self) -> "EventCreate":
        if self.end_at is not None and self.end_at < self.start_at:
            raise ValueError("end_at must not be before start_at")
        return self


class EventUpdate(BaseModel):
    """Partial update; an omitted account or service link is cleared."""

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    all_day: Optional[bool] = None
    account_id: Optional[uuid.UUID] = None
    service_id: Optional[uuid.UUID] = None


class EventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    role: Optional[UserRole] = None
    title: str
    description: Optional[str] = None
    start_at: datetime
    end_at: Optional[datetime] = None
    all_day: bool
    account_id: Optional[uuid.UUID] = None
    service_id: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime
