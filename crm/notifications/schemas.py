"""Notification Pydantic schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from crm.common.constants import NotificationType


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    message: str
    type: NotificationType
    read: bool
    item_id: Optional[uuid.UUID] = None
    created_at: datetime


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]


class MarkReadRequest(BaseModel):
    notification_ids: list[uuid.UUID] = Field(..., min_length=1)
