"""Alert Pydantic v2 schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from crm.common.constants import AlertType


class AlertOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    message: str
    type: AlertType
    ref_id: Optional[uuid.UUID] = None
    is_read: bool
    created_at: datetime


class AlertListResponse(BaseModel):
    success: bool = True
    alerts: list[AlertOut]
    unread: int
