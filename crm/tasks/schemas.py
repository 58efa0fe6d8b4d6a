"""Task Pydantic v2 schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from crm.common.constants import TaskStatus
from crm.users.schemas import UserBrief


class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    assigned_to_id: uuid.UUID
    assigned_by_id: Optional[uuid.UUID] = None
    account_id: Optional[uuid.UUID] = None
    service_id: Optional[uuid.UUID] = None
    status: TaskStatus = TaskStatus.to_do
    assigned_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    attachments: list[str] = Field(default_factory=list)


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    assigned_to_id: Optional[uuid.UUID] = None
    assigned_by_id: Optional[uuid.UUID] = None
    account_id: Optional[uuid.UUID] = None
    service_id: Optional[uuid.UUID] = None
    status: Optional[TaskStatus] = None
    assigned_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    attachments: Optional[list[str]] = None


class TaskOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    description: Optional[str] = None
    assigned_to_id: uuid.UUID
    assignee: Optional[UserBrief] = None
    assigned_by_id: Optional[uuid.UUID] = None
    assigner: Optional[UserBrief] = None
    account_id: Optional[uuid.UUID] = None
    service_id: Optional[uuid.UUID] = None
    status: TaskStatus
    assigned_date: datetime
    due_date: Optional[datetime] = None
    attachments: list[str] = []
    created_at: datetime
    updated_at: datetime


class TaskListResponse(BaseModel):
    total: int
    page: int
    limit: int
    tasks: list[TaskOut]
