"""Project and step-template Pydantic v2 schemas."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from crm.common.constants import ProjectStatus, StepStatus
from crm.users.schemas import UserBrief


# ═════════════════════════════════════════════════════════════════════
# Step templates
# ═════════════════════════════════════════════════════════════════════


class StepTemplateIn(BaseModel):
    step_name: str = Field(..., min_length=1, max_length=200)
    url: str = ""
    description: str = ""
    status: str = "Active"


class StepGroupCreate(BaseModel):
    step_type: str = Field(..., min_length=1, max_length=200)
    steps: list[StepTemplateIn] = Field(default_factory=list)


class StepGroupReplace(BaseModel):
    steps: list[StepTemplateIn] = Field(default_factory=list)


class StepTemplateOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    step_name: str
    step_type: str
    url: str
    description: str
    status: str
    order: int


class StepGroupOut(BaseModel):
    step_type: str
    steps: list[StepTemplateOut]


# ═════════════════════════════════════════════════════════════════════
# Projects
# ═════════════════════════════════════════════════════════════════════


class Attachment(BaseModel):
    filename: str
    url: str


class ProjectStepIn(BaseModel):
    step_name: str = Field(..., min_length=1, max_length=200)
    url: str = ""
    description: str = ""
    status: StepStatus = StepStatus.pending


class ProjectStepOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    step_name: str
    url: str
    description: str
    status: StepStatus
    order: int


class ProjectNoteCreate(BaseModel):
    text: str = Field(..., min_length=1)
    author: str = Field(..., min_length=1)
    timestamp: Optional[datetime] = None


class ProjectNoteOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    text: str
    author: str
    timestamp: datetime


class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    status: ProjectStatus = ProjectStatus.planned
    start_date: date
    end_date: Optional[date] = None
    account_id: uuid.UUID
    service_id: uuid.UUID
    # Template group to instantiate; defaults to the service's name.
    service_name: Optional[str] = None
    member_ids: list[uuid.UUID] = Field(default_factory=list)
    steps: list[ProjectStepIn] = Field(default_factory=list)
    attachments: list[Attachment] = Field(default_factory=list)


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    status: Optional[ProjectStatus] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    account_id: Optional[uuid.UUID] = None
    service_id: Optional[uuid.UUID] = None
    member_ids: Optional[list[uuid.UUID]] = None
    steps: Optional[list[ProjectStepIn]] = None
    attachments: Optional[list[Attachment]] = None


class ProjectOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: Optional[str] = None
    status: ProjectStatus
    start_date: date
    end_date: Optional[date] = None
    account_id: uuid.UUID
    service_id: uuid.UUID
    created_by: uuid.UUID
    members: list[UserBrief] = []
    steps: list[ProjectStepOut] = []
    notes: list[ProjectNoteOut] = []
    attachments: list[Attachment] = []
    created_at: datetime
    updated_at: datetime


class ProjectStatusCount(BaseModel):
    status: ProjectStatus
    count: int
