"""User / Team Pydantic v2 schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from crm.common.constants import Presence, UserRole, UserStatus


class UserBrief(BaseModel):
    """Minimal user info embedded in other responses."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    email: str
    role: UserRole


class UserOut(UserBrief):
    mobile: Optional[str] = None
    profile_image: Optional[str] = None
    business_account_id: Optional[uuid.UUID] = None
    team_id: Optional[uuid.UUID] = None
    status: UserStatus
    presence: Presence
    previous_presence: Optional[Presence] = None
    last_seen: Optional[datetime] = None
    last_active_at: Optional[datetime] = None
    last_message_at: Optional[datetime] = None
    created_at: datetime


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    password: str = Field(..., min_length=6)
    mobile: Optional[str] = None
    role: UserRole = UserRole.employee
    team_id: Optional[uuid.UUID] = None
    business_account_id: Optional[uuid.UUID] = None
    status: UserStatus = UserStatus.active

    @field_validator("name")
    @classmethod
    def _strip(cls, v: str) -> str:
        return v.strip()


class UserUpdate(BaseModel):
    """Partial update; a password, when given, is re-hashed."""

    name: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=6)
    mobile: Optional[str] = None
    role: Optional[UserRole] = None
    team_id: Optional[uuid.UUID] = None
    business_account_id: Optional[uuid.UUID] = None
    status: Optional[UserStatus] = None
    profile_image: Optional[str] = None


class TeamCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    team_leader_id: Optional[uuid.UUID] = None
    member_ids: list[uuid.UUID] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def _strip(cls, v: str) -> str:
        return v.strip()


class TeamUpdate(BaseModel):
    """Partial update; ``member_ids``, when given, replaces the roster."""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    team_leader_id: Optional[uuid.UUID] = None
    member_ids: Optional[list[uuid.UUID]] = None


class TeamOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    team_leader_id: Optional[uuid.UUID] = None
    created_at: datetime


class TeamDetail(TeamOut):
    team_leader: Optional[UserBrief] = None
    members: list[UserBrief] = []


class UserTransfer(BaseModel):
    """Move a user to *team_id*; null takes them out of every team."""

    team_id: Optional[uuid.UUID] = None


class PresenceUpdate(BaseModel):
    presence: Presence


class ChatUserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    email: str
    presence: Presence
    last_seen: Optional[datetime] = None
    last_active_at: Optional[datetime] = None
    last_message_at: Optional[datetime] = None
