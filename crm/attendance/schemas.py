"""Attendance Pydantic v2 schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class WorkStartRequest(BaseModel):
    # Defaults to the caller's own id / name / email.
    user_id: Optional[uuid.UUID] = None
    name: Optional[str] = Field(None, max_length=200)
    email: Optional[EmailStr] = None


class WorkStopRequest(BaseModel):
    session_id: uuid.UUID


class EodRequest(BaseModel):
    session_id: uuid.UUID
    eod: Optional[str] = None
    account_ids: Optional[list[uuid.UUID]] = None
    service_ids: Optional[list[uuid.UUID]] = None
    date: Optional[datetime] = None


class WorkSessionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    name: str
    email: str
    login_time: datetime
    logout_time: Optional[datetime] = None
    total_hours: float
    eod: str
    date: datetime
    account_ids: list[uuid.UUID] = []
    service_ids: list[uuid.UUID] = []


class SessionResponse(BaseModel):
    session: WorkSessionOut


class SessionDay(BaseModel):
    date: str  # DD-MM-YYYY
    sessions: list[WorkSessionOut]


class SessionHistory(BaseModel):
    history: list[SessionDay]


class MonthlyAttendance(BaseModel):
    user_id: uuid.UUID
    month: str  # M-YYYY
    total_days: int
    present_days: int
    leave_days: int
    absent_days: int
    present_dates: list[str]
    leave_dates: list[str]
    absent_dates: list[str]
