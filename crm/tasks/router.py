"""Tasks router."""

import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from crm.auth.dependencies import get_current_user
from crm.common.constants import MAX_PAGE_SIZE, TaskStatus
from crm.database import get_db
from crm.realtime.dependencies import get_notifier
from crm.realtime.port import NotificationPort
from crm.tasks.schemas import TaskCreate, TaskListResponse, TaskOut, TaskUpdate
from crm.tasks.service import TaskService
from crm.users.models import User

router = APIRouter(prefix="", tags=["tasks"])


# ── GET / ───────────────────────────────────────────────────────────

@router.get("", response_model=TaskListResponse)
async def list_tasks(
    assigned_to: Optional[uuid.UUID] = Query(None),
    assigned_by: Optional[uuid.UUID] = Query(None),
    status: Optional[TaskStatus] = Query(None),
    account_id: Optional[uuid.UUID] = Query(None),
    service_id: Optional[uuid.UUID] = Query(None),
    search: Optional[str] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(MAX_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await TaskService.list_tasks(
        db,
        assigned_to_id=assigned_to,
        assigned_by_id=assigned_by,
        status=status,
        account_id=account_id,
        service_id=service_id,
        search=search,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    )


# ── POST / ──────────────────────────────────────────────────────────

@router.post("", response_model=TaskOut, status_code=201)
async def create_task(
    body: TaskCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationPort = Depends(get_notifier),
):
    return await TaskService.create_task(db, notifier, body, user)


# ── GET /{id} ───────────────────────────────────────────────────────

@router.get("/{task_id}", response_model=TaskOut)
async def get_task(
    task_id: uuid.UUID,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await TaskService.get_task(db, task_id)


# ── PUT /{id} ───────────────────────────────────────────────────────

@router.put("/{task_id}", response_model=TaskOut)
async def update_task(
    task_id: uuid.UUID,
    body: TaskUpdate,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationPort = Depends(get_notifier),
):
    return await TaskService.update_task(db, notifier, task_id, body)


# ── DELETE /{id} ────────────────────────────────────────────────────

@router.delete("/{task_id}")
async def delete_task(
    task_id: uuid.UUID,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await TaskService.delete_task(db, task_id)
    return {"message": "Task deleted."}
