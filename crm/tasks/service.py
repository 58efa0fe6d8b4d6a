"""Task service — assignment CRUD with assignee alerts."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crm.alerts.service import AlertDispatcher
from crm.common.constants import AlertType, TaskStatus
from crm.common.exceptions import NotFoundException
from crm.common.filters import apply_filters, apply_search
from crm.common.pagination import PaginationParams, paginate
from crm.realtime.port import NotificationPort
from crm.tasks.models import Task
from crm.tasks.schemas import TaskCreate, TaskListResponse, TaskOut, TaskUpdate
from crm.users.models import User

logger = structlog.get_logger(__name__)

_KEEP_WHEN_NULL = (
    "title", "assigned_to_id", "assigned_by_id", "status", "assigned_date", "attachments",
)


def _title(task: Task) -> str:
    return task.title or "Untitled Task"


class TaskService:
    """Async task operations."""

    @staticmethod
    async def _load(db: AsyncSession, task_id: uuid.UUID) -> Optional[Task]:
        result = await db.execute(
            select(Task)
            .where(Task.id == task_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @staticmethod
    async def get_task(db: AsyncSession, task_id: uuid.UUID) -> Task:
        task = await TaskService._load(db, task_id)
        if task is None:
            raise NotFoundException("Task", task_id)
        return task

    @staticmethod
    async def list_tasks(
        db: AsyncSession,
        *,
        assigned_to_id: Optional[uuid.UUID] = None,
        assigned_by_id: Optional[uuid.UUID] = None,
        status: Optional[TaskStatus] = None,
        account_id: Optional[uuid.UUID] = None,
        service_id: Optional[uuid.UUID] = None,
        search: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        page: int = 1,
        limit: int = 100,
    ) -> TaskListResponse:
        """Newest first; ``start_date`` / ``end_date`` bound the assigned date."""
        query = apply_filters(
            select(Task),
            Task,
            {
                "assigned_to_id": assigned_to_id,
                "assigned_by_id": assigned_by_id,
                "status": status,
                "account_id": account_id,
                "service_id": service_id,
                "assigned_date__from": start_date,
                "assigned_date__to": end_date,
            },
        )
        query = apply_search(query, Task, search, ("title", "description"))

        result = await paginate(
            db,
            query.order_by(Task.created_at.desc()),
            PaginationParams(page=page, page_size=limit, sort=None),
        )
        return TaskListResponse(
            total=result.meta.total,
            page=page,
            limit=limit,
            tasks=[TaskOut.model_validate(t) for t in result.data],
        )

    @staticmethod
    async def create_task(
        db: AsyncSession,
        notifier: NotificationPort,
        data: TaskCreate,
        creator: User,
    ) -> Task:
        values = data.model_dump(exclude_none=True)
        values.setdefault("assigned_by_id", creator.id)
        task = Task(**values)
        db.add(task)
        await db.flush()

        logger.info(
            "task_created",
            task_id=str(task.id),
            assigned_to=str(task.assigned_to_id),
        )
        await AlertDispatcher.send_alert(
            db, notifier,
            task.assigned_to_id,
            f"New task assigned: {_title(task)}",
            AlertType.task,
            task.id,
        )
        return await TaskService.get_task(db, task.id)

    @staticmethod
    async def update_task(
        db: AsyncSession,
        notifier: NotificationPort,
        task_id: uuid.UUID,
        data: TaskUpdate,
    ) -> Task:
        """Apply a partial update; the original assigner is kept unless replaced."""
        task = await TaskService.get_task(db, task_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            if value is None and field in _KEEP_WHEN_NULL:
                continue
            setattr(task, field, value)
        await db.flush()

        task = await TaskService.get_task(db, task.id)
        await AlertDispatcher.send_alert(
            db, notifier,
            task.assigned_to_id,
            f"Task updated: {_title(task)}",
            AlertType.task,
            task.id,
        )
        return task

    @staticmethod
    async def delete_task(db: AsyncSession, task_id: uuid.UUID) -> None:
        task = await TaskService.get_task(db, task_id)
        await db.delete(task)
        await db.flush()
        logger.info("task_deleted", task_id=str(task_id))
