"""Notification service — create (with push), list, mark read, delete."""

from __future__ import annotations

import uuid
from typing import Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from crm.common.constants import NotificationType, RealtimeEvent
from crm.common.exceptions import NotFoundException
from crm.notifications.models import Notification
from crm.notifications.schemas import NotificationResponse
from crm.realtime.port import NotificationPort, push_to_user

# Inbox shows the most recent notices only.
NOTIFICATION_LIMIT = 50


class NotificationService:
    """Async notification operations."""

    @staticmethod
    async def create_notification(
        db: AsyncSession,
        notifier: NotificationPort,
        *,
        user_id: uuid.UUID,
        message: str,
        type: NotificationType = NotificationType.info,
        item_id: Optional[uuid.UUID] = None,
    ) -> Notification:
        """Create a notification, flush, and push ``new_notification``."""
        notification = Notification(
            user_id=user_id, message=message, type=type, item_id=item_id,
        )
        db.add(notification)
        await db.flush()
        await push_to_user(
            notifier,
            user_id,
            RealtimeEvent.new_notification.value,
            NotificationResponse.model_validate(notification).model_dump(mode="json"),
        )
        return notification

    @staticmethod
    async def get_notifications(
        db: AsyncSession, user_id: uuid.UUID,
    ) -> Sequence[Notification]:
        """Newest first, capped at ``NOTIFICATION_LIMIT``."""
        result = await db.execute(
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc())
            .limit(NOTIFICATION_LIMIT)
        )
        return result.scalars().all()

    @staticmethod
    async def mark_as_read(db: AsyncSession, notification_ids: list[uuid.UUID]) -> int:
        result = await db.execute(
            update(Notification)
            .where(Notification.id.in_(notification_ids))
            .values(read=True)
        )
        return result.rowcount

    @staticmethod
    async def delete_notification(db: AsyncSession, notification_id: uuid.UUID) -> None:
        notification = await db.get(Notification, notification_id)
        if notification is None:
            raise NotFoundException("Notification", notification_id)
        await db.delete(notification)
        await db.flush()
