"""Notifications router."""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from crm.auth.dependencies import get_current_user
from crm.database import get_db
from crm.notifications.schemas import (
    MarkReadRequest,
    NotificationListResponse,
    NotificationResponse,
)
from crm.notifications.service import NotificationService
from crm.users.models import User

router = APIRouter(prefix="", tags=["notifications"])


# ── PUT /read ───────────────────────────────────────────────────────

@router.put("/read")
async def mark_as_read(
    body: MarkReadRequest,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    updated = await NotificationService.mark_as_read(db, body.notification_ids)
    return {"message": "Notifications marked as read", "updated": updated}


# ── GET /{user_id} ──────────────────────────────────────────────────

@router.get("/{user_id}", response_model=NotificationListResponse)
async def list_notifications(
    user_id: uuid.UUID,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    rows = await NotificationService.get_notifications(db, user_id)
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in rows],
    )


# ── DELETE /{id} ────────────────────────────────────────────────────

@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: uuid.UUID,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await NotificationService.delete_notification(db, notification_id)
    return {"message": "Notification deleted successfully"}
