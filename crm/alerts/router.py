"""Alerts router — a user's alert inbox."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from crm.alerts.schemas import AlertListResponse, AlertOut
from crm.alerts.service import AlertService
from crm.auth.dependencies import get_current_user
from crm.database import get_db
from crm.users.models import User

router = APIRouter(prefix="", tags=["alerts"])


# ── GET / ───────────────────────────────────────────────────────────

@router.get("", response_model=AlertListResponse)
async def list_alerts(
    user_id: Optional[uuid.UUID] = Query(None, description="Defaults to the caller"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    target = user_id or user.id
    alerts = await AlertService.list_alerts(db, target)
    return AlertListResponse(
        alerts=[AlertOut.model_validate(a) for a in alerts],
        unread=await AlertService.unread_count(db, target),
    )


# ── PUT /mark-all-read ──────────────────────────────────────────────

@router.put("/mark-all-read")
async def mark_all_read(
    user_id: Optional[uuid.UUID] = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    updated = await AlertService.mark_all_read(db, user_id or user.id)
    return {"success": True, "updated": updated}


# ── DELETE /clear ───────────────────────────────────────────────────

@router.delete("/clear")
async def clear_alerts(
    user_id: Optional[uuid.UUID] = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    deleted = await AlertService.clear_alerts(db, user_id or user.id)
    return {"success": True, "message": "Cleared", "deleted": deleted}


# ── PUT /{id}/read ──────────────────────────────────────────────────

@router.put("/{alert_id}/read", response_model=AlertOut)
async def mark_read(
    alert_id: uuid.UUID,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await AlertService.mark_read(db, alert_id)


# ── DELETE /{id} ────────────────────────────────────────────────────

@router.delete("/{alert_id}")
async def delete_alert(
    alert_id: uuid.UUID,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await AlertService.delete_alert(db, alert_id)
    return {"success": True, "message": "Alert deleted"}
