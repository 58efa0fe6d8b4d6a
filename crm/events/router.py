"""Calendar events router. Every route acts on the caller's own events."""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from crm.auth.dependencies import get_current_user
from crm.database import get_db
from crm.events.schemas import EventCreate, EventOut, EventUpdate
from crm.events.service import EventService
from crm.realtime.dependencies import get_notifier
from crm.realtime.port import NotificationPort
from crm.users.models import User

router = APIRouter(prefix="", tags=["events"])


# ── GET / ───────────────────────────────────────────────────────────

@router.get("", response_model=list[EventOut])
async def list_events(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await EventService.list_events(db, user.id)


# ── POST / ──────────────────────────────────────────────────────────

@router.post("", response_model=EventOut, status_code=201)
async def create_event(
    body: EventCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationPort = Depends(get_notifier),
):
    return await EventService.create_event(db, notifier, user, body)


# ── PUT /{id} ───────────────────────────────────────────────────────

@router.put("/{event_id}", response_model=EventOut)
async def update_event(
    event_id: uuid.UUID,
    body: EventUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationPort = Depends(get_notifier),
):
    return await EventService.update_event(db, notifier, user, event_id, body)


# ── DELETE /{id} ────────────────────────────────────────────────────

@router.delete("/{event_id}")
async def delete_event(
    event_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationPort = Depends(get_notifier),
):
    await EventService.delete_event(db, notifier, user, event_id)
    return {"message": "Event deleted"}
