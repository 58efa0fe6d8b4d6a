"""Calendar event service — owner-scoped CRUD with self alerts."""

from __future__ import annotations

import uuid
from typing import Sequence

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crm.alerts.service import AlertDispatcher
from crm.common.constants import AlertType
from crm.common.exceptions import BadRequestException, NotFoundException
from crm.events.models import CalendarEvent
from crm.events.schemas import EventCreate, EventUpdate
from crm.realtime.port import NotificationPort
from crm.users.models import User

logger = structlog.get_logger(__name__)

# Links that an update clears when left out.
_CLEARED_WHEN_ABSENT = ("account_id", "service_id")


def _title(event: CalendarEvent) -> str:
    return event.title or "Untitled Event"


class EventService:
    """Events belong to the user who created them; nobody else sees them."""

    @staticmethod
    async def get_event(
        db: AsyncSession, owner_id: uuid.UUID, event_id: uuid.UUID,
    ) -> CalendarEvent:
        result = await db.execute(
            select(CalendarEvent).where(
                CalendarEvent.id == event_id, CalendarEvent.user_id == owner_id,
            )
        )
        event = result.scalars().first()
        if event is None:
            raise NotFoundException("Event", event_id)
        return event

    @staticmethod
    async def list_events(db: AsyncSession, owner_id: uuid.UUID) -> Sequence[CalendarEvent]:
        result = await db.execute(
            select(CalendarEvent)
            .where(CalendarEvent.user_id == owner_id)
            .order_by(CalendarEvent.start_at.asc())
        )
        return result.scalars().all()

    @staticmethod
    async def create_event(
        db: AsyncSession,
        notifier: NotificationPort,
        owner: User,
        data: EventCreate,
    ) -> CalendarEvent:
        event = CalendarEvent(**data.model_dump(), user_id=owner.id, role=owner.role)
        db.add(event)
        await db.flush()

        logger.info("event_created", event_id=str(event.id), user_id=str(owner.id))
        await AlertDispatcher.send_alert(
            db, notifier,
            owner.id,
            f"Event created: {_title(event)}",
            AlertType.event,
            event.id,
        )
        return event

    @staticmethod
    async def update_event(
        db: AsyncSession,
        notifier: NotificationPort,
        owner: User,
        event_id: uuid.UUID,
        data: EventUpdate,
    ) -> CalendarEvent:
        event = await EventService.get_event(db, owner.id, event_id)
        changes = data.model_dump(exclude_unset=True)
        for field in _CLEARED_WHEN_ABSENT:
            changes.setdefault(field, None)
        for field, value in changes.items():
            if value is None and field in ("title", "start_at", "all_day"):
                continue
            setattr(event, field, value)

        if event.end_at is not None and event.end_at < event.start_at:
            raise BadRequestException(
                "Event cannot end before it starts.",
                errors={"end_at": ["Must not be before start_at."]},
            )
        await db.flush()

        await AlertDispatcher.send_alert(
            db, notifier,
            owner.id,
            f"Event updated: {_title(event)}",
            AlertType.event,
            event.id,
        )
        return event

    @staticmethod
    async def delete_event(
        db: AsyncSession,
        notifier: NotificationPort,
        owner: User,
        event_id: uuid.UUID,
    ) -> None:
        event = await EventService.get_event(db, owner.id, event_id)
        await db.delete(event)
        await db.flush()

        logger.info("event_deleted", event_id=str(event_id))
        await AlertDispatcher.send_alert(
            db, notifier, owner.id, "Event deleted", AlertType.event,
        )
