"""Handling of client-originated socket messages."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from crm.common.constants import Presence, RealtimeEvent
from crm.common.exceptions import AppException
from crm.realtime.port import NotificationPort, push_to_all
from crm.users.models import User
from crm.users.service import UserService

logger = structlog.get_logger(__name__)


async def broadcast_presence(
    notifier: NotificationPort, user: User, previous: Optional[Presence],
) -> None:
    await push_to_all(
        notifier,
        RealtimeEvent.presence_updated.value,
        {
            "user_id": str(user.id),
            "presence": user.presence.value,
            "previous_presence": previous.value if previous else None,
            "last_seen": user.last_seen,
            "last_active_at": user.last_active_at,
        },
    )


async def handle_client_message(
    db: AsyncSession,
    notifier: NotificationPort,
    user: User,
    message: Any,
) -> dict[str, Any] | None:
    """Apply one ``{"event", "data"}`` frame from *user*.

    Returns a frame to send straight back to the caller, if any.
    Malformed frames are ignored.
    """
    if not isinstance(message, dict):
        return None
    event = message.get("event")
    data = message.get("data") or {}
    if not isinstance(data, dict):
        data = {}

    if event == "ping":
        return {"event": "pong", "data": {}}

    if event == "send_message":
        to = data.get("to")
        if not to:
            return None
        relay = {
            **data,
            "from": str(user.id),
            "sent_at": datetime.now(timezone.utc).isoformat(),
        }
        await notifier.emit_to_user(str(to), RealtimeEvent.new_message.value, relay)
        try:
            await UserService.touch_last_message(db, user.id)
            await db.commit()
        except AppException as exc:
            await db.rollback()
            logger.warning("last_message_update_failed", user_id=str(user.id), error=exc.detail)
        return None

    if event == "typing":
        to = data.get("to")
        if not to:
            return None
        await notifier.emit_to_user(
            str(to), RealtimeEvent.typing.value, {"from": str(user.id)},
        )
        return None

    if event == "presence_change":
        try:
            presence = Presence(data.get("presence"))
        except ValueError:
            return None
        try:
            previous = user.presence
            updated = await UserService.update_presence(db, user.id, presence)
            await db.commit()
        except AppException as exc:
            await db.rollback()
            logger.warning("presence_update_failed", user_id=str(user.id), error=exc.detail)
            return None
        await broadcast_presence(notifier, updated, previous)
        return None

    logger.debug("ws_unknown_event", ws_event=event, user_id=str(user.id))
    return None
