"""Outbound real-time port used by services to push events."""

from __future__ import annotations

from typing import Any, Protocol, Union
import uuid

import structlog

UserKey = Union[uuid.UUID, str]

logger = structlog.get_logger(__name__)


class NotificationPort(Protocol):
    async def emit_to_user(self, user_id: UserKey, event: str, payload: Any) -> None: ...

    async def broadcast(self, event: str, payload: Any) -> None: ...


class NullPort:
    """Port that drops every event; used where no socket layer is running."""

    async def emit_to_user(self, user_id: UserKey, event: str, payload: Any) -> None:
        return None

    async def broadcast(self, event: str, payload: Any) -> None:
        return None


async def push_to_user(
    notifier: NotificationPort, user_id: UserKey, event: str, payload: Any,
) -> None:
    """Emit to one user. A failing port is logged and never raised."""
    try:
        await notifier.emit_to_user(user_id, event, payload)
    except Exception as exc:
        logger.warning("push_failed", ws_event=event, user_id=str(user_id), error=str(exc))


async def push_to_all(notifier: NotificationPort, event: str, payload: Any) -> None:
    """Broadcast. A failing port is logged and never raised."""
    try:
        await notifier.broadcast(event, payload)
    except Exception as exc:
        logger.warning("broadcast_failed", ws_event=event, error=str(exc))
