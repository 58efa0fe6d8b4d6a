"""Alert dispatch and alert inbox operations.

``AlertDispatcher.send_alert`` is the single entry point every other module
uses to tell a user something happened. Delivery is best-effort: the alert
row is written inside a SAVEPOINT so a failure never poisons the caller's
transaction, and socket pushes go through the injected NotificationPort.
"""

from __future__ import annotations

import uuid
from typing import Optional, Sequence

import structlog
from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from crm.alerts.models import Alert
from crm.alerts.schemas import AlertOut
from crm.common.constants import AlertType, RealtimeEvent
from crm.common.exceptions import NotFoundException
from crm.realtime.port import NotificationPort, push_to_user

logger = structlog.get_logger(__name__)


# ═════════════════════════════════════════════════════════════════════
# Dispatcher
# ═════════════════════════════════════════════════════════════════════


class AlertDispatcher:
    """Persist-then-push alert delivery that never raises."""

    @staticmethod
    async def send_alert(
        db: AsyncSession,
        notifier: NotificationPort,
        user_id: Optional[uuid.UUID],
        message: Optional[str],
        type: AlertType = AlertType.general,
        ref_id: Optional[uuid.UUID] = None,
    ) -> Optional[Alert]:
        """Create an alert for *user_id* and push ``alert_received``.

        Returns the alert, or None when skipped or when delivery failed.
        """
        if not user_id or not message:
            return None

        try:
            async with db.begin_nested():
                alert = Alert(user_id=user_id, message=message, type=type, ref_id=ref_id)
                db.add(alert)
                await db.flush()
        except Exception as exc:
            logger.error(
                "alert_persist_failed",
                user_id=str(user_id),
                alert_type=type.value,
                error=str(exc),
            )
            return None

        await push_to_user(
            notifier,
            user_id,
            RealtimeEvent.alert_received.value,
            AlertOut.model_validate(alert).model_dump(mode="json"),
        )

        logger.debug("alert_sent", user_id=str(user_id), alert_type=type.value)
        return alert


# ═════════════════════════════════════════════════════════════════════
# Inbox
# ═════════════════════════════════════════════════════════════════════


class AlertService:
    """Read / mark / clear a user's alerts."""

    @staticmethod
    async def list_alerts(db: AsyncSession, user_id: uuid.UUID) -> Sequence[Alert]:
        result = await db.execute(
            select(Alert)
            .where(Alert.user_id == user_id)
            .order_by(Alert.created_at.desc())
        )
        return result.scalars().all()

    @staticmethod
    async def unread_count(db: AsyncSession, user_id: uuid.UUID) -> int:
        result = await db.execute(
            select(func.count())
            .select_from(Alert)
            .where(Alert.user_id == user_id, Alert.is_read.is_(False))
        )
        return result.scalar_one()

    @staticmethod
    async def mark_read(db: AsyncSession, alert_id: uuid.UUID) -> Alert:
        alert = await db.get(Alert, alert_id)
        if alert is None:
            raise NotFoundException("Alert", alert_id)
        alert.is_read = True
        await db.flush()
        return alert

    @staticmethod
    async def mark_all_read(db: AsyncSession, user_id: uuid.UUID) -> int:
        result = await db.execute(
            update(Alert)
            .where(Alert.user_id == user_id, Alert.is_read.is_(False))
            .values(is_read=True)
        )
        return result.rowcount

    @staticmethod
    async def clear_alerts(db: AsyncSession, user_id: uuid.UUID) -> int:
        result = await db.execute(delete(Alert).where(Alert.user_id == user_id))
        return result.rowcount

    @staticmethod
    async def delete_alert(db: AsyncSession, alert_id: uuid.UUID) -> None:
        alert = await db.get(Alert, alert_id)
        if alert is None:
            raise NotFoundException("Alert", alert_id)
        await db.delete(alert)
        await db.flush()
