"""WebSocket endpoint: authenticates by token, joins the user's room."""

import json
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from sqlalchemy.ext.asyncio import AsyncSession

from crm.auth.dependencies import resolve_token_user
from crm.common.exceptions import UnauthorizedException
from crm.database import get_db
from crm.realtime.service import handle_client_message

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def ws_endpoint(
    websocket: WebSocket,
    token: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    if not token:
        await websocket.close(code=4401)
        return
    try:
        user = await resolve_token_user(db, token)
    except UnauthorizedException:
        await websocket.close(code=4401)
        return

    hub = websocket.app.state.notifier
    await websocket.accept()
    await hub.connect(user.id, websocket)
    logger.info("ws_connected", user_id=str(user.id))
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except ValueError:
                continue
            reply = await handle_client_message(db, hub, user, message)
            if reply is not None:
                await websocket.send_json(reply)
    except WebSocketDisconnect:
        pass
    finally:
        await hub.disconnect(user.id, websocket)
        logger.info("ws_disconnected", user_id=str(user.id))
