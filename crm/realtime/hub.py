"""In-memory WebSocket hub: one room per user, best-effort delivery."""

import asyncio
from typing import Any, Dict, Set

import structlog
from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

from crm.realtime.port import UserKey

logger = structlog.get_logger(__name__)


class ConnectionHub:
    def __init__(self) -> None:
        # user_id (str) -> set of WebSocket connections
        self._rooms: Dict[str, Set[WebSocket]] = {}
        self._lock = asyncio.Lock()

    async def connect(self, user_id: UserKey, ws: WebSocket) -> None:
        async with self._lock:
            self._rooms.setdefault(str(user_id), set()).add(ws)

    async def disconnect(self, user_id: UserKey, ws: WebSocket) -> None:
        async with self._lock:
            conns = self._rooms.get(str(user_id))
            if conns is not None:
                conns.discard(ws)
                if not conns:
                    self._rooms.pop(str(user_id), None)

    def is_online(self, user_id: UserKey) -> bool:
        return bool(self._rooms.get(str(user_id)))

    async def emit_to_user(self, user_id: UserKey, event: str, payload: Any) -> None:
        async with self._lock:
            targets = list(self._rooms.get(str(user_id), set()))
        await self._send(targets, event, payload)

    async def broadcast(self, event: str, payload: Any) -> None:
        async with self._lock:
            targets = [ws for conns in self._rooms.values() for ws in conns]
        await self._send(targets, event, payload)

    async def _send(self, targets: list[WebSocket], event: str, payload: Any) -> None:
        if not targets:
            return
        data = {"event": event, "data": jsonable_encoder(payload)}
        for ws in targets:
            try:
                await ws.send_json(data)
            except Exception as exc:
                # dropped; the socket's own receive loop cleans it up
                logger.debug("ws_send_failed", ws_event=event, error=str(exc))
