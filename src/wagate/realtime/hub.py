"""WebSocket hub - pushes session events to connected observers.

Implements the registry's BroadcastChannel. Events are sent as
{"event": ..., "data": ...}. A connection that subscribes to sessions only
receives events for those sessions; an unsubscribed connection receives
everything. Subscribing also replays the session's current status.
"""

from __future__ import annotations

import asyncio
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect

from wagate.observability.logging import get_logger
from wagate.observability.redaction import safe_log_context
from wagate.sessions.models import SessionState
from wagate.sessions.registry import SessionRegistry

logger = get_logger(__name__)


class WebSocketHub:
    """Tracks websocket connections and per-session subscriptions."""

    def __init__(self, registry: SessionRegistry | None = None) -> None:
        self.registry = registry
        self._connections: set[WebSocket] = set()
        self._rooms: dict[str, set[WebSocket]] = {}

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def subscribers(self, session_id: str) -> set[WebSocket]:
        return set(self._rooms.get(session_id, ()))

    async def _send(self, websocket: WebSocket, event: str, data: dict[str, Any]) -> bool:
        try:
            await websocket.send_json({"event": event, "data": data})
        except Exception as e:
            logger.warning(
                "websocket send failed, dropping connection",
                extra={"extra_fields": safe_log_context(event=event, error_type=type(e).__name__)},
            )
            self._forget(websocket)
            return False
        return True

    def _targets(self, payload: dict[str, Any]) -> set[WebSocket]:
        session_id = payload.get("sessionId") if isinstance(payload, dict) else None
        if not session_id:
            return set(self._connections)
        subscribed = set().union(*self._rooms.values())
        room = self._rooms.get(session_id, set())
        return room | (self._connections - subscribed)

    async def publish(self, event: str, payload: dict[str, Any]) -> None:
        """Deliver event to interested connections.

        Events carrying a sessionId go to that session's subscribers and to
        connections without any subscription. Other events go to everyone.
        """
        targets = self._targets(payload)
        if not targets:
            return
        await asyncio.gather(*(self._send(ws, event, payload) for ws in targets))

    def subscribe(self, websocket: WebSocket, session_id: str) -> None:
        self._rooms.setdefault(session_id, set()).add(websocket)

    def unsubscribe(self, websocket: WebSocket, session_id: str) -> None:
        room = self._rooms.get(session_id)
        if room is None:
            return
        room.discard(websocket)
        if not room:
            del self._rooms[session_id]

    def _forget(self, websocket: WebSocket) -> None:
        self._connections.discard(websocket)
        for session_id in list(self._rooms):
            self.unsubscribe(websocket, session_id)

    async def _replay_status(self, websocket: WebSocket, session_id: str) -> None:
        if self.registry is None:
            return
        status = self.registry.get_status(session_id)
        if status is None:
            return

        await self._send(websocket, "session:status", status.to_dict())
        if status.state == SessionState.QR_PENDING and status.metadata.get("qrBase64"):
            await self._send(
                websocket,
                "session:qr",
                {
                    "sessionId": session_id,
                    "qr": status.metadata.get("qr"),
                    "qrBase64": status.metadata["qrBase64"],
                },
            )

    async def serve(self, websocket: WebSocket) -> None:
        """Run one websocket connection until the client disconnects.

        Accepted client messages:
            {"action": "session:subscribe", "sessionId": "..."}
            {"action": "session:unsubscribe", "sessionId": "..."}
        """
        await websocket.accept()
        self._connections.add(websocket)
        logger.info(
            "websocket connected",
            extra={"extra_fields": safe_log_context(connections=self.connection_count)},
        )
        await self._send(websocket, "connected", {})

        try:
            while True:
                try:
                    message = await websocket.receive_json()
                except ValueError:
                    await self._send(websocket, "error", {"error": "invalid message"})
                    continue
                action = message.get("action") if isinstance(message, dict) else None
                session_id = message.get("sessionId") if isinstance(message, dict) else None
                if not session_id or not isinstance(session_id, str):
                    await self._send(websocket, "error", {"error": "sessionId is required"})
                    continue

                if action == "session:subscribe":
                    self.subscribe(websocket, session_id)
                    await self._replay_status(websocket, session_id)
                elif action == "session:unsubscribe":
                    self.unsubscribe(websocket, session_id)
                else:
                    await self._send(websocket, "error", {"error": "unknown action"})
        except WebSocketDisconnect:
            logger.info("websocket disconnected")
        finally:
            self._forget(websocket)
