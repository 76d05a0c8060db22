"""Translate collaborator events into session status updates.

The Wacap wrapper emits global events shaped as {"sessionId": ..., ...}.
Each handler records the resulting status in the registry (which republishes
it as "session:status") and emits a more specific event for observers.
"""

from typing import Any, Callable, Mapping

from wagate.observability.context import session_scope
from wagate.observability.logging import get_logger
from wagate.observability.redaction import safe_log_context

from .models import SessionState
from .registry import SessionRegistry

logger = get_logger(__name__)

QR_CODE = "qr"
CONNECTION_UPDATE = "connection.update"
CONNECTION_OPEN = "connection.open"
CONNECTION_CLOSE = "connection.close"
SESSION_ERROR = "session.error"

_STATE_ALIASES = {
    "open": SessionState.CONNECTED,
    "connected": SessionState.CONNECTED,
    "connecting": SessionState.CONNECTING,
    "qr": SessionState.QR_PENDING,
    "qr_pending": SessionState.QR_PENDING,
    "error": SessionState.ERROR,
}


def map_collaborator_state(raw: Any) -> SessionState:
    """Map a wrapper-reported connection state to SessionState.

    Anything unrecognized (including "close") maps to DISCONNECTED.
    """
    return _STATE_ALIASES.get(str(raw or "").lower(), SessionState.DISCONNECTED)


def _error_message(error: Any) -> str | None:
    if error is None:
        return None
    if isinstance(error, Mapping):
        message = error.get("message")
        return str(message) if message is not None else None
    return str(error)


def _session_info(collaborator: Any, session_id: str) -> Mapping[str, Any] | None:
    sessions = getattr(collaborator, "sessions", None)
    info = getattr(sessions, "info", None)
    if info is None:
        return None
    return info(session_id)


class StatusEventHandler:
    """Dispatches collaborator events to registry updates."""

    def __init__(self, registry: SessionRegistry) -> None:
        self.registry = registry
        self._handlers: dict[str, Callable[[str, Mapping[str, Any]], None]] = {
            QR_CODE: self._on_qr,
            CONNECTION_UPDATE: self._on_connection_update,
            CONNECTION_OPEN: self._on_connection_open,
            CONNECTION_CLOSE: self._on_connection_close,
            SESSION_ERROR: self._on_session_error,
        }

    @property
    def event_types(self) -> list[str]:
        return list(self._handlers)

    def attach(self, collaborator: Any) -> None:
        """Subscribe to every known event on the wrapper's global emitter."""
        for event_type in self._handlers:
            collaborator.on_global(
                event_type,
                lambda data, _type=event_type: self.handle(_type, data),
            )

    def handle(self, event_type: str, data: Mapping[str, Any]) -> None:
        """Apply one collaborator event.

        Events without a sessionId and unknown event types are ignored.
        """
        handler = self._handlers.get(event_type)
        session_id = data.get("sessionId")
        if handler is None or not session_id:
            logger.debug(
                "collaborator event ignored",
                extra={"extra_fields": safe_log_context(event_type=event_type)},
            )
            return

        with session_scope(session_id):
            logger.info(
                "collaborator event",
                extra={"extra_fields": safe_log_context(event_type=event_type)},
            )
            handler(session_id, data)

    def _on_qr(self, session_id: str, data: Mapping[str, Any]) -> None:
        qr = data.get("qr")
        qr_base64 = data.get("qrBase64")
        self.registry.record_status(
            session_id,
            {"state": SessionState.QR_PENDING, "qr": qr, "qrBase64": qr_base64},
        )
        self.registry.publish(
            "session:qr", {"sessionId": session_id, "qr": qr, "qrBase64": qr_base64}
        )

    def _on_connection_update(self, session_id: str, data: Mapping[str, Any]) -> None:
        state = data.get("state") or {}
        status = map_collaborator_state(state.get("connection"))
        last_disconnect = state.get("lastDisconnect") or {}
        self.registry.record_status(
            session_id,
            {"state": status, "error": _error_message(last_disconnect.get("error"))},
        )

    def _on_connection_open(self, session_id: str, data: Mapping[str, Any]) -> None:
        info = _session_info(self.registry.get_collaborator(), session_id) or {}
        phone_number = info.get("phoneNumber")
        user_name = info.get("userName")
        self.registry.record_status(
            session_id,
            {
                "state": SessionState.CONNECTED,
                "qr": None,
                "qrBase64": None,
                "error": None,
                "phoneNumber": phone_number,
                "userName": user_name,
            },
        )
        self.registry.publish(
            "session:connected",
            {"sessionId": session_id, "phoneNumber": phone_number, "userName": user_name},
        )

    def _on_connection_close(self, session_id: str, data: Mapping[str, Any]) -> None:
        error = _error_message(data.get("error"))
        self.registry.record_status(
            session_id, {"state": SessionState.DISCONNECTED, "error": error}
        )
        self.registry.publish(
            "session:disconnected", {"sessionId": session_id, "error": error}
        )

    def _on_session_error(self, session_id: str, data: Mapping[str, Any]) -> None:
        error = _error_message(data.get("error")) or "Unknown error"
        self.registry.record_status(
            session_id, {"state": SessionState.ERROR, "error": error}
        )
        self.registry.publish("session:error", {"sessionId": session_id, "error": error})


async def sync_statuses(registry: SessionRegistry) -> int:
    """Seed the status map from the collaborator's active sessions.

    Failures are logged and swallowed; startup continues without them.

    Returns:
        Number of sessions whose status was recorded.
    """
    try:
        collaborator = registry.get_collaborator()
        session_ids = list(collaborator.sessions.list())
    except Exception:
        logger.exception("session status sync failed")
        return 0

    synced = 0
    for session_id in session_ids:
        try:
            info = _session_info(collaborator, session_id)
        except Exception:
            logger.exception("session info lookup failed")
            continue
        if not info:
            continue

        registry.record_status(
            session_id,
            {
                "state": map_collaborator_state(info.get("status")),
                "phoneNumber": info.get("phoneNumber"),
                "userName": info.get("userName"),
            },
        )
        synced += 1

    logger.info(
        "session statuses synced",
        extra={"extra_fields": safe_log_context(count=synced)},
    )
    return synced
