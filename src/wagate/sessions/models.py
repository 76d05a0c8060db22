"""Session status models and collaborator contracts."""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Mapping, Protocol, Sequence


class SessionState(str, Enum):
    """Connection state of one WhatsApp session."""

    CONNECTING = "connecting"
    QR_PENDING = "qr_pending"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    ERROR = "error"


@dataclass(frozen=True)
class SessionStatus:
    """Last-known status of a session.

    Attributes:
        session_id: Opaque id chosen by the session's creator.
        state: Current connection state.
        updated_at: When the last update was merged (UTC).
        metadata: Free-form fields merged from updates (qr, error, phoneNumber...).
    """

    session_id: str
    state: SessionState
    updated_at: datetime
    metadata: dict[str, Any] = field(default_factory=dict)

    def merged(
        self, update: Mapping[str, Any], now: datetime | None = None
    ) -> "SessionStatus":
        """Return a new record with update shallow-merged in.

        Keys in update overwrite existing ones; keys not mentioned persist.
        A "state" key replaces the connection state.
        """
        fields = dict(update)
        state = self.state
        if "state" in fields:
            state = SessionState(fields.pop("state"))
        return replace(
            self,
            state=state,
            updated_at=now or datetime.now(timezone.utc),
            metadata={**self.metadata, **fields},
        )

    def to_dict(self) -> dict[str, Any]:
        """Flatten for publishing to observers."""
        return {
            **self.metadata,
            "sessionId": self.session_id,
            "state": self.state.value,
            "updatedAt": self.updated_at.isoformat(),
        }


class SessionDirectory(Protocol):
    """Session operations exposed by the collaborator (``wacap.sessions``)."""

    def list(self) -> Sequence[str]:
        """Return ids of active sessions."""
        ...


class Collaborator(Protocol):
    """Handle on the messaging backend wrapper (Wacap).

    Besides init/destroy and ``sessions.list()``, callers may rely on
    ``sessions.info(id)``, ``sessions.start(id)``, ``send.text(...)`` and
    ``delete_session(id)`` where the wrapper provides them.
    """

    sessions: SessionDirectory

    def init(self) -> Awaitable[None]:
        ...

    def destroy(self) -> Awaitable[None]:
        ...


class BroadcastChannel(Protocol):
    """Real-time publish endpoint (e.g. a websocket hub)."""

    def publish(self, event: str, payload: dict[str, Any]) -> Awaitable[None] | None:
        ...
