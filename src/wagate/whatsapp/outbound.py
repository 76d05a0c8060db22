"""Outbound WhatsApp messaging through the session collaborator.

Security: NEVER log recipients or text. Only log hashes and lengths.
"""

from dataclasses import dataclass
from typing import Any, Sequence

from wagate.observability.context import session_scope
from wagate.observability.logging import get_logger
from wagate.observability.redaction import hash_identifier, safe_log_context
from wagate.sessions.models import SessionState
from wagate.sessions.registry import SessionRegistry

from .jid import normalize, normalize_many

logger = get_logger(__name__)


class SessionNotConnectedError(RuntimeError):
    """Raised when sending through a session that is not connected."""

    def __init__(self, session_id: str, state: SessionState | None) -> None:
        current = state.value if state is not None else "unknown"
        super().__init__(f"Session is not connected. Current status: {current}")
        self.session_id = session_id
        self.state = state


@dataclass(frozen=True)
class SendReceipt:
    """Result of a successful send."""

    message_id: str | None
    timestamp: int | None


def _receipt(result: Any) -> SendReceipt:
    if not isinstance(result, dict):
        return SendReceipt(message_id=None, timestamp=None)
    key = result.get("key") or {}
    return SendReceipt(
        message_id=key.get("id"),
        timestamp=result.get("messageTimestamp"),
    )


async def send_text(
    registry: SessionRegistry,
    *,
    session_id: str,
    to: str,
    text: str,
    mentions: Sequence[str] | None = None,
) -> SendReceipt:
    """Send a text message via the collaborator.

    Args:
        registry: Registry holding the collaborator and session statuses.
        session_id: Session to send through.
        to: Recipient phone number or JID. NEVER logged.
        text: Message text. NEVER logged.
        mentions: Optional phone numbers/JIDs to mention.

    Returns:
        SendReceipt with the message id and timestamp reported by the wrapper.

    Raises:
        SessionNotConnectedError: If the session status is not connected.
        InvalidIdentifierError: If the recipient or a mention is invalid.
        NotInitializedError: If no collaborator is installed.
    """
    with session_scope(session_id):
        status = registry.get_status(session_id)
        if status is None or status.state != SessionState.CONNECTED:
            raise SessionNotConnectedError(
                session_id, status.state if status is not None else None
            )

        jid = normalize(to)
        formatted_mentions = normalize_many(mentions) if mentions else None

        log_ctx = safe_log_context(
            to_hash=hash_identifier(jid),
            text_len=len(text),
            mentions=len(formatted_mentions or []),
        )
        logger.info("sending outbound message", extra={"extra_fields": log_ctx})

        collaborator = registry.get_collaborator()
        try:
            result = await collaborator.send.text(
                session_id, jid, text, mentions=formatted_mentions
            )
        except Exception as e:
            logger.error(
                "outbound send failed",
                extra={
                    "extra_fields": safe_log_context(
                        **log_ctx, error_type=type(e).__name__
                    )
                },
            )
            raise

        logger.info("outbound message sent", extra={"extra_fields": log_ctx})
        return _receipt(result)
