"""Session context for log records - accessible across async calls."""

from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Iterator

session_id_var: ContextVar[str] = ContextVar("session_id", default="")


def get_session_id() -> str:
    """Get the WhatsApp session id bound to the current context."""
    return session_id_var.get()


def set_session_id(session_id: str) -> Token[str]:
    """Bind a WhatsApp session id to the current context."""
    return session_id_var.set(session_id)


def reset_session_id(token: Token[str]) -> None:
    """Restore the previously bound session id."""
    session_id_var.reset(token)


@contextmanager
def session_scope(session_id: str) -> Iterator[None]:
    """Bind session_id for the duration of the block.

    Example:
        with session_scope("sales-01"):
            logger.info("starting session")  # record carries sessionId
    """
    token = set_session_id(session_id)
    try:
        yield
    finally:
        reset_session_id(token)
