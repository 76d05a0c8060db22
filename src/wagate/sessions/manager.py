"""Session manager - auto-start of stored sessions and age-based cleanup.

Stored sessions come from a SessionStore (the relational layer); the store
implementation itself lives outside this package.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Protocol

from wagate.config import Settings
from wagate.observability.context import session_scope
from wagate.observability.logging import get_logger
from wagate.observability.redaction import safe_log_context

from .events import map_collaborator_state
from .models import SessionState
from .registry import SessionRegistry

logger = get_logger(__name__)

INACTIVE_STATUSES = ("disconnected", "error")


@dataclass(frozen=True)
class StoredSession:
    """A session row as persisted by the application."""

    user_id: int
    session_id: str
    created_at: datetime


class SessionStore(Protocol):
    def list_all(self) -> list[StoredSession]:
        ...

    def delete(self, user_id: int, session_id: str) -> None:
        ...


class SessionManager:
    """Restarts stored sessions on boot and deletes stale ones periodically.

    Args:
        registry: Registry holding the collaborator and status map.
        store: Persistent session rows.
        cleanup_interval: Time between cleanup passes.
        max_age: Sessions older than this are deleted. None disables.
        max_inactive: Disconnected/error sessions older than this are
            deleted. None disables.
        start_delay: Pause between consecutive session starts.
    """

    def __init__(
        self,
        registry: SessionRegistry,
        store: SessionStore,
        *,
        cleanup_interval: timedelta = timedelta(hours=1),
        max_age: timedelta | None = timedelta(days=30),
        max_inactive: timedelta | None = timedelta(days=7),
        start_delay: float = 1.0,
    ) -> None:
        self.registry = registry
        self.store = store
        self.cleanup_interval = cleanup_interval
        self.max_age = max_age
        self.max_inactive = max_inactive
        self.start_delay = start_delay
        self._cleanup_task: asyncio.Task[None] | None = None
        self._initialized = False

    @classmethod
    def from_settings(
        cls, registry: SessionRegistry, store: SessionStore, settings: Settings
    ) -> "SessionManager":
        return cls(
            registry,
            store,
            cleanup_interval=settings.cleanup_interval,
            max_age=settings.session_max_age,
            max_inactive=settings.session_max_inactive,
        )

    async def initialize(self) -> None:
        """Start stored sessions and schedule periodic cleanup. Runs once."""
        if self._initialized:
            return
        self._initialized = True

        await self.start_all()
        self._cleanup_task = asyncio.create_task(self._cleanup_loop())
        logger.info("session manager initialized")

    def stop(self) -> None:
        """Cancel the periodic cleanup."""
        if self._cleanup_task is not None:
            self._cleanup_task.cancel()
            self._cleanup_task = None
        self._initialized = False

    async def _cleanup_loop(self) -> None:
        while True:
            await asyncio.sleep(self.cleanup_interval.total_seconds())
            try:
                await self.cleanup_expired()
            except Exception:
                logger.exception("session cleanup failed")

    def _raw_status(self, session_id: str) -> str | None:
        info_fn = getattr(self.registry.get_collaborator().sessions, "info", None)
        info = info_fn(session_id) if info_fn is not None else None
        if not info:
            return None
        return info.get("status")

    def _info_state(self, session_id: str) -> SessionState | None:
        raw = self._raw_status(session_id)
        if raw is None:
            return None
        return map_collaborator_state(raw)

    async def start_all(self) -> list[str]:
        """Start every stored session that is not already connected.

        A failing session is marked as error and the loop continues.

        Returns:
            Ids of sessions that were started.
        """
        collaborator = self.registry.get_collaborator()
        sessions = self.store.list_all()
        logger.info(
            "auto-starting sessions",
            extra={"extra_fields": safe_log_context(count=len(sessions))},
        )

        started: list[str] = []
        for session in sessions:
            with session_scope(session.session_id):
                try:
                    if self._info_state(session.session_id) == SessionState.CONNECTED:
                        logger.info("session already connected, skipping")
                        continue

                    self.registry.record_status(
                        session.session_id, {"state": SessionState.CONNECTING}
                    )
                    await collaborator.sessions.start(session.session_id)
                    started.append(session.session_id)
                    await asyncio.sleep(self.start_delay)
                except Exception as e:
                    logger.exception("session start failed")
                    self.registry.record_status(
                        session.session_id,
                        {
                            "state": SessionState.ERROR,
                            "error": str(e) or "Failed to start session",
                        },
                    )

        return started

    async def _delete(self, session: StoredSession) -> bool:
        try:
            await self.registry.get_collaborator().delete_session(session.session_id)
            self.store.delete(session.user_id, session.session_id)
        except Exception:
            logger.exception("session delete failed")
            return False
        self.registry.remove_status(session.session_id)
        return True

    def _list_sessions(self) -> list[StoredSession] | None:
        try:
            return self.store.list_all()
        except Exception:
            logger.exception("session cleanup failed")
            return None

    async def cleanup_expired(self, now: datetime | None = None) -> list[str]:
        """Delete sessions created more than max_age ago.

        A failing store is logged and the pass is skipped.

        Returns:
            Ids of deleted sessions.
        """
        if not self.max_age:
            return []

        sessions = self._list_sessions()
        if sessions is None:
            return []

        now = now or datetime.now(timezone.utc)
        deleted: list[str] = []
        for session in sessions:
            age = now - session.created_at
            if age <= self.max_age:
                continue
            with session_scope(session.session_id):
                logger.info(
                    "session expired",
                    extra={"extra_fields": safe_log_context(age_days=age.days)},
                )
                if await self._delete(session):
                    deleted.append(session.session_id)
        return deleted

    async def cleanup_inactive(self, now: datetime | None = None) -> list[str]:
        """Delete sessions reported as disconnected/error older than max_inactive.

        Only the collaborator's raw "disconnected" and "error" statuses
        qualify; unrecognized statuses are kept.

        Returns:
            Ids of deleted sessions.
        """
        if not self.max_inactive:
            return []

        sessions = self._list_sessions()
        if sessions is None:
            return []

        now = now or datetime.now(timezone.utc)
        deleted: list[str] = []
        for session in sessions:
            with session_scope(session.session_id):
                try:
                    raw = self._raw_status(session.session_id)
                except Exception:
                    logger.exception("session info lookup failed")
                    continue
                if raw not in INACTIVE_STATUSES:
                    continue
                inactive = now - session.created_at
                if inactive <= self.max_inactive:
                    continue
                logger.info(
                    "session inactive, deleting",
                    extra={"extra_fields": safe_log_context(inactive_days=inactive.days)},
                )
                if await self._delete(session):
                    deleted.append(session.session_id)
        return deleted
