"""Session registry - owns the collaborator handle and per-session status.

One registry instance per process in production; tests create their own so
state never leaks between them.

Thread safety: status and handle mutations are guarded by a registry-scoped
lock, so the registry is also safe when driven from worker threads.
"""

from __future__ import annotations

import asyncio
import inspect
import threading
import weakref
from datetime import datetime, timezone
from typing import Any, Generic, Mapping, TypeVar

from wagate.observability.logging import get_logger
from wagate.observability.redaction import safe_log_context

from .models import BroadcastChannel, Collaborator, SessionState, SessionStatus

logger = get_logger(__name__)

STATUS_EVENT = "session:status"

C = TypeVar("C", bound=Collaborator)


class NotInitializedError(RuntimeError):
    """Raised when the collaborator is accessed before installation."""

    def __init__(self) -> None:
        super().__init__("Wacap collaborator not initialized. Call initialize() first.")


class SessionRegistry(Generic[C]):
    """Holds the single collaborator handle and the session status map.

    The handle is installed at most once; a new one can only be installed
    after teardown() has completed.
    """

    def __init__(self, channel: BroadcastChannel | None = None) -> None:
        self._lock = threading.Lock()
        self._init_lock = asyncio.Lock()
        self._collaborator: C | None = None
        self._statuses: dict[str, SessionStatus] = {}
        self._channel_ref: weakref.ReferenceType[BroadcastChannel] | None = None
        self._pending_publishes: set[asyncio.Task[Any]] = set()
        if channel is not None:
            self.attach_channel(channel)

    # -- collaborator -----------------------------------------------------

    def set_collaborator(self, handle: C) -> C:
        """Install the process-wide collaborator handle.

        Idempotent: if a handle is already installed it is returned and the
        new one is ignored.

        Returns:
            The installed handle.
        """
        with self._lock:
            if self._collaborator is None:
                self._collaborator = handle
                logger.info("collaborator installed")
            return self._collaborator

    async def initialize(self, handle: C) -> C:
        """Install handle and await its init() exactly once.

        Concurrent first-callers all receive the same, initialized handle.
        If set_collaborator() installs another handle while init() is
        pending, that handle wins and this one is destroyed, so at most one
        live handle exists.

        Returns:
            The installed handle (the first one, when already initialized).
        """
        async with self._init_lock:
            if self._collaborator is not None:
                return self._collaborator

            await handle.init()
            installed = self.set_collaborator(handle)
            if installed is not handle:
                logger.warning("collaborator installed during init, destroying redundant handle")
                await handle.destroy()
            return installed

    def get_collaborator(self) -> C:
        """Return the installed handle.

        Raises:
            NotInitializedError: If no handle has been installed.
        """
        handle = self._collaborator
        if handle is None:
            raise NotInitializedError()
        return handle

    def is_initialized(self) -> bool:
        return self._collaborator is not None

    async def teardown(self) -> None:
        """Destroy the installed handle and clear it. No-op if absent.

        Callers must await completion before installing a new handle.
        """
        handle = self._collaborator
        if handle is None:
            return

        await handle.destroy()

        with self._lock:
            if self._collaborator is handle:
                self._collaborator = None
        logger.info("collaborator destroyed")

    # -- broadcast channel ------------------------------------------------

    def attach_channel(self, channel: BroadcastChannel) -> None:
        """Hold a weak reference to channel for status republishing."""
        self._channel_ref = weakref.ref(channel)

    def detach_channel(self) -> None:
        self._channel_ref = None

    @property
    def channel(self) -> BroadcastChannel | None:
        if self._channel_ref is None:
            return None
        return self._channel_ref()

    def publish(self, event: str, payload: dict[str, Any]) -> None:
        """Fire-and-forget publish to the attached channel.

        Failures are logged, never raised. Awaitable results are scheduled on
        the running loop; without a running loop they are discarded.
        """
        channel = self.channel
        if channel is None:
            return

        try:
            result = channel.publish(event, payload)
        except Exception as e:
            self._log_publish_failure(event, e)
            return

        if not inspect.isawaitable(result):
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if inspect.iscoroutine(result):
                result.close()
            logger.warning(
                "publish skipped, no running event loop",
                extra={"extra_fields": safe_log_context(event=event)},
            )
            return

        task = loop.create_task(self._await_publish(event, result))
        self._pending_publishes.add(task)
        task.add_done_callback(self._pending_publishes.discard)

    async def _await_publish(self, event: str, awaitable: Any) -> None:
        try:
            await awaitable
        except Exception as e:
            self._log_publish_failure(event, e)

    def _log_publish_failure(self, event: str, error: Exception) -> None:
        logger.warning(
            "status publish failed",
            extra={
                "extra_fields": safe_log_context(
                    event=event, error_type=type(error).__name__
                )
            },
        )

    # -- status map -------------------------------------------------------

    def record_status(
        self, session_id: str, update: Mapping[str, Any]
    ) -> SessionStatus:
        """Shallow-merge update into the status of session_id.

        Creates the record on first update (state defaults to disconnected
        when the update carries none), then republishes the merged record.

        Args:
            session_id: Session identifier.
            update: Partial fields, e.g. {"state": "connecting"} or {"qr": "..."}.

        Returns:
            The merged record.

        Raises:
            ValueError: If update carries an unknown state.
        """
        now = datetime.now(timezone.utc)
        with self._lock:
            current = self._statuses.get(session_id)
            if current is None:
                current = SessionStatus(
                    session_id=session_id,
                    state=SessionState.DISCONNECTED,
                    updated_at=now,
                )
            merged = current.merged(update, now)
            self._statuses[session_id] = merged

        logger.debug(
            "session status recorded",
            extra={
                "extra_fields": safe_log_context(
                    session=session_id,
                    state=merged.state.value,
                    fields=",".join(sorted(update)),
                )
            },
        )

        self.publish(STATUS_EVENT, merged.to_dict())
        return merged

    def get_status(self, session_id: str) -> SessionStatus | None:
        return self._statuses.get(session_id)

    def list_statuses(self) -> dict[str, SessionStatus]:
        """Snapshot of every known session status."""
        with self._lock:
            return dict(self._statuses)

    def remove_status(self, session_id: str) -> None:
        """Forget session_id. No-op if absent."""
        with self._lock:
            self._statuses.pop(session_id, None)
