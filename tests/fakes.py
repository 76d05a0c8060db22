"""In-memory stand-ins for the Wacap wrapper used across tests.

These are NOT fixtures - import them directly or through conftest.py.
"""

from __future__ import annotations

from typing import Any, Callable
from unittest.mock import AsyncMock


class FakeSessions:
    """Mimics ``wacap.sessions``."""

    def __init__(self) -> None:
        self.infos: dict[str, dict[str, Any]] = {}
        self.start = AsyncMock()

    def list(self) -> list[str]:
        return list(self.infos)

    def info(self, session_id: str) -> dict[str, Any] | None:
        return self.infos.get(session_id)


class FakeSend:
    def __init__(self) -> None:
        self.text = AsyncMock(
            return_value={"key": {"id": "MSG001"}, "messageTimestamp": 1706543210}
        )


class FakeWacap:
    """Collaborator with init/destroy tracking and a global event emitter."""

    def __init__(self, name: str = "wacap", **options: Any) -> None:
        self.name = name
        self.options = options
        self.init_calls = 0
        self.destroy_calls = 0
        self.sessions = FakeSessions()
        self.send = FakeSend()
        self.delete_session = AsyncMock()
        self.listeners: dict[str, list[Callable[[dict], None]]] = {}

    async def init(self) -> None:
        self.init_calls += 1

    async def destroy(self) -> None:
        self.destroy_calls += 1

    def on_global(self, event_type: str, callback: Callable[[dict], None]) -> None:
        self.listeners.setdefault(event_type, []).append(callback)

    def emit(self, event_type: str, data: dict) -> None:
        for callback in self.listeners.get(event_type, []):
            callback(data)


class RecordingChannel:
    """Synchronous broadcast channel that records every publish."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict]] = []

    def publish(self, event: str, payload: dict) -> None:
        self.events.append((event, payload))

    def names(self) -> list[str]:
        return [event for event, _ in self.events]


class LogRecorder:
    """Simple recorder to capture log calls deterministically."""

    def __init__(self):
        self.calls: list[tuple[str, tuple, dict]] = []

    def _record(self, level: str, *args, **kwargs):
        self.calls.append((level, args, kwargs))

    def info(self, *args, **kwargs):
        self._record("info", *args, **kwargs)

    def warning(self, *args, **kwargs):
        self._record("warning", *args, **kwargs)

    def error(self, *args, **kwargs):
        self._record("error", *args, **kwargs)

    def exception(self, *args, **kwargs):
        self._record("exception", *args, **kwargs)

    def debug(self, *args, **kwargs):
        self._record("debug", *args, **kwargs)

    def levels(self) -> list[str]:
        return [level for level, _, _ in self.calls]

    def get_all_logged_content(self) -> str:
        """Concatenate all args and kwargs from all calls into one string."""
        parts = []
        for level, args, kwargs in self.calls:
            parts.append(str(args))
            parts.append(str(kwargs))
        return " ".join(parts)
