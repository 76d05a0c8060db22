"""Health report for the session backend and its storage."""

from __future__ import annotations

import inspect
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Literal

from wagate.observability.logging import get_logger
from wagate.sessions.registry import SessionRegistry

logger = get_logger(__name__)

OverallStatus = Literal["healthy", "degraded", "unhealthy"]

_STARTED_AT = time.monotonic()


@dataclass(frozen=True)
class HealthReport:
    status: OverallStatus
    timestamp: datetime
    uptime: float
    storage_connected: bool
    storage_latency_ms: float | None
    collaborator_initialized: bool
    active_sessions: int | None

    @property
    def http_status(self) -> int:
        return 503 if self.status == "unhealthy" else 200

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "timestamp": self.timestamp.isoformat(),
            "uptime": self.uptime,
            "services": {
                "database": {
                    "status": "connected" if self.storage_connected else "disconnected",
                    "latency": self.storage_latency_ms,
                },
                "wacap": {
                    "status": (
                        "initialized" if self.collaborator_initialized else "not_initialized"
                    ),
                    "activeSessions": self.active_sessions,
                },
            },
        }


async def check_health(
    registry: SessionRegistry,
    ping_storage: Callable[[], Awaitable[Any] | Any],
) -> HealthReport:
    """Check storage liveness and the collaborator.

    Args:
        registry: Registry holding the collaborator.
        ping_storage: Liveness probe for the external storage (sync or async).
            Raising means disconnected.

    Returns:
        HealthReport: unhealthy if storage is down, degraded if the
        collaborator is not installed, healthy otherwise.
    """
    storage_connected = False
    latency_ms: float | None = None
    start = time.perf_counter()
    try:
        result = ping_storage()
        if inspect.isawaitable(result):
            await result
        latency_ms = round((time.perf_counter() - start) * 1000, 3)
        storage_connected = True
    except Exception:
        logger.exception("storage ping failed")

    active_sessions: int | None = None
    initialized = registry.is_initialized()
    if initialized:
        try:
            sessions = registry.get_collaborator().sessions.list()
            if inspect.isawaitable(sessions):
                sessions = await sessions
            active_sessions = len(sessions)
        except Exception:
            logger.exception("session listing failed")
            active_sessions = 0

    status: OverallStatus = "healthy"
    if not storage_connected:
        status = "unhealthy"
    elif not initialized:
        status = "degraded"

    return HealthReport(
        status=status,
        timestamp=datetime.now(timezone.utc),
        uptime=time.monotonic() - _STARTED_AT,
        storage_connected=storage_connected,
        storage_latency_ms=latency_ms,
        collaborator_initialized=initialized,
        active_sessions=active_sessions,
    )
