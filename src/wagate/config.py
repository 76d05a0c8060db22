"""Runtime settings.

load_settings() is the only place that reads the environment; it runs once
at startup and the resulting Settings are passed into the core explicitly.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Any, Mapping

DEFAULT_CLEANUP_INTERVAL = timedelta(hours=1)
DEFAULT_MAX_AGE = timedelta(days=30)
DEFAULT_MAX_INACTIVE = timedelta(days=7)


@dataclass(frozen=True)
class Settings:
    """Core configuration.

    Attributes:
        data_dir: Base data directory.
        sessions_path: Where the collaborator keeps session storage.
        debug: Verbose diagnostics (any mode other than production).
        cleanup_interval: Period of the stale-session cleanup.
        session_max_age: Age after which stored sessions are deleted (None = never).
        session_max_inactive: Age after which disconnected sessions are deleted
            (None = never).
    """

    data_dir: Path
    sessions_path: Path
    debug: bool = False
    cleanup_interval: timedelta = DEFAULT_CLEANUP_INTERVAL
    session_max_age: timedelta | None = DEFAULT_MAX_AGE
    session_max_inactive: timedelta | None = DEFAULT_MAX_INACTIVE


def _seconds(environ: Mapping[str, str], name: str, default: timedelta) -> timedelta | None:
    raw = environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        seconds = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer number of seconds, got {raw!r}")
    if seconds <= 0:
        return None
    return timedelta(seconds=seconds)


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build Settings from environment variables.

    Env vars:
    - DATA_DIR: Base data directory (default: ./data)
    - SESSIONS_PATH: Session storage override (default: DATA_DIR/sessions)
    - APP_ENV: "production" disables debug diagnostics (default: development)
    - SESSION_CLEANUP_INTERVAL: Cleanup period in seconds (default: 3600)
    - SESSION_MAX_AGE_SECONDS: 0 disables expiry (default: 30 days)
    - SESSION_MAX_INACTIVE_SECONDS: 0 disables (default: 7 days)

    Raises:
        ValueError: If a numeric variable is not an integer.
    """
    if environ is None:
        environ = os.environ

    data_dir = Path(environ.get("DATA_DIR") or Path.cwd() / "data")
    sessions_path = Path(environ.get("SESSIONS_PATH") or data_dir / "sessions")

    cleanup_interval = _seconds(environ, "SESSION_CLEANUP_INTERVAL", DEFAULT_CLEANUP_INTERVAL)

    return Settings(
        data_dir=data_dir,
        sessions_path=sessions_path,
        debug=environ.get("APP_ENV", "development") != "production",
        cleanup_interval=cleanup_interval or DEFAULT_CLEANUP_INTERVAL,
        session_max_age=_seconds(environ, "SESSION_MAX_AGE_SECONDS", DEFAULT_MAX_AGE),
        session_max_inactive=_seconds(
            environ, "SESSION_MAX_INACTIVE_SECONDS", DEFAULT_MAX_INACTIVE
        ),
    )


def collaborator_options(settings: Settings) -> dict[str, Any]:
    """Keyword options for constructing the Wacap wrapper."""
    return {
        "sessions_path": str(settings.sessions_path),
        "storage_adapter": "sqlite",
        "debug": settings.debug,
        "qr_code": {"format": "base64", "width": 300, "margin": 2},
        "browser": ("Wagate", "Chrome", "1.0.0"),
        "connection_timeout": 60_000,
        "max_retries": 5,
    }
