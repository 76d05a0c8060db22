"""Startup wiring: settings -> collaborator -> registry -> event handlers."""

from dataclasses import dataclass
from typing import Any, Callable

from wagate.config import Settings, collaborator_options
from wagate.observability.logging import get_logger, set_debug
from wagate.sessions.events import StatusEventHandler, sync_statuses
from wagate.sessions.manager import SessionManager, SessionStore
from wagate.sessions.models import BroadcastChannel
from wagate.sessions.registry import SessionRegistry

logger = get_logger(__name__)


@dataclass
class Runtime:
    registry: SessionRegistry
    events: StatusEventHandler
    manager: SessionManager | None = None

    async def shutdown(self) -> None:
        if self.manager is not None:
            self.manager.stop()
        await self.registry.teardown()


async def start(
    settings: Settings,
    collaborator_factory: Callable[..., Any],
    *,
    registry: SessionRegistry | None = None,
    channel: BroadcastChannel | None = None,
    store: SessionStore | None = None,
) -> Runtime:
    """Create and initialize the collaborator, then wire events and sessions.

    Args:
        settings: Loaded once by the caller (see load_settings()).
        collaborator_factory: Called with collaborator_options(settings).
        registry: Registry to install into (a fresh one by default).
        channel: Optional broadcast channel for status events.
        store: Optional stored-session source; enables auto-start and cleanup.

    Returns:
        Runtime holding the wired components.
    """
    set_debug(settings.debug)

    registry = registry or SessionRegistry()
    if channel is not None:
        registry.attach_channel(channel)

    collaborator = await registry.initialize(
        collaborator_factory(**collaborator_options(settings))
    )
    logger.info("collaborator initialized")

    events = StatusEventHandler(registry)
    events.attach(collaborator)
    await sync_statuses(registry)

    manager = None
    if store is not None:
        manager = SessionManager.from_settings(registry, store, settings)
        await manager.initialize()

    return Runtime(registry=registry, events=events, manager=manager)
