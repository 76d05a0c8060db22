"""Tests for startup wiring."""

import asyncio
from datetime import datetime, timezone
from pathlib import Path

from wagate.bootstrap import start
from wagate.config import Settings
from wagate.sessions.events import CONNECTION_OPEN
from wagate.sessions.manager import StoredSession
from wagate.sessions.models import SessionState
from wagate.sessions.registry import SessionRegistry

from .fakes import FakeWacap, RecordingChannel

SETTINGS = Settings(data_dir=Path("/d"), sessions_path=Path("/d/sessions"))


class OneSessionStore:
    def list_all(self):
        return [
            StoredSession(user_id=1, session_id="s1", created_at=datetime.now(timezone.utc))
        ]

    def delete(self, user_id, session_id):
        raise AssertionError("nothing should expire")


class TestStart:
    def test_wires_collaborator_and_events(self):
        channel = RecordingChannel()
        created = []

        def factory(**options):
            wacap = FakeWacap(**options)
            wacap.sessions.infos["s0"] = {"status": "open"}
            created.append(wacap)
            return wacap

        async def run():
            runtime = await start(SETTINGS, factory, channel=channel)
            wacap = runtime.registry.get_collaborator()
            wacap.sessions.infos["s0"]["phoneNumber"] = "628111"
            wacap.emit(CONNECTION_OPEN, {"sessionId": "s0"})
            await runtime.shutdown()
            return runtime

        runtime = asyncio.run(run())

        wacap = created[0]
        assert wacap.init_calls == 1
        assert wacap.destroy_calls == 1
        assert wacap.options["sessions_path"] == "/d/sessions"
        assert runtime.registry.get_status("s0").metadata["phoneNumber"] == "628111"
        assert "session:connected" in channel.names()
        assert runtime.registry.is_initialized() is False

    def test_store_enables_auto_start(self):
        registry = SessionRegistry()

        async def run():
            runtime = await start(
                SETTINGS, FakeWacap, registry=registry, store=OneSessionStore()
            )
            await runtime.shutdown()
            return runtime

        runtime = asyncio.run(run())

        assert runtime.manager is not None
        assert registry.get_status("s1").state == SessionState.CONNECTING
