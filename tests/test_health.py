"""Health report tests."""

import asyncio

from wagate.health import check_health


def _ok():
    return 1


def _down():
    raise ConnectionError("database is locked")


class TestCheckHealth:
    def test_healthy(self, registry, wacap):
        registry.set_collaborator(wacap)
        wacap.sessions.infos = {"s1": {}, "s2": {}}

        report = asyncio.run(check_health(registry, _ok))

        assert report.status == "healthy"
        assert report.http_status == 200
        assert report.active_sessions == 2
        assert report.storage_latency_ms is not None

    def test_degraded_without_collaborator(self, registry):
        report = asyncio.run(check_health(registry, _ok))

        assert report.status == "degraded"
        assert report.http_status == 200
        assert report.to_dict()["services"]["wacap"] == {
            "status": "not_initialized",
            "activeSessions": None,
        }

    def test_unhealthy_when_storage_down(self, registry, wacap):
        registry.set_collaborator(wacap)

        report = asyncio.run(check_health(registry, _down))

        assert report.status == "unhealthy"
        assert report.http_status == 503
        assert report.to_dict()["services"]["database"]["status"] == "disconnected"

    def test_async_ping_supported(self, registry, wacap):
        registry.set_collaborator(wacap)

        async def ping():
            return True

        assert asyncio.run(check_health(registry, ping)).status == "healthy"

    def test_session_listing_failure_counts_zero(self, registry, wacap):
        registry.set_collaborator(wacap)

        def broken_list():
            raise RuntimeError("store closed")

        wacap.sessions.list = broken_list

        report = asyncio.run(check_health(registry, _ok))

        assert report.status == "healthy"
        assert report.active_sessions == 0
