"""Tests for the periodic click stats broadcast."""

import asyncio

from streamcart.domain.live.broadcast.fanout import LocalFanout
from streamcart.domain.live.broadcast.hub import SessionHub
from streamcart.domain.live.broadcast.scheduler import (
    EVENT_PRODUCT_CLICK_STATS,
    EVENT_TRENDING_PRODUCTS,
    BroadcastScheduler,
)
from streamcart.domain.live.engagement.clicks import ClickAggregator
from tests.fixtures.live_fixtures import FakeSocket


class StubViewerStats:
    async def unique_viewer_count(self, session_id: str) -> int:
        return 4

    async def total_view_count(self, session_id: str) -> int:
        return 2


def _build(interval: float = 0.01):
    hub = SessionHub()
    socket = FakeSocket()
    hub.attach("cn_1", socket)
    hub.subscribe("se_1", "cn_1")
    clicks = ClickAggregator(StubViewerStats())
    scheduler = BroadcastScheduler(clicks, LocalFanout(hub), interval_seconds=interval, trending_limit=2)
    return scheduler, clicks, socket


class TestTick:
    async def test_tick_publishes_stats_and_trending(self):
        # Arrange
        scheduler, clicks, socket = _build()
        for product, users in (("pr_a", 1), ("pr_b", 3), ("pr_c", 2)):
            for i in range(users):
                clicks.track_click("se_1", product, f"u{i}")

        # Act
        assert await scheduler.tick("se_1") is True

        # Assert
        stats = socket.last(EVENT_PRODUCT_CLICK_STATS)
        assert stats["sessionId"] == "se_1"
        assert stats["totalViewers"] == 4
        assert [p["productId"] for p in stats["productStats"]] == ["pr_b", "pr_c", "pr_a"]
        assert stats["productStats"][0] == {
            "productId": "pr_b",
            "uniqueClicks": 3,
            "totalClicks": 3,
            "clickThroughRate": 75.0,
        }
        trending = socket.last(EVENT_TRENDING_PRODUCTS)
        assert [p["productId"] for p in trending["products"]] == ["pr_b", "pr_c"]
        assert "timestamp" in trending

    async def test_tick_without_tally(self):
        scheduler, _, socket = _build()

        assert await scheduler.tick("se_1") is False
        assert socket.sent == []


class TestLifecycle:
    async def test_start_is_idempotent(self):
        scheduler, clicks, _ = _build(interval=10)
        clicks.initialize("se_1")

        assert scheduler.start("se_1") is True
        assert scheduler.start("se_1") is False
        assert scheduler.running_session_ids() == ["se_1"]

        await scheduler.shutdown()

    async def test_running_task_broadcasts_periodically(self):
        scheduler, clicks, socket = _build()
        clicks.track_click("se_1", "pr_a", "u1")

        scheduler.start("se_1")
        await asyncio.sleep(0.1)
        await scheduler.stop("se_1")

        assert len(socket.events(EVENT_PRODUCT_CLICK_STATS)) >= 2

    async def test_stop_cancels_and_no_broadcast_after(self):
        scheduler, clicks, socket = _build()
        clicks.track_click("se_1", "pr_a", "u1")
        scheduler.start("se_1")
        await asyncio.sleep(0.05)

        await scheduler.stop("se_1")
        sent_at_stop = len(socket.sent)
        await asyncio.sleep(0.05)

        assert scheduler.is_running("se_1") is False
        assert len(socket.sent) == sent_at_stop

    async def test_task_ends_itself_when_tally_is_gone(self):
        scheduler, clicks, _ = _build()
        clicks.initialize("se_1")
        scheduler.start("se_1")

        clicks.discard("se_1")
        await asyncio.sleep(0.05)

        assert scheduler.is_running("se_1") is False
        assert scheduler.running_session_ids() == []

    async def test_stop_unknown_session_is_noop(self):
        scheduler, _, _ = _build()

        await scheduler.stop("se_none")

    async def test_shutdown_cancels_all(self):
        scheduler, clicks, _ = _build(interval=10)
        for session_id in ("se_1", "se_2"):
            clicks.initialize(session_id)
            scheduler.start(session_id)

        await scheduler.shutdown()

        assert scheduler.running_session_ids() == []
