"""Tests for ClickAggregator."""

import pytest

from streamcart.domain.live.engagement.clicks import ClickAggregator, click_through_rate
from streamcart.schemas import ProductClickStats
from streamcart.utils.app_errors import AppError


class StubViewerStats:
    def __init__(self, unique: int = 0, total: int = 0) -> None:
        self.unique = unique
        self.total = total

    async def unique_viewer_count(self, session_id: str) -> int:
        return self.unique

    async def total_view_count(self, session_id: str) -> int:
        return self.total


class TestClickThroughRate:
    def test_zero_viewers_is_zero(self):
        assert click_through_rate(5, 0) == 0.0

    def test_rounded_to_two_decimals(self):
        assert click_through_rate(1, 3) == 33.33
        assert click_through_rate(2, 4) == 50.0


class TestTrackClick:
    def test_unique_and_total_per_user(self):
        clicks = ClickAggregator(StubViewerStats())
        clicks.initialize("se_1")

        clicks.track_click("se_1", "pr_a", "u1")
        clicks.track_click("se_1", "pr_a", "u1")
        stat = clicks.track_click("se_1", "pr_a", "u2")

        assert stat.unique_clicks == 2
        assert stat.total_clicks == 3

    def test_anonymous_clicks_are_each_unique(self):
        clicks = ClickAggregator(StubViewerStats())

        clicks.track_click("se_1", "pr_a")
        stat = clicks.track_click("se_1", "pr_a")

        assert stat.unique_clicks == 2
        assert stat.total_clicks == 2

    def test_click_creates_tally_lazily(self):
        clicks = ClickAggregator(StubViewerStats())

        clicks.track_click("se_1", "pr_a", "u1")

        assert clicks.has_active_tracking("se_1") is True

    def test_active_session_ids_lists_tracked_sessions(self):
        clicks = ClickAggregator(StubViewerStats())

        clicks.initialize("se_1")
        clicks.track_click("se_2", "pr_a")
        clicks.discard("se_1")

        assert clicks.active_session_ids() == ["se_2"]

    def test_missing_product_rejected(self):
        clicks = ClickAggregator(StubViewerStats())

        with pytest.raises(AppError):
            clicks.track_click("se_1", "", "u1")


class TestCurrentStats:
    async def test_sorted_by_unique_clicks_with_baseline(self):
        clicks = ClickAggregator(StubViewerStats(unique=3, total=4))
        clicks.track_click("se_1", "pr_a", "u1")
        for user in ("u1", "u2", "u3"):
            clicks.track_click("se_1", "pr_b", user)

        baseline = await clicks.refresh_viewer_baseline("se_1")
        stats = clicks.current_stats("se_1")

        assert baseline == 4
        assert stats.total_viewers == 4
        assert [s.product_id for s in stats.product_stats] == ["pr_b", "pr_a"]
        assert stats.product_stats[0].click_through_rate == 75.0
        assert stats.product_stats[1].click_through_rate == 25.0

    def test_unknown_session_is_empty(self):
        stats = ClickAggregator(StubViewerStats()).current_stats("se_none")

        assert stats.product_stats == []
        assert stats.total_viewers == 0

    def test_trending_limited(self):
        clicks = ClickAggregator(StubViewerStats())
        for i in range(7):
            for j in range(i + 1):
                clicks.track_click("se_1", f"pr_{i}", f"u{j}")

        trending = clicks.trending("se_1", limit=5)

        assert len(trending) == 5
        assert trending[0].product_id == "pr_6"


@pytest.mark.usefixtures("clear_collections")
class TestFlush:
    async def test_flush_persists_rows_and_drops_tally(self, beanie_db):
        # Arrange
        clicks = ClickAggregator(StubViewerStats(unique=2, total=2))
        clicks.initialize("se_flush")
        clicks.track_click("se_flush", "pr_a", "u1")
        clicks.track_click("se_flush", "pr_a", "u2")
        clicks.track_click("se_flush", "pr_b", "u1")

        # Act
        persisted = await clicks.flush("se_flush")

        # Assert
        assert persisted == 2
        assert clicks.has_active_tracking("se_flush") is False
        rows = await ProductClickStats.find(ProductClickStats.session_id == "se_flush").to_list()
        by_product = {row.product_id: row for row in rows}
        assert by_product["pr_a"].unique_clicks == 2
        assert by_product["pr_a"].click_through_rate == 100.0
        assert by_product["pr_b"].total_clicks == 1
        assert all(row.total_viewers == 2 for row in rows)

    async def test_flush_without_tally_writes_nothing(self, beanie_db):
        clicks = ClickAggregator(StubViewerStats())

        assert await clicks.flush("se_none") == 0
        assert await ProductClickStats.find_all().count() == 0

    async def test_flush_empty_tally_drops_it(self, beanie_db):
        clicks = ClickAggregator(StubViewerStats())
        clicks.initialize("se_empty")

        assert await clicks.flush("se_empty") == 0
        assert clicks.has_active_tracking("se_empty") is False

    async def test_persisted_stats_sorted(self, beanie_db):
        clicks = ClickAggregator(StubViewerStats(unique=5))
        clicks.track_click("se_p", "pr_low", "u1")
        for user in ("u1", "u2"):
            clicks.track_click("se_p", "pr_high", user)
        await clicks.flush("se_p")

        persisted = await clicks.persisted_stats("se_p")

        assert [p.product_id for p in persisted] == ["pr_high", "pr_low"]
        assert persisted[0].total_viewers == 5
