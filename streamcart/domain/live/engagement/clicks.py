"""In-memory product click tallies per live session, related to a viewer baseline."""

from dataclasses import dataclass, field
from typing import Protocol

from loguru import logger

from streamcart.schemas import ProductClickStats
from streamcart.utils.app_errors import invalid_request
from streamcart.utils.idgen import new_anonymous_identity

from .engagement_models import PersistedClickStat, ProductClickStat, SessionClickStats


class ViewerStatsSource(Protocol):
    async def unique_viewer_count(self, session_id: str) -> int: ...

    async def total_view_count(self, session_id: str) -> int: ...


@dataclass
class _ProductTally:
    identities: set[str] = field(default_factory=set)
    total_clicks: int = 0


@dataclass
class _SessionTally:
    products: dict[str, _ProductTally] = field(default_factory=dict)
    total_viewers: int = 0


def click_through_rate(unique_clicks: int, total_viewers: int) -> float:
    if total_viewers <= 0:
        return 0.0
    return round(unique_clicks / total_viewers * 100, 2)


class ClickAggregator:
    def __init__(self, viewer_stats: ViewerStatsSource) -> None:
        self._viewer_stats = viewer_stats
        self._tallies: dict[str, _SessionTally] = {}

    def initialize(self, session_id: str) -> None:
        if session_id not in self._tallies:
            self._tallies[session_id] = _SessionTally()
            logger.info("Initialized click tracking for session {}", session_id)

    def track_click(self, session_id: str, product_id: str, user_id: str | None = None) -> ProductClickStat:
        if not product_id:
            raise invalid_request("productId is required")

        tally = self._tallies.setdefault(session_id, _SessionTally())
        product = tally.products.setdefault(product_id, _ProductTally())
        # anonymous clicks each count as a distinct clicker
        product.identities.add(user_id or new_anonymous_identity())
        product.total_clicks += 1

        return self._product_stat(product_id, product, tally.total_viewers)

    async def refresh_viewer_baseline(self, session_id: str) -> int:
        tally = self._tallies.get(session_id)
        unique_viewers = await self._viewer_stats.unique_viewer_count(session_id)
        total_views = await self._viewer_stats.total_view_count(session_id)
        baseline = max(unique_viewers, total_views)
        if tally is not None:
            tally.total_viewers = baseline
        return baseline

    def current_stats(self, session_id: str) -> SessionClickStats:
        tally = self._tallies.get(session_id)
        if tally is None:
            return SessionClickStats(session_id=session_id)

        stats = [
            self._product_stat(product_id, product, tally.total_viewers)
            for product_id, product in tally.products.items()
        ]
        stats.sort(key=lambda s: s.unique_clicks, reverse=True)
        return SessionClickStats(session_id=session_id, product_stats=stats, total_viewers=tally.total_viewers)

    def trending(self, session_id: str, limit: int = 5) -> list[ProductClickStat]:
        return self.current_stats(session_id).product_stats[:limit]

    async def flush(self, session_id: str) -> int:
        """Persist one row per product with the final baseline, then drop the tally."""
        tally = self._tallies.get(session_id)
        if tally is None:
            return 0
        if not tally.products:
            self._tallies.pop(session_id, None)
            return 0

        await self.refresh_viewer_baseline(session_id)
        rows = [
            ProductClickStats(
                session_id=session_id,
                product_id=stat.product_id,
                unique_clicks=stat.unique_clicks,
                total_clicks=stat.total_clicks,
                click_through_rate=stat.click_through_rate,
                total_viewers=tally.total_viewers,
            )
            for stat in self.current_stats(session_id).product_stats
        ]
        await ProductClickStats.insert_many(rows)
        self._tallies.pop(session_id, None)

        logger.info("Persisted click stats of session {}: {} products, baseline={}", session_id, len(rows), tally.total_viewers)
        return len(rows)

    def discard(self, session_id: str) -> None:
        self._tallies.pop(session_id, None)

    def has_active_tracking(self, session_id: str) -> bool:
        return session_id in self._tallies

    def active_session_ids(self) -> list[str]:
        return list(self._tallies)

    async def persisted_stats(self, session_id: str) -> list[PersistedClickStat]:
        rows = await ProductClickStats.find(ProductClickStats.session_id == session_id).sort(
            -ProductClickStats.unique_clicks
        ).to_list()
        return [
            PersistedClickStat(
                product_id=row.product_id,
                unique_clicks=row.unique_clicks,
                total_clicks=row.total_clicks,
                click_through_rate=row.click_through_rate,
                total_viewers=row.total_viewers,
                created_at=row.created_at,
            )
            for row in rows
        ]

    @staticmethod
    def _product_stat(product_id: str, product: _ProductTally, total_viewers: int) -> ProductClickStat:
        unique_clicks = len(product.identities)
        return ProductClickStat(
            product_id=product_id,
            unique_clicks=unique_clicks,
            total_clicks=product.total_clicks,
            click_through_rate=click_through_rate(unique_clicks, total_viewers),
        )
