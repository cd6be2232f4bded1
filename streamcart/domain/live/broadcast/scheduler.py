"""Periodic broadcast of click statistics for live sessions."""

from __future__ import annotations

import asyncio

from loguru import logger

from streamcart.domain.live.engagement.clicks import ClickAggregator
from streamcart.shared.time_utils import utc_now

from .fanout import Fanout

EVENT_PRODUCT_CLICK_STATS = "product-click-stats"
EVENT_TRENDING_PRODUCTS = "trending-products"


class BroadcastScheduler:
    """One cancellable task per session pushing click stats on a fixed cadence.

    Bursts of clicks between two ticks are coalesced into one update. A tick
    that finds no click tally ends its own task.
    """

    def __init__(
        self,
        clicks: ClickAggregator,
        fanout: Fanout,
        interval_seconds: float = 2.0,
        trending_limit: int = 5,
    ) -> None:
        self.clicks = clicks
        self.fanout = fanout
        self.interval_seconds = interval_seconds
        self.trending_limit = trending_limit
        self._tasks: dict[str, asyncio.Task] = {}

    def is_running(self, session_id: str) -> bool:
        task = self._tasks.get(session_id)
        return task is not None and not task.done()

    def running_session_ids(self) -> list[str]:
        return [session_id for session_id, task in self._tasks.items() if not task.done()]

    def start(self, session_id: str) -> bool:
        """Start the session's task unless one is already running. Returns True if started."""
        if self.is_running(session_id):
            return False

        self._tasks[session_id] = asyncio.create_task(self._run(session_id), name=f"live-broadcast:{session_id}")
        logger.info("Started click stats broadcast for session {} every {}s", session_id, self.interval_seconds)
        return True

    async def stop(self, session_id: str) -> None:
        """Cancel the session's task and wait until it has finished."""
        task = self._tasks.pop(session_id, None)
        if task is None:
            return
        if not task.done():
            task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error("Broadcast task of session {} ended with error: {}", session_id, e)
        logger.info("Stopped click stats broadcast for session {}", session_id)

    async def shutdown(self) -> None:
        session_ids = list(self._tasks.keys())
        for session_id in session_ids:
            await self.stop(session_id)
        if session_ids:
            logger.info("Broadcast scheduler shut down, cancelled {} tasks", len(session_ids))

    async def tick(self, session_id: str) -> bool:
        """Publish one round of stats. Returns False when the session has no tally any more."""
        if not self.clicks.has_active_tracking(session_id):
            return False

        await self.clicks.refresh_viewer_baseline(session_id)
        stats = self.clicks.current_stats(session_id)
        timestamp = utc_now()

        await self.fanout.publish(
            session_id,
            EVENT_PRODUCT_CLICK_STATS,
            {
                "sessionId": session_id,
                "productStats": [stat.to_wire() for stat in stats.product_stats],
                "totalViewers": stats.total_viewers,
                "timestamp": timestamp,
            },
        )
        await self.fanout.publish(
            session_id,
            EVENT_TRENDING_PRODUCTS,
            {
                "sessionId": session_id,
                "products": [stat.to_wire() for stat in stats.product_stats[: self.trending_limit]],
                "timestamp": timestamp,
            },
        )
        return True

    async def _run(self, session_id: str) -> None:
        try:
            while True:
                await asyncio.sleep(self.interval_seconds)
                try:
                    if not await self.tick(session_id):
                        logger.info("No click tally for session {}, broadcast ends", session_id)
                        return
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    logger.error("Broadcast tick for session {} failed: {}", session_id, e)
        finally:
            if self._tasks.get(session_id) is asyncio.current_task():
                self._tasks.pop(session_id, None)
