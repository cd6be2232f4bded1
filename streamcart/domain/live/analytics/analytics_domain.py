"""Per-session analytics assembled from view records, tallies and persisted stats."""

import math

from beanie.operators import In

from streamcart.domain.live.chat.chat_domain import ChatService
from streamcart.domain.live.engagement.clicks import ClickAggregator
from streamcart.domain.live.engagement.reactions import ReactionAggregator
from streamcart.domain.live.presence.presence_registry import PresenceRegistry
from streamcart.domain.live.session._base import BaseService
from streamcart.schemas import Product, ProductClickStats, Session, SessionProduct, SessionState, SessionView
from streamcart.shared.time_utils import elapsed_seconds, ensure_utc, utc_now

from .analytics_models import (
    ClickStatsReport,
    ClickStatsRow,
    CreatorAnalytics,
    CreatorProductsSummary,
    CreatorSessionsSummary,
    CreatorViewersSummary,
    EngagementSummary,
    LiveViewer,
    LiveViewers,
    ProductsSummary,
    ProductSummary,
    ReactionSummary,
    RetentionRange,
    RetentionStats,
    SessionAnalytics,
    TimelineBucket,
    ViewerList,
    ViewerRecord,
    ViewerSummary,
)

# (label, lower bound inclusive, upper bound exclusive) in seconds
RETENTION_RANGES: list[tuple[str, int, float]] = [
    ("0-30s", 0, 30),
    ("30s-1m", 30, 60),
    ("1m-5m", 60, 300),
    ("5m-15m", 300, 900),
    ("15m-30m", 900, 1800),
    ("30m+", 1800, float("inf")),
]


def format_duration(seconds: int) -> str:
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m {seconds % 60}s"
    return f"{seconds // 3600}h {(seconds % 3600) // 60}m"


def retention_stats(durations: list[int]) -> RetentionStats:
    """Duration histogram and percentiles over spans longer than zero seconds."""
    values = sorted(d for d in durations if d and d > 0)
    if not values:
        return RetentionStats()

    def percentile(q: float) -> int:
        return values[int(len(values) * q)]

    ranges = []
    for label, low, high in RETENTION_RANGES:
        ranges.append(RetentionRange(label=label, count=sum(1 for d in values if low <= d < high)))

    median, p75, p90 = percentile(0.5), percentile(0.75), percentile(0.9)
    return RetentionStats(
        ranges=ranges,
        median=median,
        median_formatted=format_duration(median),
        p75=p75,
        p75_formatted=format_duration(p75),
        p90=p90,
        p90_formatted=format_duration(p90),
    )


def viewer_timeline(views: list[SessionView]) -> list[TimelineBucket]:
    """Joins and leaves bucketed by UTC hour."""
    buckets: dict[str, TimelineBucket] = {}

    def bucket_for(moment) -> TimelineBucket:
        key = ensure_utc(moment).strftime("%Y-%m-%dT%H:00:00")
        return buckets.setdefault(key, TimelineBucket(timestamp=key))

    for view in views:
        bucket_for(view.joined_at).joins += 1
        if view.left_at is not None:
            bucket_for(view.left_at).leaves += 1

    return sorted(buckets.values(), key=lambda b: b.timestamp)


class SessionAnalyticsService(BaseService):
    def __init__(
        self,
        presence: PresenceRegistry,
        reactions: ReactionAggregator,
        clicks: ClickAggregator,
        chat: ChatService,
    ):
        super().__init__()
        self.presence = presence
        self.reactions = reactions
        self.clicks = clicks
        self.chat = chat

    async def session_analytics(self, session_id: str) -> SessionAnalytics:
        session = await self._require_session(session_id)

        aggregates = await self.presence.aggregates(session_id)
        attachments = await SessionProduct.find(SessionProduct.session_id == session_id).sort(
            +SessionProduct.display_order
        ).to_list()
        views = await SessionView.find(SessionView.session_id == session_id).sort(+SessionView.joined_at).to_list()

        # live sessions still hold their tally in memory
        if session.status == SessionState.LIVE:
            breakdown = self.reactions.snapshot(session_id) or {}
        else:
            breakdown = session.reaction_counts or {}

        return SessionAnalytics(
            session_id=session_id,
            title=session.title,
            status=session.status,
            creator_id=session.creator_id,
            created_at=session.created_at,
            updated_at=session.updated_at,
            viewers=ViewerSummary(
                unique=aggregates.unique_viewers,
                total=aggregates.total_views,
                peak=aggregates.peak_viewers,
                avg_watch_time=aggregates.avg_watch_time,
                avg_watch_time_formatted=format_duration(aggregates.avg_watch_time),
            ),
            products=ProductsSummary(
                total=len(attachments),
                featured=sum(1 for a in attachments if a.featured),
                items=[
                    ProductSummary(product_id=a.product_id, featured=a.featured, display_order=a.display_order)
                    for a in attachments
                ],
            ),
            reactions=ReactionSummary(total=sum(breakdown.values()), breakdown=breakdown),
            engagement=EngagementSummary(
                viewer_timeline=viewer_timeline(views),
                retention=retention_stats([v.watch_duration for v in views]),
                messages=await self.chat.count_messages(session_id),
            ),
        )

    async def live_viewers(self, session_id: str) -> LiveViewers:
        await self._require_session(session_id)
        now = utc_now()
        views = await self.presence.active_views(session_id)
        views.reverse()
        return LiveViewers(
            session_id=session_id,
            live_viewer_count=len(views),
            viewers=[
                LiveViewer(
                    view_id=v.view_id,
                    user_id=v.user_id,
                    role=v.role,
                    joined_at=v.joined_at,
                    watch_duration=elapsed_seconds(v.joined_at, now),
                )
                for v in views
            ],
        )

    async def viewer_list(self, session_id: str) -> ViewerList:
        await self._require_session(session_id)
        views = await self.presence.list_views(session_id)
        return ViewerList(
            session_id=session_id,
            total=len(views),
            viewers=[
                ViewerRecord(
                    view_id=v.view_id,
                    user_id=v.user_id,
                    role=v.role,
                    joined_at=v.joined_at,
                    left_at=v.left_at,
                    watch_duration=v.watch_duration,
                    watch_duration_formatted=format_duration(v.watch_duration) if v.watch_duration else None,
                    is_active=v.left_at is None,
                )
                for v in views
            ],
        )

    async def click_stats(self, session_id: str) -> ClickStatsReport:
        """Live tally while the session is live, persisted rows otherwise."""
        session = await self._require_session(session_id)

        if session.status == SessionState.LIVE:
            await self.clicks.refresh_viewer_baseline(session_id)
            live = self.clicks.current_stats(session_id)
            return ClickStatsReport(
                session_id=session_id,
                session_status=session.status,
                total_viewers=live.total_viewers,
                products=[
                    ClickStatsRow(
                        product_id=s.product_id,
                        unique_clicks=s.unique_clicks,
                        total_clicks=s.total_clicks,
                        click_through_rate=s.click_through_rate,
                    )
                    for s in live.product_stats
                ],
            )

        persisted = await self.clicks.persisted_stats(session_id)
        names: dict[str, str] = {}
        if persisted:
            products = await Product.find(In(Product.product_id, [p.product_id for p in persisted])).to_list()
            names = {p.product_id: p.name for p in products}

        return ClickStatsReport(
            session_id=session_id,
            session_status=session.status,
            total_viewers=persisted[0].total_viewers if persisted else 0,
            products=[
                ClickStatsRow(
                    product_id=p.product_id,
                    product_name=names.get(p.product_id),
                    unique_clicks=p.unique_clicks,
                    total_clicks=p.total_clicks,
                    click_through_rate=p.click_through_rate,
                    created_at=p.created_at,
                )
                for p in persisted
            ],
        )

    async def creator_analytics(self, creator_id: str) -> CreatorAnalytics:
        """Totals across every session of a creator, from persisted data."""
        sessions = await Session.find(Session.creator_id == creator_id).to_list()
        session_ids = [s.session_id for s in sessions]

        by_status = {state.value: 0 for state in SessionState}
        breakdown: dict[str, int] = {}
        for session in sessions:
            by_status[session.status.value] += 1
            for kind, count in (session.reaction_counts or {}).items():
                breakdown[kind] = breakdown.get(kind, 0) + count

        unique_viewers = await self.presence.unique_viewer_count_across(session_ids)
        peak = 0
        for session_id in session_ids:
            peak = max(peak, await self.presence.peak_viewers(session_id))

        total_clicks = unique_clicks = 0
        average_ctr = 0.0
        if session_ids:
            in_sessions = In(ProductClickStats.session_id, session_ids)
            total_clicks = int(await ProductClickStats.find(in_sessions).sum(ProductClickStats.total_clicks) or 0)
            unique_clicks = int(await ProductClickStats.find(in_sessions).sum(ProductClickStats.unique_clicks) or 0)
            average_ctr = round(
                await ProductClickStats.find(in_sessions).avg(ProductClickStats.click_through_rate) or 0.0, 2
            )

        return CreatorAnalytics(
            creator_id=creator_id,
            sessions=CreatorSessionsSummary(total=len(sessions), by_status=by_status),
            viewers=CreatorViewersSummary(
                total_unique=unique_viewers,
                average_per_session=math.floor(unique_viewers / len(sessions) + 0.5) if sessions else 0,
                peak_concurrent=peak,
            ),
            reactions=ReactionSummary(total=sum(breakdown.values()), breakdown=breakdown),
            products=CreatorProductsSummary(
                total_clicks=total_clicks,
                unique_users=unique_clicks,
                average_ctr=average_ctr,
            ),
        )
