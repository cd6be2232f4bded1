"""Wiring of the per-process live engine."""

from dataclasses import dataclass

from loguru import logger
from redis.asyncio import Redis

from streamcart.app_config import AppEnvironConfig, get_app_environ_config
from streamcart.domain.live.analytics.analytics_domain import SessionAnalyticsService
from streamcart.domain.live.broadcast.fanout import Fanout, LocalFanout, RedisFanout
from streamcart.domain.live.broadcast.hub import SessionHub
from streamcart.domain.live.broadcast.scheduler import BroadcastScheduler
from streamcart.domain.live.chat.chat_domain import ChatService
from streamcart.domain.live.engagement.clicks import ClickAggregator
from streamcart.domain.live.engagement.reactions import ReactionAggregator
from streamcart.domain.live.events.event_router import ConnectionEventRouter
from streamcart.domain.live.presence.presence_registry import PresenceRegistry
from streamcart.domain.live.session.session_domain import SessionLifecycleService
from streamcart.services.integrations.livekit_service import LivekitService
from streamcart.shared.keyed_lock import KeyedLock
from streamcart.shared.storage.redis import get_redis_client


@dataclass
class LiveRuntime:
    hub: SessionHub
    fanout: Fanout
    presence: PresenceRegistry
    reactions: ReactionAggregator
    clicks: ClickAggregator
    scheduler: BroadcastScheduler
    lifecycle: SessionLifecycleService
    chat: ChatService
    analytics: SessionAnalyticsService
    router: ConnectionEventRouter

    async def start(self) -> None:
        await self.fanout.start()

    async def shutdown(self) -> None:
        pending = self.clicks.active_session_ids()
        if pending:
            logger.warning("Shutting down with unflushed click tallies for sessions: {}", pending)
        await self.scheduler.shutdown()
        await self.fanout.stop()


def build_live_runtime(
    cfg: AppEnvironConfig | None = None,
    redis_client: Redis | None = None,
    livekit: LivekitService | None = None,
) -> LiveRuntime:
    cfg = cfg or get_app_environ_config()
    hub = SessionHub()

    fanout: Fanout
    if cfg.LIVE_FANOUT_BACKEND == "redis":
        fanout = RedisFanout(
            redis_client or get_redis_client(cfg.LIVE_FANOUT_REDIS_LABEL),
            hub,
            channel_prefix=cfg.LIVE_FANOUT_CHANNEL_PREFIX,
        )
    else:
        fanout = LocalFanout(hub)
    logger.info("Live fan-out backend: {}", type(fanout).__name__)

    locks = KeyedLock("session")
    presence = PresenceRegistry()
    reactions = ReactionAggregator()
    clicks = ClickAggregator(presence)
    scheduler = BroadcastScheduler(
        clicks,
        fanout,
        interval_seconds=cfg.LIVE_BROADCAST_INTERVAL_SECONDS,
        trending_limit=cfg.LIVE_TRENDING_LIMIT,
    )
    lifecycle = SessionLifecycleService(presence, reactions, clicks, scheduler, fanout, locks, livekit)
    chat = ChatService()
    analytics = SessionAnalyticsService(presence, reactions, clicks, chat)
    router = ConnectionEventRouter(presence, reactions, clicks, scheduler, lifecycle, chat, hub, fanout, locks)

    return LiveRuntime(
        hub=hub,
        fanout=fanout,
        presence=presence,
        reactions=reactions,
        clicks=clicks,
        scheduler=scheduler,
        lifecycle=lifecycle,
        chat=chat,
        analytics=analytics,
        router=router,
    )
