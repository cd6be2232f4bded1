"""Live session lifecycle: state transitions and the hand-off of in-memory state to storage."""

from datetime import timedelta

from loguru import logger

from streamcart.domain.live.broadcast.fanout import Fanout
from streamcart.domain.live.broadcast.scheduler import BroadcastScheduler
from streamcart.domain.live.engagement.clicks import ClickAggregator
from streamcart.domain.live.engagement.engagement_models import ReactionStats
from streamcart.domain.live.engagement.reactions import ReactionAggregator
from streamcart.domain.live.presence.presence_models import resolve_role
from streamcart.domain.live.presence.presence_registry import PresenceRegistry
from streamcart.schemas import Product, Session, SessionProduct, SessionState, ViewerRole
from streamcart.services.integrations.livekit_service import LivekitService
from streamcart.shared.keyed_lock import KeyedLock
from streamcart.shared.time_utils import utc_now
from streamcart.utils.app_errors import AppErrorCode, state_conflict
from streamcart.utils.idgen import new_anonymous_identity

from ._base import BaseService, channel_name_for
from .session_models import (
    EndSessionResponse,
    LiveStatsResponse,
    SessionResponse,
    ShowcasedProduct,
    ShowcaseResponse,
    StreamTokenResponse,
)

EVENT_STREAM_STARTED = "stream-started"
EVENT_STREAM_PAUSED = "stream-paused"
EVENT_STREAM_ENDED = "stream-ended"
EVENT_PRODUCT_SHOWCASED = "product-showcased"
EVENT_SHOWCASE_CLEARED = "showcase-cleared"


class SessionLifecycleService(BaseService):
    """Drives session state and owns the end-of-session flush.

    Transitions of one session run under its entry in `locks`, the same
    lock the event router takes for joins, leaves and clicks.
    """

    def __init__(
        self,
        presence: PresenceRegistry,
        reactions: ReactionAggregator,
        clicks: ClickAggregator,
        scheduler: BroadcastScheduler,
        fanout: Fanout,
        locks: KeyedLock,
        livekit: LivekitService | None = None,
    ):
        super().__init__(livekit)
        self.presence = presence
        self.reactions = reactions
        self.clicks = clicks
        self.scheduler = scheduler
        self.fanout = fanout
        self.locks = locks

    async def start_session(self, session_id: str, user_id: str | None = None) -> SessionResponse:
        """Go live, from scheduled or from paused."""
        async with self.locks.hold(session_id):
            session = await self._require_session(session_id)
            self._require_creator(session, user_id)

            if session.status == SessionState.LIVE:
                raise state_conflict(AppErrorCode.E_SESSION_ALREADY_LIVE, f"Session {session_id} is already live")

            extra = {}
            if not session.channel_name:
                extra[Session.channel_name] = channel_name_for(session_id)
            await self.update_session_state(session, SessionState.LIVE, extra)

            self.clicks.initialize(session_id)

        await self.fanout.publish(
            session_id,
            EVENT_STREAM_STARTED,
            {
                "sessionId": session_id,
                "channelName": session.channel_name,
                "startedAt": session.started_at,
            },
        )
        return SessionResponse.from_document(session)

    async def pause_session(self, session_id: str, user_id: str | None = None) -> SessionResponse:
        async with self.locks.hold(session_id):
            session = await self._require_session(session_id)
            self._require_creator(session, user_id)

            if session.status != SessionState.LIVE:
                raise state_conflict(AppErrorCode.E_SESSION_NOT_LIVE, f"Session {session_id} is not live")
            await self.update_session_state(session, SessionState.PAUSED)

        await self.fanout.publish(session_id, EVENT_STREAM_PAUSED, {"sessionId": session_id})
        return SessionResponse.from_document(session)

    async def end_session(self, session_id: str, user_id: str | None = None) -> EndSessionResponse:
        """End the session and move its in-memory state to storage exactly once.

        The broadcast task is cancelled before any tally is touched. Reactions
        are cleared only after the status write that carries their snapshot,
        so a failed write leaves them in place for a retry.
        """
        async with self.locks.hold(session_id):
            session = await self._require_session(session_id)
            self._require_creator(session, user_id)

            if session.status not in SessionState.active_states():
                raise state_conflict(
                    AppErrorCode.E_SESSION_NOT_LIVE,
                    f"Session {session_id} cannot end from {session.status}",
                )

            now = utc_now()
            await self.scheduler.stop(session_id)
            closed_views = await self.presence.close_session(session_id, now)
            reaction_counts = self.reactions.snapshot(session_id)
            persisted_click_products = await self.clicks.flush(session_id)

            extra = {Session.ended_at: now}
            if reaction_counts is not None:
                extra[Session.reaction_counts] = reaction_counts
            await self.update_session_state(session, SessionState.ENDED, extra)
            self.reactions.clear(session_id)

        logger.info(
            "Session {} ended: closed_views={} reactions={} click_products={}",
            session_id,
            closed_views,
            reaction_counts,
            persisted_click_products,
        )

        await self.fanout.publish(
            session_id,
            EVENT_STREAM_ENDED,
            {"sessionId": session_id, "endedAt": session.ended_at},
        )

        return EndSessionResponse(
            session=SessionResponse.from_document(session),
            closed_views=closed_views,
            reaction_counts=reaction_counts,
            persisted_click_products=persisted_click_products,
        )

    async def showcase_product(
        self,
        session_id: str,
        product_id: str | None,
        user_id: str | None = None,
    ) -> ShowcaseResponse:
        """Set or clear the showcased product. `product_id=None` clears it."""
        async with self.locks.hold(session_id):
            session = await self._require_session(session_id)
            self._require_creator(session, user_id)

            if session.status not in SessionState.active_states():
                raise state_conflict(AppErrorCode.E_SESSION_NOT_LIVE, f"Session {session_id} is not live")

            product: ShowcasedProduct | None = None
            if product_id is not None:
                attached = await SessionProduct.find_one(
                    SessionProduct.session_id == session_id,
                    SessionProduct.product_id == product_id,
                )
                if attached is None:
                    raise state_conflict(
                        AppErrorCode.E_PRODUCT_NOT_IN_SESSION,
                        f"Product {product_id} is not part of session {session_id}",
                    )
                doc = await Product.find_one(Product.product_id == product_id)
                if doc is not None:
                    product = ShowcasedProduct(
                        product_id=doc.product_id,
                        name=doc.name,
                        price=doc.price,
                        image_url=doc.image_url,
                        in_stock=doc.in_stock,
                    )

            await session.set({Session.active_product_id: product_id, Session.updated_at: utc_now()})

        if product_id is None:
            logger.info("Session {} showcase cleared", session_id)
            await self.fanout.publish(session_id, EVENT_SHOWCASE_CLEARED, {"sessionId": session_id})
        else:
            logger.info("Session {} showcasing product {}", session_id, product_id)
            await self.fanout.publish(
                session_id,
                EVENT_PRODUCT_SHOWCASED,
                {
                    "sessionId": session_id,
                    "productId": product_id,
                    "product": product.to_wire() if product else None,
                },
            )

        return ShowcaseResponse(session_id=session_id, active_product_id=product_id, product=product)

    async def require_live(self, session_id: str) -> Session:
        session = await self._require_session(session_id)
        if session.status != SessionState.LIVE:
            raise state_conflict(AppErrorCode.E_SESSION_NOT_LIVE, f"Session {session_id} is not live")
        return session

    async def issue_stream_token(self, session_id: str, user_id: str | None = None) -> StreamTokenResponse:
        """Video credential for the session channel; the creator may publish, others subscribe."""
        session = await self._require_session(session_id)
        if session.status == SessionState.ENDED:
            raise state_conflict(AppErrorCode.E_SESSION_ENDED, f"Session {session_id} has ended")

        channel_name = session.channel_name or channel_name_for(session_id)
        role = resolve_role(session, user_id)
        identity = user_id or new_anonymous_identity()
        ttl = self.livekit.default_ttl

        token = self.livekit.create_access_token(
            identity=identity,
            room=channel_name,
            can_publish=role == ViewerRole.PUBLISHER,
            can_subscribe=True,
            ttl_seconds=ttl,
        )
        return StreamTokenResponse(
            token=token,
            channel_name=channel_name,
            identity=identity,
            role=role,
            url=self.livekit.url,
            expires_at=utc_now() + timedelta(seconds=ttl),
        )

    async def live_stats(self, session_id: str) -> LiveStatsResponse:
        session = await self._require_session(session_id)
        return LiveStatsResponse(
            session_id=session_id,
            status=session.status,
            viewer_count=self.presence.current_viewer_count(session_id),
            reactions=ReactionStats(
                session_id=session_id,
                percentages=self.reactions.percentages(session_id),
                total=self.reactions.total(session_id),
            ),
            clicks=self.clicks.current_stats(session_id),
            broadcasting=self.scheduler.is_running(session_id),
        )
