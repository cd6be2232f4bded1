"""Entry point for everything a live socket sends.

Each inbound event is validated, applied to presence, the aggregators, chat
or the lifecycle service, and answered with session-wide events through
the fan-out. Failures are answered to the sender only, as an `error` frame,
and leave all state untouched.
"""

from typing import Any, Awaitable, Callable

from loguru import logger
from pydantic import ValidationError

from streamcart.domain.live.broadcast.fanout import Fanout
from streamcart.domain.live.broadcast.hub import FrameSink, SessionHub
from streamcart.domain.live.broadcast.scheduler import BroadcastScheduler
from streamcart.domain.live.chat.chat_domain import ChatService
from streamcart.domain.live.engagement.clicks import ClickAggregator
from streamcart.domain.live.engagement.engagement_models import ReactionStats
from streamcart.domain.live.engagement.reactions import ReactionAggregator
from streamcart.domain.live.presence.presence_models import Membership
from streamcart.domain.live.presence.presence_registry import PresenceRegistry
from streamcart.domain.live.session.session_domain import SessionLifecycleService
from streamcart.schemas import ViewerRole
from streamcart.shared.keyed_lock import KeyedLock
from streamcart.shared.time_utils import utc_now
from streamcart.utils.app_errors import AppError, AppErrorCode, HttpStatusCode, state_conflict

from .event_schemas import (
    JoinPayload,
    LeavePayload,
    MessagePayload,
    ProductClickPayload,
    ReactionPayload,
    ShowcasePayload,
)

EVENT_JOIN = "join"
EVENT_LEAVE = "leave"
EVENT_SEND_REACTION = "send-reaction"
EVENT_SEND_MESSAGE = "send-message"
EVENT_SHOWCASE_PRODUCT = "showcase-product"
EVENT_TRACK_PRODUCT_CLICK = "track-product-click"

EVENT_SESSION_JOINED = "session-joined"
EVENT_VIEWER_COUNT = "viewer-count"
EVENT_NEW_REACTION = "new-reaction"
EVENT_REACTION_STATS = "reaction-stats"
EVENT_NEW_MESSAGE = "new-message"
EVENT_ERROR = "error"

Handler = Callable[[str, Any], Awaitable[None]]


class ConnectionEventRouter:
    def __init__(
        self,
        presence: PresenceRegistry,
        reactions: ReactionAggregator,
        clicks: ClickAggregator,
        scheduler: BroadcastScheduler,
        lifecycle: SessionLifecycleService,
        chat: ChatService,
        hub: SessionHub,
        fanout: Fanout,
        locks: KeyedLock,
    ):
        self.presence = presence
        self.reactions = reactions
        self.clicks = clicks
        self.scheduler = scheduler
        self.lifecycle = lifecycle
        self.chat = chat
        self.hub = hub
        self.fanout = fanout
        self.locks = locks

        self._handlers: dict[str, Handler] = {
            EVENT_JOIN: self._on_join,
            EVENT_LEAVE: self._on_leave,
            EVENT_SEND_REACTION: self._on_reaction,
            EVENT_SEND_MESSAGE: self._on_message,
            EVENT_SHOWCASE_PRODUCT: self._on_showcase,
            EVENT_TRACK_PRODUCT_CLICK: self._on_product_click,
        }

    def attachment(self, connection_id: str) -> Membership | None:
        """Current (session, role) of a connection, if it has joined one."""
        return self.presence.membership(connection_id)

    def connect(self, connection_id: str, socket: FrameSink) -> None:
        self.hub.attach(connection_id, socket)
        logger.debug("Connection {} opened", connection_id)

    async def disconnect(self, connection_id: str) -> None:
        """Socket closed without a leave: same cleanup as leave."""
        try:
            await self._leave_current(connection_id)
        except Exception as e:
            logger.exception("Cleanup of connection {} failed: {}", connection_id, e)
        finally:
            self.hub.detach(connection_id)
            logger.debug("Connection {} closed", connection_id)

    async def dispatch(self, connection_id: str, event: str, data: Any = None) -> bool:
        handler = self._handlers.get(event)
        if handler is None:
            await self._reply_error(
                connection_id,
                event,
                AppError(
                    errcode=AppErrorCode.E_INVALID_REQUEST,
                    errmesg=f"Unknown event: {event}",
                    status_code=HttpStatusCode.BAD_REQUEST,
                ),
            )
            return False

        try:
            await handler(connection_id, data)
            return True
        except ValidationError as e:
            error = AppError(
                errcode=AppErrorCode.E_INVALID_REQUEST,
                errmesg=str(e),
                status_code=HttpStatusCode.BAD_REQUEST,
            )
        except AppError as e:
            error = e
        except Exception as e:
            logger.exception("Unhandled error on {} from {}: {}", event, connection_id, e)
            error = AppError(errmesg=f"Failed to handle {event}")

        log = logger.error if error.errcode == AppErrorCode.E_INTERNAL_ERROR.value else logger.warning
        log(f"{error.errcode} {error.erresid} event={event} conn={connection_id} msg={error.errmesg} caller={error.caller_info}")
        await self._reply_error(connection_id, event, error)
        return False

    # ------------------------------------------------------------------
    # handlers
    # ------------------------------------------------------------------

    async def _on_join(self, connection_id: str, data: Any) -> None:
        payload = JoinPayload.model_validate(data)
        session_id = payload.session_id

        current = self.presence.membership(connection_id)
        if current is not None and current.session_id != session_id:
            # the target must be joinable before the current session is left
            await self.presence.require_joinable(session_id)
            await self._leave_current(connection_id)

        async with self.locks.hold(session_id):
            result = await self.presence.join(session_id, connection_id, payload.user_id)

        self.hub.subscribe(session_id, connection_id)
        await self.hub.send_to(
            connection_id,
            EVENT_SESSION_JOINED,
            {
                "sessionId": session_id,
                "connectionId": connection_id,
                "role": result.role.value,
                "isReconnection": result.is_reconnection,
            },
        )
        await self._publish_viewer_count(session_id)

    async def _on_leave(self, connection_id: str, data: Any) -> None:
        payload = LeavePayload.parse(data)
        current = self.presence.membership(connection_id)
        if current is not None and current.session_id != payload.session_id:
            logger.debug(
                "Connection {} asked to leave {} but is in {}, ignoring",
                connection_id,
                payload.session_id,
                current.session_id,
            )
            return
        await self._leave_current(connection_id)

    async def _on_reaction(self, connection_id: str, data: Any) -> None:
        payload = ReactionPayload.model_validate(data)
        session_id = payload.session_id
        self._require_member(connection_id, session_id)

        self.reactions.record(session_id, payload.type)

        await self.fanout.publish(session_id, EVENT_NEW_REACTION, {"type": payload.type, "timestamp": utc_now()})
        stats = ReactionStats(
            session_id=session_id,
            percentages=self.reactions.percentages(session_id),
            total=self.reactions.total(session_id),
        )
        await self.fanout.publish(session_id, EVENT_REACTION_STATS, stats.to_wire())

    async def _on_message(self, connection_id: str, data: Any) -> None:
        payload = MessagePayload.model_validate(data)
        member = self._require_member(connection_id, payload.session_id)
        if member.user_id and member.user_id != payload.user_id:
            raise AppError(
                errcode=AppErrorCode.E_FORBIDDEN,
                errmesg="userId does not match the joined user",
                status_code=HttpStatusCode.FORBIDDEN,
            )

        result = await self.chat.post_message(
            payload.session_id,
            payload.user_id,
            payload.user_name,
            payload.message,
        )
        await self.fanout.publish(payload.session_id, EVENT_NEW_MESSAGE, result.message.to_wire())

    async def _on_showcase(self, connection_id: str, data: Any) -> None:
        payload = ShowcasePayload.model_validate(data)
        member = self._require_member(connection_id, payload.session_id)
        if member.role != ViewerRole.PUBLISHER:
            raise AppError(
                errcode=AppErrorCode.E_FORBIDDEN,
                errmesg="Only the publisher can showcase products",
                status_code=HttpStatusCode.FORBIDDEN,
            )

        await self.lifecycle.showcase_product(payload.session_id, payload.product_id, member.user_id)

    async def _on_product_click(self, connection_id: str, data: Any) -> None:
        payload = ProductClickPayload.model_validate(data)
        session_id = payload.session_id

        async with self.locks.hold(session_id):
            await self.lifecycle.require_live(session_id)
            self.clicks.track_click(session_id, payload.product_id, payload.user_id)

        self.scheduler.start(session_id)

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _require_member(self, connection_id: str, session_id: str) -> Membership:
        member = self.presence.membership(connection_id)
        if member is None or member.session_id != session_id:
            raise state_conflict(AppErrorCode.E_NOT_JOINED, f"Connection has not joined session {session_id}")
        return member

    async def _leave_current(self, connection_id: str) -> Membership | None:
        current = self.presence.membership(connection_id)
        if current is not None:
            async with self.locks.hold(current.session_id):
                left = await self.presence.leave(connection_id)
        else:
            left = await self.presence.leave(connection_id)

        self.hub.unsubscribe(connection_id)
        if left is not None:
            await self._publish_viewer_count(left.session_id)
        return left

    async def _publish_viewer_count(self, session_id: str) -> None:
        await self.fanout.publish(session_id, EVENT_VIEWER_COUNT, self.presence.current_viewer_count(session_id))

    async def _reply_error(self, connection_id: str, event: str, error: AppError) -> None:
        await self.hub.send_to(
            connection_id,
            EVENT_ERROR,
            {
                "event": event,
                "errcode": error.errcode,
                "errmesg": error.errmesg,
                "erresid": error.erresid,
            },
        )
