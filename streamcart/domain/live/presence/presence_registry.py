"""Presence registry: which connections watch which session, and in what role.

The in-memory membership index answers "how many viewers right now" without
touching storage. Every membership has exactly one active `SessionView`
row behind it, so the index can be rebuilt from storage.
"""

from datetime import datetime

from loguru import logger

from streamcart.schemas import Session, SessionState, SessionView, ViewerRole
from streamcart.shared.time_utils import elapsed_seconds, utc_now
from streamcart.utils.app_errors import AppErrorCode, session_not_found, state_conflict

from .presence_models import JoinResult, Membership, ViewerAggregates, resolve_role

# spans at or below this many seconds are ignored by the watch-time average
MIN_COUNTED_WATCH_SECONDS = 10


class PresenceRegistry:
    def __init__(self) -> None:
        self._memberships: dict[str, Membership] = {}
        self._by_session: dict[str, set[str]] = {}

    # ------------------------------------------------------------------
    # membership index
    # ------------------------------------------------------------------

    def membership(self, connection_id: str) -> Membership | None:
        return self._memberships.get(connection_id)

    def connection_ids(self, session_id: str) -> list[str]:
        return sorted(self._by_session.get(session_id, ()))

    def current_viewer_count(self, session_id: str) -> int:
        """Live subscriber connections; publishers are never counted."""
        return sum(
            1
            for connection_id in self._by_session.get(session_id, ())
            if self._memberships[connection_id].role == ViewerRole.SUBSCRIBER
        )

    def _attach(self, membership: Membership) -> None:
        self._memberships[membership.connection_id] = membership
        self._by_session.setdefault(membership.session_id, set()).add(membership.connection_id)

    def _detach(self, connection_id: str | None) -> Membership | None:
        if not connection_id:
            return None
        membership = self._memberships.pop(connection_id, None)
        if membership is None:
            return None
        connections = self._by_session.get(membership.session_id)
        if connections is not None:
            connections.discard(connection_id)
            if not connections:
                self._by_session.pop(membership.session_id, None)
        return membership

    # ------------------------------------------------------------------
    # join / leave
    # ------------------------------------------------------------------

    async def require_joinable(self, session_id: str) -> Session:
        """Load a session that can still be joined, or raise."""
        session = await Session.find_one(Session.session_id == session_id)
        if session is None:
            raise session_not_found(session_id)
        if session.status == SessionState.ENDED:
            raise state_conflict(AppErrorCode.E_SESSION_ENDED, f"Session {session_id} has ended")
        return session

    async def join(self, session_id: str, connection_id: str, user_id: str | None = None) -> JoinResult:
        session = await self.require_joinable(session_id)

        role = resolve_role(session, user_id)
        now = utc_now()
        is_reconnection = False

        if user_id:
            prior_views = await SessionView.find(
                SessionView.session_id == session_id,
                SessionView.user_id == user_id,
                SessionView.left_at == None,  # noqa: E711
            ).to_list()
            for view in prior_views:
                await self._close_view(view, now)
                self._detach(view.connection_id)
                is_reconnection = True

        stale_views = await SessionView.find(
            SessionView.connection_id == connection_id,
            SessionView.left_at == None,  # noqa: E711
        ).to_list()
        for view in stale_views:
            await self._close_view(view, now)
            if view.session_id == session_id and user_id and view.user_id == user_id:
                is_reconnection = True
        self._detach(connection_id)

        view = SessionView(
            session_id=session_id,
            user_id=user_id,
            connection_id=connection_id,
            role=role,
            joined_at=now,
        )
        await view.insert()

        self._attach(
            Membership(
                connection_id=connection_id,
                session_id=session_id,
                role=role,
                user_id=user_id,
                joined_at=now,
            )
        )

        logger.info(
            "Connection {} joined session {} as {} user={} reconnection={}",
            connection_id,
            session_id,
            role,
            user_id,
            is_reconnection,
        )

        return JoinResult(
            session_id=session_id,
            connection_id=connection_id,
            role=role,
            is_reconnection=is_reconnection,
            view_id=view.view_id,
        )

    async def leave(self, connection_id: str) -> Membership | None:
        """Close the view bound to the connection. Returns None if it was not tracked."""
        membership = self._detach(connection_id)
        views = await SessionView.find(
            SessionView.connection_id == connection_id,
            SessionView.left_at == None,  # noqa: E711
        ).to_list()

        if membership is None and not views:
            return None

        now = utc_now()
        for view in views:
            await self._close_view(view, now)

        if membership is None:
            view = views[0]
            membership = Membership(
                connection_id=connection_id,
                session_id=view.session_id,
                role=view.role,
                user_id=view.user_id,
                joined_at=view.joined_at,
            )

        logger.info("Connection {} left session {} ({})", connection_id, membership.session_id, membership.role)
        return membership

    async def _close_view(self, view: SessionView, now: datetime) -> None:
        await view.set(
            {
                SessionView.left_at: now,
                SessionView.watch_duration: elapsed_seconds(view.joined_at, now),
            }
        )

    async def close_session(self, session_id: str, now: datetime | None = None) -> int:
        """Force-close every active view of the session and drop its memberships."""
        now = now or utc_now()
        views = await SessionView.find(
            SessionView.session_id == session_id,
            SessionView.left_at == None,  # noqa: E711
        ).to_list()
        for view in views:
            await self._close_view(view, now)

        for connection_id in list(self._by_session.get(session_id, ())):
            self._detach(connection_id)

        logger.info("Closed {} active views of session {}", len(views), session_id)
        return len(views)

    async def rebuild(self, session_id: str) -> int:
        """Reconstruct the membership index of a session from its active views."""
        for connection_id in list(self._by_session.get(session_id, ())):
            self._detach(connection_id)

        views = await self.active_views(session_id)
        for view in views:
            if not view.connection_id:
                continue
            self._attach(
                Membership(
                    connection_id=view.connection_id,
                    session_id=session_id,
                    role=view.role,
                    user_id=view.user_id,
                    joined_at=view.joined_at,
                )
            )
        return len(self._by_session.get(session_id, ()))

    # ------------------------------------------------------------------
    # durable aggregates (subscriber views only)
    # ------------------------------------------------------------------

    async def unique_viewer_count(self, session_id: str) -> int:
        user_ids = await SessionView.distinct(
            "user_id",
            {"session_id": session_id, "role": ViewerRole.SUBSCRIBER.value, "user_id": {"$ne": None}},
        )
        return len(user_ids)

    async def unique_viewer_count_across(self, session_ids: list[str]) -> int:
        if not session_ids:
            return 0
        user_ids = await SessionView.distinct(
            "user_id",
            {"session_id": {"$in": session_ids}, "role": ViewerRole.SUBSCRIBER.value, "user_id": {"$ne": None}},
        )
        return len(user_ids)

    async def total_view_count(self, session_id: str) -> int:
        return await SessionView.find(
            SessionView.session_id == session_id,
            SessionView.role == ViewerRole.SUBSCRIBER,
        ).count()

    async def average_watch_duration(self, session_id: str) -> int:
        avg = await SessionView.find(
            SessionView.session_id == session_id,
            SessionView.role == ViewerRole.SUBSCRIBER,
            SessionView.watch_duration > MIN_COUNTED_WATCH_SECONDS,
        ).avg(SessionView.watch_duration)
        return int(avg or 0)

    async def peak_viewers(self, session_id: str) -> int:
        """Maximum concurrent subscribers, swept over recorded join/leave times."""
        views = await SessionView.find(
            SessionView.session_id == session_id,
            SessionView.role == ViewerRole.SUBSCRIBER,
        ).sort(+SessionView.joined_at).to_list()

        events: list[tuple[datetime, int]] = []
        for view in views:
            events.append((view.joined_at, 1))
            if view.left_at is not None:
                events.append((view.left_at, -1))
        # stable: equal instants keep recording order
        events.sort(key=lambda e: e[0])

        current = peak = 0
        for _, delta in events:
            current += delta
            peak = max(peak, current)
        return peak

    async def aggregates(self, session_id: str) -> ViewerAggregates:
        return ViewerAggregates(
            unique_viewers=await self.unique_viewer_count(session_id),
            total_views=await self.total_view_count(session_id),
            avg_watch_time=await self.average_watch_duration(session_id),
            peak_viewers=await self.peak_viewers(session_id),
        )

    async def active_views(self, session_id: str) -> list[SessionView]:
        return await SessionView.find(
            SessionView.session_id == session_id,
            SessionView.left_at == None,  # noqa: E711
        ).sort(+SessionView.joined_at).to_list()

    async def list_views(self, session_id: str) -> list[SessionView]:
        return await SessionView.find(SessionView.session_id == session_id).sort(-SessionView.joined_at).to_list()
