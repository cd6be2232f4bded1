"""Tests for ConnectionEventRouter: inbound live socket events."""

import pytest

from streamcart.domain.live.broadcast.scheduler import EVENT_PRODUCT_CLICK_STATS
from streamcart.domain.live.events.event_router import (
    EVENT_ERROR,
    EVENT_NEW_MESSAGE,
    EVENT_NEW_REACTION,
    EVENT_REACTION_STATS,
    EVENT_SESSION_JOINED,
    EVENT_VIEWER_COUNT,
)
from streamcart.domain.live.session.session_domain import EVENT_PRODUCT_SHOWCASED
from streamcart.schemas import ChatMessage, SessionState, SessionView, ViewerRole
from tests.fixtures.live_fixtures import FakeSocket, attach_product, create_session, reload_session


def _connect(runtime, connection_id: str) -> FakeSocket:
    socket = FakeSocket()
    runtime.router.connect(connection_id, socket)
    return socket


class TestJoinLeave:
    async def test_join_replies_and_broadcasts_viewer_count(self, live_runtime):
        # Arrange
        await create_session("se_j", creator_id="u.creator", status=SessionState.LIVE)
        creator = _connect(live_runtime, "cn_c")
        viewer = _connect(live_runtime, "cn_v")

        # Act
        assert await live_runtime.router.dispatch("cn_c", "join", {"sessionId": "se_j", "userId": "u.creator"})
        assert await live_runtime.router.dispatch("cn_v", "join", {"sessionId": "se_j", "userId": 42})

        # Assert
        assert creator.events(EVENT_SESSION_JOINED)[0]["data"]["role"] == ViewerRole.PUBLISHER.value
        assert viewer.last(EVENT_SESSION_JOINED)["role"] == ViewerRole.SUBSCRIBER.value
        assert creator.last(EVENT_VIEWER_COUNT) == 1
        assert viewer.last(EVENT_VIEWER_COUNT) == 1
        assert live_runtime.router.attachment("cn_v").user_id == "42"

    async def test_join_unknown_session_answers_error(self, live_runtime):
        socket = _connect(live_runtime, "cn_1")

        handled = await live_runtime.router.dispatch("cn_1", "join", {"sessionId": "se_missing"})

        assert handled is False
        error = socket.last(EVENT_ERROR)
        assert error["event"] == "join"
        assert error["errcode"] == "E_SESSION_NOT_FOUND"
        assert error["erresid"]

    async def test_join_with_invalid_payload(self, live_runtime):
        socket = _connect(live_runtime, "cn_1")

        await live_runtime.router.dispatch("cn_1", "join", {"userId": "u1"})

        assert socket.last(EVENT_ERROR)["errcode"] == "E_INVALID_REQUEST"

    async def test_join_other_session_leaves_first(self, live_runtime):
        await create_session("se_a", status=SessionState.LIVE)
        await create_session("se_b", status=SessionState.LIVE)
        _connect(live_runtime, "cn_1")

        await live_runtime.router.dispatch("cn_1", "join", {"sessionId": "se_a", "userId": "u1"})
        await live_runtime.router.dispatch("cn_1", "join", {"sessionId": "se_b", "userId": "u1"})

        assert live_runtime.presence.current_viewer_count("se_a") == 0
        assert live_runtime.presence.current_viewer_count("se_b") == 1
        assert live_runtime.hub.room_size("se_a") == 0

    @pytest.mark.parametrize(
        "target,errcode",
        [("se_missing", "E_SESSION_NOT_FOUND"), ("se_done", "E_SESSION_ENDED")],
    )
    async def test_failed_join_keeps_current_session(self, live_runtime, target, errcode):
        await create_session("se_a", status=SessionState.LIVE)
        await create_session("se_done", status=SessionState.ENDED)
        socket = _connect(live_runtime, "cn_1")
        await live_runtime.router.dispatch("cn_1", "join", {"sessionId": "se_a", "userId": "u1"})

        handled = await live_runtime.router.dispatch("cn_1", "join", {"sessionId": target, "userId": "u1"})

        assert handled is False
        assert socket.last(EVENT_ERROR)["errcode"] == errcode
        assert live_runtime.presence.current_viewer_count("se_a") == 1
        assert live_runtime.router.attachment("cn_1").session_id == "se_a"
        assert live_runtime.hub.room_size("se_a") == 1
        active = await live_runtime.presence.active_views("se_a")
        assert [view.connection_id for view in active] == ["cn_1"]

    async def test_leave_accepts_bare_session_id(self, live_runtime):
        await create_session("se_l", status=SessionState.LIVE)
        _connect(live_runtime, "cn_1")
        watcher = _connect(live_runtime, "cn_2")
        await live_runtime.router.dispatch("cn_1", "join", {"sessionId": "se_l", "userId": "u1"})
        await live_runtime.router.dispatch("cn_2", "join", {"sessionId": "se_l", "userId": "u2"})

        assert await live_runtime.router.dispatch("cn_1", "leave", "se_l")

        assert live_runtime.router.attachment("cn_1") is None
        assert watcher.last(EVENT_VIEWER_COUNT) == 1

    async def test_leave_for_other_session_ignored(self, live_runtime):
        await create_session("se_l", status=SessionState.LIVE)
        _connect(live_runtime, "cn_1")
        await live_runtime.router.dispatch("cn_1", "join", {"sessionId": "se_l", "userId": "u1"})

        await live_runtime.router.dispatch("cn_1", "leave", {"sessionId": "se_other"})

        assert live_runtime.router.attachment("cn_1").session_id == "se_l"

    async def test_disconnect_without_join_is_noop(self, live_runtime):
        _connect(live_runtime, "cn_1")

        await live_runtime.router.disconnect("cn_1")
        await live_runtime.router.disconnect("cn_1")

        assert live_runtime.hub.is_attached("cn_1") is False

    async def test_unknown_event(self, live_runtime):
        socket = _connect(live_runtime, "cn_1")

        assert await live_runtime.router.dispatch("cn_1", "dance", {}) is False

        assert socket.last(EVENT_ERROR)["errcode"] == "E_INVALID_REQUEST"


class TestEngagementEvents:
    async def _joined(self, runtime, session_id: str = "se_e", status=SessionState.LIVE):
        await create_session(session_id, creator_id="u.creator", status=status)
        creator = _connect(runtime, "cn_c")
        viewer = _connect(runtime, "cn_v")
        await runtime.router.dispatch("cn_c", "join", {"sessionId": session_id, "userId": "u.creator"})
        await runtime.router.dispatch("cn_v", "join", {"sessionId": session_id, "userId": "u1"})
        return creator, viewer

    async def test_reaction_broadcasts_reaction_and_stats(self, live_runtime):
        creator, viewer = await self._joined(live_runtime)

        await live_runtime.router.dispatch("cn_v", "send-reaction", {"sessionId": "se_e", "type": "heart"})

        assert creator.last(EVENT_NEW_REACTION)["type"] == "heart"
        assert viewer.last(EVENT_REACTION_STATS) == {"sessionId": "se_e", "percentages": {"heart": 100}, "total": 1}

    async def test_reaction_requires_join(self, live_runtime):
        await create_session("se_e", status=SessionState.LIVE)
        socket = _connect(live_runtime, "cn_x")

        await live_runtime.router.dispatch("cn_x", "send-reaction", {"sessionId": "se_e", "type": "heart"})

        assert socket.last(EVENT_ERROR)["errcode"] == "E_NOT_JOINED"
        assert live_runtime.reactions.snapshot("se_e") is None

    async def test_message_is_persisted_and_broadcast(self, live_runtime):
        creator, _ = await self._joined(live_runtime)

        await live_runtime.router.dispatch(
            "cn_v",
            "send-message",
            {"sessionId": "se_e", "message": "hi!", "userId": "u1", "userName": "Alice"},
        )

        frame = creator.last(EVENT_NEW_MESSAGE)
        assert frame["message"] == "hi!"
        assert frame["userName"] == "Alice"
        assert await ChatMessage.find(ChatMessage.session_id == "se_e").count() == 1

    async def test_message_with_foreign_user_id_rejected(self, live_runtime):
        _, viewer = await self._joined(live_runtime)

        await live_runtime.router.dispatch(
            "cn_v",
            "send-message",
            {"sessionId": "se_e", "message": "hi", "userId": "u.someone", "userName": "Eve"},
        )

        assert viewer.last(EVENT_ERROR)["errcode"] == "E_FORBIDDEN"
        assert await ChatMessage.find_all().count() == 0

    async def test_showcase_by_publisher(self, live_runtime):
        _, viewer = await self._joined(live_runtime)
        await attach_product("se_e", "pr_a", name="Mug")

        await live_runtime.router.dispatch("cn_c", "showcase-product", {"sessionId": "se_e", "productId": "pr_a"})

        assert viewer.last(EVENT_PRODUCT_SHOWCASED)["product"]["name"] == "Mug"

    async def test_showcase_by_subscriber_forbidden(self, live_runtime):
        _, viewer = await self._joined(live_runtime)
        await attach_product("se_e", "pr_a")

        await live_runtime.router.dispatch("cn_v", "showcase-product", {"sessionId": "se_e", "productId": "pr_a"})

        assert viewer.last(EVENT_ERROR)["errcode"] == "E_FORBIDDEN"
        assert (await reload_session("se_e")).active_product_id is None

    async def test_click_starts_broadcast(self, live_runtime):
        creator, _ = await self._joined(live_runtime)

        await live_runtime.router.dispatch("cn_v", "track-product-click", {"sessionId": "se_e", "productId": "pr_a", "userId": "u1"})
        await live_runtime.router.dispatch("cn_v", "track-product-click", {"sessionId": "se_e", "productId": "pr_a"})

        assert live_runtime.scheduler.is_running("se_e") is True
        assert await live_runtime.scheduler.tick("se_e") is True
        stats = creator.last(EVENT_PRODUCT_CLICK_STATS)
        assert stats["productStats"][0]["uniqueClicks"] == 2
        assert stats["productStats"][0]["totalClicks"] == 2

    async def test_click_on_paused_session_rejected(self, live_runtime):
        _, viewer = await self._joined(live_runtime, status=SessionState.PAUSED)

        await live_runtime.router.dispatch("cn_v", "track-product-click", {"sessionId": "se_e", "productId": "pr_a"})

        assert viewer.last(EVENT_ERROR)["errcode"] == "E_SESSION_NOT_LIVE"
        assert live_runtime.scheduler.is_running("se_e") is False


class TestLiveScenario:
    async def test_full_session_with_disconnect(self, live_runtime):
        """Creator and two viewers, one reaction, one disconnect, then the session ends."""
        # Arrange
        await create_session("se_flow", creator_id="u.creator")
        await live_runtime.lifecycle.start_session("se_flow", user_id="u.creator")
        creator = _connect(live_runtime, "cn_c")
        _connect(live_runtime, "cn_v1")
        _connect(live_runtime, "cn_v2")
        router = live_runtime.router

        # Act / Assert step by step
        await router.dispatch("cn_c", "join", {"sessionId": "se_flow", "userId": "u.creator"})
        assert creator.last(EVENT_VIEWER_COUNT) == 0

        await router.dispatch("cn_v1", "join", {"sessionId": "se_flow", "userId": "v1"})
        assert creator.last(EVENT_VIEWER_COUNT) == 1

        await router.dispatch("cn_v1", "send-reaction", {"sessionId": "se_flow", "type": "heart"})
        await router.dispatch("cn_v2", "join", {"sessionId": "se_flow", "userId": "v2"})
        assert creator.last(EVENT_VIEWER_COUNT) == 2

        await router.dispatch("cn_v2", "track-product-click", {"sessionId": "se_flow", "productId": "pr_a", "userId": "v2"})
        assert live_runtime.scheduler.is_running("se_flow") is True

        await router.disconnect("cn_v1")
        assert creator.last(EVENT_VIEWER_COUNT) == 1

        result = await live_runtime.lifecycle.end_session("se_flow", user_id="u.creator")

        # Assert final state
        assert result.reaction_counts == {"heart": 1}
        saved = await reload_session("se_flow")
        assert saved.status == SessionState.ENDED
        assert saved.reaction_counts == {"heart": 1}
        views = await SessionView.find(SessionView.session_id == "se_flow").to_list()
        assert len(views) == 3
        assert all(view.left_at is not None and view.watch_duration >= 0 for view in views)
        assert live_runtime.scheduler.is_running("se_flow") is False
        assert live_runtime.scheduler.running_session_ids() == []
        assert live_runtime.presence.current_viewer_count("se_flow") == 0


@pytest.mark.parametrize("event", ["send-reaction", "send-message", "showcase-product", "track-product-click"])
async def test_events_on_missing_payload_answer_error(live_runtime, event):
    socket = _connect(live_runtime, "cn_1")

    assert await live_runtime.router.dispatch("cn_1", event, None) is False

    assert socket.last(EVENT_ERROR)["errcode"] == "E_INVALID_REQUEST"
