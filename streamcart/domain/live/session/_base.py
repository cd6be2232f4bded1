"""Base service for session operations."""

from typing import Any

from loguru import logger

from streamcart.schemas import Session, SessionState
from streamcart.services.integrations.livekit_service import LivekitService, livekit_service
from streamcart.shared.time_utils import utc_now
from streamcart.utils.app_errors import (
    AppError,
    AppErrorCode,
    HttpStatusCode,
    session_not_found,
    state_conflict,
)

from .session_state_machine import SessionStateMachine


def channel_name_for(session_id: str) -> str:
    return f"live_{session_id}"


class BaseService:
    """Base service with shared session operation methods."""

    def __init__(self, livekit: LivekitService | None = None):
        self.livekit = livekit or livekit_service

    async def _get_session_by_id(self, session_id: str) -> Session | None:
        return await Session.find_one(Session.session_id == session_id)

    async def _require_session(self, session_id: str) -> Session:
        session = await self._get_session_by_id(session_id)
        if session is None:
            raise session_not_found(session_id)
        return session

    def _require_creator(self, session: Session, user_id: str | None) -> None:
        """Lifecycle calls made on behalf of a user must come from the creator."""
        if user_id is not None and not session.is_creator(user_id):
            raise AppError(
                errcode=AppErrorCode.E_FORBIDDEN,
                errmesg=f"Only the creator may manage session {session.session_id}",
                status_code=HttpStatusCode.FORBIDDEN,
            )

    async def update_session_state(
        self,
        session: Session,
        new_state: SessionState,
        extra_updates: dict[Any, Any] | None = None,
    ) -> Session:
        """
        Update session state with validation and timestamp updates.

        Raises:
            AppError: If the transition is not allowed
        """
        if session.status == new_state:
            logger.info(f"Session {session.session_id} already in state {new_state}, skipping")
            return session

        if not SessionStateMachine.can_transition(session.status, new_state):
            raise state_conflict(
                AppErrorCode.E_INVALID_STATE_TRANSITION,
                f"Invalid state transition: {session.status} -> {new_state}",
            )

        now = utc_now()
        updates: dict[Any, Any] = {
            Session.status: new_state,
            Session.updated_at: now,
        }
        if new_state == SessionState.LIVE and not session.started_at:
            updates[Session.started_at] = now
        elif new_state == SessionState.ENDED and not session.ended_at:
            updates[Session.ended_at] = now
        if extra_updates:
            updates.update(extra_updates)

        await session.set(updates)

        logger.info(f"Session {session.session_id} state updated to {new_state}")

        return session
