"""Creator-facing live session endpoints."""

from fastapi import APIRouter, Query

from streamcart.api.dependency import CurrentUser, OptionalUser, Runtime
from streamcart.api.v1.schemas.base import ApiOut
from streamcart.api.v1.schemas.live_session import ShowcaseProductIn
from streamcart.domain.live.session.session_models import (
    EndSessionResponse,
    LiveStatsResponse,
    SessionResponse,
    ShowcaseResponse,
    StreamTokenResponse,
)

router = APIRouter(prefix="/live/session")


@router.post("/start_session")
async def start_session(
    runtime: Runtime,
    user: CurrentUser,
    session_id: str = Query(..., description="Session to go live"),
) -> ApiOut[SessionResponse]:
    """Go live, or resume a paused session."""
    result = await runtime.lifecycle.start_session(session_id, user_id=user.user_id)
    return ApiOut[SessionResponse](results=result)


@router.post("/pause_session")
async def pause_session(
    runtime: Runtime,
    user: CurrentUser,
    session_id: str = Query(...),
) -> ApiOut[SessionResponse]:
    result = await runtime.lifecycle.pause_session(session_id, user_id=user.user_id)
    return ApiOut[SessionResponse](results=result)


@router.post("/end_session")
async def end_session(
    runtime: Runtime,
    user: CurrentUser,
    session_id: str = Query(...),
) -> ApiOut[EndSessionResponse]:
    """End the session.

    Closes open views, persists reaction totals and click statistics, and
    stops the periodic broadcast before the status flips to ended.
    """
    result = await runtime.lifecycle.end_session(session_id, user_id=user.user_id)
    return ApiOut[EndSessionResponse](results=result)


@router.post("/showcase_product")
async def showcase_product(
    runtime: Runtime,
    user: CurrentUser,
    params: ShowcaseProductIn,
) -> ApiOut[ShowcaseResponse]:
    result = await runtime.lifecycle.showcase_product(params.session_id, params.product_id, user_id=user.user_id)
    return ApiOut[ShowcaseResponse](results=result)


@router.get("/get_stream_token")
async def get_stream_token(
    runtime: Runtime,
    user: OptionalUser,
    session_id: str = Query(...),
) -> ApiOut[StreamTokenResponse]:
    """Issue a video credential. Anonymous callers get a subscriber token."""
    result = await runtime.lifecycle.issue_stream_token(session_id, user_id=user.user_id if user else None)
    return ApiOut[StreamTokenResponse](results=result)


@router.get("/get_live_stats")
async def get_live_stats(
    runtime: Runtime,
    session_id: str = Query(...),
) -> ApiOut[LiveStatsResponse]:
    result = await runtime.lifecycle.live_stats(session_id)
    return ApiOut[LiveStatsResponse](results=result)
