from fastapi import APIRouter, Query

from streamcart.api.dependency import Runtime
from streamcart.api.v1.schemas.base import ApiOut
from streamcart.domain.live.analytics.analytics_models import (
    ClickStatsReport,
    CreatorAnalytics,
    LiveViewers,
    SessionAnalytics,
    ViewerList,
)

router = APIRouter(prefix="/live/analytics")


@router.get("/get_session_analytics")
async def get_session_analytics(runtime: Runtime, session_id: str = Query(...)) -> ApiOut[SessionAnalytics]:
    result = await runtime.analytics.session_analytics(session_id)
    return ApiOut[SessionAnalytics](results=result)


@router.get("/get_live_viewers")
async def get_live_viewers(runtime: Runtime, session_id: str = Query(...)) -> ApiOut[LiveViewers]:
    """Viewers currently watching, most recent first."""
    result = await runtime.analytics.live_viewers(session_id)
    return ApiOut[LiveViewers](results=result)


@router.get("/get_viewer_list")
async def get_viewer_list(runtime: Runtime, session_id: str = Query(...)) -> ApiOut[ViewerList]:
    result = await runtime.analytics.viewer_list(session_id)
    return ApiOut[ViewerList](results=result)


@router.get("/get_click_stats")
async def get_click_stats(runtime: Runtime, session_id: str = Query(...)) -> ApiOut[ClickStatsReport]:
    result = await runtime.analytics.click_stats(session_id)
    return ApiOut[ClickStatsReport](results=result)


@router.get("/get_creator_analytics")
async def get_creator_analytics(runtime: Runtime, creator_id: str = Query(...)) -> ApiOut[CreatorAnalytics]:
    """Totals across all sessions of one creator."""
    result = await runtime.analytics.creator_analytics(creator_id)
    return ApiOut[CreatorAnalytics](results=result)
