from datetime import datetime

from fastapi import APIRouter, Query

from streamcart.api.dependency import Runtime
from streamcart.api.v1.schemas.base import ApiOut
from streamcart.app_config import get_app_environ_config
from streamcart.domain.live.chat.chat_domain import MAX_PAGE_SIZE, ChatMessageOut, MessageCountOut
from streamcart.schemas import Session
from streamcart.utils.app_errors import session_not_found

router = APIRouter(prefix="/live/chat")


async def _require_session(session_id: str) -> None:
    session = await Session.find_one(Session.session_id == session_id)
    if not session:
        raise session_not_found(session_id)


@router.get("/list_messages")
async def list_messages(
    runtime: Runtime,
    session_id: str = Query(...),
    limit: int | None = Query(None, ge=1, le=MAX_PAGE_SIZE),
    before: datetime | None = Query(None, description="Only messages created before this instant"),
) -> ApiOut[list[ChatMessageOut]]:
    """Chat history page, oldest first."""
    await _require_session(session_id)

    page_size = limit or get_app_environ_config().CHAT_HISTORY_PAGE_SIZE
    result = await runtime.chat.list_messages(session_id, limit=page_size, before=before)
    return ApiOut[list[ChatMessageOut]](results=result)


@router.get("/count_messages")
async def count_messages(runtime: Runtime, session_id: str = Query(...)) -> ApiOut[MessageCountOut]:
    await _require_session(session_id)

    count = await runtime.chat.count_messages(session_id)
    return ApiOut[MessageCountOut](results=MessageCountOut(session_id=session_id, count=count))
