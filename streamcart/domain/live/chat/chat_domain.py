"""Live chat: best-effort persistence with an explicit persisted/ephemeral result."""

from datetime import datetime

from beanie.operators import LT
from loguru import logger
from pydantic import BaseModel

from streamcart.schemas import ChatMessage
from streamcart.shared.time_utils import utc_now
from streamcart.utils.app_errors import invalid_request
from streamcart.utils.idgen import new_local_message_id

MAX_MESSAGE_LENGTH = 1000
MAX_PAGE_SIZE = 200


class ChatMessageOut(BaseModel):
    id: str
    session_id: str
    user_id: str
    user_name: str
    message: str
    created_at: datetime

    def to_wire(self) -> dict:
        return {
            "id": self.id,
            "message": self.message,
            "userId": self.user_id,
            "userName": self.user_name,
            "sessionId": self.session_id,
            "createdAt": self.created_at,
        }


class MessageCountOut(BaseModel):
    session_id: str
    count: int


class ChatPostResult(BaseModel):
    """`persisted` is False when storage failed and `message.id` is a local id."""

    message: ChatMessageOut
    persisted: bool


def _to_out(doc: ChatMessage) -> ChatMessageOut:
    return ChatMessageOut(
        id=doc.message_id,
        session_id=doc.session_id,
        user_id=doc.user_id,
        user_name=doc.user_name,
        message=doc.message,
        created_at=doc.created_at,
    )


class ChatService:
    async def post_message(self, session_id: str, user_id: str, user_name: str, message: str) -> ChatPostResult:
        text = (message or "").strip()
        if not text:
            raise invalid_request("Message must not be empty")
        if len(text) > MAX_MESSAGE_LENGTH:
            raise invalid_request(f"Message exceeds {MAX_MESSAGE_LENGTH} characters")
        if not user_id or not user_name:
            raise invalid_request("userId and userName are required")

        doc = ChatMessage(
            session_id=session_id,
            user_id=user_id,
            user_name=user_name,
            message=text,
            created_at=utc_now(),
        )
        try:
            await doc.insert()
            return ChatPostResult(message=_to_out(doc), persisted=True)
        except Exception as e:
            local_id = new_local_message_id()
            logger.warning("Chat message of session {} not persisted, delivering as {}: {}", session_id, local_id, e)
            out = _to_out(doc).model_copy(update={"id": local_id})
            return ChatPostResult(message=out, persisted=False)

    async def list_messages(
        self,
        session_id: str,
        limit: int = 50,
        before: datetime | None = None,
    ) -> list[ChatMessageOut]:
        """Newest page of messages older than `before`, returned oldest first."""
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        filters = [ChatMessage.session_id == session_id]
        if before is not None:
            filters.append(LT(ChatMessage.created_at, before))

        docs = await ChatMessage.find(*filters).sort(-ChatMessage.created_at).limit(limit).to_list()
        docs.reverse()
        return [_to_out(doc) for doc in docs]

    async def count_messages(self, session_id: str) -> int:
        return await ChatMessage.find(ChatMessage.session_id == session_id).count()
