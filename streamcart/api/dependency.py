from typing import Annotated

from fastapi import Depends, Header, Request
from loguru import logger
from pydantic import BaseModel

from streamcart.domain.live.runtime import LiveRuntime
from streamcart.utils.app_errors import AppError, AppErrorCode, HttpStatusCode


class User(BaseModel):
    user_id: str


def get_live_runtime(request: Request) -> LiveRuntime:
    return request.app.state.live_runtime


async def get_optional_user(
    x_user_id: Annotated[str | None, Header(description="Caller identity set by the auth gateway")] = None,
) -> User | None:
    # Authentication happens upstream; the gateway forwards the verified user id.
    user_id = (x_user_id or "").strip()
    if not user_id:
        return None
    logger.debug("Caller user_id: {}", user_id)
    return User(user_id=user_id)


async def get_current_user(user: User | None = Depends(get_optional_user)) -> User:
    if user is None:
        raise AppError(
            errcode=AppErrorCode.E_UNAUTHORIZED,
            errmesg="Missing caller identity",
            status_code=HttpStatusCode.UNAUTHORIZED,
        )
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]
OptionalUser = Annotated[User | None, Depends(get_optional_user)]
Runtime = Annotated[LiveRuntime, Depends(get_live_runtime)]
