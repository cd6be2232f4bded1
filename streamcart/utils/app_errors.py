"""Application error taxonomy.

Domain code raises `AppError`; the REST layer converts it through
`app_error_handler` and the live event router answers it to the sender
as an `error` frame.
"""

import inspect
from enum import Enum, IntEnum
from uuid import uuid4


class HttpStatusCode(IntEnum):
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    CONFLICT = 409
    UNPROCESSABLE_ENTITY = 422
    INTERNAL_SERVER_ERROR = 500
    SERVICE_UNAVAILABLE = 503


class AppErrorCode(str, Enum):
    # validation
    E_INVALID_REQUEST = "E_INVALID_REQUEST"
    E_INVALID_PARAMS = "E_INVALID_PARAMS"

    # not found
    E_SESSION_NOT_FOUND = "E_SESSION_NOT_FOUND"
    E_PRODUCT_NOT_FOUND = "E_PRODUCT_NOT_FOUND"

    # state conflict
    E_SESSION_ALREADY_LIVE = "E_SESSION_ALREADY_LIVE"
    E_SESSION_NOT_LIVE = "E_SESSION_NOT_LIVE"
    E_SESSION_ENDED = "E_SESSION_ENDED"
    E_INVALID_STATE_TRANSITION = "E_INVALID_STATE_TRANSITION"
    E_PRODUCT_NOT_IN_SESSION = "E_PRODUCT_NOT_IN_SESSION"
    E_NOT_JOINED = "E_NOT_JOINED"

    # access
    E_UNAUTHORIZED = "E_UNAUTHORIZED"
    E_FORBIDDEN = "E_FORBIDDEN"

    # integrations
    E_STREAM_PROVIDER_NOT_CONFIGURED = "E_STREAM_PROVIDER_NOT_CONFIGURED"

    E_INTERNAL_ERROR = "E_INTERNAL_ERROR"

    def __str__(self) -> str:
        return self.value


class AppError(Exception):
    """Error carrying an API error code, a message and the HTTP status to answer with.

    `erresid` is a short residue id that ties the log line to the response
    the client receives; `caller_info` records where the error was raised.
    """

    def __init__(
        self,
        errcode: AppErrorCode | str = AppErrorCode.E_INTERNAL_ERROR,
        errmesg: str = "We are sorry, an error occurred.",
        status_code: int = HttpStatusCode.INTERNAL_SERVER_ERROR,
    ):
        super().__init__(errmesg)
        self.errcode = errcode.value if isinstance(errcode, AppErrorCode) else str(errcode)
        self.errmesg = errmesg
        self.status_code = int(status_code)
        self.erresid = uuid4().hex[:10]
        self.caller_info = _caller_info()

    def __repr__(self) -> str:
        return f"AppError({self.errcode}, {self.errmesg!r}, status_code={self.status_code})"


def _caller_info() -> str:
    frame = inspect.currentframe()
    try:
        # skip _caller_info and AppError.__init__ (plus subclass __init__ chains)
        caller = frame.f_back.f_back if frame and frame.f_back else None
        while caller is not None and caller.f_code.co_name == "__init__":
            caller = caller.f_back
        if caller is None:
            return "unknown"
        module_name = caller.f_globals.get("__name__", caller.f_code.co_filename)
        return f"{module_name}:{caller.f_code.co_name}:{caller.f_lineno}"
    finally:
        del frame


def session_not_found(session_id: str) -> AppError:
    return AppError(
        errcode=AppErrorCode.E_SESSION_NOT_FOUND,
        errmesg=f"Session not found: {session_id}",
        status_code=HttpStatusCode.NOT_FOUND,
    )


def state_conflict(errcode: AppErrorCode, errmesg: str) -> AppError:
    return AppError(errcode=errcode, errmesg=errmesg, status_code=HttpStatusCode.CONFLICT)


def invalid_request(errmesg: str) -> AppError:
    return AppError(
        errcode=AppErrorCode.E_INVALID_REQUEST,
        errmesg=errmesg,
        status_code=HttpStatusCode.BAD_REQUEST,
    )


__all__ = [
    "AppError",
    "AppErrorCode",
    "HttpStatusCode",
    "invalid_request",
    "session_not_found",
    "state_conflict",
]
