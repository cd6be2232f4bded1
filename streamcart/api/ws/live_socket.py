"""WebSocket endpoint carrying the live event protocol."""

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from loguru import logger

from streamcart.domain.live.broadcast.frames import decode_frame, encode_frame
from streamcart.domain.live.events.event_router import EVENT_ERROR
from streamcart.domain.live.runtime import LiveRuntime
from streamcart.utils.app_errors import AppError, invalid_request
from streamcart.utils.idgen import new_connection_id

router = APIRouter()


async def _send_error(websocket: WebSocket, error: AppError) -> None:
    await websocket.send_text(
        encode_frame(EVENT_ERROR, {"errcode": error.errcode, "errmesg": error.errmesg, "erresid": error.erresid})
    )


@router.websocket("/ws/live")
async def live_socket(websocket: WebSocket):
    runtime: LiveRuntime = websocket.app.state.live_runtime

    await websocket.accept()
    connection_id = new_connection_id()
    runtime.router.connect(connection_id, websocket)
    logger.info("Connection {} opened", connection_id)

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))

            raw = message.get("text")
            if raw is None:
                await _send_error(websocket, invalid_request("Only text frames are supported"))
                continue

            try:
                frame = decode_frame(raw)
            except AppError as e:
                await _send_error(websocket, e)
                continue

            await runtime.router.dispatch(connection_id, frame.event, frame.data)
    except WebSocketDisconnect as e:
        logger.info("Connection {} closed: code={}", connection_id, e.code)
    finally:
        await runtime.router.disconnect(connection_id)
