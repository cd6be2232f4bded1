"""Wire frames exchanged over the live socket: `{"event": <name>, "data": <payload>}`."""

from typing import Any

import orjson
from pydantic import BaseModel, ValidationError

from streamcart.utils.app_errors import invalid_request


class Frame(BaseModel):
    event: str
    data: Any = None


def encode_frame(event: str, data: Any = None) -> str:
    return orjson.dumps({"event": event, "data": data}).decode()


def decode_frame(raw: str | bytes) -> Frame:
    try:
        return Frame.model_validate(orjson.loads(raw))
    except (orjson.JSONDecodeError, ValidationError) as e:
        raise invalid_request(f"Malformed frame: {e}") from e
