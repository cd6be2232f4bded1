"""Inbound live socket payloads."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class _Payload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    session_id: str = Field(min_length=1)


class JoinPayload(_Payload):
    user_id: str | None = None

    @field_validator("user_id", mode="before")
    @classmethod
    def _coerce_user_id(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v or None


class LeavePayload(_Payload):
    @classmethod
    def parse(cls, data: Any) -> "LeavePayload":
        # bare session id strings are accepted as well
        if isinstance(data, str):
            data = {"sessionId": data}
        return cls.model_validate(data)


class ReactionPayload(_Payload):
    type: str = Field(min_length=1, max_length=32)


class MessagePayload(_Payload):
    message: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    user_name: str = Field(min_length=1)

    @field_validator("user_id", mode="before")
    @classmethod
    def _coerce_user_id(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


class ShowcasePayload(_Payload):
    product_id: str | None = None


class ProductClickPayload(_Payload):
    product_id: str = Field(min_length=1)
    user_id: str | None = None

    @field_validator("user_id", mode="before")
    @classmethod
    def _coerce_user_id(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v or None


__all__ = [
    "JoinPayload",
    "LeavePayload",
    "MessagePayload",
    "ProductClickPayload",
    "ReactionPayload",
    "ShowcasePayload",
]
