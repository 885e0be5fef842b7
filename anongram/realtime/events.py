"""
Frames exchanged over the realtime channel.

Outbound events are one pydantic model per kind, each carrying only its own
fields. Inbound frames form a discriminated union on ``type`` and are
validated before anything is dispatched.
"""
from __future__ import annotations

import time
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel


def now_millis() -> int:
    return int(time.time() * 1000)


class Frame(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


# ------------------------------- server → client -------------------------------
class UserOnline(Frame):
    type: Literal["user:status"] = "user:status"
    status: Literal["online"] = "online"
    user_id: int
    last_seen: Optional[int] = None


class UserOffline(Frame):
    type: Literal["user:status"] = "user:status"
    status: Literal["offline"] = "offline"
    user_id: int
    last_seen: Optional[int] = None


class UserJoined(Frame):
    type: Literal["user_joined"] = "user_joined"
    user: dict[str, Any]


class MessageNew(Frame):
    type: Literal["message:new"] = "message:new"
    message: dict[str, Any]


class MessageRead(Frame):
    type: Literal["message:read"] = "message:read"
    message_id: int
    reader_id: Optional[int] = None


class UserTyping(Frame):
    type: Literal["user_typing"] = "user_typing"
    user_id: int
    is_typing: bool
    receiver_id: Optional[int] = None


class ProfessionChanged(Frame):
    type: Literal["profession_changed"] = "profession_changed"
    user_id: int
    profession: str


class LevelUp(Frame):
    type: Literal["user:levelup"] = "user:levelup"
    user_id: int
    old_level: int
    new_level: int
    reward: int


class Pong(Frame):
    type: Literal["pong"] = "pong"
    timestamp: int = Field(default_factory=now_millis)


class JoinAccepted(Frame):
    type: Literal["join:ok"] = "join:ok"
    user_id: int
    online_user_ids: list[int] = Field(default_factory=list)


class ErrorFrame(Frame):
    type: Literal["error"] = "error"
    error: str
    message: str = ""


# ------------------------------- client → server -------------------------------
class JoinFrame(Frame):
    type: Literal["user:join"]
    user_id: int
    token: Optional[str] = None


class SendMessageFrame(Frame):
    type: Literal["message:send"]
    text: str
    sender_id: Optional[int] = None
    receiver_id: Optional[int] = None
    chat_id: Optional[str] = None
    message_type: str = "text"


class ReadMessageFrame(Frame):
    type: Literal["message:read"]
    message_id: int


class TypingFrame(Frame):
    type: Literal["user_typing"]
    is_typing: bool = True
    user_id: Optional[int] = None
    receiver_id: Optional[int] = None


class PingFrame(Frame):
    type: Literal["ping"]


InboundFrame = Annotated[
    Union[JoinFrame, SendMessageFrame, ReadMessageFrame, TypingFrame, PingFrame],
    Field(discriminator="type"),
]

_inbound = TypeAdapter(InboundFrame)


def parse_frame(raw: str | bytes) -> JoinFrame | SendMessageFrame | ReadMessageFrame | TypingFrame | PingFrame:
    """Parse and validate one inbound JSON frame; raises pydantic.ValidationError."""
    return _inbound.validate_json(raw)
