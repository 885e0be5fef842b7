"""Request bodies for the JSON endpoints (camelCase on the wire)."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class Body(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SendCodeBody(Body):
    email: str
    display_name: Optional[str] = None
    intent: str = "register"


class VerifyBody(Body):
    email: str
    code: str
    display_name: Optional[str] = None
    admin_code: Optional[str] = None


class LoginBody(Body):
    email: str


class ProfileBody(Body):
    status: Optional[str] = None
    avatar_url: Optional[str] = None


class SelectProfessionBody(Body):
    user_id: int
    profession_id: int


class SendMessageBody(Body):
    sender_id: int
    text: str
    chat_id: Optional[str] = None
    receiver_id: Optional[int] = None
    message_type: str = "text"


class ReadMessageBody(Body):
    reader_id: Optional[int] = None
