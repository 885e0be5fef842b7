"""Chat messages: send, pull the last N, read receipts."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from anongram.core.config import Settings, get_settings
from anongram.core.errors import MessageNotFoundError, UserNotFoundError, ValidationError
from anongram.core.utils import to_datetime
from anongram.db.models import GLOBAL_CHAT
from anongram.domain.identity import direct_chat_id, is_valid_chat_id
from anongram.realtime.events import MessageNew, MessageRead
from anongram.realtime.hub import EventPublisher, NullPublisher, emit
from anongram.repositories.store import Store
from anongram.services.user_service import UserService
from anongram.services.views import message_view

logger = logging.getLogger(__name__)

MESSAGE_KINDS = ("text", "image", "sticker", "system")


@dataclass
class MessageService:
    store: Store
    users: UserService
    publisher: EventPublisher = field(default_factory=NullPublisher)
    settings: Settings = field(default_factory=get_settings)
    clock: Callable[[], float] = time.time

    def send(
        self,
        sender_id: int,
        text: str,
        *,
        chat_id: Optional[str] = None,
        recipient_id: Optional[int] = None,
        kind: str = "text",
    ) -> dict:
        """
        Store a message and fan it out.

        Direct messages (``recipient_id`` set) go to both participants' rooms and
        live in the ``dm:<low>:<high>`` chat; everything else is broadcast. A
        recipient that is offline simply picks the message up later through
        ``list_messages``.
        """
        body = (text or "").strip()
        if not body:
            raise ValidationError("Message text is required")
        if len(body) > self.settings.max_message_length:
            raise ValidationError(f"Message must be at most {self.settings.max_message_length} characters")
        if kind not in MESSAGE_KINDS:
            raise ValidationError(f"Message type must be one of {', '.join(MESSAGE_KINDS)}")
        sender = self.users.get_user(sender_id)
        if recipient_id is not None:
            if not self.store.get_user(recipient_id):
                raise UserNotFoundError("Recipient not found")
            chat_id = direct_chat_id(sender_id, recipient_id)
        else:
            chat_id = (chat_id or GLOBAL_CHAT).strip()
            if not is_valid_chat_id(chat_id) or chat_id.startswith("dm:"):
                raise ValidationError("Invalid chat id")
        message = self.store.add_message(
            sender_id,
            body,
            chat_id=chat_id,
            recipient_id=recipient_id,
            kind=kind,
            created_at=to_datetime(self.clock()),
        )
        view = message_view(message, sender.username)
        event = MessageNew(message=view)
        if recipient_id is None:
            emit(self.publisher, event)
        else:
            emit(self.publisher, event, user_id=recipient_id)
            if recipient_id != sender_id:
                emit(self.publisher, event, user_id=sender_id)
        if self.settings.message_experience > 0:
            self.users.award_experience(sender_id, self.settings.message_experience)
        return view

    def list_messages(self, chat_id: str, limit: Optional[int] = None) -> list[dict]:
        if not is_valid_chat_id(chat_id):
            raise ValidationError("Invalid chat id")
        limit = limit or self.settings.message_page_size
        messages = self.store.list_messages(chat_id, limit=limit)
        names = {}
        for sender_id in {m.sender_id for m in messages}:
            sender = self.store.get_user(sender_id)
            names[sender_id] = sender.username if sender else None
        return [message_view(m, names.get(m.sender_id)) for m in messages]

    def mark_read(self, message_id: int, reader_id: Optional[int] = None) -> dict:
        message = self.store.get_message(message_id)
        if not message:
            raise MessageNotFoundError()
        if message.recipient_id is not None and reader_id != message.recipient_id:
            raise ValidationError("Only the recipient can mark a direct message as read")
        if not message.is_read:
            message = self.store.mark_message_read(message_id)
            emit(self.publisher, MessageRead(message_id=message_id, reader_id=reader_id), user_id=message.sender_id)
        sender = self.store.get_user(message.sender_id)
        return message_view(message, sender.username if sender else None)
