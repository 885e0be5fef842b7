"""
Inbound side of the realtime channel.

Each WebSocket walks Connected → Associated (after ``user:join``) →
Disconnected. Frames are validated before dispatch; a bad frame is answered
with an ``error`` frame and the socket stays open.
"""

from __future__ import annotations

import asyncio
import logging
from functools import partial
from typing import TYPE_CHECKING, Awaitable, Callable, Optional

from fastapi import WebSocket
from pydantic import ValidationError as FrameValidationError
from starlette.concurrency import run_in_threadpool

from anongram.core.errors import AnongramError, SessionInvalidError, ValidationError
from anongram.realtime.events import (
    ErrorFrame,
    JoinAccepted,
    JoinFrame,
    PingFrame,
    Pong,
    ReadMessageFrame,
    SendMessageFrame,
    TypingFrame,
    UserTyping,
    parse_frame,
)
from anongram.realtime.hub import PresenceChange, emit

if TYPE_CHECKING:
    from anongram.services.container import ServiceContainer

logger = logging.getLogger(__name__)


class RealtimeChannel:
    def __init__(self, services: "ServiceContainer") -> None:
        self.services = services
        self.hub = services.hub
        self._handlers: dict[str, Callable[[str, object], Awaitable[None]]] = {
            "user:join": self._on_join,
            "message:send": self._on_message,
            "message:read": self._on_read,
            "user_typing": self._on_typing,
            "ping": self._on_ping,
        }

    async def serve(self, websocket: WebSocket) -> None:
        conn_id = await self.hub.connect(websocket)
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                raw = message.get("text")
                if raw is None:
                    raw = message.get("bytes") or b""
                await self.handle(conn_id, raw)
        finally:
            # runs to completion even when this task is cancelled
            await asyncio.shield(self.close(conn_id))

    async def handle(self, conn_id: str, raw: str | bytes) -> None:
        try:
            frame = parse_frame(raw)
        except FrameValidationError as exc:
            logger.warning("malformed frame on %s: %s", conn_id, exc.errors(include_url=False)[:3])
            await self.hub.send(conn_id, ErrorFrame(error=ValidationError.code, message="Malformed frame"))
            return
        handler = self._handlers[frame.type]
        try:
            await handler(conn_id, frame)
        except AnongramError as exc:
            await self.hub.send(conn_id, ErrorFrame(error=exc.code, message=exc.message))
        except Exception:
            logger.exception("failed to handle %s on %s", frame.type, conn_id)
            await self.hub.send(conn_id, ErrorFrame(error="InternalError", message="Internal error"))

    async def close(self, conn_id: str) -> None:
        await self._apply_presence(self.hub.disconnect(conn_id))

    async def _apply_presence(self, change: PresenceChange, exclude: Optional[str] = None) -> None:
        # the change only names users to re-check; the stored flag follows the hub's current count
        users = self.services.users
        for user_id in (*change.offline, *change.online):
            user = await run_in_threadpool(users.sync_presence, user_id, self.hub.has_connections)
            if user:
                logger.info("user %s %s", user_id, "online" if user.is_online else "offline")
                users.announce_presence(user, exclude=exclude)

    def _joined_user(self, conn_id: str, claimed: Optional[int]) -> int:
        user_id = self.hub.user_for(conn_id)
        if user_id is None:
            raise ValidationError("Send user:join first")
        if claimed is not None and claimed != user_id:
            raise ValidationError("Frame user does not match the joined user")
        return user_id

    # ------------------------------ handlers ------------------------------
    async def _on_join(self, conn_id: str, frame: JoinFrame) -> None:
        user = await run_in_threadpool(self.services.users.get_user, frame.user_id)
        if frame.token is not None:
            owner = await run_in_threadpool(self.services.sessions.current_user, frame.token)
            if owner is None or owner.id != user.id:
                raise SessionInvalidError()
        change = self.hub.associate(conn_id, user.id)
        await self._apply_presence(change, exclude=conn_id)
        await self.hub.send(conn_id, JoinAccepted(user_id=user.id, online_user_ids=self.hub.online_user_ids()))

    async def _on_message(self, conn_id: str, frame: SendMessageFrame) -> None:
        sender_id = self._joined_user(conn_id, frame.sender_id)
        send = partial(
            self.services.messages.send,
            sender_id,
            frame.text,
            chat_id=frame.chat_id,
            recipient_id=frame.receiver_id,
            kind=frame.message_type,
        )
        await run_in_threadpool(send)

    async def _on_read(self, conn_id: str, frame: ReadMessageFrame) -> None:
        reader_id = self._joined_user(conn_id, None)
        await run_in_threadpool(self.services.messages.mark_read, frame.message_id, reader_id)

    async def _on_typing(self, conn_id: str, frame: TypingFrame) -> None:
        user_id = self._joined_user(conn_id, frame.user_id)
        event = UserTyping(user_id=user_id, is_typing=frame.is_typing, receiver_id=frame.receiver_id)
        if frame.receiver_id is None:
            emit(self.hub, event, exclude=conn_id)
        else:
            emit(self.hub, event, user_id=frame.receiver_id)

    async def _on_ping(self, conn_id: str, frame: PingFrame) -> None:
        await self.hub.send(conn_id, Pong())
