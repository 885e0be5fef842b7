from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends

from anongram.routers import get_services
from anongram.routers.schemas import ReadMessageBody, SendMessageBody
from anongram.services.container import ServiceContainer

router = APIRouter(prefix="/messages", tags=["messages"])


@router.post("")
def send_message(body: SendMessageBody, services: ServiceContainer = Depends(get_services)):
    message = services.messages.send(
        body.sender_id,
        body.text,
        chat_id=body.chat_id,
        recipient_id=body.receiver_id,
        kind=body.message_type,
    )
    return {"success": True, "message": message}


@router.get("/{chat_id}")
def list_messages(chat_id: str, services: ServiceContainer = Depends(get_services)):
    """Last page (50 by default) of a chat, oldest first."""
    return services.messages.list_messages(chat_id)


@router.post("/{message_id}/read")
def mark_read(
    message_id: int,
    body: Optional[ReadMessageBody] = Body(None),
    services: ServiceContainer = Depends(get_services),
):
    reader_id = body.reader_id if body else None
    return {"success": True, "message": services.messages.mark_read(message_id, reader_id)}
