"""
Entity → JSON dict helpers shared by routers, services and realtime events.

The public user view never includes the email, the legacy code or any
verification state.
"""

from __future__ import annotations

from anongram.core.utils import to_millis
from anongram.db.models import Message, Profession, User


def public_user(user: User) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "status": user.status_text or "",
        "avatarUrl": user.avatar_url,
        "level": int(user.level or 1),
        "profession": user.profession,
        "isOnline": bool(user.is_online),
        "lastSeen": to_millis(user.last_seen),
        "isAdmin": bool(user.is_admin),
    }


def private_user(user: User) -> dict:
    """The owner's own view: public fields plus email and progression counters."""
    data = public_user(user)
    data.update(
        {
            "email": user.email,
            "experience": int(user.experience or 0),
            "coins": int(user.coins or 0),
            "createdAt": to_millis(user.created_at),
        }
    )
    return data


def profession_view(profession: Profession) -> dict:
    return {
        "id": profession.id,
        "name": profession.name,
        "level": profession.min_level,
        "description": profession.description or "",
    }


def message_view(message: Message, sender_name: str | None = None) -> dict:
    return {
        "id": message.id,
        "senderId": message.sender_id,
        "username": sender_name,
        "receiverId": message.recipient_id,
        "chatId": message.chat_id,
        "text": message.body,
        "type": message.kind,
        "timestamp": to_millis(message.created_at),
        "read": bool(message.is_read),
    }
