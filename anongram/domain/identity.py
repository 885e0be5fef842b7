"""Domain helpers for email/display-name validation and chat ids."""
from __future__ import annotations

import re

from anongram.db.models import GLOBAL_CHAT

EMAIL_PATTERN = re.compile(r"[^@\s]+@[^@\s]+\.[^@\s]+")
DISPLAY_NAME_PATTERN = re.compile(r"[\w][\w .-]{1,30}[\w]")
CHAT_ID_PATTERN = re.compile(r"[A-Za-z0-9:_-]{1,64}")
RESERVED_NAMES = {"admin", "system", "anongram"}


def normalize_email(value: str | None) -> str:
    return (value or "").strip().lower()


def is_valid_email(value: str | None) -> bool:
    if not value or len(value) > 255:
        return False
    return bool(EMAIL_PATTERN.fullmatch(value))


def normalize_display_name(value: str | None) -> str | None:
    cleaned = " ".join((value or "").split())
    return cleaned or None


def is_valid_display_name(value: str | None) -> bool:
    """3-32 characters of letters, digits, spaces, dots, dashes or underscores; not reserved."""
    if not value:
        return False
    return bool(DISPLAY_NAME_PATTERN.fullmatch(value)) and value.lower() not in RESERVED_NAMES


def is_valid_chat_id(value: str | None) -> bool:
    return bool(value) and bool(CHAT_ID_PATTERN.fullmatch(value))


def direct_chat_id(user_a: int, user_b: int) -> str:
    """Chat id shared by both participants of a direct conversation."""
    low, high = sorted((int(user_a), int(user_b)))
    return f"dm:{low}:{high}"


__all__ = [
    "GLOBAL_CHAT",
    "direct_chat_id",
    "is_valid_chat_id",
    "is_valid_display_name",
    "is_valid_email",
    "normalize_display_name",
    "normalize_email",
]
