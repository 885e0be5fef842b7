"""Startup data: the profession catalog and the demo accounts."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from anongram.core.security import hash_code

if TYPE_CHECKING:
    from anongram.repositories.store import Store

logger = logging.getLogger(__name__)

PROFESSIONS = (
    {"id": 1, "name": "Artist", "min_level": 1, "description": "Stickers and chat decoration"},
    {"id": 2, "name": "Photographer", "min_level": 1, "description": "Photo reports and memes"},
    {"id": 3, "name": "Writer", "min_level": 1, "description": "Posts and articles"},
    {"id": 4, "name": "Memesmith", "min_level": 2, "description": "Entertainment content"},
    {"id": 5, "name": "Librarian", "min_level": 5, "description": "File moderation"},
    {"id": 6, "name": "Tester", "min_level": 3, "description": "Feature testing"},
)

DEMO_USERS = (
    {
        "email": "admin@anongram.com",
        "username": "Admin",
        "code": "654321",
        "level": 100,
        "coins": 9999,
        "profession": "System Admin",
        "is_admin": True,
    },
    {"email": "user1@test.com", "username": "UserOne", "code": "111222"},
    {"email": "user2@test.com", "username": "UserTwo", "code": "333444"},
    {"email": "user3@test.com", "username": "UserThree", "code": "555666"},
)


def seed_professions(store: "Store") -> None:
    for entry in PROFESSIONS:
        store.upsert_profession(**entry)


def seed_demo_users(store: "Store", *, starting_coins: int = 100) -> int:
    """Insert the demo accounts that are missing. Returns how many were created."""
    created = 0
    for entry in DEMO_USERS:
        if store.get_user_by_email(entry["email"]):
            continue
        store.create_user(
            email=entry["email"],
            username=entry["username"],
            code_hash=hash_code(entry["code"]),
            level=entry.get("level", 1),
            coins=entry.get("coins", starting_coins),
            profession=entry.get("profession"),
            is_admin=entry.get("is_admin", False),
        )
        created += 1
    if created:
        logger.info("Seeded %d demo users", created)
    return created
