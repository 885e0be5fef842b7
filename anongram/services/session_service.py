"""Session helpers (issue tokens, cookies, validation)."""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Callable, Optional

from fastapi import Request, Response

from anongram.core.config import Settings, get_settings
from anongram.core.utils import to_datetime, to_timestamp
from anongram.db.models import User
from anongram.repositories.store import Store

SESSION_COOKIE_NAME = "session"


@dataclass
class SessionService:
    store: Store
    settings: Settings = field(default_factory=get_settings)
    clock: Callable[[], float] = time.time

    def issue(self, user_id: int) -> str:
        """Create a new session token for ``user_id``."""
        ttl = max(60, self.settings.session_ttl_seconds)
        expires_at = to_datetime(self.clock()) + timedelta(seconds=ttl)
        return self.store.create_session(user_id, expires_at)

    def current_user(self, token: str | None) -> Optional[User]:
        """Return the user behind a live token; expired tokens are deleted."""
        if not token:
            return None
        entity = self.store.get_session(token)
        if not entity:
            return None
        if to_timestamp(entity.expires_at) < self.clock():
            self.store.delete_session(token)
            return None
        return self.store.get_user(entity.user_id)

    def revoke(self, token: str | None) -> None:
        if token:
            self.store.delete_session(token)


def token_from_request(request: Request) -> str | None:
    """Bearer header first, then the session cookie."""
    header = request.headers.get("authorization") or ""
    scheme, _, value = header.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    return request.cookies.get(SESSION_COOKIE_NAME)


def set_session_cookie(response: Response, token: str, settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    response.set_cookie(
        SESSION_COOKIE_NAME,
        token,
        httponly=True,
        secure=settings.app_env == "prod",
        samesite="strict",
        max_age=settings.session_ttl_seconds,
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(SESSION_COOKIE_NAME, path="/")
