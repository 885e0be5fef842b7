"""User records, presence and progression."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from anongram.core.errors import UserNotFoundError, ValidationError
from anongram.core.locks import KeyedLock
from anongram.core.utils import to_datetime, to_millis
from anongram.db.models import User
from anongram.domain.identity import normalize_email
from anongram.domain.progression import level_for_experience, level_up_reward
from anongram.realtime.events import LevelUp, UserOffline, UserOnline
from anongram.realtime.hub import EventPublisher, NullPublisher, emit
from anongram.repositories.store import Store
from anongram.services.views import public_user

logger = logging.getLogger(__name__)

MAX_STATUS_LENGTH = 140


@dataclass
class LevelChange:
    user_id: int
    old_level: int
    new_level: int
    reward: int


@dataclass
class UserService:
    """Presence, profile and experience updates for existing users."""

    store: Store
    publisher: EventPublisher = field(default_factory=NullPublisher)
    locks: KeyedLock = field(default_factory=KeyedLock)
    clock: Callable[[], float] = time.time

    def _now(self) -> datetime:
        return to_datetime(self.clock())

    # ------------------------------ lookups ------------------------------
    def get_user(self, user_id: int) -> User:
        user = self.store.get_user(user_id)
        if not user:
            raise UserNotFoundError()
        return user

    def list_users(self) -> list[dict]:
        return [public_user(user) for user in self.store.list_users()]

    # ------------------------------ presence ------------------------------
    def record_online(self, user_id: int, *, strict: bool = False) -> Optional[User]:
        return self._set_presence(user_id, True, strict=strict)

    def record_offline(self, user_id: int, *, strict: bool = False) -> Optional[User]:
        return self._set_presence(user_id, False, strict=strict)

    def _set_presence(self, user_id: int, online: bool, *, strict: bool) -> Optional[User]:
        with self.locks.hold(("user", user_id)):
            user = self.store.update_user(user_id, is_online=online, last_seen=self._now())
        if user is None and strict:
            raise UserNotFoundError()
        return user

    def sync_presence(self, user_id: int, is_connected: Callable[[int], bool]) -> Optional[User]:
        """
        Store the presence flag the live connections imply right now.

        ``is_connected`` is read under the user lock, so overlapping joins and
        disconnects for one user can't leave a stale flag behind. Returns the
        user only when the stored flag changed.
        """
        with self.locks.hold(("user", user_id)):
            user = self.store.get_user(user_id)
            if user is None:
                return None
            online = bool(is_connected(user_id))
            if bool(user.is_online) == online:
                return None
            return self.store.update_user(user_id, is_online=online, last_seen=self._now())

    def announce_presence(self, user: User, *, exclude: Optional[str] = None) -> None:
        event_type = UserOnline if user.is_online else UserOffline
        emit(self.publisher, event_type(user_id=user.id, last_seen=to_millis(user.last_seen)), exclude=exclude)

    def login(self, email: str) -> User:
        """Email-keyed login of an existing user: mark online and tell everyone."""
        user = self.store.get_user_by_email(normalize_email(email))
        if not user:
            raise UserNotFoundError()
        user = self.record_online(user.id, strict=True)
        logger.info("user %s logged in", user.id)
        self.announce_presence(user)
        return user

    # ------------------------------ progression ------------------------------
    def award_experience(self, user_id: int, amount: int) -> Optional[LevelChange]:
        """
        Add experience and recompute the level.

        Crossing several thresholds at once is a single level-up: one reward of
        ``new_level * 10`` and one event. The stored level never goes down.
        """
        if int(amount) <= 0:
            raise ValidationError("Experience amount must be positive")
        change = None
        with self.locks.hold(("user", user_id)):
            user = self.get_user(user_id)
            experience = int(user.experience or 0) + int(amount)
            old_level = int(user.level or 1)
            computed = level_for_experience(experience)
            values: dict = {"experience": experience}
            if computed > old_level:
                reward = level_up_reward(computed)
                values.update(level=computed, coins=int(user.coins or 0) + reward)
                change = LevelChange(user_id=user_id, old_level=old_level, new_level=computed, reward=reward)
            self.store.update_user(user_id, **values)
        if change:
            logger.info("user %s reached level %s", user_id, change.new_level)
            emit(
                self.publisher,
                LevelUp(
                    user_id=change.user_id,
                    old_level=change.old_level,
                    new_level=change.new_level,
                    reward=change.reward,
                ),
            )
        return change

    # ------------------------------ profile ------------------------------
    def update_profile(self, user_id: int, *, status_text: str | None = None, avatar_url: str | None = None) -> User:
        values: dict = {}
        if status_text is not None:
            status_text = status_text.strip()
            if len(status_text) > MAX_STATUS_LENGTH:
                raise ValidationError(f"Status must be at most {MAX_STATUS_LENGTH} characters")
            values["status_text"] = status_text
        if avatar_url is not None:
            avatar_url = avatar_url.strip()
            if avatar_url and not avatar_url.startswith(("http://", "https://")):
                raise ValidationError("Avatar must be an http(s) URL")
            values["avatar_url"] = avatar_url or None
        with self.locks.hold(("user", user_id)):
            self.get_user(user_id)
            if not values:
                return self.get_user(user_id)
            return self.store.update_user(user_id, **values)
