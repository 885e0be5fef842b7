"""Profession catalog lookups and assignment."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from anongram.core.errors import InsufficientLevelError, NotFoundError, ProfessionNotFoundError
from anongram.core.locks import KeyedLock
from anongram.realtime.events import ProfessionChanged
from anongram.realtime.hub import EventPublisher, NullPublisher, emit
from anongram.repositories.store import Store
from anongram.services.views import profession_view

logger = logging.getLogger(__name__)


@dataclass
class ProfessionService:
    store: Store
    publisher: EventPublisher = field(default_factory=NullPublisher)
    locks: KeyedLock = field(default_factory=KeyedLock)

    def list_professions(self) -> list[dict]:
        return [profession_view(p) for p in self.store.list_professions()]

    def assign(self, user_id: int, profession_id: int) -> str:
        """Give ``user_id`` the profession; re-assigning the current one is a no-op."""
        profession = self.store.get_profession(profession_id)
        if not profession:
            raise ProfessionNotFoundError()
        with self.locks.hold(("user", user_id)):
            user = self.store.get_user(user_id)
            if not user:
                raise NotFoundError("User or profession not found")
            if user.profession == profession.name:
                return profession.name
            if int(user.level or 1) < profession.min_level:
                raise InsufficientLevelError(
                    f"{profession.name} requires level {profession.min_level}"
                )
            self.store.update_user(user_id, profession=profession.name)
        logger.info("user %s is now %s", user_id, profession.name)
        emit(self.publisher, ProfessionChanged(user_id=user_id, profession=profession.name))
        return profession.name
