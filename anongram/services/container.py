"""Wires the Store, the hub and every service together for one app instance."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from anongram.core.config import Settings
from anongram.core.locks import KeyedLock
from anongram.realtime.hub import ConnectionHub
from anongram.repositories.store import Store
from anongram.services.message_service import MessageService
from anongram.services.profession_service import ProfessionService
from anongram.services.session_service import SessionService
from anongram.services.user_service import UserService
from anongram.services.verification_service import VerificationService


@dataclass
class ServiceContainer:
    settings: Settings
    store: Store
    hub: ConnectionHub
    users: UserService
    sessions: SessionService
    verification: VerificationService
    professions: ProfessionService
    messages: MessageService


def build_services(
    settings: Settings,
    store: Store,
    hub: Optional[ConnectionHub] = None,
    *,
    mailer: Optional[Callable[[str, str], bool]] = None,
) -> ServiceContainer:
    hub = hub or ConnectionHub()
    # one lock registry so every service agrees on who owns ("user", id)
    locks = KeyedLock()
    users = UserService(store=store, publisher=hub, locks=locks)
    sessions = SessionService(store=store, settings=settings)
    verification = VerificationService(
        store=store,
        users=users,
        sessions=sessions,
        publisher=hub,
        settings=settings,
        locks=locks,
        mailer=mailer,
    )
    return ServiceContainer(
        settings=settings,
        store=store,
        hub=hub,
        users=users,
        sessions=sessions,
        verification=verification,
        professions=ProfessionService(store=store, publisher=hub, locks=locks),
        messages=MessageService(store=store, users=users, publisher=hub, settings=settings),
    )
