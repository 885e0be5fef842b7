"""
Shared fixtures: a temporary SQLite database per test, recording fakes for the
publisher and the mailer, and a controllable clock.
"""
from __future__ import annotations

import sys
import threading
from pathlib import Path
from types import SimpleNamespace

import pytest

# Make the anongram package importable when running the tests from a checkout
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from anongram.core import config as core_config
from anongram.core.locks import KeyedLock
from anongram.db import session as db_session
from anongram.db.seed import seed_demo_users, seed_professions
from anongram.repositories.store import Store
from anongram.services.message_service import MessageService
from anongram.services.profession_service import ProfessionService
from anongram.services.session_service import SessionService
from anongram.services.user_service import UserService
from anongram.services.verification_service import VerificationService

START = 1_700_000_000


class FakeClock:
    def __init__(self, start: float = START) -> None:
        self.now = float(start)

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingPublisher:
    """Keeps every published event as (event, user_id, exclude)."""

    def __init__(self) -> None:
        self.events = []
        self._lock = threading.Lock()

    def publish(self, event, *, exclude=None) -> None:
        with self._lock:
            self.events.append((event, None, exclude))

    def publish_to_user(self, user_id, event, *, exclude=None) -> None:
        with self._lock:
            self.events.append((event, user_id, exclude))

    def of_type(self, cls) -> list:
        return [event for event, _, _ in self.events if isinstance(event, cls)]


class FakeMailer:
    """Captures outgoing codes; ``ok`` decides whether delivery succeeds."""

    def __init__(self) -> None:
        self.ok = True
        self.sent: list[tuple[str, str]] = []
        self._lock = threading.Lock()

    def __call__(self, email: str, code: str) -> bool:
        with self._lock:
            self.sent.append((email, code))
        return self.ok

    def last_code(self, email: str) -> str:
        with self._lock:
            codes = [code for to, code in self.sent if to == email]
        assert codes, f"no code sent to {email}"
        return codes[-1]


@pytest.fixture()
def settings(tmp_path, monkeypatch):
    """Temporary SQLite file plus a test environment; caches are cleared around it."""
    db_file = tmp_path / "test.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_file}")
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("ADMIN_CODES", "ROOT-KEY-1, ROOT-KEY-2")
    monkeypatch.setenv("SEED_DEMO_USERS", "1")
    monkeypatch.setenv("MAIL_BACKEND", "console")
    monkeypatch.setenv("CORS_ORIGINS", "")
    for name in ("CODE_TTL_SECONDS", "EXPOSE_DEBUG_CODES", "MESSAGE_EXPERIENCE", "STARTING_COINS"):
        monkeypatch.delenv(name, raising=False)
    core_config.get_settings.cache_clear()
    db_session.get_engine.cache_clear()
    yield core_config.get_settings()
    core_config.get_settings.cache_clear()
    db_session.get_engine.cache_clear()


@pytest.fixture()
def store(settings):
    engine = db_session.create_engine_for(settings.database_url)
    repo = Store(engine)
    repo.create_schema()
    seed_professions(repo)
    seed_demo_users(repo, starting_coins=settings.starting_coins)
    yield repo
    engine.dispose()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def publisher():
    return RecordingPublisher()


@pytest.fixture()
def mailer():
    return FakeMailer()


@pytest.fixture()
def services(store, settings, clock, publisher, mailer):
    locks = KeyedLock()
    users = UserService(store=store, publisher=publisher, locks=locks, clock=clock)
    sessions = SessionService(store=store, settings=settings, clock=clock)
    verification = VerificationService(
        store=store,
        users=users,
        sessions=sessions,
        publisher=publisher,
        settings=settings,
        locks=locks,
        mailer=mailer,
        clock=clock,
    )
    return SimpleNamespace(
        store=store,
        locks=locks,
        users=users,
        sessions=sessions,
        verification=verification,
        professions=ProfessionService(store=store, publisher=publisher, locks=locks),
        messages=MessageService(store=store, users=users, publisher=publisher, settings=settings, clock=clock),
    )


@pytest.fixture()
def client(settings, mailer):
    from fastapi.testclient import TestClient

    from anongram.app import create_app

    app = create_app(settings, mailer=mailer)
    # entering the client keeps one event loop for every socket and request
    with TestClient(app) as test_client:
        yield test_client
    app.state.services.store.engine.dispose()
