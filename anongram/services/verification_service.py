"""
Email-code authentication: issuing, validating and expiring one-time codes.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from functools import partial
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError

from anongram.core.config import Settings, get_settings
from anongram.core.errors import (
    CodeExpiredError,
    CodeMismatchError,
    CodeNotFoundError,
    DeliveryFailedError,
    DuplicateIdentityError,
    UserNotFoundError,
    ValidationError,
)
from anongram.core.locks import KeyedLock
from anongram.core.mailer import send_verification_code
from anongram.core.security import code_in_allow_list, generate_code, hash_code, verify_code_hash
from anongram.core.utils import to_datetime, to_timestamp
from anongram.db.models import User
from anongram.domain.identity import (
    is_valid_display_name,
    is_valid_email,
    normalize_display_name,
    normalize_email,
)
from anongram.realtime.events import UserJoined
from anongram.realtime.hub import EventPublisher, NullPublisher, emit
from anongram.repositories.store import Store
from anongram.services.session_service import SessionService
from anongram.services.user_service import UserService
from anongram.services.views import public_user

logger = logging.getLogger(__name__)

INTENT_REGISTER = "register"
INTENT_LOGIN = "login"
INTENTS = (INTENT_REGISTER, INTENT_LOGIN)


@dataclass
class CodeRequest:
    email: str
    expires_at: float
    debug_code: Optional[str] = None


@dataclass
class VerifyResult:
    user: User
    created: bool
    session_token: str


@dataclass
class VerificationService:
    """Handles the send-code → verify flow for registration and login."""

    store: Store
    users: UserService
    sessions: SessionService
    publisher: EventPublisher = field(default_factory=NullPublisher)
    settings: Settings = field(default_factory=get_settings)
    locks: KeyedLock = field(default_factory=KeyedLock)
    mailer: Optional[Callable[[str, str], bool]] = None
    code_factory: Callable[[], str] = generate_code
    clock: Callable[[], float] = time.time

    def __post_init__(self):
        if self.mailer is None:
            self.mailer = partial(send_verification_code, settings=self.settings)

    # -------------------------------------- helpers --------------------------------------
    def _now(self) -> int:
        return int(self.clock())

    def _code_expired(self, created_at: datetime | None, now: int) -> bool:
        ttl = self.settings.code_ttl_seconds
        if ttl <= 0:
            return False
        created_ts = to_timestamp(created_at)
        if not created_ts:
            return True
        return now > created_ts + ttl

    def _clean_email(self, email: str) -> str:
        value = normalize_email(email)
        if not is_valid_email(value):
            raise ValidationError("A valid email is required")
        return value

    def _clean_display_name(self, display_name: str | None) -> str | None:
        value = normalize_display_name(display_name)
        if value is not None and not is_valid_display_name(value):
            raise ValidationError("Display name must be 3-32 letters, digits, spaces, dots or dashes")
        return value

    def _generated_name(self) -> str:
        n = self.store.count_users() + 1
        while self.store.get_user_by_username(f"User{n}"):
            n += 1
        return f"User{n}"

    def purge_expired(self) -> int:
        """
        Drop pending codes that expired more than one TTL ago.

        Recently expired codes are left for verify_code, which answers them with
        CodeExpiredError instead of CodeNotFoundError.
        """
        ttl = self.settings.code_ttl_seconds
        if ttl <= 0:
            return 0
        cutoff = to_datetime(self._now() - 2 * ttl)
        return self.store.purge_codes_created_before(cutoff)

    # -------------------------------------- send code --------------------------------------
    def request_code(self, email: str, display_name: str | None = None, intent: str = INTENT_REGISTER) -> CodeRequest:
        """
        Issue a fresh code for ``email`` and mail it.

        A new request replaces the pending code, so at most one code is alive per
        email. If the mail cannot be sent the code stays stored and
        DeliveryFailedError is raised.
        """
        email = self._clean_email(email)
        display_name = self._clean_display_name(display_name)
        if intent not in INTENTS:
            raise ValidationError(f"Intent must be one of {', '.join(INTENTS)}")
        code = self.code_factory()
        now = self._now()
        with self.locks.hold(("email", email)):
            existing = self.store.get_user_by_email(email)
            if intent == INTENT_REGISTER:
                if existing:
                    raise DuplicateIdentityError("Email already registered")
                if display_name and self.store.get_user_by_username(display_name):
                    raise DuplicateIdentityError("Display name already taken")
            elif existing is None:
                raise UserNotFoundError()
            self.purge_expired()
            self.store.put_code(
                email,
                hash_code(code),
                created_at=to_datetime(now),
                intent=intent,
                display_name=display_name,
            )
        # mail goes out after the lock is released
        if not self.mailer(email, code):
            logger.warning("verification code for %s stored but not delivered", email)
            raise DeliveryFailedError()
        logger.info("verification code sent to %s", email)
        debug_code = code if self.settings.expose_debug_codes else None
        return CodeRequest(email=email, expires_at=now + self.settings.code_ttl_seconds, debug_code=debug_code)

    # -------------------------------------- verify --------------------------------------
    def verify_code(
        self,
        email: str,
        code: str,
        display_name: str | None = None,
        admin_code: str | None = None,
    ) -> VerifyResult:
        email = self._clean_email(email)
        code = (code or "").strip()
        if not code:
            raise ValidationError("Code is required")
        display_name = self._clean_display_name(display_name)
        now = self._now()
        created = False
        with self.locks.hold(("email", email)):
            existing = self.store.get_user_by_email(email)
            if existing and existing.code_hash and verify_code_hash(code, existing.code_hash):
                user = self.users.record_online(existing.id, strict=True)
            else:
                pending = self.store.get_code(email)
                if not pending:
                    raise CodeNotFoundError()
                if self._code_expired(pending.created_at, now):
                    self.store.delete_code(email)
                    raise CodeExpiredError()
                if not verify_code_hash(code, pending.code_hash):
                    raise CodeMismatchError()
                self.store.delete_code(email)
                if pending.intent == INTENT_REGISTER:
                    if existing:
                        raise DuplicateIdentityError("Email already registered")
                    user = self._register(
                        email,
                        display_name or pending.display_name,
                        is_admin=code_in_allow_list(admin_code, self.settings.admin_codes),
                        now=now,
                    )
                    created = True
                else:
                    if existing is None:
                        raise UserNotFoundError()
                    user = self.users.record_online(existing.id, strict=True)
        token = self.sessions.issue(user.id)
        if created:
            logger.info("registered user %s (%s)", user.id, user.username)
            emit(self.publisher, UserJoined(user=public_user(user)))
        else:
            logger.info("user %s verified", user.id)
            self.users.announce_presence(user)
        return VerifyResult(user=user, created=created, session_token=token)

    def _register(self, email: str, display_name: str | None, *, is_admin: bool, now: int) -> User:
        if display_name and self.store.get_user_by_username(display_name):
            raise DuplicateIdentityError("Display name already taken")
        try:
            return self.store.create_user(
                email=email,
                username=display_name or self._generated_name(),
                coins=self.settings.starting_coins,
                is_admin=is_admin,
                is_online=True,
                last_seen=to_datetime(now),
            )
        except IntegrityError as exc:
            raise DuplicateIdentityError() from exc


__all__ = [
    "CodeRequest",
    "INTENT_LOGIN",
    "INTENT_REGISTER",
    "VerificationService",
    "VerifyResult",
]
