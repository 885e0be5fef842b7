"""High-level data access helpers backed by SQLAlchemy."""
from __future__ import annotations

import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from anongram.core.security import new_session_token
from anongram.db.create_tables import create_all
from anongram.db.models import (
    DEFAULT_PROFESSION,
    GLOBAL_CHAT,
    Message,
    Profession,
    User,
    UserSession,
    VerificationCode,
)
from anongram.db.session import get_engine, make_sessionmaker, session_scope


class Store:
    """
    CRUD helpers wrapping the SQLAlchemy session.

    The store is the single owner of every entity collection; all access goes
    through one re-entrant lock, so callers never see a half-applied write.
    """

    def __init__(self, engine: Engine | None = None) -> None:
        self.engine = engine or get_engine()
        self._sessions = make_sessionmaker(self.engine)
        self._lock = threading.RLock()

    @contextmanager
    def _session(self) -> Iterator[Session]:
        with self._lock, session_scope(self._sessions) as session:
            yield session

    def create_schema(self) -> None:
        create_all(self.engine)

    # -------------------------- users --------------------------
    def get_user(self, user_id: int) -> Optional[User]:
        with self._session() as session:
            return session.get(User, user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        with self._session() as session:
            stmt = select(User).where(User.email == email)
            return session.execute(stmt).scalar_one_or_none()

    def get_user_by_username(self, username: str) -> Optional[User]:
        with self._session() as session:
            stmt = select(User).where(func.lower(User.username) == (username or "").lower())
            return session.execute(stmt).scalars().first()

    def list_users(self) -> list[User]:
        with self._session() as session:
            return list(session.execute(select(User).order_by(User.id)).scalars().all())

    def count_users(self) -> int:
        with self._session() as session:
            return int(session.execute(select(func.count(User.id))).scalar_one())

    def create_user(
        self,
        email: str,
        username: str,
        *,
        code_hash: str | None = None,
        level: int = 1,
        experience: int = 0,
        coins: int = 0,
        profession: str | None = None,
        is_admin: bool = False,
        is_online: bool = False,
        last_seen: datetime | None = None,
    ) -> User:
        """Insert a user. Unique email/username violations surface as IntegrityError."""
        now = datetime.now(timezone.utc)
        entity = User(
            email=email,
            username=username,
            code_hash=code_hash,
            level=level,
            experience=experience,
            coins=coins,
            profession=profession or DEFAULT_PROFESSION,
            is_admin=is_admin,
            status_text="",
            is_online=is_online,
            last_seen=last_seen or now,
            created_at=now,
        )
        with self._session() as session:
            session.add(entity)
            try:
                session.commit()
            except Exception:
                session.rollback()
                raise
            session.refresh(entity)
            return entity

    def update_user(self, user_id: int, **values) -> Optional[User]:
        """Apply column values to a user; returns the updated row or None when missing."""
        with self._session() as session:
            user = session.get(User, user_id)
            if not user:
                return None
            for key, value in values.items():
                setattr(user, key, value)
            session.commit()
            session.refresh(user)
            return user

    # -------------------------- verification codes --------------------------
    def get_code(self, email: str) -> Optional[VerificationCode]:
        with self._session() as session:
            return session.get(VerificationCode, email)

    def put_code(
        self,
        email: str,
        code_hash: str,
        *,
        created_at: datetime,
        intent: str = "register",
        display_name: str | None = None,
    ) -> VerificationCode:
        """Store the pending code for ``email``, replacing any previous one."""
        entity = VerificationCode(
            email=email,
            code_hash=code_hash,
            intent=intent,
            display_name=display_name,
            created_at=created_at,
        )
        with self._session() as session:
            merged = session.merge(entity)
            session.commit()
            return merged

    def delete_code(self, email: str) -> None:
        with self._session() as session:
            session.execute(delete(VerificationCode).where(VerificationCode.email == email))
            session.commit()

    def purge_codes_created_before(self, cutoff: datetime) -> int:
        with self._session() as session:
            result = session.execute(delete(VerificationCode).where(VerificationCode.created_at < cutoff))
            session.commit()
            return int(result.rowcount or 0)

    def count_codes(self) -> int:
        with self._session() as session:
            return int(session.execute(select(func.count(VerificationCode.email))).scalar_one())

    # -------------------------- professions --------------------------
    def list_professions(self) -> list[Profession]:
        with self._session() as session:
            return list(session.execute(select(Profession).order_by(Profession.id)).scalars().all())

    def get_profession(self, profession_id: int) -> Optional[Profession]:
        with self._session() as session:
            return session.get(Profession, profession_id)

    def upsert_profession(self, id: int, name: str, min_level: int = 1, description: str = "") -> None:
        with self._session() as session:
            session.merge(Profession(id=id, name=name, min_level=min_level, description=description))
            session.commit()

    # -------------------------- messages --------------------------
    def add_message(
        self,
        sender_id: int,
        body: str,
        *,
        chat_id: str = GLOBAL_CHAT,
        recipient_id: int | None = None,
        kind: str = "text",
        created_at: datetime | None = None,
    ) -> Message:
        entity = Message(
            sender_id=sender_id,
            recipient_id=recipient_id,
            chat_id=chat_id,
            body=body,
            kind=kind,
            is_read=False,
            created_at=created_at or datetime.now(timezone.utc),
        )
        with self._session() as session:
            session.add(entity)
            session.commit()
            session.refresh(entity)
            return entity

    def get_message(self, message_id: int) -> Optional[Message]:
        with self._session() as session:
            return session.get(Message, message_id)

    def list_messages(self, chat_id: str, limit: int = 50) -> list[Message]:
        """Last ``limit`` messages of a chat, oldest first."""
        with self._session() as session:
            stmt = select(Message).where(Message.chat_id == chat_id).order_by(Message.id.desc()).limit(limit)
            rows = list(session.execute(stmt).scalars().all())
        rows.reverse()
        return rows

    def mark_message_read(self, message_id: int) -> Optional[Message]:
        with self._session() as session:
            session.execute(update(Message).where(Message.id == message_id).values(is_read=True))
            session.commit()
            return session.get(Message, message_id)

    # -------------------------- sessions --------------------------
    def create_session(self, user_id: int, expires_at: datetime) -> str:
        token = new_session_token()
        with self._session() as session:
            session.add(UserSession(token=token, user_id=user_id, expires_at=expires_at))
            session.commit()
        return token

    def get_session(self, token: str) -> Optional[UserSession]:
        with self._session() as session:
            return session.get(UserSession, token)

    def delete_session(self, token: str) -> None:
        with self._session() as session:
            session.execute(delete(UserSession).where(UserSession.token == token))
            session.commit()
