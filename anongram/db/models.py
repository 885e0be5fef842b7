"""SQLAlchemy models for users, professions, messages, codes and sessions."""
from __future__ import annotations

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
)

from .session import Base

DEFAULT_PROFESSION = "Newbie"
GLOBAL_CHAT = "global"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False)
    username = Column(String(64), unique=True, nullable=False)
    # legacy inline code, hashed; superseded by verification_codes
    code_hash = Column(Text, nullable=True)
    level = Column(Integer, default=1, nullable=False)
    experience = Column(Integer, default=0, nullable=False)
    coins = Column(Integer, default=0, nullable=False)
    is_admin = Column(Boolean, default=False, nullable=False)
    profession = Column(String(64), default=DEFAULT_PROFESSION, nullable=False)
    status_text = Column(String(140), default="", nullable=False)
    avatar_url = Column(String(512), nullable=True)
    is_online = Column(Boolean, default=False, nullable=False)
    last_seen = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class VerificationCode(Base):
    __tablename__ = "verification_codes"

    # one row per email: a new code replaces the previous one
    email = Column(String(255), primary_key=True)
    code_hash = Column(Text, nullable=False)
    intent = Column(String(16), default="register", nullable=False)
    display_name = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)


class Profession(Base):
    __tablename__ = "professions"

    id = Column(Integer, primary_key=True)
    name = Column(String(64), unique=True, nullable=False)
    min_level = Column(Integer, default=1, nullable=False)
    description = Column(String(255), default="", nullable=False)


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    sender_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    recipient_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    chat_id = Column(String(64), default=GLOBAL_CHAT, nullable=False, index=True)
    body = Column(Text, nullable=False)
    kind = Column(String(16), default="text", nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)


class UserSession(Base):
    __tablename__ = "sessions"

    token = Column(String(128), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
