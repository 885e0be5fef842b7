"""Database helpers (engine/session export)."""

from .session import Base, create_engine_for, get_engine, make_sessionmaker, session_scope

__all__ = ["Base", "create_engine_for", "get_engine", "make_sessionmaker", "session_scope"]
