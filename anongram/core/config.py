"""
Configuration helpers for the Anongram backend.

Routers and services read a Settings object instead of fetching os.environ
directly, so tests can swap the environment and clear the cache.
"""

from dataclasses import dataclass
from functools import lru_cache
import os


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str
    port: int
    database_url: str
    cors_origins: tuple[str, ...]
    smtp_host: str
    smtp_port: int
    smtp_user: str
    smtp_password: str
    smtp_from: str
    mail_backend: str
    mail_timeout_seconds: float
    code_ttl_seconds: int
    session_ttl_seconds: int
    admin_codes: tuple[str, ...]
    seed_demo_users: bool
    starting_coins: int
    message_experience: int
    message_page_size: int
    max_message_length: int
    expose_debug_codes: bool
    log_level: str


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    def _int(value: str, default: int = 0) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def _float(value: str, default: float = 0.0) -> float:
        try:
            return float(value)
        except (TypeError, ValueError):
            return default

    def _bool(value: str | None, default: bool = False) -> bool:
        if value is None:
            return default
        return value.strip().lower() in {"1", "true", "yes", "on"}

    def _list(value: str | None) -> tuple[str, ...]:
        return tuple(item.strip() for item in (value or "").split(",") if item.strip())

    app_env = (os.getenv("APP_ENV") or "dev").lower()
    smtp_host = os.getenv("SMTP_HOST", "")
    return Settings(
        app_env=app_env,
        port=_int(os.getenv("PORT", "3000"), 3000),
        database_url=os.getenv("DATABASE_URL", "sqlite://"),
        cors_origins=_list(os.getenv("CORS_ORIGINS", "http://localhost:8081,https://anongram-app.com")),
        smtp_host=smtp_host,
        smtp_port=_int(os.getenv("SMTP_PORT", "465"), 465),
        smtp_user=os.getenv("SMTP_USER", ""),
        smtp_password=os.getenv("SMTP_PASSWORD", ""),
        smtp_from=os.getenv("SMTP_FROM", os.getenv("SMTP_USER", "")),
        mail_backend=(os.getenv("MAIL_BACKEND") or ("smtp" if smtp_host else "console")).lower(),
        mail_timeout_seconds=_float(os.getenv("MAIL_TIMEOUT_SECONDS", "10"), 10.0),
        code_ttl_seconds=_int(os.getenv("CODE_TTL_SECONDS", "600"), 600),
        session_ttl_seconds=_int(os.getenv("SESSION_TTL_SECONDS", "86400"), 86400),
        admin_codes=_list(os.getenv("ADMIN_CODES")),
        seed_demo_users=_bool(os.getenv("SEED_DEMO_USERS"), app_env != "prod"),
        starting_coins=_int(os.getenv("STARTING_COINS", "100"), 100),
        message_experience=_int(os.getenv("MESSAGE_EXPERIENCE", "10"), 10),
        message_page_size=_int(os.getenv("MESSAGE_PAGE_SIZE", "50"), 50),
        max_message_length=_int(os.getenv("MAX_MESSAGE_LENGTH", "2000"), 2000),
        expose_debug_codes=_bool(os.getenv("EXPOSE_DEBUG_CODES"), app_env == "dev"),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
    )
