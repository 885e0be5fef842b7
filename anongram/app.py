import logging
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine

from anongram.core.config import Settings, get_settings
from anongram.core.errors import AnongramError, ValidationError
from anongram.core.logging import configure_logging
from anongram.db.seed import seed_demo_users, seed_professions
from anongram.db.session import create_engine_for
from anongram.realtime.channel import RealtimeChannel
from anongram.repositories.store import Store
from anongram.routers import auth as auth_router
from anongram.routers import messages as messages_router
from anongram.routers import professions as professions_router
from anongram.routers import realtime as realtime_router
from anongram.routers import status as status_router
from anongram.routers import users as users_router
from anongram.services.container import build_services

logger = logging.getLogger(__name__)


def _error_body(code: str, message: str) -> dict:
    return {"success": False, "error": code, "message": message}


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AnongramError)
    async def anongram_error(request: Request, exc: AnongramError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(_error_body(exc.code, exc.message), status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(request: Request, exc: RequestValidationError):
        fields = [".".join(str(p) for p in err.get("loc", ()) if p != "body") for err in exc.errors()]
        message = "Missing or malformed fields: " + ", ".join(f for f in fields if f) if fields else "Invalid request"
        return JSONResponse(_error_body(ValidationError.code, message), status_code=400)

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        logger.exception("unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(_error_body("InternalError", "Internal error"), status_code=500)


def create_app(
    settings: Optional[Settings] = None,
    *,
    engine: Optional[Engine] = None,
    mailer: Optional[Callable[[str, str], bool]] = None,
) -> FastAPI:
    """Build a fully wired application: store, services, hub, routers."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    store = Store(engine or create_engine_for(settings.database_url))
    store.create_schema()
    seed_professions(store)
    if settings.seed_demo_users:
        seed_demo_users(store, starting_coins=settings.starting_coins)

    services = build_services(settings, store, mailer=mailer)

    app = FastAPI(title="Anongram API")
    app.state.settings = settings
    app.state.services = services
    app.state.channel = RealtimeChannel(services)

    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=sorted(settings.cors_origins),
            allow_credentials=True,
            allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
            allow_headers=["*"],
        )
    _install_error_handlers(app)

    app.include_router(status_router.router)
    app.include_router(auth_router.router)
    app.include_router(users_router.router)
    app.include_router(professions_router.router)
    app.include_router(messages_router.router)
    app.include_router(realtime_router.router)

    logger.info("Anongram ready (env=%s, users=%d)", settings.app_env, store.count_users())
    return app
