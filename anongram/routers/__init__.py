"""
FastAPI routers grouped by domain (auth, users, professions, messages, realtime).

Each module exposes an APIRouter that create_app() includes. Routers look the
services up on ``app.state`` and never touch the Store directly.
"""

from starlette.requests import HTTPConnection

from anongram.services.container import ServiceContainer


def get_services(request: HTTPConnection) -> ServiceContainer:
    svc = getattr(getattr(request.app, "state", None), "services", None)
    if not svc:
        raise RuntimeError("Services not configured")
    return svc
