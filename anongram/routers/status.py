from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from anongram.routers import get_services
from anongram.services.container import ServiceContainer

router = APIRouter(tags=["status"])


@router.get("/")
def health(services: ServiceContainer = Depends(get_services)):
    return {
        "status": "OK",
        "message": "Anongram server running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "users": services.store.count_users(),
        "connections": services.hub.connection_count(),
    }
