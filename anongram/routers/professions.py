from __future__ import annotations

from fastapi import APIRouter, Depends

from anongram.routers import get_services
from anongram.routers.schemas import SelectProfessionBody
from anongram.services.container import ServiceContainer

router = APIRouter(tags=["professions"])


@router.get("/professions")
def list_professions(services: ServiceContainer = Depends(get_services)):
    return services.professions.list_professions()


@router.post("/profession")
def select_profession(body: SelectProfessionBody, services: ServiceContainer = Depends(get_services)):
    name = services.professions.assign(body.user_id, body.profession_id)
    return {"success": True, "profession": name}
