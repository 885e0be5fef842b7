from __future__ import annotations

from fastapi import APIRouter, Depends

from anongram.routers import get_services
from anongram.routers.schemas import ProfileBody
from anongram.services.container import ServiceContainer
from anongram.services.views import public_user

router = APIRouter(prefix="/users", tags=["users"])


@router.get("")
def list_users(services: ServiceContainer = Depends(get_services)):
    return services.users.list_users()


@router.get("/{user_id}")
def get_user(user_id: int, services: ServiceContainer = Depends(get_services)):
    return public_user(services.users.get_user(user_id))


@router.patch("/{user_id}")
def update_profile(user_id: int, body: ProfileBody, services: ServiceContainer = Depends(get_services)):
    user = services.users.update_profile(user_id, status_text=body.status, avatar_url=body.avatar_url)
    return {"success": True, "user": public_user(user)}
