from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from anongram.core.errors import SessionInvalidError
from anongram.routers import get_services
from anongram.routers.schemas import LoginBody, SendCodeBody, VerifyBody
from anongram.services.container import ServiceContainer
from anongram.services.session_service import (
    clear_session_cookie,
    set_session_cookie,
    token_from_request,
)
from anongram.services.views import private_user

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/send-code")
def send_code(body: SendCodeBody, services: ServiceContainer = Depends(get_services)):
    result = services.verification.request_code(body.email, body.display_name, intent=body.intent)
    payload = {
        "success": True,
        "message": "Code sent to your email",
        "expiresAt": int(result.expires_at * 1000),
    }
    if result.debug_code:
        payload["debugCode"] = result.debug_code
    return payload


@router.post("/verify")
def verify(body: VerifyBody, services: ServiceContainer = Depends(get_services)):
    result = services.verification.verify_code(body.email, body.code, body.display_name, body.admin_code)
    resp = JSONResponse(
        {
            "success": True,
            "created": result.created,
            "token": result.session_token,
            "user": private_user(result.user),
        }
    )
    set_session_cookie(resp, result.session_token, services.settings)
    return resp


@router.post("/login")
def login(body: LoginBody, services: ServiceContainer = Depends(get_services)):
    user = services.users.login(body.email)
    return {"success": True, "user": private_user(user)}


@router.get("/session")
def current_session(request: Request, services: ServiceContainer = Depends(get_services)):
    user = services.sessions.current_user(token_from_request(request))
    if not user:
        raise SessionInvalidError()
    return {"success": True, "user": private_user(user)}


@router.post("/logout")
def logout(request: Request, services: ServiceContainer = Depends(get_services)):
    services.sessions.revoke(token_from_request(request))
    resp = JSONResponse({"success": True})
    clear_session_cookie(resp)
    return resp
