"""
Auth API routes — register, login, logout, refresh, password reset, me.

Route prefix: /api/v1/auth
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request, status

from auth.dependencies import get_bearer_token, get_credential_service, get_current_user
from auth.service import CredentialService
from database.models import User
from utils.schemas import (
    ForgotPasswordRequest,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    ResetPasswordRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


def ok(data: Any = None) -> Dict[str, Any]:
    return {"success": True, "data": data}


def _client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    req: RegisterRequest,
    service: CredentialService = Depends(get_credential_service),
) -> Dict[str, Any]:
    """Register a new user."""
    user = await service.register(
        req.email,
        req.password,
        req.first_name,
        req.last_name,
        req.phone_number,
    )
    return ok({"user": user.to_dict()})


@router.post("/login")
async def login(
    req: LoginRequest,
    request: Request,
    service: CredentialService = Depends(get_credential_service),
) -> Dict[str, Any]:
    """Login with email + password."""
    result = await service.login(
        req.email,
        req.password,
        user_agent=request.headers.get("User-Agent"),
        ip_address=_client_ip(request),
    )
    return ok(
        {
            "user": result.user.to_dict(),
            "accessToken": result.access_token,
            "refreshToken": result.refresh_token,
        }
    )


@router.post("/logout")
async def logout(
    token: str = Depends(get_bearer_token),
    service: CredentialService = Depends(get_credential_service),
) -> Dict[str, Any]:
    await service.logout(token)
    return ok()


@router.post("/refresh")
async def refresh(
    req: RefreshRequest,
    service: CredentialService = Depends(get_credential_service),
) -> Dict[str, Any]:
    pair = await service.refresh(req.refresh_token)
    return ok({"accessToken": pair.access_token, "refreshToken": pair.refresh_token})


@router.post("/forgot-password")
async def forgot_password(
    req: ForgotPasswordRequest,
    service: CredentialService = Depends(get_credential_service),
) -> Dict[str, Any]:
    """Always succeeds, whether or not the email is registered."""
    await service.request_password_reset(req.email)
    return ok()


@router.post("/reset-password")
async def reset_password(
    req: ResetPasswordRequest,
    service: CredentialService = Depends(get_credential_service),
) -> Dict[str, Any]:
    await service.reset_password(req.token, req.password)
    return ok()


@router.get("/me")
async def me(user: User = Depends(get_current_user)) -> Dict[str, Any]:
    return ok({"user": user.to_dict()})
