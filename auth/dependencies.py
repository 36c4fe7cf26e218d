"""
FastAPI dependencies for authentication.

Provides the DB session, the process-wide token codec, a per-request
``CredentialService`` and the bearer-token guard used by protected routes.
"""

from __future__ import annotations

from functools import lru_cache
from typing import AsyncGenerator, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from auth.errors import InvalidTokenError, MissingTokenError
from auth.jwt import TokenCodec
from auth.password import PasswordHasher
from auth.service import CredentialService, ResetNotifier, log_reset_notifier
from config.settings import config
from database.models import User
from database.session import get_db_session

_bearer_scheme = HTTPBearer(auto_error=False)


async def db_session(
    session: AsyncSession = Depends(get_db_session),
) -> AsyncGenerator[AsyncSession, None]:
    """Yield a DB session for route handlers."""
    yield session


@lru_cache(maxsize=1)
def get_token_codec() -> TokenCodec:
    """Built once per process from ``AUTH_JWT_SECRET``."""
    return TokenCodec(config.auth_jwt_secret)


def get_reset_notifier() -> ResetNotifier:
    return log_reset_notifier


async def get_credential_service(
    session: AsyncSession = Depends(db_session),
    codec: TokenCodec = Depends(get_token_codec),
    notifier: ResetNotifier = Depends(get_reset_notifier),
) -> CredentialService:
    return CredentialService(
        session,
        codec,
        hasher=PasswordHasher(config.auth_password_salt_bytes),
        access_ttl_seconds=config.access_ttl_seconds,
        session_ttl_seconds=config.session_ttl_seconds,
        reset_ttl_seconds=config.auth_reset_ttl_minutes * 60,
        strict_session_check=config.auth_strict_session_check,
        reset_notifier=notifier,
    )


async def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> str:
    """Raw token from ``Authorization: Bearer <token>``."""
    if credentials is None or not credentials.credentials:
        raise MissingTokenError()
    return credentials.credentials


async def get_current_user(
    token: str = Depends(get_bearer_token),
    service: CredentialService = Depends(get_credential_service),
) -> User:
    """Resolve the bearer token to a user or reject the request."""
    user = await service.validate_session(token)
    if user is None:
        raise InvalidTokenError()
    return user
