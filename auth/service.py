"""
Credential service — registration, login, logout, token refresh and
password reset on top of the password hasher, token codec and session store.

Request handlers create one per request (bound to that request's DB
session) and turn raised ``AuthError`` subclasses into error envelopes.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta
from typing import Awaitable, Callable, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from auth.errors import (
    AlreadyExistsError,
    InvalidCredentialsError,
    InvalidRefreshTokenError,
    InvalidResetTokenError,
    RefreshTokenExpiredError,
)
from auth.jwt import TokenCodec
from auth.password import PasswordHasher
from auth.sessions import (
    SessionExpired,
    SessionNotFound,
    SessionStore,
    TokenPair,
    as_utc,
    generate_refresh_token,
    hash_token,
    utcnow,
)
from database.models import PasswordResetToken, User

logger = logging.getLogger(__name__)

ResetNotifier = Callable[[User, str], Awaitable[None]]

DEFAULT_RESET_TTL_SECONDS = 3600

# Verified against when the email is unknown so both login failure paths hash once.
_DUMMY_HASH = "00" * 16 + ":" + "00" * 32


@dataclass(frozen=True)
class LoginResult:
    user: User
    access_token: str
    refresh_token: str


async def log_reset_notifier(user: User, token: str) -> None:
    """Default notifier: mail delivery lives outside this service."""
    logger.info("Password reset token issued for user %s", user.id)


class CredentialService:
    def __init__(
        self,
        session: AsyncSession,
        codec: TokenCodec,
        *,
        hasher: Optional[PasswordHasher] = None,
        access_ttl_seconds: int = 15 * 60,
        session_ttl_seconds: int = 7 * 86400,
        reset_ttl_seconds: int = DEFAULT_RESET_TTL_SECONDS,
        strict_session_check: bool = False,
        reset_notifier: ResetNotifier = log_reset_notifier,
    ):
        self._session = session
        self._codec = codec
        self._hasher = hasher or PasswordHasher()
        self.sessions = SessionStore(
            session,
            codec,
            session_ttl_seconds=session_ttl_seconds,
            access_ttl_seconds=access_ttl_seconds,
        )
        self.reset_ttl_seconds = reset_ttl_seconds
        self.strict_session_check = strict_session_check
        self._reset_notifier = reset_notifier

    async def _get_user_by_email(self, email: str) -> Optional[User]:
        result = await self._session.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    # ── Registration / login ──────────────────────────────────────────────

    async def register(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        phone_number: Optional[str] = None,
    ) -> User:
        """Create a user. Raises ``AlreadyExistsError`` on an exact email match."""
        if await self._get_user_by_email(email) is not None:
            raise AlreadyExistsError()

        now = utcnow()
        user = User(
            email=email,
            password_hash=self._hasher.hash(password),
            first_name=first_name,
            last_name=last_name,
            phone_number=phone_number,
            email_verified=False,
            created_at=now,
            updated_at=now,
        )
        self._session.add(user)
        try:
            await self._session.flush()
        except IntegrityError as exc:
            # Lost a race with a concurrent registration of the same email
            await self._session.rollback()
            raise AlreadyExistsError() from exc

        logger.info("Registered user %s", user.id)
        return user

    async def login(
        self,
        email: str,
        password: str,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> LoginResult:
        """
        Check credentials and open a new session.

        Unknown email and wrong password raise the same
        ``InvalidCredentialsError`` so callers cannot tell them apart.
        """
        user = await self._get_user_by_email(email)
        if user is None:
            self._hasher.verify(password, _DUMMY_HASH)
            raise InvalidCredentialsError()
        if not self._hasher.verify(password, user.password_hash):
            raise InvalidCredentialsError()

        now = utcnow()
        user.last_login_at = now
        user.updated_at = now

        access_token = self.sessions.issue_access_token(user)
        refresh_token = generate_refresh_token()
        record = await self.sessions.create(
            user.id,
            access_token,
            refresh_token,
            user_agent=user_agent,
            ip_address=ip_address,
        )
        logger.info("Login: user %s (session %s)", user.id, record.id)
        return LoginResult(user=user, access_token=access_token, refresh_token=refresh_token)

    async def logout(self, access_token: str) -> None:
        """Drop the session bound to *access_token*. Never fails for bad tokens."""
        if not access_token:
            return
        await self.sessions.invalidate(access_token)

    # ── Tokens ────────────────────────────────────────────────────────────

    async def refresh(self, refresh_token: str) -> TokenPair:
        try:
            return await self.sessions.rotate(refresh_token)
        except SessionNotFound as exc:
            logger.warning("Refresh rejected: no matching session")
            raise InvalidRefreshTokenError() from exc
        except SessionExpired as exc:
            # keep the deletion even though the request fails
            await self._session.commit()
            logger.warning("Refresh rejected: session %s expired", exc)
            raise RefreshTokenExpiredError() from exc

    async def validate_session(self, access_token: str) -> Optional[User]:
        """
        Resolve an access token to its user, or ``None``.

        By default only the signature and expiry are checked, so an access
        token stays usable until it expires even after logout.  With
        ``strict_session_check`` a live session row is required as well.
        """
        claims = self._codec.verify(access_token)
        if claims is None:
            return None
        user_id = claims.get("userId")
        if not isinstance(user_id, str):
            return None
        if self.strict_session_check:
            record = await self.sessions.find_by_access_token(access_token)
            if record is None or as_utc(record.expires_at) < utcnow():
                return None
        return await self._session.get(User, user_id)

    # ── Password reset ────────────────────────────────────────────────────

    async def request_password_reset(self, email: str) -> None:
        """Issue a reset token if *email* belongs to a user. Always returns normally."""
        user = await self._get_user_by_email(email)
        if user is None:
            logger.info("Password reset requested for unknown email")
            return

        await self._session.execute(
            delete(PasswordResetToken).where(PasswordResetToken.user_id == user.id)
        )
        raw_token = secrets.token_urlsafe(24)
        now = utcnow()
        self._session.add(
            PasswordResetToken(
                user_id=user.id,
                token_hash=hash_token(raw_token),
                expires_at=now + timedelta(seconds=self.reset_ttl_seconds),
                created_at=now,
            )
        )
        await self._session.flush()

        try:
            await self._reset_notifier(user, raw_token)
        except Exception:
            logger.exception("Reset notifier failed for user %s", user.id)

    async def reset_password(self, token: str, new_password: str) -> None:
        """Consume a reset token, set the new password and end every session of the user."""
        result = await self._session.execute(
            select(PasswordResetToken).where(PasswordResetToken.token_hash == hash_token(token))
        )
        reset = result.scalar_one_or_none()
        now = utcnow()
        if reset is None or reset.used_at is not None or as_utc(reset.expires_at) < now:
            raise InvalidResetTokenError()

        user = await self._session.get(User, reset.user_id)
        if user is None:
            raise InvalidResetTokenError()

        user.password_hash = self._hasher.hash(new_password)
        user.updated_at = now
        reset.used_at = now
        await self._session.flush()
        revoked = await self.sessions.invalidate_all(user.id)
        logger.info("Password reset for user %s; %d session(s) ended", user.id, revoked)
