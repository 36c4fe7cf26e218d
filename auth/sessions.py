"""
Server-side login sessions.

One ``UserSession`` row per login binds the SHA-256 of the current access
token and refresh token to a user and an expiry.  Tokens themselves are
never stored.  A refresh rotates both hashes in place, so the presented
refresh token stops working the moment the new pair is written.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from auth.errors import UserNotFoundError
from auth.jwt import TokenCodec
from database.models import User, UserSession

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TTL_SECONDS = 7 * 86400
DEFAULT_ACCESS_TTL_SECONDS = 15 * 60


class SessionNotFound(Exception):
    """No session matches the presented token (unknown, rotated away, or logged out)."""


class SessionExpired(Exception):
    """The matching session had passed its expiry and has been deleted."""


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


def hash_token(token: str) -> str:
    """Unsalted SHA-256 hex digest; tokens are high-entropy so a salt buys nothing."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def generate_refresh_token() -> str:
    return secrets.token_urlsafe(48)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SessionStore:
    def __init__(
        self,
        session: AsyncSession,
        codec: TokenCodec,
        *,
        session_ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS,
        access_ttl_seconds: int = DEFAULT_ACCESS_TTL_SECONDS,
    ):
        self._session = session
        self._codec = codec
        self.session_ttl_seconds = session_ttl_seconds
        self.access_ttl_seconds = access_ttl_seconds

    def issue_access_token(self, user: User) -> str:
        claims = {"userId": user.id, "email": user.email, "jti": uuid.uuid4().hex}
        return self._codec.issue(claims, self.access_ttl_seconds)

    async def create(
        self,
        user_id: str,
        access_token: str,
        refresh_token: str,
        ttl_seconds: Optional[int] = None,
        *,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> UserSession:
        now = utcnow()
        ttl = self.session_ttl_seconds if ttl_seconds is None else ttl_seconds
        record = UserSession(
            user_id=user_id,
            access_token_hash=hash_token(access_token),
            refresh_token_hash=hash_token(refresh_token),
            expires_at=now + timedelta(seconds=ttl),
            created_at=now,
            last_used_at=now,
            user_agent=user_agent,
            ip_address=ip_address,
        )
        self._session.add(record)
        await self._session.flush()
        return record

    async def find_by_refresh_token(self, token: str) -> Optional[UserSession]:
        result = await self._session.execute(
            select(UserSession).where(UserSession.refresh_token_hash == hash_token(token))
        )
        return result.scalar_one_or_none()

    async def find_by_access_token(self, token: str) -> Optional[UserSession]:
        result = await self._session.execute(
            select(UserSession).where(UserSession.access_token_hash == hash_token(token))
        )
        return result.scalar_one_or_none()

    async def rotate(self, old_refresh_token: str) -> TokenPair:
        """
        Exchange a refresh token for a new access/refresh pair.

        Raises ``SessionNotFound`` if nothing matches (including when a
        concurrent rotation of the same session got there first) and
        ``SessionExpired`` if the session had lapsed; the lapsed row is
        deleted in the current transaction.
        """
        old_hash = hash_token(old_refresh_token)
        result = await self._session.execute(
            select(UserSession)
            .where(UserSession.refresh_token_hash == old_hash)
            .with_for_update()
        )
        record = result.scalar_one_or_none()
        if record is None:
            raise SessionNotFound()

        now = utcnow()
        if as_utc(record.expires_at) < now:
            session_id = record.id
            await self._session.delete(record)
            await self._session.flush()
            logger.info("Session %s expired; removed", session_id)
            raise SessionExpired(session_id)

        user = await self._session.get(User, record.user_id)
        if user is None:
            raise UserNotFoundError()

        pair = TokenPair(
            access_token=self.issue_access_token(user),
            refresh_token=generate_refresh_token(),
        )

        session_id = record.id
        # Compare-and-swap on the old hash: only one rotation per hash can land.
        swapped = await self._session.execute(
            update(UserSession)
            .where(UserSession.id == session_id, UserSession.refresh_token_hash == old_hash)
            .values(
                access_token_hash=hash_token(pair.access_token),
                refresh_token_hash=hash_token(pair.refresh_token),
                expires_at=now + timedelta(seconds=self.session_ttl_seconds),
                last_used_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        self._session.expire(record)
        if swapped.rowcount != 1:
            logger.warning("Lost rotation race for session %s", session_id)
            raise SessionNotFound()

        logger.info("Rotated session %s for user %s", session_id, user.id)
        return pair

    async def invalidate(self, access_token: str) -> None:
        """Delete the session bound to *access_token*. Unknown tokens are a no-op."""
        result = await self._session.execute(
            delete(UserSession)
            .where(UserSession.access_token_hash == hash_token(access_token))
        )
        await self._session.flush()
        if result.rowcount:
            logger.info("Session ended by logout")

    async def invalidate_all(self, user_id: str) -> int:
        result = await self._session.execute(
            delete(UserSession)
            .where(UserSession.user_id == user_id)
        )
        await self._session.flush()
        return result.rowcount or 0

    async def purge_expired(self) -> int:
        """Delete every session whose expiry has passed. Returns the number removed."""
        result = await self._session.execute(
            delete(UserSession)
            .where(UserSession.expires_at < utcnow())
            .execution_options(synchronize_session="fetch")
        )
        await self._session.flush()
        return result.rowcount or 0
