"""
Client-side session lifecycle.

``SessionGuard`` reads the ``exp`` claim of the held access token (no
signature check; the client is not a trust boundary) and refreshes the
token pair shortly before it lapses.  It runs as a single asyncio task on
the caller's event loop: one check on start, then one every
``check_interval`` seconds until :meth:`stop`.

A failed refresh is not retried.  Credentials are cleared and the user is
treated as logged out from then on.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

from auth.jwt import decode_unverified
from client.credentials import Credentials

logger = logging.getLogger(__name__)

DEFAULT_CHECK_INTERVAL = 60.0
DEFAULT_REFRESH_THRESHOLD = 5 * 60.0


class SessionGuard:
    def __init__(
        self,
        credentials: Credentials,
        refresh: Callable[[], Awaitable[None]],
        *,
        check_interval: float = DEFAULT_CHECK_INTERVAL,
        refresh_threshold: float = DEFAULT_REFRESH_THRESHOLD,
        auto_refresh: bool = True,
        clock: Callable[[], float] = time.time,
    ):
        self.credentials = credentials
        self._refresh = refresh
        self.check_interval = check_interval
        self.refresh_threshold = refresh_threshold
        self.auto_refresh = auto_refresh
        self._clock = clock
        self._task: Optional[asyncio.Task] = None

    # ── Pure checks ───────────────────────────────────────────────────────

    def token_expiration(self) -> Optional[float]:
        """``exp`` of the held access token in epoch seconds, or ``None``."""
        token = self.credentials.access_token
        if not token:
            return None
        payload = decode_unverified(token)
        if payload is None:
            return None
        exp = payload.get("exp")
        if not isinstance(exp, (int, float)) or isinstance(exp, bool):
            return None
        return float(exp)

    def is_expiring_soon(self) -> bool:
        exp = self.token_expiration()
        if exp is None:
            return True
        return exp - self._clock() <= self.refresh_threshold

    def is_valid_session(self) -> bool:
        if not self.credentials.user or not self.credentials.access_token:
            return False
        exp = self.token_expiration()
        if exp is None:
            return False
        return self._clock() < exp

    def time_until_expiration(self) -> Optional[float]:
        exp = self.token_expiration()
        if exp is None:
            return None
        return max(0.0, exp - self._clock())

    def auth_header(self) -> Optional[str]:
        if not self.is_valid_session():
            return None
        return f"Bearer {self.credentials.access_token}"

    # ── Refresh ───────────────────────────────────────────────────────────

    async def _refresh_or_logout(self) -> bool:
        try:
            await self._refresh()
        except Exception as exc:
            logger.warning("Token refresh failed, clearing credentials: %s", exc)
            self.credentials.clear()
            return False
        return True

    async def check(self) -> None:
        """Refresh if the held access token is within the threshold of expiring."""
        if not self.credentials.access_token or not self.credentials.refresh_token:
            return
        if self.is_expiring_soon():
            await self._refresh_or_logout()

    async def validate(self) -> bool:
        """Refresh first if needed, then report whether the session is usable."""
        if not self.credentials.access_token:
            return False
        if self.credentials.refresh_token and self.is_expiring_soon():
            if not await self._refresh_or_logout():
                return False
        return self.is_valid_session()

    # ── Periodic task ─────────────────────────────────────────────────────

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Check once now, then keep checking in the background."""
        if not self.auto_refresh or self.running:
            return
        await self.check()
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.check_interval)
            await self.check()

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def __aenter__(self) -> "SessionGuard":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()
