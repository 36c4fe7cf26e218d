"""
Async API client for the auth endpoints.

Keeps the caller's credentials in a :class:`Credentials` holder: login
fills it, refresh replaces the token pair, and logout or a failed refresh
empties it.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from client.credentials import Credentials

logger = logging.getLogger(__name__)


class AuthClientError(Exception):
    def __init__(self, code: str, message: str, status_code: Optional[int] = None):
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message
        self.status_code = status_code


def _unwrap(response: httpx.Response) -> Any:
    """Return ``data`` from a success envelope or raise ``AuthClientError``."""
    try:
        body = response.json()
    except ValueError as exc:
        raise AuthClientError("INVALID_RESPONSE", "Response was not JSON", response.status_code) from exc
    if not isinstance(body, dict):
        raise AuthClientError("INVALID_RESPONSE", "Unexpected response shape", response.status_code)
    if body.get("success"):
        return body.get("data")
    error = body.get("error") or {}
    raise AuthClientError(
        error.get("code", "UNKNOWN_ERROR"),
        error.get("message", "Request failed"),
        response.status_code,
    )


class AuthClient:
    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        credentials: Optional[Credentials] = None,
        prefix: str = "/api/v1/auth",
    ):
        self._http = http
        self.credentials = credentials or Credentials()
        self._prefix = prefix.rstrip("/")

    async def _post(self, path: str, json: Optional[Dict[str, Any]] = None, **kwargs) -> Any:
        response = await self._http.post(f"{self._prefix}{path}", json=json, **kwargs)
        return _unwrap(response)

    def auth_headers(self) -> Dict[str, str]:
        token = self.credentials.access_token
        return {"Authorization": f"Bearer {token}"} if token else {}

    async def register(self, **fields: Any) -> Dict[str, Any]:
        data = await self._post("/register", json=fields)
        return data["user"]

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        data = await self._post("/login", json={"email": email, "password": password})
        self.credentials.update(
            user=data["user"],
            access_token=data["accessToken"],
            refresh_token=data["refreshToken"],
        )
        return data["user"]

    async def refresh_access_token(self) -> None:
        """Swap the held refresh token for a new pair; clears credentials on any failure."""
        refresh_token = self.credentials.refresh_token
        if not refresh_token:
            self.credentials.clear()
            raise AuthClientError("MISSING_TOKEN", "No refresh token available")
        try:
            data = await self._post("/refresh", json={"refreshToken": refresh_token})
        except (AuthClientError, httpx.HTTPError):
            self.credentials.clear()
            raise
        self.credentials.update(
            access_token=data["accessToken"],
            refresh_token=data["refreshToken"],
        )

    async def logout(self) -> None:
        """Tell the server, then forget local credentials whatever it answered."""
        try:
            if self.credentials.access_token:
                await self._post("/logout", headers=self.auth_headers())
        except (AuthClientError, httpx.HTTPError) as exc:
            logger.warning("Logout request failed: %s", exc)
        finally:
            self.credentials.clear()

    async def me(self) -> Dict[str, Any]:
        response = await self._http.get(f"{self._prefix}/me", headers=self.auth_headers())
        return _unwrap(response)["user"]
