"""
In-memory holder for the credentials a client keeps between requests.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class Credentials:
    def __init__(self):
        self.user: Optional[Dict[str, Any]] = None
        self.access_token: Optional[str] = None
        self.refresh_token: Optional[str] = None

    def update(
        self,
        *,
        user: Optional[Dict[str, Any]] = None,
        access_token: Optional[str] = None,
        refresh_token: Optional[str] = None,
    ) -> None:
        """Overwrite only the fields that are given."""
        if user is not None:
            self.user = user
        if access_token is not None:
            self.access_token = access_token
        if refresh_token is not None:
            self.refresh_token = refresh_token

    def clear(self) -> None:
        self.user = None
        self.access_token = None
        self.refresh_token = None

    @property
    def is_empty(self) -> bool:
        return self.access_token is None
