"""
FastAPI dependencies (shared across routes).
"""

from __future__ import annotations

from fastapi import Depends

from auth.dependencies import db_session, get_current_user  # noqa: F401
from database.models import User


async def get_current_user_id(user: User = Depends(get_current_user)) -> str:
    """Authenticated user's id, for routes that only need ownership scoping."""
    return user.id
