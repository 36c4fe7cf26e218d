"""
Database helper functions — ownership-scoped to-do rows.

Every query filters on ``user_id`` so a user can never read or modify
another user's to-dos; a foreign id simply looks like a missing one.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from auth.errors import TodoNotFoundError
from auth.sessions import utcnow
from database.models import Todo

logger = logging.getLogger(__name__)

_UPDATABLE = ("title", "description", "completed", "priority", "due_date")


async def create_todo(
    session: AsyncSession,
    user_id: str,
    title: str,
    description: Optional[str] = None,
    priority: str = "medium",
    due_date: Optional[str] = None,
) -> Todo:
    now = utcnow()
    todo = Todo(
        user_id=user_id,
        title=title,
        description=description,
        completed=False,
        priority=priority,
        due_date=due_date,
        created_at=now,
        updated_at=now,
    )
    session.add(todo)
    await session.flush()
    logger.debug("Created todo %s for user %s", todo.id, user_id)
    return todo


async def list_todos(
    session: AsyncSession,
    user_id: str,
    offset: int = 0,
    limit: int = 50,
    completed: Optional[bool] = None,
) -> Tuple[List[Todo], int]:
    """
    Return one page of the user's to-dos (newest first) and the total count.

    With *completed* set, both the page and the total only cover to-dos in
    that state.
    """
    conditions = [Todo.user_id == user_id]
    if completed is not None:
        conditions.append(Todo.completed == completed)

    result = await session.execute(
        select(Todo)
        .where(*conditions)
        .order_by(Todo.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    total = await session.scalar(
        select(func.count()).select_from(Todo).where(*conditions)
    )
    return list(result.scalars().all()), int(total or 0)


async def get_todo(session: AsyncSession, user_id: str, todo_id: str) -> Todo:
    result = await session.execute(
        select(Todo).where(Todo.id == todo_id, Todo.user_id == user_id)
    )
    todo = result.scalar_one_or_none()
    if todo is None:
        raise TodoNotFoundError()
    return todo


async def update_todo(
    session: AsyncSession,
    user_id: str,
    todo_id: str,
    changes: Dict[str, Any],
) -> Todo:
    todo = await get_todo(session, user_id, todo_id)
    for field in _UPDATABLE:
        if field in changes:
            setattr(todo, field, changes[field])
    todo.updated_at = utcnow()
    await session.flush()
    return todo


async def delete_todo(session: AsyncSession, user_id: str, todo_id: str) -> None:
    todo = await get_todo(session, user_id, todo_id)
    await session.delete(todo)
    await session.flush()
