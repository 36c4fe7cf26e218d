"""
To-do API routes. Every route requires a bearer token and only sees the
caller's own rows.

Route prefix: /api/v1
"""

from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import db_session, get_current_user_id
from auth.routes import ok
from database import helpers
from utils.schemas import TodoCreateRequest, TodoUpdateRequest

router = APIRouter(tags=["todos"])


@router.get("/todos")
async def list_todos(
    offset: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    status_filter: Optional[Literal["completed", "incomplete"]] = Query(None, alias="filter"),
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    completed = None if status_filter is None else status_filter == "completed"
    todos, total = await helpers.list_todos(
        session, user_id, offset=offset, limit=limit, completed=completed
    )
    return ok({"todos": [t.to_dict() for t in todos], "total": total})


@router.post("/todos", status_code=status.HTTP_201_CREATED)
async def create_todo(
    req: TodoCreateRequest,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    todo = await helpers.create_todo(
        session,
        user_id,
        title=req.title,
        description=req.description,
        priority=req.priority,
        due_date=req.due_date,
    )
    return ok({"todo": todo.to_dict()})


@router.get("/todos/{todo_id}")
async def get_todo(
    todo_id: str,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    todo = await helpers.get_todo(session, user_id, todo_id)
    return ok({"todo": todo.to_dict()})


@router.patch("/todos/{todo_id}")
async def update_todo(
    todo_id: str,
    req: TodoUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    changes = req.model_dump(exclude_unset=True)
    # non-nullable columns: an explicit null means "leave as is"
    for key in ("title", "completed", "priority"):
        if changes.get(key) is None:
            changes.pop(key, None)
    todo = await helpers.update_todo(session, user_id, todo_id, changes)
    return ok({"todo": todo.to_dict()})


@router.delete("/todos/{todo_id}")
async def delete_todo(
    todo_id: str,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    await helpers.delete_todo(session, user_id, todo_id)
    return ok()
