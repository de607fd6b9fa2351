"""Tasks Router - manual task CRUD.

Handles:
- Task listing with status/priority filters
- Create, read, update, complete and delete

Store errors map to HTTP status codes: not found -> 404, validation -> 400.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies import get_current_user, get_task_store
from api.models import TaskCreateRequest, TaskUpdateRequest
from task_chat_assistant.dates import coerce_datetime
from task_chat_assistant.logs import log_task_event
from task_chat_assistant.task_store import (
    TaskFilters,
    TaskNotFound,
    TaskSource,
    TaskStore,
    TaskValidationError,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _not_found(exc: TaskNotFound) -> HTTPException:
    return HTTPException(status_code=404, detail="Task not found")


def _log(action: str, task, user: str) -> None:
    try:
        log_task_event(action=action, task=task, user_id=user, session_id=None, source="api")
    except Exception as exc:  # pragma: no cover - file I/O errors
        logger.warning(f"Activity log error: {exc}")


@router.get("")
async def list_tasks(
    status: Optional[str] = Query(None, description="Filter by status"),
    priority: Optional[str] = Query(None, description="Filter by priority"),
    limit: int = Query(50, ge=1, le=200, description="Maximum tasks to return"),
    user: str = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
) -> dict:
    """List the user's tasks, newest first."""
    tasks = await store.find(user, TaskFilters(status=status, priority=priority), limit=limit)
    return {
        "count": len(tasks),
        "tasks": [t.to_api_dict() for t in tasks],
    }


@router.post("", status_code=201)
async def create_task(
    request: TaskCreateRequest,
    user: str = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
) -> dict:
    """Create a task directly, bypassing the chat workflow."""
    due_date = None
    if request.due_date:
        due_date = coerce_datetime(request.due_date)
        if due_date is None:
            raise HTTPException(status_code=400, detail=f"Invalid dueDate: {request.due_date}")

    try:
        task = await store.create(
            user,
            request.title,
            description=request.description,
            priority=request.priority,
            due_date=due_date,
            source=TaskSource.MANUAL.value,
        )
    except TaskValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    _log("create", task, user)
    return {"task": task.to_api_dict()}


@router.get("/{task_id}")
async def get_task(
    task_id: str,
    user: str = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
) -> dict:
    """Get a single task."""
    try:
        task = await store.get(user, task_id)
    except TaskNotFound as exc:
        raise _not_found(exc)
    return {"task": task.to_api_dict()}


@router.put("/{task_id}")
async def update_task(
    task_id: str,
    request: TaskUpdateRequest,
    user: str = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
) -> dict:
    """Update the provided fields of a task."""
    updates = request.model_dump(exclude_unset=True)
    try:
        task = await store.update(user, task_id, updates)
    except TaskNotFound as exc:
        raise _not_found(exc)
    except TaskValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    _log("update", task, user)
    return {"task": task.to_api_dict()}


@router.patch("/{task_id}/complete")
async def complete_task(
    task_id: str,
    user: str = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
) -> dict:
    """Mark a task as completed."""
    try:
        task = await store.complete(user, task_id)
    except TaskNotFound as exc:
        raise _not_found(exc)

    _log("complete", task, user)
    return {"task": task.to_api_dict()}


@router.delete("/{task_id}")
async def delete_task(
    task_id: str,
    user: str = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
) -> dict:
    """Delete a task."""
    try:
        task = await store.delete(user, task_id)
    except TaskNotFound as exc:
        raise _not_found(exc)

    _log("delete", task, user)
    return {"deleted": True, "taskId": task_id}
