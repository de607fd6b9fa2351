"""Task tools exposed to the chat model.

Every tool receives the owner and session explicitly. Store errors are turned
into structured ``{"success": False, "error", "message"}`` results so the model
can relay them. Input the model sends in the wrong shape gets the same
structured failure; only unexpected exceptions propagate.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..dates import coerce_datetime
from ..logs import log_task_event
from ..task_store import (
    Task,
    TaskFilters,
    TaskPriority,
    TaskSource,
    TaskStore,
    TaskStoreError,
    TaskValidationError,
    search_tasks,
)
from .validation import validate_task_fields

logger = logging.getLogger(__name__)

_PRIORITIES = [p.value for p in TaskPriority]
_STATUSES = ["todo", "in-progress", "completed"]
_DUE_DATE_HELP = (
    "Due date in natural language (e.g., 'tomorrow', 'next Friday at 3PM', "
    "'in 2 hours') or ISO format."
)

CREATE_TASK_TOOL = {
    "name": "create_task",
    "description": "Create a new task with title, description, priority, and optional due date",
    "input_schema": {
        "type": "object",
        "properties": {
            "title": {"type": "string", "description": "The title of the task"},
            "description": {"type": "string", "description": "Detailed description of the task"},
            "priority": {
                "type": "string",
                "enum": _PRIORITIES,
                "description": "Task priority level (defaults to medium)",
            },
            "dueDate": {"type": "string", "description": _DUE_DATE_HELP},
        },
        "required": ["title"],
    },
}

VALIDATE_TASK_TOOL = {
    "name": "validate_task",
    "description": "Validate task information and check for missing required fields before creating",
    "input_schema": {
        "type": "object",
        "properties": {
            "title": {"type": "string", "description": "The title of the task"},
            "description": {"type": "string", "description": "Detailed description of the task"},
            "priority": {"type": "string", "enum": _PRIORITIES, "description": "Task priority level"},
            "dueDate": {"type": "string", "description": _DUE_DATE_HELP},
        },
    },
}

UPDATE_TASK_TOOL = {
    "name": "update_task",
    "description": "Update an existing task with new information",
    "input_schema": {
        "type": "object",
        "properties": {
            "taskId": {"type": "string", "description": "The ID of the task to update"},
            "updates": {
                "type": "object",
                "description": "The fields to update",
                "properties": {
                    "title": {"type": "string", "description": "New title for the task"},
                    "description": {"type": "string", "description": "New description for the task"},
                    "priority": {"type": "string", "enum": _PRIORITIES, "description": "New priority level"},
                    "status": {"type": "string", "enum": _STATUSES, "description": "New status"},
                    "dueDate": {"type": "string", "description": "New due date (ISO format or natural language)"},
                },
            },
        },
        "required": ["taskId", "updates"],
    },
}

COMPLETE_TASK_TOOL = {
    "name": "complete_task",
    "description": "Mark a task as completed",
    "input_schema": {
        "type": "object",
        "properties": {
            "taskId": {"type": "string", "description": "The ID of the task to complete"},
        },
        "required": ["taskId"],
    },
}

DELETE_TASK_TOOL = {
    "name": "delete_task",
    "description": "Delete a task permanently",
    "input_schema": {
        "type": "object",
        "properties": {
            "taskId": {"type": "string", "description": "The ID of the task to delete"},
        },
        "required": ["taskId"],
    },
}

LIST_TASKS_TOOL = {
    "name": "list_tasks",
    "description": "List tasks with optional filtering by status and priority",
    "input_schema": {
        "type": "object",
        "properties": {
            "status": {"type": "string", "enum": _STATUSES, "description": "Filter by task status"},
            "priority": {"type": "string", "enum": _PRIORITIES, "description": "Filter by task priority"},
            "limit": {"type": "integer", "description": "Maximum number of tasks to return (default 10)"},
        },
    },
}

SEARCH_TASKS_TOOL = {
    "name": "search_tasks",
    "description": "Search for tasks using natural language query. Returns matching tasks with relevance scores.",
    "input_schema": {
        "type": "object",
        "properties": {
            "query": {
                "type": "string",
                "description": "Natural language search query (e.g., 'meeting', 'report', 'buy groceries')",
            },
            "status": {"type": "string", "enum": _STATUSES, "description": "Optional status filter"},
            "limit": {"type": "integer", "description": "Maximum number of tasks to return (default 5)"},
        },
        "required": ["query"],
    },
}

TOOL_DEFINITIONS = [
    CREATE_TASK_TOOL,
    VALIDATE_TASK_TOOL,
    UPDATE_TASK_TOOL,
    COMPLETE_TASK_TOOL,
    DELETE_TASK_TOOL,
    LIST_TASKS_TOOL,
    SEARCH_TASKS_TOOL,
]

_TOOL_NAMES = {tool["name"] for tool in TOOL_DEFINITIONS}


class UnknownToolError(KeyError):
    """Raised when the model asks for a tool that does not exist."""


async def execute_tool(
    name: str,
    tool_input: Dict[str, Any],
    *,
    store: TaskStore,
    user_id: str,
    session_id: Optional[str],
) -> Dict[str, Any]:
    """Run one tool for the given owner and return its structured result."""

    if name not in _TOOL_NAMES:
        raise UnknownToolError(name)

    tool_input = tool_input or {}
    logger.info(f"[Tools] {name} for {user_id}")
    if not isinstance(tool_input, dict):
        return _invalid_input("tool input must be an object", f"Invalid input for {name}")
    if not isinstance(tool_input.get("taskId", ""), str):
        return _invalid_input("taskId must be a string", f"Invalid input for {name}")

    if name == "validate_task":
        return validate_task_fields(tool_input).to_dict()
    if name == "create_task":
        return await _create_task(tool_input, store, user_id, session_id)
    if name == "update_task":
        return await _update_task(tool_input, store, user_id, session_id)
    if name == "complete_task":
        return await _complete_task(tool_input, store, user_id, session_id)
    if name == "delete_task":
        return await _delete_task(tool_input, store, user_id, session_id)
    if name == "list_tasks":
        return await _list_tasks(tool_input, store, user_id)
    return await _search_tasks(tool_input, store, user_id)


async def _create_task(tool_input, store: TaskStore, user_id: str, session_id: Optional[str]) -> Dict[str, Any]:
    title = tool_input.get("title")
    try:
        due_text = tool_input.get("dueDate") or tool_input.get("due_date")
        due_date = coerce_datetime(due_text)
        if due_text and due_date is None:
            raise TaskValidationError(f"Could not understand due date '{due_text}'.")
        task = await store.create(
            user_id,
            title,
            description=tool_input.get("description"),
            priority=tool_input.get("priority") or TaskPriority.MEDIUM.value,
            due_date=due_date,
            source=TaskSource.CHAT.value,
            chat_session_id=session_id,
        )
    except (TaskStoreError, TaskValidationError) as exc:
        return _failure(exc, "Failed to create task")

    _record("create", task, user_id, session_id)
    return {
        "success": True,
        "task": task.to_api_dict(),
        "message": f'Task "{task.title}" created successfully with ID: {task.id}',
    }


async def _update_task(tool_input, store: TaskStore, user_id: str, session_id: Optional[str]) -> Dict[str, Any]:
    task_id = tool_input.get("taskId", "")
    updates = tool_input.get("updates") or {}
    if not isinstance(updates, dict):
        return _invalid_input("updates must be an object", "Failed to update task")
    try:
        task = await store.update(user_id, task_id, updates)
    except (TaskStoreError, TaskValidationError) as exc:
        return _failure(exc, "Failed to update task")

    _record("update", task, user_id, session_id)
    return {"success": True, "task": task.to_api_dict(), "message": f'Task "{task.title}" updated successfully'}


async def _complete_task(tool_input, store: TaskStore, user_id: str, session_id: Optional[str]) -> Dict[str, Any]:
    task_id = tool_input.get("taskId", "")
    try:
        task = await store.complete(user_id, task_id)
    except TaskStoreError as exc:
        return _failure(exc, "Failed to complete task")

    _record("complete", task, user_id, session_id)
    return {"success": True, "task": task.to_api_dict(), "message": f'Task "{task.title}" marked as completed'}


async def _delete_task(tool_input, store: TaskStore, user_id: str, session_id: Optional[str]) -> Dict[str, Any]:
    task_id = tool_input.get("taskId", "")
    try:
        task = await store.delete(user_id, task_id)
    except TaskStoreError as exc:
        return _failure(exc, "Failed to delete task")

    _record("delete", task, user_id, session_id)
    return {"success": True, "task": task.to_api_dict(), "message": f'Task "{task.title}" deleted successfully'}


async def _list_tasks(tool_input, store: TaskStore, user_id: str) -> Dict[str, Any]:
    filters = TaskFilters(status=tool_input.get("status"), priority=tool_input.get("priority"))
    try:
        tasks = await store.find(user_id, filters, limit=_limit(tool_input, 10))
    except TaskStoreError as exc:
        return _failure(exc, "Failed to list tasks")

    return {
        "success": True,
        "tasks": [task.to_api_dict() for task in tasks],
        "count": len(tasks),
        "message": f"Found {len(tasks)} task{'s' if len(tasks) != 1 else ''}",
    }


async def _search_tasks(tool_input, store: TaskStore, user_id: str) -> Dict[str, Any]:
    query = tool_input.get("query") or ""
    if not isinstance(query, str):
        return _invalid_input("query must be a string", "Failed to search tasks")
    try:
        results = await search_tasks(
            store,
            user_id,
            query,
            status=tool_input.get("status"),
            limit=_limit(tool_input, 5),
        )
    except TaskStoreError as exc:
        return _failure(exc, "Failed to search tasks")

    count = len(results)
    plural = "s" if count != 1 else ""
    if not query.strip():
        message = f"Found {count} recent task{plural}"
    elif count:
        message = f"Found {count} matching task{plural}"
    else:
        message = f'No tasks found matching "{query}"'
    return {
        "success": True,
        "tasks": [
            {**item.task.to_api_dict(), "matchScore": item.score, "matchReason": item.reason}
            for item in results
        ],
        "count": count,
        "message": message,
    }


def _limit(tool_input: Dict[str, Any], default: int) -> int:
    try:
        value = int(tool_input.get("limit") or default)
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


def _invalid_input(error: str, message: str) -> Dict[str, Any]:
    return {"success": False, "error": error, "message": message}


def _failure(exc: Exception, fallback: str) -> Dict[str, Any]:
    # Not-found carries its own user-facing message
    message = str(exc) if isinstance(exc, TaskStoreError) else fallback
    return {"success": False, "error": str(exc), "message": message}


def _record(action: str, task: Task, user_id: str, session_id: Optional[str]) -> None:
    try:
        log_task_event(
            action=action,
            task=task,
            user_id=user_id,
            session_id=session_id,
            source="chat",
        )
    except Exception as exc:  # pragma: no cover - file I/O errors
        logger.warning(f"[Tools] Activity log error: {exc}")
