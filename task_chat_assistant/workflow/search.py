"""Search stage: find the tasks an intent refers to and prepare operations."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from ..dates import is_relative_shift, parse_due_date
from ..llm import MODIFYING_ACTIONS, UserIntent
from ..task_store import TaskStatus, TaskStore, TaskStoreError, search_tasks
from .routing import find_duplicate
from .state import FoundTask, OperationDetails, PendingTask, StateDelta, TurnState
from .validation import validate_task_fields

logger = logging.getLogger(__name__)

LIST_LIMIT = 10
SEARCH_LIMIT = 5


async def search_for_intent(
    state: TurnState,
    store: TaskStore,
    *,
    now: Optional[datetime] = None,
) -> StateDelta:
    """Populate found tasks for the current intent.

    For a single match on update/delete/complete an operation is proposed and
    the turn moves into confirmation; a create that duplicates an open task
    proposes updating that task instead.
    """
    intent = state.context.user_intent
    if intent is None or intent.action == "chat":
        return StateDelta()

    query, status, limit = _search_parameters(intent)
    try:
        results = await search_tasks(store, state.user_id, query, status=status, limit=limit)
    except TaskStoreError as exc:
        logger.error(f"[Workflow] Task search failed for {state.user_id}: {exc}")
        return StateDelta()

    found = [FoundTask.from_scored(item) for item in results]
    changes: Dict[str, Any] = {"found_tasks": found}
    logger.info(f"[Workflow] {intent.action} search '{query}' matched {len(found)} task(s)")

    if intent.action in MODIFYING_ACTIONS and len(found) == 1:
        matched = found[0]
        updates = build_updates(intent, matched, query=query, now=now)
        if intent.action == "update" and not updates:
            return StateDelta(changes=changes)
        changes.update(_awaiting(OperationDetails(intent.action, matched.id, updates)))
        return StateDelta(changes=changes)

    if intent.action == "create":
        duplicate = find_duplicate(found)
        if duplicate is not None:
            changes.update(_awaiting(OperationDetails("update", duplicate.id, {})))
        else:
            changes["pending_task"] = assemble_pending_task(state.context.pending_task, intent)

    return StateDelta(changes=changes)


def build_updates(
    intent: UserIntent,
    matched: FoundTask,
    *,
    query: str = "",
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Sparse field updates proposed by the intent for the matched task."""
    info = intent.extracted
    updates: Dict[str, Any] = {}

    # A title that only names the task to find is not a rename
    if info.title and info.title.strip().lower() != query.strip().lower():
        updates["title"] = info.title
    if info.description:
        updates["description"] = info.description
    if info.priority:
        updates["priority"] = info.priority
    if info.status:
        updates["status"] = info.status

    due = _resolve_due_date(intent, matched, now)
    if due is not None:
        updates["dueDate"] = due.isoformat()
    return updates


def assemble_pending_task(current: Optional[PendingTask], intent: UserIntent) -> Optional[PendingTask]:
    """Merge new creation details into the pending task.

    Returns None once every required field is known.
    """
    base = current or PendingTask()
    info = intent.extracted
    result = validate_task_fields({
        "title": info.title or base.title,
        "description": info.description or base.description,
        "priority": info.priority or base.priority,
        "dueDate": info.due_date or base.due_date,
    })
    if result.can_create:
        return None
    data = result.task_data
    return PendingTask(
        title=data.get("title"),
        description=data.get("description"),
        priority=data.get("priority"),
        due_date=data.get("dueDate"),
        missing_fields=result.missing_fields,
    )


def _search_parameters(intent: UserIntent):
    info = intent.extracted
    if intent.action == "list":
        statuses = [member.value for member in TaskStatus]
        status = info.status if info.status in statuses else None
        return "", status, LIST_LIMIT
    if intent.action == "create":
        return info.title or "", None, SEARCH_LIMIT
    return info.search_query or info.title or "", None, SEARCH_LIMIT


def _resolve_due_date(intent: UserIntent, matched: FoundTask, now: Optional[datetime]) -> Optional[datetime]:
    text = intent.extracted.due_date
    if not text:
        return None
    reference = now
    if intent.action == "update" and matched.due_date and is_relative_shift(text):
        reference = datetime.fromisoformat(matched.due_date)
    return parse_due_date(text, reference)


def _awaiting(operation: OperationDetails) -> Dict[str, Any]:
    return {
        "selected_task_id": operation.task_id,
        "awaiting_confirmation": True,
        "operation_details": operation,
    }

