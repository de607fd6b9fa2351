"""Yes/no handling for operations awaiting the user's confirmation."""
from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from ..task_store import TaskStore
from .state import CONFIRMATION_CLEARED, StateDelta, TurnState
from .tools import execute_tool

logger = logging.getLogger(__name__)

CONFIRM_KEYWORDS = (
    "yes", "yeah", "yep", "sure", "ok", "okay", "confirm", "do it", "go ahead", "proceed", "y",
)
CANCEL_KEYWORDS = ("no", "nope", "cancel", "abort", "stop", "don't", "dont", "n")

_TOOL_FOR_ACTION = {
    "update": "update_task",
    "complete": "complete_task",
    "delete": "delete_task",
}


class Reply(str, Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    UNRESOLVED = "unresolved"


def _matches(content: str, keywords) -> bool:
    return any(content == kw or content.startswith(kw + " ") for kw in keywords)


def classify_reply(message: Optional[str]) -> Reply:
    """Classify a reply to a yes/no question.

    A keyword counts when it is the whole reply or is followed by a space, so
    "no thanks" cancels but "nothing" does not.
    """
    content = (message or "").lower().strip()
    if _matches(content, CONFIRM_KEYWORDS):
        return Reply.CONFIRMED
    if _matches(content, CANCEL_KEYWORDS):
        return Reply.CANCELLED
    return Reply.UNRESOLVED


async def handle_confirmation(state: TurnState, store: TaskStore) -> StateDelta:
    """Interpret the newest user message as an answer to the open question.

    Executes at most one mutation. Nothing happens when the question was only
    raised during this turn, or when the reply is neither yes nor no.
    """
    message = state.latest_user_message
    if not state.reply_expected or message is None:
        return StateDelta()

    reply = classify_reply(message)
    if reply is Reply.UNRESOLVED:
        return StateDelta()

    cleared = dict(CONFIRMATION_CLEARED, found_tasks=[])
    if reply is Reply.CANCELLED:
        logger.info(f"[Confirmation] Cancelled by {state.user_id}")
        return StateDelta(changes=cleared)

    context = state.context
    operation = context.operation_details
    task_id = context.selected_task_id
    if operation is None or not task_id:
        return StateDelta(changes=cleared)

    tool_name = _TOOL_FOR_ACTION.get(operation.action)
    if tool_name is None:
        logger.warning(f"[Confirmation] Unsupported action '{operation.action}', nothing executed")
        return StateDelta(changes=cleared)

    tool_input = {"taskId": task_id}
    if operation.action == "update":
        tool_input["updates"] = dict(operation.updates)

    try:
        result = await execute_tool(
            tool_name,
            tool_input,
            store=store,
            user_id=state.user_id,
            session_id=state.session_id,
        )
    except Exception as exc:
        logger.error(f"[Confirmation] {operation.action} of {task_id} failed: {exc}")
        return StateDelta(changes=dict(CONFIRMATION_CLEARED), notices=[f"Error: {str(exc) or 'Unknown error occurred'}"])

    if result.get("success"):
        logger.info(f"[Confirmation] {operation.action} of {task_id} executed")
        notice = result.get("message") or f"Task {operation.action}d successfully"
        return StateDelta(changes=cleared, notices=[notice])

    detail = result.get("message") or result.get("error")
    return StateDelta(
        changes=dict(CONFIRMATION_CLEARED),
        notices=[f"Failed to {operation.action} task: {detail}"],
    )
