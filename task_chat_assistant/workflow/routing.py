"""Stage names and the pure routing decisions between them."""
from __future__ import annotations

from enum import Enum
from typing import Iterable, Optional

from ..llm import MODIFYING_ACTIONS
from .state import FoundTask, TurnState

DUPLICATE_SCORE_THRESHOLD = 80

SEARCH_ACTIONS = ("create", "update", "delete", "complete", "list")


class Stage(str, Enum):
    """Workflow stages of one turn."""

    ANALYZE_INTENT = "analyze_intent"
    SEARCH_TASKS = "search_tasks"
    HANDLE_CONFIRMATION = "handle_confirmation"
    CHAT = "chat"
    TOOLS = "tools"
    PROCESS_RESULT = "process_result"
    END = "end"


def find_duplicate(found_tasks: Iterable[FoundTask]) -> Optional[FoundTask]:
    """Return the first open task that matches strongly enough to be a duplicate."""
    for task in found_tasks:
        if task.match_score > DUPLICATE_SCORE_THRESHOLD and not task.is_completed:
            return task
    return None


def route_after_intent(state: TurnState) -> Stage:
    context = state.context
    # An open yes/no question wins over the new classification
    if context.awaiting_confirmation:
        return Stage.HANDLE_CONFIRMATION
    intent = context.user_intent
    if intent is None:
        return Stage.CHAT
    if intent.action in SEARCH_ACTIONS:
        return Stage.SEARCH_TASKS
    return Stage.CHAT


def route_after_search(state: TurnState) -> Stage:
    context = state.context
    intent = context.user_intent
    if intent is None:
        return Stage.CHAT

    if intent.action == "create":
        if find_duplicate(context.found_tasks):
            return Stage.HANDLE_CONFIRMATION
        return Stage.CHAT

    if intent.action in MODIFYING_ACTIONS:
        if len(context.found_tasks) == 1 and context.operation_details is not None:
            return Stage.HANDLE_CONFIRMATION
        # No match, several candidates, or nothing to change
        return Stage.CHAT

    return Stage.CHAT


def route_after_confirmation(state: TurnState) -> Stage:
    # Re-prompt when unresolved, report the outcome otherwise
    return Stage.CHAT


def route_after_chat(state: TurnState, max_tool_rounds: int) -> Stage:
    if state.pending_tool_calls and state.tool_rounds < max_tool_rounds:
        return Stage.TOOLS
    return Stage.END
