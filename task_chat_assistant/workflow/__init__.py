"""Conversation-driven task workflow."""
from __future__ import annotations

from .chat import build_system_prompt, process_tool_results
from .confirmation import Reply, classify_reply, handle_confirmation
from .orchestrator import TOOL_LIMIT_MESSAGE, TaskWorkflow, TurnResult
from .routing import (
    Stage,
    find_duplicate,
    route_after_chat,
    route_after_confirmation,
    route_after_intent,
    route_after_search,
)
from .search import assemble_pending_task, build_updates, search_for_intent
from .state import (
    ChatMessage,
    FoundTask,
    OperationDetails,
    PendingTask,
    StateDelta,
    TurnContext,
    TurnState,
)
from .tools import TOOL_DEFINITIONS, execute_tool
from .validation import REQUIRED_FIELDS, ValidationResult, validate_task_fields

__all__ = [
    "ChatMessage",
    "FoundTask",
    "OperationDetails",
    "PendingTask",
    "REQUIRED_FIELDS",
    "Reply",
    "Stage",
    "StateDelta",
    "TOOL_DEFINITIONS",
    "TOOL_LIMIT_MESSAGE",
    "TaskWorkflow",
    "TurnContext",
    "TurnResult",
    "TurnState",
    "ValidationResult",
    "assemble_pending_task",
    "build_system_prompt",
    "build_updates",
    "classify_reply",
    "execute_tool",
    "find_duplicate",
    "handle_confirmation",
    "process_tool_results",
    "route_after_chat",
    "route_after_confirmation",
    "route_after_intent",
    "route_after_search",
    "search_for_intent",
    "validate_task_fields",
]
