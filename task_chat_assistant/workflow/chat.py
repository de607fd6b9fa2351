"""Response stage: the tool-enabled chat call and tool-result handling."""
from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Sequence

from ..llm import LanguageModel
from ..task_store import TaskStore
from .state import CONFIRMATION_CLEARED, ChatMessage, PendingTask, StateDelta, TurnContext, TurnState
from .tools import TOOL_DEFINITIONS, UnknownToolError, execute_tool

logger = logging.getLogger(__name__)

MAX_PROMPT_TASKS = 3

CHAT_INSTRUCTIONS = """INSTRUCTIONS:
- Be conversational and friendly
- For task creation: Gather missing info naturally, don't be repetitive
- When tasks are found: Ask user to confirm which one they mean (1, 2, 3, etc.)
- For single matches: Ask "Did you mean '[task title]'?"
- When confirming: Ask clearly what action to take
- If no tasks match: Say so clearly and suggest alternatives
- If an operation was just carried out, tell the user the outcome
- Use tools when ready to execute actions"""


def build_system_prompt(context: TurnContext, notices: Sequence[str] = ()) -> str:
    """Describe the current turn context for the response model."""

    lines = [
        "You are a helpful task management assistant. You help users create, "
        "update, complete, and delete tasks.",
        "",
        "CURRENT CONTEXT:",
    ]

    intent = context.user_intent
    if intent:
        lines.append(f"- User wants to: {intent.action} (confidence: {round(intent.confidence * 100)}%)")
        if intent.reason:
            lines.append(f"- Reason: {intent.reason}")

    pending = context.pending_task
    if pending:
        lines.append(f"- Creating task. Missing fields: {', '.join(pending.missing_fields) or 'none'}")
        if pending.title:
            lines.append(f"- Title so far: {pending.title}")
        if pending.due_date:
            lines.append(f"- Due date: {pending.due_date}")
        if pending.priority:
            lines.append(f"- Priority: {pending.priority}")

    if context.found_tasks and intent and intent.action != "create":
        lines.append(f"- Found {len(context.found_tasks)} relevant task(s):")
        for index, task in enumerate(context.found_tasks[:MAX_PROMPT_TASKS], start=1):
            lines.append(f'  {index}. "{task.title}" ({task.status}, {task.priority} priority) [id: {task.id}]')
            if task.due_date:
                lines.append(f"     Due: {_format_due(task.due_date)}")

    operation = context.operation_details
    if context.awaiting_confirmation and operation:
        lines.append(f"- AWAITING USER CONFIRMATION for: {operation.action}")
        selected = next((t for t in context.found_tasks if t.id == operation.task_id), None)
        if selected:
            lines.append(f'- Task: "{selected.title}"')
        if operation.updates:
            lines.append(f"- Proposed changes: {json.dumps(operation.updates)}")

    for notice in notices:
        lines.append(f"- Outcome of the user's confirmation: {notice}")

    lines.extend(["", CHAT_INSTRUCTIONS])
    return "\n".join(lines)


def to_model_messages(history: Sequence[ChatMessage], transcript: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Conversation history plus this turn's tool exchanges, in API format."""
    messages: List[Dict[str, Any]] = [
        {"role": message.role, "content": message.content}
        for message in history
        if message.content
    ]
    messages.extend(transcript)
    return messages


async def run_chat(state: TurnState, model: LanguageModel) -> None:
    """Invoke the response model; record its reply or its tool calls."""

    system = build_system_prompt(state.context, state.notices)
    reply = await model.respond(system, to_model_messages(state.history, state.transcript), TOOL_DEFINITIONS)

    if reply.tool_calls:
        state.transcript.append(reply.to_message())
        state.pending_tool_calls = list(reply.tool_calls)
        logger.info(f"[Workflow] Model requested tools: {[call.name for call in reply.tool_calls]}")
        return

    state.pending_tool_calls = []
    state.response = reply.text or (state.notices[-1] if state.notices else "")


async def run_tools(state: TurnState, store: TaskStore) -> None:
    """Execute the requested tool calls in order and feed the results back."""

    blocks: List[Dict[str, Any]] = []
    results: List[Dict[str, Any]] = []
    for call in state.pending_tool_calls:
        try:
            result = await execute_tool(
                call.name,
                call.input,
                store=store,
                user_id=state.user_id,
                session_id=state.session_id,
            )
            is_error = False
        except UnknownToolError:
            logger.warning(f"[Workflow] Model called unknown tool '{call.name}'")
            result = {"success": False, "error": f"Unknown tool: {call.name}", "message": "That tool is not available"}
            is_error = True
        except (TypeError, AttributeError, ValueError) as exc:
            logger.warning(f"[Workflow] Tool '{call.name}' rejected its input: {exc}")
            result = {"success": False, "error": str(exc), "message": f"Invalid input for {call.name}"}
            is_error = True

        results.append(result)
        block = {
            "type": "tool_result",
            "tool_use_id": call.id,
            "content": json.dumps(result, default=str),
        }
        if is_error:
            block["is_error"] = True
        blocks.append(block)

    state.transcript.append({"role": "user", "content": blocks})
    state.tool_results = results
    state.pending_tool_calls = []
    state.tool_rounds += 1


def process_tool_results(state: TurnState) -> StateDelta:
    """Fold tool results into the turn context.

    Validation results set or clear the pending task; any successful result
    ends the operation in progress.
    """
    changes: Dict[str, Any] = {}
    for result in state.tool_results:
        if "canCreate" in result:
            if result["canCreate"]:
                changes["pending_task"] = None
            else:
                data = result.get("taskData") or {}
                changes["pending_task"] = PendingTask(
                    title=data.get("title"),
                    description=data.get("description"),
                    priority=data.get("priority"),
                    due_date=data.get("dueDate"),
                    missing_fields=list(result.get("missingFields") or []),
                )
        elif result.get("success"):
            changes.update(CONFIRMATION_CLEARED)
            changes["pending_task"] = None
            changes["found_tasks"] = []
    state.tool_results = []
    return StateDelta(changes=changes)


def _format_due(value: str) -> str:
    try:
        return datetime.fromisoformat(value).strftime("%b %d, %Y %I:%M %p")
    except ValueError:
        return value
