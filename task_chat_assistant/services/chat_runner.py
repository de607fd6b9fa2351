"""Shared chat-turn helpers for CLI/API."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from ..config import Settings
from ..conversations import ChatSession, load_session, new_session, save_session
from ..llm import LanguageModel
from ..task_store import TaskStore
from ..workflow import TaskWorkflow, TurnContext

logger = logging.getLogger(__name__)

APOLOGY_MESSAGE = "Sorry, something went wrong while processing your message. Please try again."


@dataclass(slots=True)
class ChatTurnResult:
    """Result of running one chat turn."""

    response: str
    session_id: Optional[str]
    context: TurnContext = field(default_factory=TurnContext)
    trace: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_api_dict(self) -> dict:
        context = self.context
        return {
            "response": self.response,
            "sessionId": self.session_id,
            "hasPendingTask": context.pending_task is not None,
            "pendingTask": context.pending_task.to_dict() if context.pending_task else None,
            "userIntent": context.user_intent.to_dict() if context.user_intent else None,
            "foundTasks": [task.to_dict() for task in context.found_tasks],
            "awaitingConfirmation": context.awaiting_confirmation,
            "operationDetails": context.operation_details.to_dict() if context.operation_details else None,
        }


async def run_chat_turn(
    message: str,
    *,
    user_id: str,
    session_id: Optional[str],
    model: LanguageModel,
    store: TaskStore,
    settings: Settings,
) -> ChatTurnResult:
    """Load (or start) a session, run one turn and persist it on success.

    Unexpected failures are logged and answered with a generic apology; the
    stored session is left exactly as it was before the turn.
    """

    session: Optional[ChatSession] = None
    try:
        if session_id:
            session = load_session(user_id, session_id)
        if session is None:
            session = new_session(user_id, message)

        session.add_message("user", message)
        workflow = TaskWorkflow(model, store, max_tool_rounds=settings.max_tool_rounds)
        result = await workflow.run_turn(
            user_id=user_id,
            session_id=session.id,
            history=session.messages,
            context=session.context,
        )

        session.add_message("assistant", result.response)
        session.record_turn(result.context)
        save_session(session)
    except Exception as exc:
        logger.exception(f"[ChatRunner] Chat turn failed for {user_id}: {exc}")
        return ChatTurnResult(
            response=APOLOGY_MESSAGE,
            session_id=session_id,
            error=str(exc),
        )

    return ChatTurnResult(
        response=result.response,
        session_id=session.id,
        context=result.context,
        trace=result.trace,
    )
