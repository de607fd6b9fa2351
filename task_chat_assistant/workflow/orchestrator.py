"""Finite-state driver for one chat turn.

Stages run strictly in sequence; each one mutates the TurnState and a pure
router picks the next stage until END. The caller owns persistence: it passes
the loaded turn context in and stores the returned context afterwards.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ..llm import LanguageModel, analyze_intent
from ..task_store import TaskStore
from .chat import process_tool_results, run_chat, run_tools
from .confirmation import handle_confirmation
from .routing import (
    Stage,
    route_after_chat,
    route_after_confirmation,
    route_after_intent,
    route_after_search,
)
from .search import search_for_intent
from .state import ChatMessage, TurnContext, TurnState

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOOL_ROUNDS = 5

TOOL_LIMIT_MESSAGE = (
    "I wasn't able to finish that request in one go. "
    "Could you tell me again what you'd like me to do?"
)

# New intents that end an unfinished task creation
ABANDONS_PENDING_TASK = ("update", "delete", "complete", "list")


@dataclass(slots=True)
class TurnResult:
    """Outcome of a turn: the reply, the context to persist, and the stages visited."""

    response: str
    context: TurnContext
    trace: List[str] = field(default_factory=list)


class TaskWorkflow:
    """Runs the intent → search → confirmation → chat pipeline for a turn."""

    def __init__(
        self,
        model: LanguageModel,
        store: TaskStore,
        *,
        max_tool_rounds: int = DEFAULT_MAX_TOOL_ROUNDS,
        clock=None,
    ) -> None:
        self.model = model
        self.store = store
        self.max_tool_rounds = max_tool_rounds
        self._clock = clock

    async def run_turn(
        self,
        *,
        user_id: str,
        session_id: Optional[str],
        history: Sequence[ChatMessage],
        context: Optional[TurnContext] = None,
    ) -> TurnResult:
        """Process the newest message of ``history``.

        The given context is not modified; the updated copy is returned.
        """
        start = context.copy() if context else TurnContext()
        state = TurnState(
            user_id=user_id,
            session_id=session_id,
            history=list(history),
            context=start,
            reply_expected=start.awaiting_confirmation,
        )

        handlers = {
            Stage.ANALYZE_INTENT: self._analyze_intent,
            Stage.SEARCH_TASKS: self._search_tasks,
            Stage.HANDLE_CONFIRMATION: self._handle_confirmation,
            Stage.CHAT: self._chat,
            Stage.TOOLS: self._tools,
            Stage.PROCESS_RESULT: self._process_result,
        }

        stage = Stage.ANALYZE_INTENT
        while stage is not Stage.END:
            state.trace.append(stage.value)
            stage = await handlers[stage](state)

        if state.pending_tool_calls:
            logger.warning(
                f"[Workflow] Tool round limit ({self.max_tool_rounds}) reached for session {session_id}"
            )
            state.pending_tool_calls = []
            state.response = TOOL_LIMIT_MESSAGE

        logger.info(f"[Workflow] Turn finished for {user_id}: {' -> '.join(state.trace)}")
        return TurnResult(response=state.response, context=state.context, trace=state.trace)

    # Stages -----------------------------------------------------------------

    async def _analyze_intent(self, state: TurnState) -> Stage:
        intent = await analyze_intent(state.history, self.model)
        if intent is not None:
            state.context.user_intent = intent
            if intent.action in ABANDONS_PENDING_TASK and state.context.pending_task is not None:
                logger.info(f"[Workflow] Abandoning pending task for new '{intent.action}' intent")
                state.context.pending_task = None
        return route_after_intent(state)

    async def _search_tasks(self, state: TurnState) -> Stage:
        now = self._clock() if self._clock else None
        delta = await search_for_intent(state, self.store, now=now)
        delta.apply(state)
        return route_after_search(state)

    async def _handle_confirmation(self, state: TurnState) -> Stage:
        delta = await handle_confirmation(state, self.store)
        delta.apply(state)
        return route_after_confirmation(state)

    async def _chat(self, state: TurnState) -> Stage:
        await run_chat(state, self.model)
        return route_after_chat(state, self.max_tool_rounds)

    async def _tools(self, state: TurnState) -> Stage:
        await run_tools(state, self.store)
        return Stage.PROCESS_RESULT

    async def _process_result(self, state: TurnState) -> Stage:
        process_tool_results(state).apply(state)
        return Stage.CHAT
