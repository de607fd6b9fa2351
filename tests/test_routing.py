"""Tests for the pure stage routers."""
from __future__ import annotations

from task_chat_assistant.llm import UserIntent
from task_chat_assistant.llm.anthropic_client import ToolCall
from task_chat_assistant.workflow import (
    FoundTask,
    OperationDetails,
    Stage,
    TurnContext,
    TurnState,
    find_duplicate,
    route_after_chat,
    route_after_confirmation,
    route_after_intent,
    route_after_search,
)


def found(task_id="t1", score=125, status="todo"):
    return FoundTask(id=task_id, title=f"Task {task_id}", status=status, priority="medium",
                     match_score=score, match_reason="Exact title match")


def state_with(**context):
    return TurnState(user_id="u@example.com", session_id=None, history=[], context=TurnContext(**context))


class TestRouteAfterIntent:

    def test_awaiting_confirmation_takes_priority(self):
        state = state_with(awaiting_confirmation=True, user_intent=UserIntent(action="list"))
        assert route_after_intent(state) is Stage.HANDLE_CONFIRMATION

    def test_task_actions_search(self):
        for action in ("create", "update", "delete", "complete", "list"):
            assert route_after_intent(state_with(user_intent=UserIntent(action=action))) is Stage.SEARCH_TASKS

    def test_chat_or_missing_intent(self):
        assert route_after_intent(state_with(user_intent=UserIntent(action="chat"))) is Stage.CHAT
        assert route_after_intent(state_with()) is Stage.CHAT


class TestRouteAfterSearch:
    """Confirmation is only requested for an unambiguous target."""

    def test_create_with_duplicate(self):
        state = state_with(user_intent=UserIntent(action="create"), found_tasks=[found(score=145)])
        assert route_after_search(state) is Stage.HANDLE_CONFIRMATION

    def test_create_with_weak_or_completed_match(self):
        weak = state_with(user_intent=UserIntent(action="create"), found_tasks=[found(score=80)])
        done = state_with(user_intent=UserIntent(action="create"), found_tasks=[found(status="completed")])
        assert route_after_search(weak) is Stage.CHAT
        assert route_after_search(done) is Stage.CHAT

    def test_single_match_with_operation(self):
        state = state_with(
            user_intent=UserIntent(action="complete"),
            found_tasks=[found()],
            operation_details=OperationDetails("complete", "t1"),
        )
        assert route_after_search(state) is Stage.HANDLE_CONFIRMATION

    def test_ambiguous_or_empty_matches(self):
        several = state_with(user_intent=UserIntent(action="delete"), found_tasks=[found("a"), found("b")])
        none = state_with(user_intent=UserIntent(action="delete"))
        no_op = state_with(user_intent=UserIntent(action="update"), found_tasks=[found()])
        assert route_after_search(several) is Stage.CHAT
        assert route_after_search(none) is Stage.CHAT
        assert route_after_search(no_op) is Stage.CHAT

    def test_list_goes_to_chat(self):
        assert route_after_search(state_with(user_intent=UserIntent(action="list"))) is Stage.CHAT


def test_confirmation_always_continues_to_chat():
    assert route_after_confirmation(state_with(awaiting_confirmation=True)) is Stage.CHAT


def test_route_after_chat_respects_round_limit():
    state = state_with()
    assert route_after_chat(state, 5) is Stage.END
    state.pending_tool_calls = [ToolCall(id="1", name="list_tasks")]
    assert route_after_chat(state, 5) is Stage.TOOLS
    state.tool_rounds = 5
    assert route_after_chat(state, 5) is Stage.END


def test_find_duplicate_threshold():
    assert find_duplicate([found(score=80), found("b", score=81)]).id == "b"
    assert find_duplicate([]) is None
