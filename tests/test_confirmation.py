"""Tests for yes/no handling of proposed task operations."""
from __future__ import annotations

import asyncio

import pytest

from task_chat_assistant.workflow import (
    ChatMessage,
    FoundTask,
    OperationDetails,
    Reply,
    TurnContext,
    TurnState,
    classify_reply,
    handle_confirmation,
)

USER = "tester@example.com"


def run(coro):
    return asyncio.run(coro)


@pytest.mark.parametrize(
    "message, expected",
    [
        ("yes", Reply.CONFIRMED),
        ("  Yes please ", Reply.CONFIRMED),
        ("go ahead", Reply.CONFIRMED),
        ("y", Reply.CONFIRMED),
        ("no", Reply.CANCELLED),
        ("No thanks", Reply.CANCELLED),
        ("cancel that", Reply.CANCELLED),
        ("nothing", Reply.UNRESOLVED),
        ("yesterday was busy", Reply.UNRESOLVED),
        ("which one?", Reply.UNRESOLVED),
        ("", Reply.UNRESOLVED),
    ],
)
def test_classify_reply(message, expected):
    assert classify_reply(message) is expected


def awaiting_state(task, action="complete", updates=None, message="yes", reply_expected=True):
    context = TurnContext(
        found_tasks=[FoundTask(id=task.id, title=task.title, status=task.status, priority=task.priority,
                               match_score=125, match_reason="Exact title match")],
        selected_task_id=task.id,
        awaiting_confirmation=True,
        operation_details=OperationDetails(action, task.id, updates or {}),
    )
    return TurnState(
        user_id=USER,
        session_id="s1",
        history=[ChatMessage(role="user", content=message)],
        context=context,
        reply_expected=reply_expected,
    )


class TestHandleConfirmation:
    """Executing, cancelling and ignoring replies."""

    def test_yes_executes_operation(self, store):
        task = run(store.create(USER, "Submit report"))
        state = awaiting_state(task)

        delta = run(handle_confirmation(state, store))
        delta.apply(state)

        assert run(store.get(USER, task.id)).status == "completed"
        assert state.context.awaiting_confirmation is False
        assert state.context.operation_details is None
        assert state.context.selected_task_id is None
        assert state.context.found_tasks == []
        assert state.notices == ['Task "Submit report" marked as completed']

    def test_yes_applies_updates(self, store):
        task = run(store.create(USER, "Team meeting"))
        state = awaiting_state(task, action="update", updates={"priority": "high"})
        run(handle_confirmation(state, store)).apply(state)
        assert run(store.get(USER, task.id)).priority == "high"

    def test_no_cancels_without_mutation(self, store):
        task = run(store.create(USER, "Submit report"))
        state = awaiting_state(task, message="no")

        run(handle_confirmation(state, store)).apply(state)

        assert run(store.get(USER, task.id)).status == "todo"
        assert state.context.awaiting_confirmation is False
        assert state.notices == []

    def test_unresolved_reply_keeps_question_open(self, store):
        task = run(store.create(USER, "Submit report"))
        state = awaiting_state(task, message="hmm, which report?")
        assert run(handle_confirmation(state, store)).is_empty
        assert state.context.awaiting_confirmation is True

    def test_question_raised_this_turn_is_not_answered(self, store):
        task = run(store.create(USER, "Submit report"))
        state = awaiting_state(task, message="yes, complete the report", reply_expected=False)
        assert run(handle_confirmation(state, store)).is_empty
        assert run(store.get(USER, task.id)).status == "todo"

    def test_replayed_yes_after_clear_does_nothing(self, store):
        task = run(store.create(USER, "Submit report"))
        state = awaiting_state(task)
        run(handle_confirmation(state, store)).apply(state)
        run(store.update(USER, task.id, {"status": "todo"}))

        state.reply_expected = True
        run(handle_confirmation(state, store)).apply(state)
        assert run(store.get(USER, task.id)).status == "todo"

    def test_failure_reports_and_clears(self, store):
        task = run(store.create(USER, "Submit report"))
        state = awaiting_state(task, action="delete")
        run(store.delete(USER, task.id))

        run(handle_confirmation(state, store)).apply(state)

        assert state.notices == [f"Failed to delete task: No task found with ID: {task.id}"]
        assert state.context.awaiting_confirmation is False
        # Candidates stay visible after a failure
        assert len(state.context.found_tasks) == 1

    def test_unsupported_action_clears_without_execution(self, store):
        task = run(store.create(USER, "Submit report"))
        state = awaiting_state(task, action="create")
        run(handle_confirmation(state, store)).apply(state)
        assert state.context.awaiting_confirmation is False
        assert state.notices == []
        assert len(run(store.find(USER))) == 1

    def test_unexpected_error_reports_and_clears(self, store, monkeypatch):
        from task_chat_assistant.workflow import confirmation as confirmation_module

        async def exploding_tool(name, tool_input, **kwargs):
            raise RuntimeError("disk unavailable")

        monkeypatch.setattr(confirmation_module, "execute_tool", exploding_tool)
        task = run(store.create(USER, "Submit report"))
        state = awaiting_state(task)

        run(handle_confirmation(state, store)).apply(state)

        assert state.notices == ["Error: disk unavailable"]
        assert state.context.awaiting_confirmation is False
        assert state.context.operation_details is None
        assert state.context.selected_task_id is None
        assert run(store.get(USER, task.id)).status == "todo"
