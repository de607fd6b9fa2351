"""Tests for required-field validation of chat-collected tasks."""
from __future__ import annotations

from task_chat_assistant.workflow import validate_task_fields


def test_empty_fields_missing_title():
    result = validate_task_fields({})
    assert not result.can_create
    assert result.missing_fields == ["title"]
    assert result.to_dict() == {
        "canCreate": False,
        "taskData": {},
        "message": "I need more information to create this task. Missing: title. Already have: nothing yet.",
        "missingFields": ["title"],
    }


def test_title_only_is_enough():
    data = validate_task_fields({"title": "x"}).to_dict()
    assert data["canCreate"] is True
    assert data["taskData"] == {"title": "x"}
    assert data["message"] == "All required information collected. Ready to create task."
    assert "missingFields" not in data


def test_blank_title_counts_as_missing():
    result = validate_task_fields({"title": "   ", "priority": "high", "due_date": "friday"})
    assert not result.can_create
    assert result.task_data == {"priority": "high", "dueDate": "friday"}
    assert "Already have: priority, dueDate." in result.message
