"""Tests for the owner-scoped task store (file backend)."""
from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest

from task_chat_assistant.task_store import (
    EmailSource,
    TaskFilters,
    TaskNotFound,
    TaskStore,
    TaskValidationError,
)

ALICE = "alice@example.com"
BOB = "bob@example.com"


def run(coro):
    return asyncio.run(coro)


class TestCreate:
    """Task creation and field validation."""

    def test_title_is_trimmed_and_defaults_applied(self, store):
        task = run(store.create(ALICE, "  Write report  "))
        assert task.title == "Write report"
        assert task.status == "todo"
        assert task.priority == "medium"
        assert task.source == "chat"
        assert task.completed_at is None
        assert task.created_at.tzinfo is not None

    def test_blank_title_is_validation_error(self, store):
        with pytest.raises(TaskValidationError):
            run(store.create(ALICE, "   "))
        with pytest.raises(TaskValidationError):
            run(store.create(ALICE, None))

    def test_invalid_priority_rejected(self, store):
        with pytest.raises(TaskValidationError):
            run(store.create(ALICE, "Task", priority="urgent"))

    def test_persists_across_store_instances(self, store, tmp_path):
        task = run(store.create(ALICE, "Persist me"))
        reopened = TaskStore(force_file=True, directory=tmp_path / "tasks")
        assert run(reopened.get(ALICE, task.id)).title == "Persist me"

    def test_create_from_email_strips_reply_prefix(self, store):
        email = EmailSource(
            email_id="msg-1",
            subject="Re: Quarterly budget",
            sender="boss@example.com",
            received_at=datetime(2026, 3, 1, tzinfo=timezone.utc),
            snippet="Please review the numbers",
        )
        task = run(store.create_from_email(ALICE, email))
        assert task.title == "Quarterly budget"
        assert task.source == "email"
        assert task.description == "Please review the numbers"
        assert run(store.get(ALICE, task.id)).email_source.email_id == "msg-1"


class TestOwnership:
    """Cross-user access behaves like a missing task."""

    def test_other_user_cannot_get(self, store):
        task = run(store.create(ALICE, "Private"))
        with pytest.raises(TaskNotFound):
            run(store.get(BOB, task.id))

    def test_other_user_cannot_update_or_delete(self, store):
        task = run(store.create(ALICE, "Private"))
        with pytest.raises(TaskNotFound):
            run(store.update(BOB, task.id, {"title": "Hacked"}))
        with pytest.raises(TaskNotFound):
            run(store.complete(BOB, task.id))
        with pytest.raises(TaskNotFound):
            run(store.delete(BOB, task.id))
        assert run(store.get(ALICE, task.id)).title == "Private"

    def test_find_only_returns_own_tasks(self, store):
        run(store.create(ALICE, "Alice task"))
        run(store.create(BOB, "Bob task"))
        assert [t.title for t in run(store.find(BOB))] == ["Bob task"]

    def test_not_found_message(self, store):
        with pytest.raises(TaskNotFound) as excinfo:
            run(store.get(ALICE, "missing-id"))
        assert str(excinfo.value) == "No task found with ID: missing-id"


class TestFind:

    def test_newest_first_with_filters_and_limit(self, store):
        first = run(store.create(ALICE, "First", priority="high"))
        run(store.create(ALICE, "Second"))
        third = run(store.create(ALICE, "Third", priority="high"))

        assert [t.title for t in run(store.find(ALICE))] == ["Third", "Second", "First"]
        high = run(store.find(ALICE, TaskFilters(priority="high")))
        assert [t.id for t in high] == [third.id, first.id]
        assert len(run(store.find(ALICE, limit=2))) == 2


class TestUpdate:
    """Sparse updates, completion stamps and due dates."""

    def test_only_writable_fields_change(self, store):
        task = run(store.create(ALICE, "Original"))
        updated = run(store.update(ALICE, task.id, {
            "title": "Renamed",
            "priority": "high",
            "user_id": BOB,
            "id": "other",
        }))
        assert updated.title == "Renamed"
        assert updated.priority == "high"
        assert updated.user_id == ALICE
        assert updated.id == task.id
        assert updated.updated_at >= task.updated_at

    def test_completion_timestamp_follows_status(self, store):
        task = run(store.create(ALICE, "Toggle"))
        done = run(store.update(ALICE, task.id, {"status": "completed"}))
        assert done.completed_at is not None
        reopened = run(store.update(ALICE, task.id, {"status": "in-progress"}))
        assert reopened.completed_at is None

    def test_due_date_alias_accepts_iso(self, store):
        task = run(store.create(ALICE, "Due"))
        updated = run(store.update(ALICE, task.id, {"dueDate": "2026-05-01T09:30:00+00:00"}))
        assert updated.due_date == datetime(2026, 5, 1, 9, 30, tzinfo=timezone.utc)

    def test_relative_due_date_anchors_to_existing(self, store):
        existing = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)
        task = run(store.create(ALICE, "Report", due_date=existing))
        updated = run(store.update(ALICE, task.id, {"dueDate": "a week later"}))
        assert updated.due_date == datetime(2026, 3, 9, 12, 0, tzinfo=timezone.utc)

    def test_unparseable_due_date_rejected(self, store):
        task = run(store.create(ALICE, "Due"))
        with pytest.raises(TaskValidationError):
            run(store.update(ALICE, task.id, {"dueDate": "whenever-ish"}))

    def test_complete_sets_status_and_timestamp(self, store):
        task = run(store.create(ALICE, "Finish"))
        done = run(store.complete(ALICE, task.id))
        assert done.status == "completed"
        assert done.completed_at is not None
        assert run(store.get(ALICE, task.id)).is_completed


class TestDelete:

    def test_delete_returns_removed_task(self, store):
        task = run(store.create(ALICE, "Remove me"))
        removed = run(store.delete(ALICE, task.id))
        assert removed.id == task.id
        with pytest.raises(TaskNotFound):
            run(store.get(ALICE, task.id))
        with pytest.raises(TaskNotFound):
            run(store.delete(ALICE, task.id))


class TestInputShapes:
    """Wrong-typed field values are validation errors."""

    def test_updates_must_be_a_mapping(self, store):
        task = run(store.create(ALICE, "Report"))
        with pytest.raises(TaskValidationError):
            run(store.update(ALICE, task.id, "priority high"))
        assert run(store.get(ALICE, task.id)).priority == "medium"

    def test_description_must_be_text(self, store):
        with pytest.raises(TaskValidationError):
            run(store.create(ALICE, "Report", description=["notes"]))

    def test_concurrent_creates_all_persist(self, store):
        async def create_many():
            await asyncio.gather(*(store.create(ALICE, f"Task {n}") for n in range(10)))

        run(create_many())
        assert len(run(store.find(ALICE))) == 10
