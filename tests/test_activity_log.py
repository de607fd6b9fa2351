"""Tests for the task activity log."""
from __future__ import annotations

import asyncio
import json

from task_chat_assistant import firestore as firestore_module
from task_chat_assistant.logs import fetch_activity_entries, log_task_event

USER = "tester@example.com"


def _sample_task(store):
    return asyncio.run(store.create(USER, "Test Task", priority="high"))


def test_log_task_event_writes_jsonl(store, file_storage):
    task = _sample_task(store)

    log_task_event(action="create", task=task, user_id=USER, session_id="s1", source="chat")

    log_file = file_storage / "activity.jsonl"
    lines = log_file.read_text(encoding="utf-8").strip().splitlines()
    assert len(lines) == 1
    record = json.loads(lines[0])
    assert record["task_id"] == task.id
    assert record["task_title"] == "Test Task"
    assert record["priority"] == "high"
    assert record["session_id"] == "s1"
    assert record["source"] == "chat"


def test_fetch_activity_entries_newest_first(store):
    task = _sample_task(store)
    log_task_event(action="create", task=task, user_id=USER, session_id=None, source="api")
    log_task_event(action="complete", task=task, user_id=USER, session_id=None, source="api")
    log_task_event(action="create", task=task, user_id="other@example.com", session_id=None, source="api")

    entries = fetch_activity_entries(10, user_id=USER)
    assert [e["action"] for e in entries] == ["complete", "create"]
    assert len(fetch_activity_entries(1)) == 1


def test_log_task_event_calls_firestore(monkeypatch, store):
    captured = {}

    class FakeCollection:
        def add(self, payload):
            captured["payload"] = payload

    class FakeClient:
        def collection(self, name):
            captured["collection"] = name
            return FakeCollection()

    task = _sample_task(store)
    monkeypatch.delenv("TCA_ACTIVITY_FORCE_FILE", raising=False)
    monkeypatch.setattr(firestore_module, "_firestore_client", FakeClient())

    log_task_event(action="delete", task=task, user_id=USER, session_id="s2", source="chat")

    assert captured["collection"] == "task_activity"
    assert captured["payload"]["task_id"] == task.id
    assert captured["payload"]["action"] == "delete"
