"""Shared fixtures: file-backed storage in tmp_path and a scripted model."""
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import pytest

from task_chat_assistant.llm import ModelReply, ToolCall
from task_chat_assistant.task_store import TaskStore


class ScriptedModel:
    """LanguageModel stand-in that replays queued responses.

    ``complete`` (intent analysis) pops from ``intents``; ``respond`` (chat)
    pops from ``replies``. Queued exceptions are raised instead of returned.
    """

    def __init__(self) -> None:
        self.intents: List[Any] = []
        self.replies: List[Any] = []
        self.complete_calls: List[Dict[str, Any]] = []
        self.respond_calls: List[Dict[str, Any]] = []

    def queue_intent(self, action: str, confidence: float = 0.9, reason: str = "test", **info) -> None:
        self.intents.append(json.dumps({
            "action": action,
            "confidence": confidence,
            "reason": reason,
            "extractedInfo": info,
        }))

    def queue_raw_intent(self, value) -> None:
        self.intents.append(value)

    def queue_reply(self, text: str = "", tool_calls: Optional[List[ToolCall]] = None) -> None:
        self.replies.append(ModelReply(text=text, tool_calls=list(tool_calls or [])))

    def queue_tool_call(self, name: str, tool_input: Dict[str, Any], call_id: Optional[str] = None) -> None:
        call = ToolCall(id=call_id or f"call-{len(self.replies)}", name=name, input=tool_input)
        self.queue_reply(tool_calls=[call])

    def queue_error(self, exc: Exception) -> None:
        self.replies.append(exc)

    async def complete(self, system, messages):
        self.complete_calls.append({"system": system, "messages": messages})
        if not self.intents:
            return '{"action": "chat", "confidence": 0.5, "reason": "default"}'
        item = self.intents.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    async def respond(self, system, messages, tools):
        self.respond_calls.append({"system": system, "messages": list(messages), "tools": tools})
        if not self.replies:
            return ModelReply(text="OK")
        item = self.replies.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture(autouse=True)
def file_storage(tmp_path, monkeypatch):
    """Route every store to local files under tmp_path."""
    monkeypatch.setenv("TCA_TASK_STORE_FORCE_FILE", "1")
    monkeypatch.setenv("TCA_TASK_STORE_DIR", str(tmp_path / "tasks"))
    monkeypatch.setenv("TCA_SESSION_FORCE_FILE", "1")
    monkeypatch.setenv("TCA_SESSION_DIR", str(tmp_path / "sessions"))
    monkeypatch.setenv("TCA_ACTIVITY_FORCE_FILE", "1")
    monkeypatch.setenv("TCA_ACTIVITY_LOG", str(tmp_path / "activity.jsonl"))
    return tmp_path


@pytest.fixture
def store(tmp_path) -> TaskStore:
    return TaskStore(force_file=True, directory=tmp_path / "tasks")


@pytest.fixture
def model() -> ScriptedModel:
    return ScriptedModel()
