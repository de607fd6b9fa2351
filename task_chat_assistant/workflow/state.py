"""Turn context and per-turn state for the chat workflow.

The turn context is what a session carries between turns. TurnState wraps it
for the duration of one turn, together with the scratch data stages hand to
each other (tool calls in flight, notices, the reply being built).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..llm import ToolCall, UserIntent
from ..task_store import ScoredTask


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(slots=True)
class ChatMessage:
    """One message of a conversation."""

    role: str  # "user" or "assistant"
    content: str
    timestamp: str = field(default_factory=_now)

    def to_dict(self) -> Dict[str, Any]:
        return {"role": self.role, "content": self.content, "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChatMessage":
        return cls(
            role=data["role"],
            content=data.get("content", ""),
            timestamp=data.get("timestamp") or _now(),
        )


@dataclass(slots=True)
class PendingTask:
    """A task being collected across turns until its required fields are known."""

    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[str] = None
    due_date: Optional[str] = None  # Natural language, resolved on creation
    missing_fields: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "priority": self.priority,
            "dueDate": self.due_date,
            "missingFields": list(self.missing_fields),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PendingTask":
        return cls(
            title=data.get("title"),
            description=data.get("description"),
            priority=data.get("priority"),
            due_date=data.get("dueDate"),
            missing_fields=list(data.get("missingFields") or []),
        )


@dataclass(slots=True)
class FoundTask:
    """A match candidate surfaced by the task search."""

    id: str
    title: str
    status: str
    priority: str
    match_score: int
    match_reason: str
    description: Optional[str] = None
    due_date: Optional[str] = None

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"

    @classmethod
    def from_scored(cls, scored: ScoredTask) -> "FoundTask":
        task = scored.task
        return cls(
            id=task.id,
            title=task.title,
            status=task.status,
            priority=task.priority,
            match_score=scored.score,
            match_reason=scored.reason,
            description=task.description,
            due_date=task.due_date.isoformat() if task.due_date else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "priority": self.priority,
            "dueDate": self.due_date,
            "matchScore": self.match_score,
            "matchReason": self.match_reason,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FoundTask":
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            status=data.get("status", "todo"),
            priority=data.get("priority", "medium"),
            match_score=int(data.get("matchScore", 0)),
            match_reason=data.get("matchReason", ""),
            description=data.get("description"),
            due_date=data.get("dueDate"),
        )


@dataclass(slots=True)
class OperationDetails:
    """A proposed mutation waiting for the user's yes/no."""

    action: str  # update, delete or complete
    task_id: str
    updates: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"action": self.action, "taskId": self.task_id, "updates": dict(self.updates)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OperationDetails":
        return cls(
            action=data["action"],
            task_id=data["taskId"],
            updates=dict(data.get("updates") or {}),
        )


@dataclass(slots=True)
class TurnContext:
    """Conversation state carried from one turn to the next."""

    pending_task: Optional[PendingTask] = None
    user_intent: Optional[UserIntent] = None
    found_tasks: List[FoundTask] = field(default_factory=list)
    selected_task_id: Optional[str] = None
    awaiting_confirmation: bool = False
    operation_details: Optional[OperationDetails] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pendingTask": self.pending_task.to_dict() if self.pending_task else None,
            "userIntent": self.user_intent.to_dict() if self.user_intent else None,
            "foundTasks": [task.to_dict() for task in self.found_tasks],
            "selectedTaskId": self.selected_task_id,
            "awaitingConfirmation": self.awaiting_confirmation,
            "operationDetails": self.operation_details.to_dict() if self.operation_details else None,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "TurnContext":
        if not data:
            return cls()
        pending = data.get("pendingTask")
        intent = data.get("userIntent")
        operation = data.get("operationDetails")
        return cls(
            pending_task=PendingTask.from_dict(pending) if pending else None,
            user_intent=UserIntent.from_dict(intent) if intent else None,
            found_tasks=[FoundTask.from_dict(item) for item in data.get("foundTasks") or []],
            selected_task_id=data.get("selectedTaskId"),
            awaiting_confirmation=bool(data.get("awaitingConfirmation", False)),
            operation_details=OperationDetails.from_dict(operation) if operation else None,
        )

    def copy(self) -> "TurnContext":
        return TurnContext.from_dict(self.to_dict())


# Field values that reset the confirmation flow
CONFIRMATION_CLEARED: Dict[str, Any] = {
    "awaiting_confirmation": False,
    "operation_details": None,
    "selected_task_id": None,
}


@dataclass(slots=True)
class StateDelta:
    """Changes a stage wants applied to the turn context.

    ``changes`` maps TurnContext attribute names to their new values;
    ``notices`` are outcome messages for the response stage.
    """

    changes: Dict[str, Any] = field(default_factory=dict)
    notices: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.changes and not self.notices

    def apply(self, state: "TurnState") -> None:
        for key, value in self.changes.items():
            setattr(state.context, key, value)
        state.notices.extend(self.notices)


@dataclass(slots=True)
class TurnState:
    """Everything one turn works on.

    ``reply_expected`` records whether a confirmation question was already
    outstanding when the turn started; only then is the newest message
    treated as an answer to it.
    """

    user_id: str
    session_id: Optional[str]
    history: List[ChatMessage]
    context: TurnContext = field(default_factory=TurnContext)
    reply_expected: bool = False
    transcript: List[Dict[str, Any]] = field(default_factory=list)
    pending_tool_calls: List[ToolCall] = field(default_factory=list)
    tool_results: List[Dict[str, Any]] = field(default_factory=list)
    tool_rounds: int = 0
    notices: List[str] = field(default_factory=list)
    response: str = ""
    trace: List[str] = field(default_factory=list)

    @property
    def latest_user_message(self) -> Optional[str]:
        if self.history and self.history[-1].role == "user":
            return self.history[-1].content
        return None
