"""Intent analysis for chat messages.

Classifies the newest user message into one of six task actions and extracts
whatever task fields the message mentions. The model output is untrusted:
anything unparsable degrades to a neutral "chat" intent.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Optional, Sequence

from .anthropic_client import LanguageModel, extract_json_object

if TYPE_CHECKING:
    from ..workflow.state import ChatMessage

logger = logging.getLogger(__name__)

INTENT_ACTIONS = ("create", "update", "delete", "complete", "list", "chat")
MODIFYING_ACTIONS = ("update", "delete", "complete")

DEFAULT_CONFIDENCE = 0.5

INTENT_ANALYSIS_PROMPT = """You are an intent analysis system for a task management AI.

Analyze the user's message and determine their intent from these categories:
- "create": User wants to create a new task (e.g., "remind me to...", "I need to...", "add a task")
- "update": User wants to modify an existing task (e.g., "change the due date...", "update...", "move...")
- "delete": User wants to remove a task (e.g., "delete...", "remove...", "cancel...")
- "complete": User wants to mark a task as done (e.g., "mark as done", "complete...", "finish...", "I finished...", "done with...")
- "list": User wants to see their tasks (e.g., "show my tasks", "what do I have...", "list...")
- "chat": General conversation not related to task operations

Extract relevant information:
- For create: title, description, priority (low/medium/high), due date
- For update: search terms to find the task, what to update
- For delete: search terms to find the task to delete
- For complete: search terms to find the task to complete
- For list: any filters (status, priority)

Respond ONLY with a JSON object in this format:
{
  "action": "create|update|delete|complete|list|chat",
  "confidence": 0.0-1.0,
  "reason": "brief explanation of why this action was chosen",
  "extractedInfo": {
    "title": "extracted or inferred title",
    "description": "extracted description",
    "priority": "low|medium|high",
    "dueDate": "extracted date (natural language)",
    "status": "todo|in-progress|completed",
    "searchQuery": "search terms for finding existing tasks"
  }
}

Be smart about inference:
- If user says "I finished the report", they likely want to complete a task about a report
- If user says "move my meeting to Friday", they want to update a meeting task's due date
- If user mentions a task without specifying action but uses completion words or urgency words, reflect that in action and priority
- Extract as much information as possible from context"""


@dataclass(slots=True)
class ExtractedInfo:
    """Task fields pulled from a message. Every field is best-effort."""

    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[str] = None
    due_date: Optional[str] = None
    status: Optional[str] = None
    search_query: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "title": self.title,
            "description": self.description,
            "priority": self.priority,
            "dueDate": self.due_date,
            "status": self.status,
            "searchQuery": self.search_query,
        }
        return {key: value for key, value in data.items() if value is not None}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ExtractedInfo":
        data = data if isinstance(data, dict) else {}
        return cls(
            title=_clean(data.get("title")),
            description=_clean(data.get("description")),
            priority=_clean(data.get("priority")),
            due_date=_clean(data.get("dueDate", data.get("due_date"))),
            status=_clean(data.get("status")),
            search_query=_clean(data.get("searchQuery", data.get("search_query"))),
        )


@dataclass(slots=True)
class UserIntent:
    """Result of intent analysis."""

    action: str
    confidence: float = DEFAULT_CONFIDENCE
    reason: str = ""
    extracted: ExtractedInfo = field(default_factory=ExtractedInfo)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action,
            "confidence": self.confidence,
            "reason": self.reason,
            "extractedInfo": self.extracted.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserIntent":
        return cls(
            action=_coerce_action(data.get("action")),
            confidence=_coerce_confidence(data.get("confidence")),
            reason=str(data.get("reason") or ""),
            extracted=ExtractedInfo.from_dict(data.get("extractedInfo")),
        )


async def analyze_intent(
    history: Sequence["ChatMessage"],
    model: LanguageModel,
) -> Optional[UserIntent]:
    """Classify the newest message of the conversation.

    Only the most recent message is evaluated, and only when it comes from
    the user; otherwise None is returned to signal "no change".

    Args:
        history: Conversation so far, oldest first.
        model: Language model used for classification.

    Returns:
        The classified intent, never raising on model or parsing failures.
    """
    if not history or history[-1].role != "user":
        return None

    message = history[-1].content
    try:
        text = await model.complete(
            INTENT_ANALYSIS_PROMPT,
            [{"role": "user", "content": f'Analyze this message: "{message}"'}],
        )
        parsed = extract_json_object(text or "")
        if parsed is None:
            logger.warning(f"[IntentAnalyzer] Could not parse intent analysis response: {text!r}")
            return UserIntent(action="chat", confidence=DEFAULT_CONFIDENCE, reason="Could not determine intent")

        return UserIntent(
            action=_coerce_action(parsed.get("action")),
            confidence=_coerce_confidence(parsed.get("confidence")),
            reason=str(parsed.get("reason") or "No reason provided"),
            extracted=ExtractedInfo.from_dict(parsed.get("extractedInfo")),
        )
    except Exception as exc:
        logger.error(f"[IntentAnalyzer] Error analyzing intent: {exc}")
        return UserIntent(action="chat", confidence=DEFAULT_CONFIDENCE, reason="Error during intent analysis")


def _coerce_action(value) -> str:
    action = str(value or "").strip().lower()
    return action if action in INTENT_ACTIONS else "chat"


def _coerce_confidence(value) -> float:
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return DEFAULT_CONFIDENCE
    if confidence <= 0:
        return DEFAULT_CONFIDENCE
    return min(confidence, 1.0)


def _clean(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
