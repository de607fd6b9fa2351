"""Persistent chat session storage.

Firestore path: users/{user_id}/chat_sessions/{session_id}
File fallback: {TCA_SESSION_DIR}/{user}/{session_id}.json
"""
from __future__ import annotations

import json
import logging
import os
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..firestore import file_fallback_forced, get_firestore_client, owner_key
from ..workflow.state import ChatMessage, TurnContext

logger = logging.getLogger(__name__)

TITLE_LENGTH = 50
SESSION_COLLECTION = "chat_sessions"


def _session_dir() -> Path:
    return Path(
        os.getenv(
            "TCA_SESSION_DIR",
            Path(__file__).resolve().parents[2] / "chat_sessions",
        )
    )


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(slots=True)
class Checkpoint:
    """Snapshot of the turn context after a completed turn."""

    node_id: str
    state: Dict[str, Any]
    message_count: int
    timestamp: str = field(default_factory=_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodeId": self.node_id,
            "state": self.state,
            "messageCount": self.message_count,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Checkpoint":
        return cls(
            node_id=data.get("nodeId", "end"),
            state=data.get("state") or {},
            message_count=int(data.get("messageCount", 0)),
            timestamp=data.get("timestamp") or _now(),
        )


@dataclass(slots=True)
class ChatSession:
    id: str
    user_id: str
    title: str
    messages: List[ChatMessage] = field(default_factory=list)
    context: TurnContext = field(default_factory=TurnContext)
    checkpoints: List[Checkpoint] = field(default_factory=list)
    is_active: bool = True
    created_at: str = field(default_factory=_now)
    last_activity: str = field(default_factory=_now)

    def add_message(self, role: str, content: str) -> ChatMessage:
        message = ChatMessage(role=role, content=content)
        self.messages.append(message)
        return message

    def record_turn(self, context: TurnContext) -> None:
        """Store the context produced by a finished turn and checkpoint it."""
        self.context = context
        self.last_activity = _now()
        self.checkpoints.append(
            Checkpoint(node_id="end", state=context.to_dict(), message_count=len(self.messages))
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "messages": [message.to_dict() for message in self.messages],
            "context": self.context.to_dict(),
            "checkpoints": [checkpoint.to_dict() for checkpoint in self.checkpoints],
            "is_active": self.is_active,
            "created_at": self.created_at,
            "last_activity": self.last_activity,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChatSession":
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            title=data.get("title", "New Chat"),
            messages=[ChatMessage.from_dict(item) for item in data.get("messages") or []],
            context=TurnContext.from_dict(data.get("context")),
            checkpoints=[Checkpoint.from_dict(item) for item in data.get("checkpoints") or []],
            is_active=data.get("is_active", True),
            created_at=data.get("created_at") or _now(),
            last_activity=data.get("last_activity") or _now(),
        )

    def to_api_dict(self) -> Dict[str, Any]:
        """Convert to API response format (camelCase)."""
        context = self.context.to_dict()
        return {
            "id": self.id,
            "title": self.title,
            "messages": [message.to_dict() for message in self.messages],
            **context,
            "isActive": self.is_active,
            "createdAt": self.created_at,
            "lastActivity": self.last_activity,
        }

    def to_summary_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "isActive": self.is_active,
            "createdAt": self.created_at,
            "lastActivity": self.last_activity,
        }


def session_title(first_message: str) -> str:
    """First 50 characters of the opening message, with "..." when cut."""
    text = first_message.strip()
    if len(text) > TITLE_LENGTH:
        return text[:TITLE_LENGTH] + "..."
    return text


def new_session(user_id: str, first_message: str) -> ChatSession:
    """Create an unsaved session titled after its first message."""
    return ChatSession(id=str(uuid.uuid4()), user_id=user_id, title=session_title(first_message))


def load_session(user_id: str, session_id: str) -> Optional[ChatSession]:
    """Return the user's session, or None when it does not exist for them."""

    if file_fallback_forced("TCA_SESSION_FORCE_FILE"):
        return _read_file_session(user_id, session_id)

    try:
        client = get_firestore_client()
        doc = _session_doc(client, user_id, session_id).get()
        if not doc.exists:
            return None
        return ChatSession.from_dict(doc.to_dict())
    except Exception as exc:
        logger.warning(f"[Sessions] Firestore read failed, falling back to local file: {exc}")
        return _read_file_session(user_id, session_id)


def save_session(session: ChatSession) -> None:
    """Persist the whole session document."""

    if file_fallback_forced("TCA_SESSION_FORCE_FILE"):
        _write_file_session(session)
        return

    try:
        client = get_firestore_client()
        _session_doc(client, session.user_id, session.id).set(session.to_dict())
    except Exception as exc:
        logger.warning(f"[Sessions] Firestore write failed, wrote to local file instead: {exc}")
        _write_file_session(session)


def list_sessions(user_id: str) -> List[ChatSession]:
    """Return the user's sessions, most recently active first."""

    if file_fallback_forced("TCA_SESSION_FORCE_FILE"):
        sessions = _read_all_file_sessions(user_id)
    else:
        try:
            client = get_firestore_client()
            collection = client.collection("users").document(user_id).collection(SESSION_COLLECTION)
            sessions = [ChatSession.from_dict(doc.to_dict()) for doc in collection.stream()]
        except Exception as exc:
            logger.warning(f"[Sessions] Firestore list failed, falling back to local files: {exc}")
            sessions = _read_all_file_sessions(user_id)

    sessions.sort(key=lambda s: s.last_activity, reverse=True)
    return sessions


def delete_session(user_id: str, session_id: str) -> bool:
    """Delete a session. Returns False when the user has no such session."""

    if file_fallback_forced("TCA_SESSION_FORCE_FILE"):
        return _delete_file_session(user_id, session_id)

    try:
        client = get_firestore_client()
        doc_ref = _session_doc(client, user_id, session_id)
        if not doc_ref.get().exists:
            return False
        doc_ref.delete()
        return True
    except Exception as exc:
        logger.warning(f"[Sessions] Firestore delete failed, falling back to local file: {exc}")
        return _delete_file_session(user_id, session_id)


# Internal helpers ---------------------------------------------------------


def _session_doc(client, user_id: str, session_id: str):
    return (
        client.collection("users")
        .document(user_id)
        .collection(SESSION_COLLECTION)
        .document(session_id)
    )


def _user_dir(user_id: str) -> Path:
    return _session_dir() / owner_key(user_id)


def _session_file(user_id: str, session_id: str) -> Path:
    safe_session = session_id.replace("/", "_").replace("..", "_")
    return _user_dir(user_id) / f"{safe_session}.json"


def _read_file_session(user_id: str, session_id: str) -> Optional[ChatSession]:
    path = _session_file(user_id, session_id)
    if not path.exists():
        return None
    try:
        session = ChatSession.from_dict(json.loads(path.read_text(encoding="utf-8")))
    except (json.JSONDecodeError, KeyError) as exc:
        logger.warning(f"[Sessions] Ignoring unreadable session file {path}: {exc}")
        return None
    return session if session.user_id == user_id else None


def _write_file_session(session: ChatSession) -> None:
    path = _session_file(session.user_id, session.id)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(session.to_dict(), indent=2), encoding="utf-8")


def _read_all_file_sessions(user_id: str) -> List[ChatSession]:
    directory = _user_dir(user_id)
    if not directory.exists():
        return []
    sessions = []
    for path in directory.glob("*.json"):
        session = _read_file_session(user_id, path.stem)
        if session is not None:
            sessions.append(session)
    return sessions


def _delete_file_session(user_id: str, session_id: str) -> bool:
    path = _session_file(user_id, session_id)
    if not path.exists():
        return False
    path.unlink()
    return True
