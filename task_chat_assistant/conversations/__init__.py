"""Chat session persistence helpers."""

from .sessions import (
    ChatSession,
    Checkpoint,
    delete_session,
    list_sessions,
    load_session,
    new_session,
    save_session,
    session_title,
)

__all__ = [
    "ChatSession",
    "Checkpoint",
    "delete_session",
    "list_sessions",
    "load_session",
    "new_session",
    "save_session",
    "session_title",
]
