"""Chat Router - conversational task management.

Handles:
- Sending a message through the task workflow
- Listing, reading and deleting chat sessions
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_current_user, get_language_model, get_settings, get_task_store
from api.models import ChatRequest
from task_chat_assistant.config import Settings
from task_chat_assistant.conversations import delete_session, list_sessions, load_session
from task_chat_assistant.llm import LanguageModel
from task_chat_assistant.services import run_chat_turn
from task_chat_assistant.task_store import TaskStore

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("")
async def send_message(
    request: ChatRequest,
    user: str = Depends(get_current_user),
    store: TaskStore = Depends(get_task_store),
    model: LanguageModel = Depends(get_language_model),
    settings: Settings = Depends(get_settings),
) -> dict:
    """Run one chat turn and return the assistant's reply with the turn context."""
    if not request.message.strip():
        raise HTTPException(status_code=400, detail="Message is required")

    result = await run_chat_turn(
        request.message,
        user_id=user,
        session_id=request.session_id,
        model=model,
        store=store,
        settings=settings,
    )
    if not result.ok:
        raise HTTPException(status_code=500, detail=result.response)
    return result.to_api_dict()


@router.get("/sessions")
def get_sessions(user: str = Depends(get_current_user)) -> dict:
    """List the user's chat sessions, most recently active first."""
    sessions = list_sessions(user)
    return {"sessions": [s.to_summary_dict() for s in sessions]}


@router.get("/sessions/{session_id}")
def get_session(session_id: str, user: str = Depends(get_current_user)) -> dict:
    """Return one session with its messages and turn context."""
    session = load_session(user, session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return {"session": session.to_api_dict()}


@router.delete("/sessions/{session_id}")
def remove_session(session_id: str, user: str = Depends(get_current_user)) -> dict:
    """Delete a session."""
    if not delete_session(user, session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    return {"message": "Session deleted"}
