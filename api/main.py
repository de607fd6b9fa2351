"""FastAPI service for the Task Chat Assistant."""
from __future__ import annotations

import logging
import os
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware

from api.dependencies import ALLOWED_ORIGINS, get_current_user, get_settings
from api.routers import chat_router, tasks_router
from task_chat_assistant import __version__
from task_chat_assistant.logs import fetch_activity_entries

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Task Chat Assistant API",
    version=__version__,
    description="Manage tasks through natural-language chat.",
)

origins = [origin for origin in ALLOWED_ORIGINS if origin]

if origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(chat_router, prefix="/chat", tags=["chat"])
app.include_router(tasks_router, prefix="/tasks", tags=["tasks"])


@app.get("/health")
def health_check() -> dict:
    """Health check endpoint with service configuration status."""
    settings = get_settings()

    services = {
        "anthropic": "configured" if os.getenv("ANTHROPIC_API_KEY") else "not_configured",
        "taskStore": "file" if os.getenv("TCA_TASK_STORE_FORCE_FILE") == "1" else "firestore",
    }

    return {
        "status": "ok",
        "time": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment,
        "services": services,
    }


@app.get("/activity")
def get_activity(
    limit: int = Query(50, ge=1, le=200),
    user: str = Depends(get_current_user),
) -> dict:
    """Recent task mutations recorded for the user."""
    entries = fetch_activity_entries(limit, user_id=user)
    return {"count": len(entries), "entries": entries}
