"""API Routers Package.

Routers:
- chat.py: chat turns and session management
- tasks.py: manual task CRUD

Usage in main.py:
    from api.routers import chat_router, tasks_router

    app.include_router(chat_router, prefix="/chat", tags=["chat"])
    app.include_router(tasks_router, prefix="/tasks", tags=["tasks"])
"""

from .chat import router as chat_router
from .tasks import router as tasks_router

__all__ = [
    "chat_router",
    "tasks_router",
]
