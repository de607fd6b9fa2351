"""Task data models, storage and search."""
from __future__ import annotations

from .matcher import ScoredTask, score_task, search_tasks
from .store import (
    EmailSource,
    Task,
    TaskFilters,
    TaskNotFound,
    TaskPriority,
    TaskSource,
    TaskStatus,
    TaskStore,
    TaskStoreError,
    TaskValidationError,
)

__all__ = [
    "EmailSource",
    "ScoredTask",
    "Task",
    "TaskFilters",
    "TaskNotFound",
    "TaskPriority",
    "TaskSource",
    "TaskStatus",
    "TaskStore",
    "TaskStoreError",
    "TaskValidationError",
    "score_task",
    "search_tasks",
]
