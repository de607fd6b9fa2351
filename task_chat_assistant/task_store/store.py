"""Firestore-based Task Store.

Architecture:
- Firestore path: users/{user_id}/tasks/{task_id}
- File fallback: {TCA_TASK_STORE_DIR}/{user}_tasks.jsonl

Every operation is scoped by owner. A task id that belongs to another user
behaves exactly like an id that does not exist (TaskNotFound), so callers
cannot discover other users' tasks.
"""
from __future__ import annotations

import asyncio
import json
import logging
import os
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from ..dates import coerce_datetime, is_relative_shift
from ..firestore import file_fallback_forced, get_firestore_client, owner_key

logger = logging.getLogger(__name__)

# One lock per task file; guards the read-modify-write of the file fallback
_file_locks: Dict[Path, threading.Lock] = {}
_file_locks_guard = threading.Lock()


class TaskStatus(str, Enum):
    """Task workflow states."""

    TODO = "todo"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class TaskPriority(str, Enum):
    """Task priority levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TaskSource(str, Enum):
    """Where the task originated."""

    CHAT = "chat"  # Created via the assistant chat
    EMAIL = "email"  # Created from an email
    MANUAL = "manual"  # Created directly through the API or CLI


class TaskStoreError(RuntimeError):
    """Base error for task store failures."""


class TaskNotFound(TaskStoreError):
    """Raised when a task does not exist for the requesting user."""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"No task found with ID: {task_id}")
        self.task_id = task_id


class TaskValidationError(ValueError):
    """Raised when task fields are missing or invalid."""


UPDATABLE_FIELDS = ("title", "description", "priority", "status", "due_date")
_FIELD_ALIASES = {"dueDate": "due_date"}


@dataclass(slots=True)
class EmailSource:
    """Metadata about the email a task was created from."""

    email_id: str
    subject: str
    sender: str
    received_at: datetime
    snippet: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "email_id": self.email_id,
            "subject": self.subject,
            "sender": self.sender,
            "received_at": self.received_at.isoformat(),
            "snippet": self.snippet,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EmailSource":
        received = data.get("received_at")
        if isinstance(received, str):
            received = datetime.fromisoformat(received)
        return cls(
            email_id=data["email_id"],
            subject=data.get("subject", ""),
            sender=data.get("sender", ""),
            received_at=received or datetime.now(timezone.utc),
            snippet=data.get("snippet"),
        )


@dataclass(slots=True)
class Task:
    """A task owned by exactly one user."""

    id: str
    user_id: str
    title: str
    status: str  # TaskStatus value
    priority: str  # TaskPriority value
    created_at: datetime
    updated_at: datetime

    description: Optional[str] = None
    due_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    source: str = TaskSource.CHAT.value
    chat_session_id: Optional[str] = None
    email_source: Optional[EmailSource] = None

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED.value

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "status": self.status,
            "priority": self.priority,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "description": self.description,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "source": self.source,
            "chat_session_id": self.chat_session_id,
            "email_source": self.email_source.to_dict() if self.email_source else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        """Create from dictionary."""
        email = data.get("email_source")
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            title=data["title"],
            status=data.get("status", TaskStatus.TODO.value),
            priority=data.get("priority", TaskPriority.MEDIUM.value),
            created_at=_parse_timestamp(data.get("created_at")) or datetime.now(timezone.utc),
            updated_at=_parse_timestamp(data.get("updated_at")) or datetime.now(timezone.utc),
            description=data.get("description"),
            due_date=_parse_timestamp(data.get("due_date")),
            completed_at=_parse_timestamp(data.get("completed_at")),
            source=data.get("source", TaskSource.CHAT.value),
            chat_session_id=data.get("chat_session_id"),
            email_source=EmailSource.from_dict(email) if email else None,
        )

    def to_api_dict(self) -> Dict[str, Any]:
        """Convert to API response format (camelCase)."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "priority": self.priority,
            "dueDate": self.due_date.isoformat() if self.due_date else None,
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
            "source": self.source,
            "chatSessionId": self.chat_session_id,
            "emailSource": self.email_source.to_dict() if self.email_source else None,
        }


@dataclass(slots=True)
class TaskFilters:
    """Filter criteria for listing tasks."""

    status: Optional[str] = None
    priority: Optional[str] = None


def _parse_timestamp(value) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _clean_title(title: Optional[str]) -> str:
    if title is not None and not isinstance(title, str):
        raise TaskValidationError("Task title must be text.")
    cleaned = (title or "").strip()
    if not cleaned:
        raise TaskValidationError("Task title is required.")
    return cleaned


def _clean_description(description: Optional[str]) -> Optional[str]:
    if description is not None and not isinstance(description, str):
        raise TaskValidationError("Task description must be text.")
    return description.strip() if description else None


def _check_choice(value: str, enum_cls, field_name: str) -> str:
    allowed = [member.value for member in enum_cls]
    if value not in allowed:
        raise TaskValidationError(
            f"Invalid {field_name} '{value}'. Expected one of: {', '.join(allowed)}."
        )
    return value


# =============================================================================
# Store
# =============================================================================

class TaskStore:
    """Owner-scoped task persistence with Firestore and a JSONL file fallback.

    Public methods are coroutines; the blocking Firestore/file calls run in a
    worker thread.
    """

    def __init__(
        self,
        *,
        force_file: Optional[bool] = None,
        directory: Optional[Path] = None,
    ) -> None:
        self._force_file = force_file
        self._directory = directory

    # -------------------------------------------------------------------------
    # CRUD Operations
    # -------------------------------------------------------------------------

    async def create(
        self,
        user_id: str,
        title: Optional[str],
        *,
        description: Optional[str] = None,
        priority: str = TaskPriority.MEDIUM.value,
        status: str = TaskStatus.TODO.value,
        due_date: Optional[datetime] = None,
        source: str = TaskSource.CHAT.value,
        chat_session_id: Optional[str] = None,
        email_source: Optional[EmailSource] = None,
    ) -> Task:
        """Create a new task for the user.

        Raises:
            TaskValidationError: if the title is empty or an enum value is invalid.
        """
        now = datetime.now(timezone.utc)
        status = _check_choice(status or TaskStatus.TODO.value, TaskStatus, "status")
        task = Task(
            id=str(uuid.uuid4()),
            user_id=user_id,
            title=_clean_title(title),
            status=status,
            priority=_check_choice(priority or TaskPriority.MEDIUM.value, TaskPriority, "priority"),
            created_at=now,
            updated_at=now,
            description=_clean_description(description),
            due_date=due_date,
            completed_at=now if status == TaskStatus.COMPLETED.value else None,
            source=_check_choice(source, TaskSource, "source"),
            chat_session_id=chat_session_id,
            email_source=email_source,
        )
        await asyncio.to_thread(self._save, user_id, task)
        logger.info(f"[TaskStore] Created task {task.id} for {user_id}")
        return task

    async def get(self, user_id: str, task_id: str) -> Task:
        """Get a task by ID.

        Raises:
            TaskNotFound: if the user has no task with this ID.
        """
        task = await asyncio.to_thread(self._load, user_id, task_id)
        if task is None:
            raise TaskNotFound(task_id)
        return task

    async def find(
        self,
        user_id: str,
        filters: Optional[TaskFilters] = None,
        limit: Optional[int] = 100,
    ) -> List[Task]:
        """List the user's tasks, newest created first."""
        tasks = await asyncio.to_thread(self._load_all, user_id)
        if filters:
            tasks = _apply_filters(tasks, filters)
        tasks.sort(key=lambda t: t.created_at, reverse=True)
        if limit is not None:
            tasks = tasks[:limit]
        return tasks

    async def update(self, user_id: str, task_id: str, updates: Mapping[str, Any]) -> Task:
        """Apply a sparse set of field updates.

        Only title, description, priority, status and due date are writable;
        other keys are ignored.
        """
        if not isinstance(updates, Mapping):
            raise TaskValidationError("Task updates must be an object of field values.")
        task = await self.get(user_id, task_id)
        now = datetime.now(timezone.utc)

        for raw_key, value in updates.items():
            key = _FIELD_ALIASES.get(raw_key, raw_key)
            if key not in UPDATABLE_FIELDS:
                continue
            if key == "title":
                task.title = _clean_title(value)
            elif key == "description":
                task.description = _clean_description(value)
            elif key == "priority":
                task.priority = _check_choice(value, TaskPriority, "priority")
            elif key == "status":
                new_status = _check_choice(value, TaskStatus, "status")
                if new_status == TaskStatus.COMPLETED.value and not task.is_completed:
                    task.completed_at = now
                elif new_status != TaskStatus.COMPLETED.value:
                    task.completed_at = None
                task.status = new_status
            elif key == "due_date":
                anchor = task.due_date if value and is_relative_shift(str(value)) else None
                due = coerce_datetime(value, anchor)
                if value and due is None:
                    raise TaskValidationError(f"Could not understand due date '{value}'.")
                task.due_date = due

        task.updated_at = now
        await asyncio.to_thread(self._save, user_id, task)
        return task

    async def complete(self, user_id: str, task_id: str) -> Task:
        """Mark a task as completed and stamp the completion time."""
        task = await self.get(user_id, task_id)
        now = datetime.now(timezone.utc)
        task.status = TaskStatus.COMPLETED.value
        task.completed_at = now
        task.updated_at = now
        await asyncio.to_thread(self._save, user_id, task)
        return task

    async def delete(self, user_id: str, task_id: str) -> Task:
        """Delete a task and return what was removed.

        Raises:
            TaskNotFound: if the user has no task with this ID.
        """
        task = await self.get(user_id, task_id)
        deleted = await asyncio.to_thread(self._remove, user_id, task_id)
        if not deleted:
            raise TaskNotFound(task_id)
        return task

    # -------------------------------------------------------------------------
    # Email-to-Task Helper
    # -------------------------------------------------------------------------

    async def create_from_email(
        self,
        user_id: str,
        email_source: EmailSource,
        *,
        title: Optional[str] = None,
        description: Optional[str] = None,
        priority: str = TaskPriority.MEDIUM.value,
        due_date: Optional[datetime] = None,
    ) -> Task:
        """Create a task from an email, defaulting the title to the subject."""
        if not title:
            title = email_source.subject
            for prefix in ("Re:", "Fwd:", "FW:", "RE:"):
                if title.lower().startswith(prefix.lower()):
                    title = title[len(prefix):].strip()

        return await self.create(
            user_id,
            title,
            description=description or email_source.snippet,
            priority=priority,
            due_date=due_date,
            source=TaskSource.EMAIL.value,
            email_source=email_source,
        )

    # -------------------------------------------------------------------------
    # Backend dispatch
    # -------------------------------------------------------------------------

    def _use_file_storage(self) -> bool:
        if self._force_file is not None:
            return self._force_file
        return file_fallback_forced("TCA_TASK_STORE_FORCE_FILE")

    def _get_firestore_client(self):
        """Get Firestore client, or None if not available."""
        if self._use_file_storage():
            return None
        try:
            return get_firestore_client()
        except Exception as exc:
            logger.warning(f"[TaskStore] Firestore unavailable, using local files: {exc}")
            return None

    def _save(self, user_id: str, task: Task) -> None:
        db = self._get_firestore_client()
        if db is not None:
            try:
                _task_doc(db, user_id, task.id).set(task.to_dict())
                return
            except Exception as exc:
                logger.warning(f"[TaskStore] Firestore write failed, falling back to local: {exc}")
        self._save_to_file(user_id, task)

    def _load(self, user_id: str, task_id: str) -> Optional[Task]:
        db = self._get_firestore_client()
        if db is not None:
            doc = _task_doc(db, user_id, task_id).get()
            return Task.from_dict(doc.to_dict()) if doc.exists else None
        return self._read_file(user_id).get(task_id)

    def _load_all(self, user_id: str) -> List[Task]:
        db = self._get_firestore_client()
        if db is not None:
            collection = db.collection("users").document(user_id).collection("tasks")
            tasks = []
            for doc in collection.stream():
                try:
                    tasks.append(Task.from_dict(doc.to_dict()))
                except (KeyError, ValueError) as exc:
                    logger.warning(f"[TaskStore] Skipping malformed task {doc.id}: {exc}")
            return tasks
        return list(self._read_file(user_id).values())

    def _remove(self, user_id: str, task_id: str) -> bool:
        db = self._get_firestore_client()
        if db is not None:
            doc_ref = _task_doc(db, user_id, task_id)
            if doc_ref.get().exists:
                doc_ref.delete()
                return True
            return False

        with self._file_lock(user_id):
            tasks = self._read_file(user_id)
            if task_id not in tasks:
                return False
            del tasks[task_id]
            self._write_file(user_id, tasks.values())
        return True

    # -------------------------------------------------------------------------
    # File Storage (Fallback)
    # -------------------------------------------------------------------------

    def _tasks_dir(self) -> Path:
        if self._directory is not None:
            return self._directory
        env_dir = os.getenv("TCA_TASK_STORE_DIR", "").strip()
        if env_dir:
            return Path(env_dir)
        return Path(__file__).resolve().parents[2] / "task_store_data"

    def _user_file(self, user_id: str) -> Path:
        tasks_dir = self._tasks_dir()
        tasks_dir.mkdir(parents=True, exist_ok=True)
        return tasks_dir / f"{owner_key(user_id)}_tasks.jsonl"

    def _read_file(self, user_id: str) -> Dict[str, Task]:
        file_path = self._user_file(user_id)
        tasks: Dict[str, Task] = {}
        if not file_path.exists():
            return tasks
        with file_path.open("r", encoding="utf-8") as handle:
            for line in handle:
                if not line.strip():
                    continue
                try:
                    task = Task.from_dict(json.loads(line))
                except (json.JSONDecodeError, KeyError, ValueError):
                    continue
                if task.user_id == user_id:
                    tasks[task.id] = task
        return tasks

    def _file_lock(self, user_id: str) -> threading.Lock:
        path = self._user_file(user_id).resolve()
        with _file_locks_guard:
            return _file_locks.setdefault(path, threading.Lock())

    def _save_to_file(self, user_id: str, task: Task) -> None:
        with self._file_lock(user_id):
            tasks = self._read_file(user_id)
            tasks[task.id] = task
            self._write_file(user_id, tasks.values())

    def _write_file(self, user_id: str, tasks) -> None:
        file_path = self._user_file(user_id)
        with file_path.open("w", encoding="utf-8") as handle:
            for task in tasks:
                handle.write(json.dumps(task.to_dict()) + "\n")


def _task_doc(db, user_id: str, task_id: str):
    return db.collection("users").document(user_id).collection("tasks").document(task_id)


def _apply_filters(tasks: List[Task], filters: TaskFilters) -> List[Task]:
    """Apply filter criteria to task list."""
    result = tasks
    if filters.status:
        result = [t for t in result if t.status == filters.status]
    if filters.priority:
        result = [t for t in result if t.priority == filters.priority]
    return result
