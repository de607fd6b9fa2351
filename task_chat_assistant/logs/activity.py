"""Task activity logging to Firestore with file fallback."""
from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from firebase_admin import firestore as fb_firestore

from ..firestore import file_fallback_forced, get_firestore_client
from ..task_store import Task

logger = logging.getLogger(__name__)

DEFAULT_LOG_PATH = Path(__file__).resolve().parents[2] / "activity_log.jsonl"
ACTIVITY_COLLECTION = "task_activity"


def log_task_event(
    *,
    action: str,
    task: Task,
    user_id: str,
    session_id: Optional[str],
    source: str,
) -> None:
    """Record one task mutation (create, update, complete, delete)."""

    entry: Dict[str, Any] = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "action": action,
        "task_id": task.id,
        "task_title": task.title,
        "status": task.status,
        "priority": task.priority,
        "user_id": user_id,
        "session_id": session_id,
        "source": source,
    }

    if file_fallback_forced("TCA_ACTIVITY_FORCE_FILE"):
        _write_file(entry)
        return

    try:
        client = get_firestore_client()
        client.collection(ACTIVITY_COLLECTION).add(entry)
    except Exception as exc:  # pragma: no cover - network/auth path
        _write_file(entry)
        logger.warning(f"[ActivityLog] Firestore write failed, wrote to local log instead: {exc}")


def fetch_activity_entries(limit: int = 50, *, user_id: Optional[str] = None) -> list[Dict[str, Any]]:
    """Return recent activity entries, newest first (Firestore with file fallback)."""

    if file_fallback_forced("TCA_ACTIVITY_FORCE_FILE"):
        return _read_file_entries(limit, user_id)

    try:
        client = get_firestore_client()
        query = client.collection(ACTIVITY_COLLECTION)
        if user_id:
            query = query.where("user_id", "==", user_id)
        query = query.order_by("ts", direction=fb_firestore.Query.DESCENDING).limit(limit)
        return [doc.to_dict() for doc in query.stream()]
    except Exception as exc:  # pragma: no cover - network/auth path
        logger.warning(f"[ActivityLog] Firestore read failed, falling back to local log: {exc}")
        return _read_file_entries(limit, user_id)


def _write_file(entry: Dict[str, Any]) -> None:
    path = _get_log_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as handle:
        handle.write(json.dumps(entry))
        handle.write("\n")


def _get_log_path() -> Path:
    override = os.getenv("TCA_ACTIVITY_LOG")
    if override:
        return Path(override)
    return DEFAULT_LOG_PATH


def _read_file_entries(limit: int, user_id: Optional[str]) -> list[Dict[str, Any]]:
    path = _get_log_path()
    if not path.exists():
        return []
    entries: list[Dict[str, Any]] = []
    for line in path.read_text(encoding="utf-8").splitlines():
        try:
            entry = json.loads(line)
        except json.JSONDecodeError:
            continue
        if user_id and entry.get("user_id") != user_id:
            continue
        entries.append(entry)
    return list(reversed(entries[-limit:]))
