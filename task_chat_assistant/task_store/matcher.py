"""Relevance scoring of a user's tasks against a free-text query."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

from .store import Task, TaskFilters, TaskStore

EXACT_TITLE_POINTS = 100
EXACT_DESCRIPTION_POINTS = 50
TITLE_WORD_POINTS = 20
DESCRIPTION_WORD_POINTS = 10
OPEN_TASK_BONUS = 5
MIN_WORD_LENGTH = 3

RECENT_REASON = "Recent task"
NO_MATCH_REASON = "No specific match"


@dataclass(slots=True)
class ScoredTask:
    """A task with its relevance score and the reasons behind it."""

    task: Task
    score: int
    reason: str


def score_task(task: Task, query: str) -> Tuple[int, str]:
    """Score one task against a non-empty query.

    Returns:
        (score, reason) where reason joins every rule that fired, or
        "No specific match" when only the open-task bonus applied.
    """
    query_lower = query.lower().strip()
    query_words = [word for word in query_lower.split() if len(word) >= MIN_WORD_LENGTH]
    title = (task.title or "").lower()
    description = (task.description or "").lower()

    score = 0
    reasons: List[str] = []

    if query_lower in title:
        score += EXACT_TITLE_POINTS
        reasons.append("Exact title match")

    if query_lower in description:
        score += EXACT_DESCRIPTION_POINTS
        reasons.append("Description match")

    for word in query_words:
        if word in title:
            score += TITLE_WORD_POINTS
            if "Title word match" not in reasons:
                reasons.append("Title word match")
        if word in description:
            score += DESCRIPTION_WORD_POINTS
            if "Description word match" not in reasons:
                reasons.append("Description word match")

    if not task.is_completed:
        score += OPEN_TASK_BONUS

    return score, ", ".join(reasons) or NO_MATCH_REASON


async def search_tasks(
    store: TaskStore,
    user_id: str,
    query: Optional[str],
    *,
    status: Optional[str] = None,
    limit: int = 10,
) -> List[ScoredTask]:
    """Rank the user's tasks for a query, most relevant first.

    An empty query returns the most recently created tasks with score 1.
    Tasks scoring zero are dropped; ties keep newest-first order.
    """
    filters = TaskFilters(status=status) if status else None

    if not query or not query.strip():
        recent = await store.find(user_id, filters, limit=limit)
        return [ScoredTask(task=task, score=1, reason=RECENT_REASON) for task in recent]

    tasks = await store.find(user_id, filters, limit=None)
    scored = []
    for task in tasks:
        score, reason = score_task(task, query)
        if score > 0:
            scored.append(ScoredTask(task=task, score=score, reason=reason))

    scored.sort(key=lambda item: item.score, reverse=True)
    return scored[:limit]
