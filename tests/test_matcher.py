"""Tests for task relevance scoring and search."""
from __future__ import annotations

import asyncio

from task_chat_assistant.task_store import search_tasks
from task_chat_assistant.task_store.matcher import score_task

USER = "tester@example.com"


def run(coro):
    return asyncio.run(coro)


class TestScoreTask:
    """Point rules applied by score_task."""

    def test_exact_title_and_word_match(self, store):
        task = run(store.create(USER, "Submit report"))
        score, reason = score_task(task, "report")
        assert score == 100 + 20 + 5
        assert reason == "Exact title match, Title word match"

    def test_description_only_match(self, store):
        task = run(store.create(USER, "Other", description="budget review notes"))
        score, reason = score_task(task, "budget review")
        assert score == 50 + 10 + 10 + 5
        assert reason == "Description match, Description word match"

    def test_open_task_without_match(self, store):
        task = run(store.create(USER, "Water plants"))
        assert score_task(task, "xyz") == (5, "No specific match")

    def test_completed_task_without_match_scores_zero(self, store):
        task = run(store.create(USER, "Water plants"))
        done = run(store.complete(USER, task.id))
        assert score_task(done, "xyz")[0] == 0

    def test_short_words_ignored_for_word_points(self, store):
        task = run(store.create(USER, "Go to bank"))
        score, _ = score_task(task, "to")
        # exact substring still counts, but "to" earns no word points
        assert score == 100 + 5

    def test_more_matching_tokens_never_lower_score(self, store):
        task = run(store.create(USER, "Submit quarterly report"))
        single, _ = score_task(task, "report")
        double, _ = score_task(task, "quarterly report")
        assert double >= single


class TestSearchTasks:

    def test_empty_query_returns_recent_tasks(self, store):
        run(store.create(USER, "Older"))
        run(store.create(USER, "Newer"))
        run(store.create("someone@example.com", "Not mine"))

        results = run(search_tasks(store, USER, "  "))
        assert [r.task.title for r in results] == ["Newer", "Older"]
        assert all(r.score == 1 and r.reason == "Recent task" for r in results)

    def test_exact_title_outranks_description_match(self, store):
        run(store.create(USER, "Budget review"))
        run(store.create(USER, "Other", description="budget review notes"))

        results = run(search_tasks(store, USER, "budget review"))
        assert [r.task.title for r in results[:2]] == ["Budget review", "Other"]
        assert results[0].score > results[1].score

    def test_ties_keep_newest_first(self, store):
        run(store.create(USER, "Team meeting"))
        run(store.create(USER, "Doctor meeting"))

        results = run(search_tasks(store, USER, "meeting"))
        assert [r.task.title for r in results] == ["Doctor meeting", "Team meeting"]
        assert results[0].score == results[1].score

    def test_results_scoped_to_owner(self, store):
        run(store.create("someone@example.com", "Shared name"))
        assert run(search_tasks(store, USER, "shared name")) == []

    def test_limit_and_status_filter(self, store):
        for index in range(4):
            run(store.create(USER, f"Report {index}"))
        done = run(store.create(USER, "Report done"))
        run(store.complete(USER, done.id))

        assert len(run(search_tasks(store, USER, "report", limit=2))) == 2
        completed = run(search_tasks(store, USER, "report", status="completed"))
        assert [r.task.id for r in completed] == [done.id]
