#!/usr/bin/env python3
"""Task Chat Assistant CLI."""
from __future__ import annotations

import argparse
import asyncio
import os
import sys
from typing import Iterable

from task_chat_assistant.config import ConfigError, load_settings
from task_chat_assistant.dates import coerce_datetime
from task_chat_assistant.task_store import (
    Task,
    TaskFilters,
    TaskNotFound,
    TaskSource,
    TaskStore,
    TaskValidationError,
    search_tasks,
)

DEFAULT_USER_ENV = "TCA_CLI_USER"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="task-chat",
        description="Manage tasks directly or through the chat assistant.",
    )
    parser.add_argument(
        "--user",
        default=os.getenv(DEFAULT_USER_ENV, "local@example.com"),
        help=f"Owner of the tasks (defaults to ${DEFAULT_USER_ENV} or local@example.com).",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list", help="List tasks, newest first.")
    list_parser.add_argument("--status", choices=("todo", "in-progress", "completed"))
    list_parser.add_argument("--priority", choices=("low", "medium", "high"))
    list_parser.add_argument(
        "--limit",
        type=int,
        default=20,
        help="Maximum number of tasks to show.",
    )

    add_parser = subparsers.add_parser("add", help="Create a task.")
    add_parser.add_argument("title", help="Task title.")
    add_parser.add_argument("--description")
    add_parser.add_argument("--priority", choices=("low", "medium", "high"), default="medium")
    add_parser.add_argument(
        "--due",
        help="Due date, ISO or natural language (e.g. 'tomorrow at 5 PM').",
    )

    complete_parser = subparsers.add_parser("complete", help="Mark a task as completed.")
    complete_parser.add_argument("task_id", help="Task ID.")

    search_parser = subparsers.add_parser("search", help="Rank tasks against a query.")
    search_parser.add_argument("query", help="Free-text query.")
    search_parser.add_argument("--limit", type=int, default=5)

    chat_parser = subparsers.add_parser("chat", help="Talk to the assistant.")
    chat_parser.add_argument("--session", help="Resume an existing chat session ID.")
    chat_parser.add_argument(
        "--anthropic-model",
        help="Override Anthropic model (otherwise env/default is used).",
    )

    return parser


def format_task_rows(tasks: Iterable[Task]) -> str:
    """Return a human-friendly summary table string."""

    lines = ["ID | Title | Status | Priority | Due"]
    for task in tasks:
        due = f"{task.due_date:%Y-%m-%d %H:%M}" if task.due_date else "-"
        lines.append(f"{task.id} | {task.title} | {task.status} | {task.priority} | {due}")
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    store = TaskStore()

    if args.command == "list":
        return _cmd_list(store, args.user, status=args.status, priority=args.priority, limit=args.limit)
    if args.command == "add":
        return _cmd_add(
            store,
            args.user,
            title=args.title,
            description=args.description,
            priority=args.priority,
            due=args.due,
        )
    if args.command == "complete":
        return _cmd_complete(store, args.user, args.task_id)
    if args.command == "search":
        return _cmd_search(store, args.user, args.query, limit=args.limit)
    if args.command == "chat":
        return _cmd_chat(store, args.user, session_id=args.session, anthropic_model=args.anthropic_model)

    parser.error(f"Unknown command: {args.command}")
    return 2


def _cmd_list(store: TaskStore, user: str, *, status, priority, limit: int) -> int:
    tasks = asyncio.run(store.find(user, TaskFilters(status=status, priority=priority), limit=limit))
    if not tasks:
        print("No tasks found.")
        return 0
    print(format_task_rows(tasks))
    return 0


def _cmd_add(store: TaskStore, user: str, *, title: str, description, priority: str, due) -> int:
    due_date = coerce_datetime(due) if due else None
    if due and due_date is None:
        print(f"Could not understand due date: {due}", file=sys.stderr)
        return 1
    try:
        task = asyncio.run(
            store.create(
                user,
                title,
                description=description,
                priority=priority,
                due_date=due_date,
                source=TaskSource.MANUAL.value,
            )
        )
    except TaskValidationError as exc:
        print(exc, file=sys.stderr)
        return 1
    print(f'Created task "{task.title}" ({task.id})')
    return 0


def _cmd_complete(store: TaskStore, user: str, task_id: str) -> int:
    try:
        task = asyncio.run(store.complete(user, task_id))
    except TaskNotFound as exc:
        print(exc, file=sys.stderr)
        return 1
    print(f'Task "{task.title}" marked as completed')
    return 0


def _cmd_search(store: TaskStore, user: str, query: str, *, limit: int) -> int:
    results = asyncio.run(search_tasks(store, user, query, limit=limit))
    if not results:
        print(f'No tasks found matching "{query}"')
        return 0
    for item in results:
        print(f"{item.score:>4} | {item.task.title} ({item.task.status}) | {item.reason} | {item.task.id}")
    return 0


def _cmd_chat(store: TaskStore, user: str, *, session_id, anthropic_model) -> int:
    from task_chat_assistant.interfaces.chat_cli import run_repl
    from task_chat_assistant.llm import AnthropicLanguageModel, resolve_config

    try:
        settings = load_settings()
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    model = AnthropicLanguageModel(config=resolve_config(anthropic_model or settings.anthropic_model))
    return run_repl(user, model=model, store=store, settings=settings, session_id=session_id)


if __name__ == "__main__":
    raise SystemExit(main())
