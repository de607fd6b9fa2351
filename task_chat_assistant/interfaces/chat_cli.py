"""Interactive chat loop for managing tasks with the assistant."""
from __future__ import annotations

import asyncio
from typing import Callable, Optional

from ..config import Settings
from ..llm import LanguageModel
from ..services import run_chat_turn
from ..task_store import TaskStore

EXIT_WORDS = {"q", "quit", "exit"}


def run_repl(
    user_id: str,
    *,
    model: LanguageModel,
    store: TaskStore,
    settings: Settings,
    session_id: Optional[str] = None,
    read: Callable[[str], str] = input,
    write: Callable[[str], None] = print,
) -> int:
    """Read messages until the user quits, printing each reply.

    The whole conversation runs on one event loop; the model client keeps
    pooled connections that are bound to the loop that opened them.
    """

    return asyncio.run(
        _repl(user_id, model=model, store=store, settings=settings, session_id=session_id, read=read, write=write)
    )


async def _repl(
    user_id: str,
    *,
    model: LanguageModel,
    store: TaskStore,
    settings: Settings,
    session_id: Optional[str],
    read: Callable[[str], str],
    write: Callable[[str], None],
) -> int:
    write(f"Chatting as {user_id} ({settings.environment}). Type 'q' to quit.")
    while True:
        try:
            message = (await asyncio.to_thread(read, "\nYou > ")).strip()
        except EOFError:
            write("Goodbye!")
            return 0
        if not message:
            continue
        if message.lower() in EXIT_WORDS:
            write("Goodbye!")
            return 0

        result = await run_chat_turn(
            message,
            user_id=user_id,
            session_id=session_id,
            model=model,
            store=store,
            settings=settings,
        )
        if result.ok:
            session_id = result.session_id
        write(f"\nAssistant > {result.response}")
        if result.context.awaiting_confirmation:
            write("(reply yes or no)")
