"""Service helpers shared by the API and CLI."""

from .chat_runner import APOLOGY_MESSAGE, ChatTurnResult, run_chat_turn

__all__ = ["APOLOGY_MESSAGE", "ChatTurnResult", "run_chat_turn"]
