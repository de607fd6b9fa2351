"""Configuration helpers for the Task Chat Assistant."""
from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Optional

from dotenv import load_dotenv


class ConfigError(RuntimeError):
    """Raised when configuration values are missing or invalid."""


@dataclass(slots=True)
class Settings:
    """Runtime configuration shared by the API, CLI and chat runner."""

    environment: str = "local"
    anthropic_model: Optional[str] = None
    max_tool_rounds: int = 5


def load_settings(*, env_file: Optional[str] = None) -> Settings:
    """Load settings from environment variables (and an optional .env file).

    Raises:
        ConfigError: if TCA_MAX_TOOL_ROUNDS is not a positive integer.
    """

    load_dotenv(env_file)

    raw_rounds = os.getenv("TCA_MAX_TOOL_ROUNDS", "5").strip()
    try:
        max_tool_rounds = int(raw_rounds)
    except ValueError as exc:
        raise ConfigError(
            f"TCA_MAX_TOOL_ROUNDS must be an integer, got {raw_rounds!r}."
        ) from exc
    if max_tool_rounds < 1:
        raise ConfigError("TCA_MAX_TOOL_ROUNDS must be at least 1.")

    return Settings(
        environment=os.getenv("TCA_ENV", "local"),
        anthropic_model=os.getenv("ANTHROPIC_MODEL") or None,
        max_tool_rounds=max_tool_rounds,
    )
