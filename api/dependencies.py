"""Shared dependencies for API routers.

Usage in routers:
    from api.dependencies import get_current_user, get_task_store, get_language_model
"""
from __future__ import annotations

import os
from functools import lru_cache

from task_chat_assistant.api.auth import get_current_user  # noqa: F401 - re-export
from task_chat_assistant.config import Settings, load_settings
from task_chat_assistant.llm import AnthropicLanguageModel, LanguageModel, resolve_config
from task_chat_assistant.task_store import TaskStore


# =============================================================================
# Configuration Constants
# =============================================================================

ALLOWED_ORIGINS = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    os.getenv("TCA_ALLOWED_FRONTEND", "").strip(),
]


# =============================================================================
# Cached Functions
# =============================================================================

@lru_cache
def get_settings() -> Settings:
    """Get application settings (cached)."""
    return load_settings()


@lru_cache
def get_task_store() -> TaskStore:
    """Shared task store; backend chosen from the environment."""
    return TaskStore()


@lru_cache
def get_language_model() -> LanguageModel:
    """Anthropic-backed model. The API key is only checked on first use."""
    settings = get_settings()
    return AnthropicLanguageModel(config=resolve_config(settings.anthropic_model))
