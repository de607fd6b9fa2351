"""Tests for settings loading."""
from __future__ import annotations

import pytest

from task_chat_assistant.config import ConfigError, load_settings


def test_defaults(monkeypatch):
    for name in ("TCA_ENV", "ANTHROPIC_MODEL", "TCA_MAX_TOOL_ROUNDS"):
        monkeypatch.delenv(name, raising=False)
    settings = load_settings()
    assert settings.environment == "local"
    assert settings.anthropic_model is None
    assert settings.max_tool_rounds == 5


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("TCA_ENV", "staging")
    monkeypatch.setenv("ANTHROPIC_MODEL", "claude-test")
    monkeypatch.setenv("TCA_MAX_TOOL_ROUNDS", "3")
    settings = load_settings()
    assert (settings.environment, settings.anthropic_model, settings.max_tool_rounds) == ("staging", "claude-test", 3)


@pytest.mark.parametrize("value", ["lots", "0", "-2"])
def test_invalid_tool_rounds(monkeypatch, value):
    monkeypatch.setenv("TCA_MAX_TOOL_ROUNDS", value)
    with pytest.raises(ConfigError):
        load_settings()
