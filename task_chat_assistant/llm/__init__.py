"""LLM helper package."""

from .anthropic_client import (
    AnthropicConfig,
    AnthropicError,
    AnthropicLanguageModel,
    AnthropicNotConfigured,
    LanguageModel,
    ModelReply,
    ToolCall,
    build_anthropic_client,
    extract_json_object,
    resolve_config,
)
from .intent_analyzer import (
    INTENT_ACTIONS,
    MODIFYING_ACTIONS,
    ExtractedInfo,
    UserIntent,
    analyze_intent,
)

__all__ = [
    "AnthropicConfig",
    "AnthropicError",
    "AnthropicLanguageModel",
    "AnthropicNotConfigured",
    "ExtractedInfo",
    "INTENT_ACTIONS",
    "LanguageModel",
    "MODIFYING_ACTIONS",
    "ModelReply",
    "ToolCall",
    "UserIntent",
    "analyze_intent",
    "build_anthropic_client",
    "extract_json_object",
    "resolve_config",
]
