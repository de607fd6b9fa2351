"""Anthropic client wrappers for the Task Chat Assistant.

The workflow only depends on the LanguageModel protocol below; the Anthropic
implementation is the production binding and tests substitute a scripted
model.
"""
from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from anthropic import APIStatusError, AsyncAnthropic
from dotenv import load_dotenv

DEFAULT_MODEL = "claude-sonnet-4-20250514"

_FENCED_JSON = re.compile(r"```(?:json)?\s*\n?(.*?)\n?```", re.DOTALL)
_BRACED_JSON = re.compile(r"\{.*\}", re.DOTALL)


class AnthropicError(RuntimeError):
    """Base error for Anthropic failures."""


class AnthropicNotConfigured(AnthropicError):
    """Raised when the API key is missing."""


@dataclass(slots=True)
class AnthropicConfig:
    model: str = DEFAULT_MODEL
    max_output_tokens: int = 800
    temperature: float = 0.5


@dataclass(slots=True)
class ToolCall:
    """A tool invocation requested by the model."""

    id: str
    name: str
    input: Dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class ModelReply:
    """Text and tool calls returned by a tool-enabled model call."""

    text: str = ""
    tool_calls: List[ToolCall] = field(default_factory=list)

    def to_message(self) -> Dict[str, Any]:
        """Render as an assistant message for the next request."""
        content: List[Dict[str, Any]] = []
        if self.text:
            content.append({"type": "text", "text": self.text})
        for call in self.tool_calls:
            content.append({
                "type": "tool_use",
                "id": call.id,
                "name": call.name,
                "input": call.input,
            })
        return {"role": "assistant", "content": content}


@runtime_checkable
class LanguageModel(Protocol):
    """The language-model capability used by the workflow."""

    async def complete(self, system: str, messages: List[Dict[str, Any]]) -> str:
        """Return free text for the prompt."""
        ...

    async def respond(
        self,
        system: str,
        messages: List[Dict[str, Any]],
        tools: List[Dict[str, Any]],
    ) -> ModelReply:
        """Return text and/or tool calls for a tool-bound prompt."""
        ...


def build_anthropic_client() -> AsyncAnthropic:
    """Instantiate the async Anthropic SDK client."""

    load_dotenv()

    api_key = os.getenv("ANTHROPIC_API_KEY")
    if not api_key:
        raise AnthropicNotConfigured(
            "ANTHROPIC_API_KEY is missing. Add it to your environment or .env file."
        )

    return AsyncAnthropic(api_key=api_key)


def resolve_config(model_override: Optional[str] = None) -> AnthropicConfig:
    env_model = os.getenv("ANTHROPIC_MODEL")
    model = model_override or env_model or DEFAULT_MODEL
    return AnthropicConfig(model=model)


class AnthropicLanguageModel:
    """LanguageModel backed by the Anthropic Messages API."""

    def __init__(
        self,
        *,
        client: Optional[AsyncAnthropic] = None,
        config: Optional[AnthropicConfig] = None,
    ) -> None:
        self._client = client
        self.config = config or resolve_config()

    @property
    def client(self) -> AsyncAnthropic:
        if self._client is None:
            self._client = build_anthropic_client()
        return self._client

    async def complete(self, system: str, messages: List[Dict[str, Any]]) -> str:
        response = await self._create(
            system=system,
            messages=messages,
            temperature=0.0,  # Deterministic classification
        )
        return _extract_text(response)

    async def respond(
        self,
        system: str,
        messages: List[Dict[str, Any]],
        tools: List[Dict[str, Any]],
    ) -> ModelReply:
        response = await self._create(
            system=system,
            messages=messages,
            temperature=self.config.temperature,
            tools=tools,
        )

        text_content = []
        tool_calls = []
        for block in getattr(response, "content", []):
            block_type = getattr(block, "type", None)
            if block_type == "text":
                text_content.append(getattr(block, "text", ""))
            elif block_type == "tool_use":
                tool_calls.append(ToolCall(
                    id=getattr(block, "id", ""),
                    name=getattr(block, "name", ""),
                    input=dict(getattr(block, "input", {}) or {}),
                ))

        return ModelReply(text="\n".join(text_content).strip(), tool_calls=tool_calls)

    async def _create(self, **kwargs):
        request_kwargs = {
            "model": self.config.model,
            "max_tokens": self.config.max_output_tokens,
            **kwargs,
        }
        if not request_kwargs.get("tools"):
            request_kwargs.pop("tools", None)
        try:
            return await self.client.messages.create(**request_kwargs)
        except APIStatusError as exc:
            raise AnthropicError(f"Anthropic API error: {exc}") from exc
        except AnthropicError:
            raise
        except Exception as exc:
            raise AnthropicError(f"Anthropic request failed: {exc}") from exc


def _extract_text(response) -> str:
    chunks = []
    for block in getattr(response, "content", []):
        if getattr(block, "type", None) == "text":
            chunks.append(getattr(block, "text", ""))
    return "\n".join(chunks).strip()


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Pull a JSON object out of model output.

    Looks for a fenced ```json block first, then the span from the first "{"
    to the last "}".

    Returns:
        The parsed object, or None when no JSON-looking span exists.

    Raises:
        ValueError: if a span was found but is not a valid JSON object.
    """
    match = _FENCED_JSON.search(text) or _BRACED_JSON.search(text)
    if not match:
        return None
    candidate = match.group(1) if match.re is _FENCED_JSON else match.group(0)
    data = json.loads(candidate.strip())
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return data
