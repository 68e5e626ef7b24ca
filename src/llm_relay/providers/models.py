"""Request, response and capability types shared by LLM providers."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

DEFAULT_CONTEXT_LENGTH = 4096
DEFAULT_MAX_OUTPUT_TOKENS = 2048


class MessageRole(str, Enum):
    """Chat message author role."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class StreamEventType(str, Enum):
    """Stream event tags."""

    CONTENT = "content"
    DONE = "done"


class ProviderState(str, Enum):
    """Provider lifecycle state."""

    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    BUSY = "busy"


@dataclass(slots=True, frozen=True)
class ChatMessage:
    """One chat message."""

    role: MessageRole
    content: str


@dataclass(slots=True, frozen=True)
class CompletionRequest:
    """Ordered chat messages plus an optional model override."""

    messages: tuple[ChatMessage, ...] = ()
    model: str | None = None

    @classmethod
    def from_pairs(
        cls,
        messages: Iterable[tuple[str, str] | Mapping[str, Any]],
        *,
        model: str | None = None,
    ) -> CompletionRequest:
        """Build a request from ``(role, content)`` pairs or ``{"role", "content"}`` dicts."""

        parsed: list[ChatMessage] = []
        for item in messages:
            if isinstance(item, Mapping):
                role, content = item.get("role", ""), item.get("content", "")
            else:
                role, content = item
            parsed.append(
                ChatMessage(role=MessageRole(str(role).strip().lower()), content=str(content)),
            )
        return cls(messages=tuple(parsed), model=model)


@dataclass(slots=True, frozen=True)
class TokenUsage:
    """Token counters; all zero when the wrapped tool reports none."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass(slots=True, frozen=True)
class CompletionResponse:
    """Normalized completion produced by a provider."""

    id: str
    model: str
    provider: str
    content: str
    usage: TokenUsage = field(default_factory=TokenUsage)


@dataclass(slots=True, frozen=True)
class StreamEvent:
    """Stream event; ``CONTENT`` carries a delta and usage, ``DONE`` carries nothing."""

    type: StreamEventType
    delta: str | None = None
    usage: TokenUsage | None = None


@dataclass(slots=True, frozen=True)
class ModelPricing:
    """Per-model pricing in ``currency`` per 1k tokens."""

    prompt_cost_per_1k: float = 0.0
    completion_cost_per_1k: float = 0.0
    currency: str = "USD"


@dataclass(slots=True, frozen=True)
class ModelInfo:
    """Model limits reported by a provider."""

    id: str
    context_length: int
    max_output_tokens: int
    description: str = ""
    input_tokens: int = 0
    output_tokens: int = 0


@dataclass(slots=True, frozen=True)
class HealthCheckResult:
    """Health report for one provider."""

    ok: bool
    provider: str
    details: Mapping[str, object] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class ProviderCapabilities:
    """Static, read-only capability record keyed by model id."""

    supported_models: tuple[str, ...]
    max_context_length: Mapping[str, int]
    max_output_tokens: Mapping[str, int]
    pricing: Mapping[str, ModelPricing]
    supports_streaming: bool = False
    supports_function_calling: bool = False
    supports_system_messages: bool = False
    supports_vision: bool = False
    supports_audio: bool = False
    supports_tools: bool = False
    supports_fine_tuning: bool = False
    supports_embeddings: bool = False
    supports_logprobs: bool = False
    supports_batching: bool = False

    @classmethod
    def text_only(
        cls,
        model: str,
        *,
        context_length: int = DEFAULT_CONTEXT_LENGTH,
        max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS,
    ) -> ProviderCapabilities:
        """Capabilities for a single-model, text-in/text-out tool.

        System messages are supported only in the sense that they are
        serialized into the prompt like any other message.
        """

        return cls(
            supported_models=(model,),
            max_context_length=MappingProxyType({model: context_length}),
            max_output_tokens=MappingProxyType({model: max_output_tokens}),
            pricing=MappingProxyType({model: ModelPricing()}),
            supports_system_messages=True,
        )

    def context_length_for(self, model: str) -> int:
        """Context ceiling for ``model``, defaulting to 4096."""

        return self.max_context_length.get(model) or DEFAULT_CONTEXT_LENGTH

    def max_output_tokens_for(self, model: str) -> int:
        """Output ceiling for ``model``, defaulting to 2048."""

        return self.max_output_tokens.get(model) or DEFAULT_MAX_OUTPUT_TOKENS
