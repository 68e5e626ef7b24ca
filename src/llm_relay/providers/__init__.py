"""LLM provider adapters."""

from llm_relay.providers.base import LlmProvider
from llm_relay.providers.errors import (
    ExternalToolError,
    FilesystemTransientError,
    HealthCheckError,
    NetworkTransientError,
    ProviderError,
    ProviderNotFoundError,
    ProviderNotInitializedError,
    SpawnError,
)
from llm_relay.providers.external_cli import ExternalCliConfig, ExternalCliProvider
from llm_relay.providers.models import (
    ChatMessage,
    CompletionRequest,
    CompletionResponse,
    HealthCheckResult,
    MessageRole,
    ModelInfo,
    ProviderCapabilities,
    ProviderState,
    StreamEvent,
    StreamEventType,
    TokenUsage,
)
from llm_relay.providers.registry import ProviderRegistry

__all__ = [
    "ChatMessage",
    "CompletionRequest",
    "CompletionResponse",
    "ExternalCliConfig",
    "ExternalCliProvider",
    "ExternalToolError",
    "FilesystemTransientError",
    "HealthCheckError",
    "HealthCheckResult",
    "LlmProvider",
    "MessageRole",
    "ModelInfo",
    "NetworkTransientError",
    "ProviderCapabilities",
    "ProviderError",
    "ProviderNotFoundError",
    "ProviderNotInitializedError",
    "ProviderRegistry",
    "ProviderState",
    "SpawnError",
    "StreamEvent",
    "StreamEventType",
    "TokenUsage",
]
