"""Provider interface consumed by the registry and CLI."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Protocol

from llm_relay.providers.models import (
    CompletionRequest,
    CompletionResponse,
    HealthCheckResult,
    ModelInfo,
    ProviderCapabilities,
    ProviderState,
    StreamEvent,
)


class LlmProvider(Protocol):
    """Protocol implemented by provider adapters."""

    name: str
    capabilities: ProviderCapabilities

    @property
    def state(self) -> ProviderState:
        """Current lifecycle state."""

    async def initialize(self) -> None:
        """Prepare the provider; required before completions."""

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        """Run one completion."""

    def stream_complete(self, request: CompletionRequest) -> AsyncIterator[StreamEvent]:
        """Run one completion as a sequence of stream events."""

    async def list_models(self) -> list[str]:
        """Return supported model ids."""

    async def get_model_info(self, model: str) -> ModelInfo:
        """Return limits for ``model``."""

    async def health_check(self) -> HealthCheckResult:
        """Report provider health."""
