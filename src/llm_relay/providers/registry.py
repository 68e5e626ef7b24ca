"""Named provider lookup for orchestration callers."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from llm_relay.config import Settings
from llm_relay.providers.base import LlmProvider
from llm_relay.providers.errors import ProviderError, ProviderNotFoundError
from llm_relay.providers.external_cli import ExternalCliConfig, ExternalCliProvider

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Holds named providers and the name used when none is requested."""

    def __init__(self, default_name: str = "") -> None:
        self._providers: dict[str, LlmProvider] = {}
        self.default_name = default_name

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        provider_logger: logging.Logger | None = None,
    ) -> ProviderRegistry:
        """Build one external CLI provider per configured entry."""

        registry = cls(default_name=normalize_provider_name(settings.default_provider))
        for name, provider_settings in settings.providers.items():
            registry.register(
                name,
                ExternalCliProvider(
                    name,
                    ExternalCliConfig(
                        command=provider_settings.command,
                        model=provider_settings.model,
                    ),
                    logger=provider_logger,
                    retries=settings.executor.retries,
                    backoff_seconds=settings.executor.backoff_seconds,
                ),
            )
        return registry

    def register(self, name: str, provider: LlmProvider) -> None:
        key = normalize_provider_name(name)
        self._providers[key] = provider
        if not self.default_name:
            self.default_name = key
        logger.debug("Registered provider %s", key)

    def names(self) -> list[str]:
        return list(self._providers)

    def default(self) -> LlmProvider:
        return self.get()

    def get(self, name: str | None = None) -> LlmProvider:
        """Return provider ``name``, or the default provider when omitted.

        Names are matched case-insensitively.
        """

        resolved = normalize_provider_name(name or self.default_name)
        try:
            return self._providers[resolved]
        except KeyError as error:
            raise ProviderNotFoundError(
                f"Provider {resolved!r} not registered. Available: {', '.join(self._providers)}",
            ) from error

    async def initialize_all(
        self,
        names: Sequence[str] | None = None,
    ) -> dict[str, ProviderError | None]:
        """Initialize providers concurrently; provider failures are reported, not raised."""

        selected = (
            [normalize_provider_name(name) for name in names] if names is not None else self.names()
        )
        providers = [self.get(name) for name in selected]
        outcomes = await asyncio.gather(
            *(provider.initialize() for provider in providers),
            return_exceptions=True,
        )
        report: dict[str, ProviderError | None] = {}
        for name, outcome in zip(selected, outcomes, strict=True):
            if isinstance(outcome, ProviderError):
                logger.warning("Provider %s failed to initialize: %s", name, outcome)
                report[name] = outcome
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                report[name] = None
        return report


def normalize_provider_name(name: str) -> str:
    return name.strip().lower()
