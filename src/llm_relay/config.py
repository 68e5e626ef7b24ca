"""Runtime configuration for providers and the command executor."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

DEFAULT_PROVIDERS: dict[str, tuple[str, str]] = {
    "codex": ("codex exec -", "gpt-5-codex"),
    "claude": ("claude -p", "claude-sonnet-4-5"),
    "gemini": ("gemini", "gemini-2.5-pro"),
}


@dataclass(slots=True)
class ExecutorSettings:
    """Spawn retry settings."""

    retries: int = 0
    backoff_seconds: float = 0.5


@dataclass(slots=True)
class ProviderSettings:
    """One external CLI provider."""

    name: str
    command: str
    model: str


@dataclass(slots=True)
class Settings:
    """Application settings passed explicitly down to providers."""

    default_provider: str = "codex"
    log_level: str = "WARNING"
    executor: ExecutorSettings = field(default_factory=ExecutorSettings)
    providers: dict[str, ProviderSettings] = field(default_factory=dict)

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment with built-in provider defaults."""

        providers: dict[str, ProviderSettings] = {}
        for name, (command, model) in DEFAULT_PROVIDERS.items():
            prefix = f"LLM_RELAY_{name.upper()}"
            providers[name] = ProviderSettings(
                name=name,
                command=os.getenv(f"{prefix}_COMMAND", command),
                model=os.getenv(f"{prefix}_MODEL", model),
            )
        providers.update(_collect_extra_providers())

        return cls(
            default_provider=os.getenv("LLM_RELAY_DEFAULT_PROVIDER", "codex").strip().lower(),
            log_level=os.getenv("LLM_RELAY_LOG_LEVEL", "WARNING").strip().upper(),
            executor=ExecutorSettings(
                retries=int(os.getenv("LLM_RELAY_SPAWN_RETRIES", "0")),
                backoff_seconds=float(os.getenv("LLM_RELAY_SPAWN_BACKOFF_SECONDS", "0.5")),
            ),
            providers=providers,
        )

    def validate(self) -> None:
        """Raise configuration error on unusable settings."""

        if self.executor.retries < 0:
            raise ValueError("LLM_RELAY_SPAWN_RETRIES must be >= 0.")
        if self.executor.backoff_seconds < 0:
            raise ValueError("LLM_RELAY_SPAWN_BACKOFF_SECONDS must be >= 0.")
        validate_log_level(self.log_level)
        if not self.providers:
            raise ValueError("At least one provider must be configured.")
        for name, provider in self.providers.items():
            if not provider.command.strip():
                raise ValueError(f"Empty command for provider={name!r}")
            if not provider.model.strip():
                raise ValueError(f"Empty model id for provider={name!r}")
        if self.default_provider not in self.providers:
            raise ValueError(
                f"Unknown default provider {self.default_provider!r}. "
                f"Configured: {', '.join(sorted(self.providers))}",
            )


def validate_log_level(level: str) -> None:
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"Invalid LLM_RELAY_LOG_LEVEL: {level!r}")


def _collect_extra_providers() -> dict[str, ProviderSettings]:
    raw = os.getenv("LLM_RELAY_PROVIDERS", "").strip()
    if not raw:
        return {}

    providers: dict[str, ProviderSettings] = {}
    for part in raw.split(","):
        token = part.strip()
        if not token:
            continue
        fields = [value.strip() for value in token.split("|")]
        if len(fields) != 3 or not all(fields):  # noqa: PLR2004
            raise ValueError(
                "Invalid LLM_RELAY_PROVIDERS entry: "
                f"{token!r}. Expected format '<name>|<command>|<model>'.",
            )
        name, command, model = fields
        name = name.lower()
        providers[name] = ProviderSettings(name=name, command=command, model=model)
    return providers
