"""Controllers for relay CLI commands."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from llm_relay.config import Settings
from llm_relay.process.executor import CommandExecutor, RunOptions, command_available
from llm_relay.providers.base import LlmProvider
from llm_relay.providers.errors import ProviderError, ProviderNotFoundError
from llm_relay.providers.models import (
    ChatMessage,
    CompletionRequest,
    CompletionResponse,
    MessageRole,
    StreamEvent,
    StreamEventType,
)
from llm_relay.providers.registry import ProviderRegistry


@dataclass(slots=True)
class RelayCompleteCommand:
    """CLI input for one completion."""

    prompt: str
    provider: str | None = None
    model: str | None = None
    system: str | None = None
    role: str = "user"


@dataclass(slots=True)
class RelayModelsCommand:
    """CLI input for model listing."""

    provider: str | None = None


@dataclass(slots=True)
class RelayHealthCommand:
    """CLI input for provider health checks."""

    providers: tuple[str, ...] = ()


@dataclass(slots=True)
class RelayExecCommand:
    """CLI input for a direct executor run."""

    command: str
    args: tuple[str, ...] = ()
    retries: int = 0
    backoff_seconds: float = 0.5


@dataclass(slots=True)
class RelayResult:
    """Lines to render in CLI plus overall status."""

    lines: list[str]
    success: bool


class RelayCliController:
    """Coordinates provider lookup and executor runs for CLI commands."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings

    def providers(self) -> RelayResult:
        settings, error = self._load_settings()
        if settings is None:
            return RelayResult(lines=[error], success=False)

        lines = ["Configured providers:"]
        for name, provider in settings.providers.items():
            marker = "*" if name == settings.default_provider else " "
            available = "yes" if command_available(provider.command) else "no"
            lines.append(
                f"{marker} {name} command={provider.command!r} model={provider.model} "
                f"available={available}",
            )
        return RelayResult(lines=lines, success=True)

    def complete(self, command: RelayCompleteCommand) -> RelayResult:
        return self._run_completion(command, stream=False)

    def stream(self, command: RelayCompleteCommand) -> RelayResult:
        return self._run_completion(command, stream=True)

    def models(self, command: RelayModelsCommand) -> RelayResult:
        registry, error = self._registry()
        if registry is None:
            return RelayResult(lines=[error], success=False)
        try:
            provider = registry.get(command.provider)
        except ProviderNotFoundError as not_found:
            return RelayResult(lines=[str(not_found.args[0])], success=False)

        async def _collect() -> list[str]:
            lines = [f"Models for provider={provider.name}:"]
            for model in await provider.list_models():
                info = await provider.get_model_info(model)
                lines.append(
                    f"  {info.id} context_length={info.context_length} "
                    f"max_output_tokens={info.max_output_tokens}",
                )
            return lines

        return RelayResult(lines=asyncio.run(_collect()), success=True)

    def health(self, command: RelayHealthCommand) -> RelayResult:
        registry, error = self._registry()
        if registry is None:
            return RelayResult(lines=[error], success=False)
        names = list(command.providers) or registry.names()
        try:
            outcomes = asyncio.run(_health_report(registry, names))
        except ProviderNotFoundError as not_found:
            return RelayResult(lines=[str(not_found.args[0])], success=False)

        lines = ["Provider health:"]
        success = True
        for name, init_error, healthy in outcomes:
            line = (
                f"  provider={name} init={'ok' if init_error is None else 'failed'} "
                f"health={'ok' if healthy else 'failed'}"
            )
            if init_error is not None:
                line += f" error={init_error}"
            lines.append(line)
            if not healthy:
                success = False
        lines.append(f"Health status: {'passed' if success else 'failed'}")
        return RelayResult(lines=lines, success=success)

    def execute(self, command: RelayExecCommand) -> RelayResult:
        try:
            result = asyncio.run(
                CommandExecutor().run(
                    command.command,
                    command.args,
                    RunOptions(retries=command.retries, backoff_seconds=command.backoff_seconds),
                ),
            )
        except ValueError as invalid:
            return RelayResult(lines=[str(invalid)], success=False)
        lines = [
            f"exit_code={result.exit_code} success={'yes' if result.success else 'no'} "
            f"attempts={result.attempts} "
            f"error_kind={result.error_kind.value if result.error_kind else '-'}",
        ]
        if result.stdout:
            lines.append("stdout:")
            lines.append(result.stdout.rstrip("\n"))
        if result.stderr:
            lines.append("stderr:")
            lines.append(result.stderr.rstrip("\n"))
        return RelayResult(lines=lines, success=result.success)

    def _run_completion(self, command: RelayCompleteCommand, *, stream: bool) -> RelayResult:
        registry, error = self._registry()
        if registry is None:
            return RelayResult(lines=[error], success=False)
        try:
            request = _build_request(command)
            provider = registry.get(command.provider)
        except ProviderNotFoundError as not_found:
            return RelayResult(lines=[str(not_found.args[0])], success=False)
        except ValueError as invalid:
            return RelayResult(lines=[str(invalid)], success=False)

        try:
            if stream:
                events = asyncio.run(_stream(provider, request))
                return RelayResult(lines=[_render_event(event) for event in events], success=True)
            response = asyncio.run(_complete(provider, request))
        except ProviderError as provider_error:
            return RelayResult(
                lines=[f"Provider {provider.name} failed: {provider_error}"],
                success=False,
            )
        return RelayResult(lines=[response.content], success=True)

    def _load_settings(self) -> tuple[Settings | None, str]:
        try:
            settings = self._settings or Settings.from_env()
            settings.validate()
        except ValueError as error:
            return None, f"Configuration error: {error}"
        return settings, ""

    def _registry(self) -> tuple[ProviderRegistry | None, str]:
        settings, error = self._load_settings()
        if settings is None:
            return None, error
        return ProviderRegistry.from_settings(settings), ""


def _build_request(command: RelayCompleteCommand) -> CompletionRequest:
    try:
        role = MessageRole(command.role.strip().lower())
    except ValueError as error:
        raise ValueError(f"Unsupported message role: {command.role!r}") from error
    messages: list[ChatMessage] = []
    if command.system:
        messages.append(ChatMessage(role=MessageRole.SYSTEM, content=command.system))
    messages.append(ChatMessage(role=role, content=command.prompt))
    return CompletionRequest(messages=tuple(messages), model=command.model)


async def _complete(provider: LlmProvider, request: CompletionRequest) -> CompletionResponse:
    await provider.initialize()
    return await provider.complete(request)


async def _stream(provider: LlmProvider, request: CompletionRequest) -> list[StreamEvent]:
    await provider.initialize()
    return [event async for event in provider.stream_complete(request)]


async def _health_report(
    registry: ProviderRegistry,
    names: list[str],
) -> list[tuple[str, ProviderError | None, bool]]:
    init_errors = await registry.initialize_all(names)
    outcomes: list[tuple[str, ProviderError | None, bool]] = []
    for name, init_error in init_errors.items():
        if init_error is not None:
            outcomes.append((name, init_error, False))
            continue
        health = await registry.get(name).health_check()
        outcomes.append((name, None, health.ok))
    return outcomes


def _render_event(event: StreamEvent) -> str:
    if event.type == StreamEventType.CONTENT:
        return f"[content] {event.delta or ''}"
    return "[done]"
