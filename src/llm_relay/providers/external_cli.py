"""Provider adapter that proxies completions to an external CLI program.

Tools like codex, claude or gemini are driven through stdin/stdout only:
the chat is flattened into ``"<role>: <content>"`` lines, written to the
command's standard input, and the trimmed standard output becomes the
response content.

Exit-code policy: a non-zero exit is an error only when the tool also wrote
something to stderr. A non-zero exit with empty stderr still returns stdout,
possibly empty, as a normal response.
"""

from __future__ import annotations

import itertools
import logging
import time
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass

from llm_relay.process.error_classifier import is_transient
from llm_relay.process.executor import (
    DEFAULT_BACKOFF_SECONDS,
    CommandExecutor,
    RunOptions,
    split_command,
)
from llm_relay.providers.errors import (
    ExternalToolError,
    HealthCheckError,
    ProviderNotInitializedError,
    spawn_error_from_result,
)
from llm_relay.providers.models import (
    ChatMessage,
    CompletionRequest,
    CompletionResponse,
    HealthCheckResult,
    ModelInfo,
    ProviderCapabilities,
    ProviderState,
    StreamEvent,
    StreamEventType,
    TokenUsage,
)

VERSION_PROBE_FLAG = "--version"
_RESPONSE_SEQUENCE = itertools.count(1)


@dataclass(slots=True, frozen=True)
class ExternalCliConfig:
    """Command line to run and the single model id it serves."""

    command: str
    model: str


class ExternalCliProvider:
    """Uniform completion interface over one external command."""

    def __init__(  # noqa: PLR0913
        self,
        name: str,
        config: ExternalCliConfig,
        *,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
        executor: CommandExecutor | None = None,
        retries: int = 0,
        backoff_seconds: float = DEFAULT_BACKOFF_SECONDS,
    ) -> None:
        if not config.model.strip():
            raise ValueError(f"Empty model id for provider={name!r}")
        self.name = name
        self.config = config
        self.capabilities = ProviderCapabilities.text_only(config.model)
        self._argv = split_command(config.command)
        self._logger = logger or logging.getLogger(__name__)
        self._executor = executor or CommandExecutor()
        self._retries = retries
        self._backoff_seconds = backoff_seconds
        self._initialized = False
        self._in_flight = 0

    @property
    def state(self) -> ProviderState:
        """Lifecycle state; ``BUSY`` while any completion is running."""

        if not self._initialized:
            return ProviderState.UNINITIALIZED
        if self._in_flight:
            return ProviderState.BUSY
        return ProviderState.INITIALIZED

    async def initialize(self) -> None:
        """Probe the command with ``--version`` and mark the provider ready.

        The probe outcome is informational. Only a probe that cannot be
        spawned at all raises ``HealthCheckError``.
        """

        if self._initialized:
            return
        result = await self._executor.run(
            self._argv[0],
            [VERSION_PROBE_FLAG],
            self._run_options(),
        )
        if result.spawn_failed:
            self._logger.error(
                "Provider %s probe could not start %s: %s",
                self.name,
                self._argv[0],
                result.stderr.strip(),
            )
            raise HealthCheckError(
                f"Cannot start {self._argv[0]!r} for provider {self.name!r}: "
                f"{result.stderr.strip()}",
                transient=is_transient(result.error_kind),
            )
        if result.success:
            self._logger.info(
                "Provider %s ready: %s",
                self.name,
                result.stdout.strip().splitlines()[0] if result.stdout.strip() else "-",
            )
        else:
            self._logger.warning(
                "Provider %s probe exited with code %d; continuing",
                self.name,
                result.exit_code,
            )
        self._initialized = True

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        """Run the command once with the serialized chat on stdin."""

        self._require_initialized()
        prompt = messages_to_prompt(request.messages)
        self._logger.debug(
            "Provider %s running %s with %d message(s)",
            self.name,
            self._argv[0],
            len(request.messages),
        )

        self._in_flight += 1
        try:
            result = await self._executor.run(
                self._argv[0],
                self._argv[1:],
                self._run_options(stdin_text=prompt),
            )
        finally:
            self._in_flight -= 1

        if result.spawn_failed:
            raise spawn_error_from_result(self.config.command, result)

        stderr = result.stderr.strip()
        if result.exit_code != 0 and stderr:
            self._logger.warning(
                "Provider %s command exited with code %d: %s",
                self.name,
                result.exit_code,
                stderr,
            )
            raise ExternalToolError(stderr, exit_code=result.exit_code)
        if result.exit_code != 0:
            self._logger.warning(
                "Provider %s command exited with code %d and empty stderr; using stdout",
                self.name,
                result.exit_code,
            )

        return CompletionResponse(
            id=_next_response_id(),
            model=request.model or self.config.model,
            provider=self.name,
            content=result.stdout.strip(),
            usage=TokenUsage(),
        )

    async def stream_complete(self, request: CompletionRequest) -> AsyncIterator[StreamEvent]:
        """Pseudo-streaming: one content event with the full output, then done.

        Nothing is yielded before the wrapped process exits.
        """

        response = await self.complete(request)
        yield StreamEvent(
            type=StreamEventType.CONTENT,
            delta=response.content,
            usage=response.usage,
        )
        yield StreamEvent(type=StreamEventType.DONE)

    async def list_models(self) -> list[str]:
        return list(self.capabilities.supported_models)

    async def get_model_info(self, model: str) -> ModelInfo:
        return ModelInfo(
            id=model,
            context_length=self.capabilities.context_length_for(model),
            max_output_tokens=self.capabilities.max_output_tokens_for(model),
            description="External CLI model",
        )

    async def health_check(self) -> HealthCheckResult:
        # Health of the wrapped tool is not introspected.
        return HealthCheckResult(
            ok=True,
            provider=self.name,
            details={"command": self.config.command, "state": self.state.value},
        )

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise ProviderNotInitializedError(
                f"Provider {self.name!r} must be initialized before use.",
            )

    def _run_options(self, *, stdin_text: str | None = None) -> RunOptions:
        return RunOptions(
            retries=self._retries,
            stdin_text=stdin_text,
            backoff_seconds=self._backoff_seconds,
        )


def messages_to_prompt(messages: Sequence[ChatMessage]) -> str:
    """Flatten chat messages into newline-joined ``"<role>: <content>"`` lines."""

    return "\n".join(f"{message.role.value}: {message.content}" for message in messages)


def _next_response_id() -> str:
    return f"cli-{int(time.time() * 1000)}-{next(_RESPONSE_SEQUENCE)}"
