"""Typed provider failures surfaced to orchestration callers."""

from __future__ import annotations

from llm_relay.process.error_classifier import ErrorKind
from llm_relay.process.executor import ExecutionResult


class ProviderError(RuntimeError):
    """Provider failure with retryability hint."""

    def __init__(self, message: str, *, transient: bool = False) -> None:
        super().__init__(message)
        self.transient = transient


class SpawnError(ProviderError):
    """The wrapped command could not be started."""

    def __init__(
        self,
        message: str,
        *,
        error_kind: ErrorKind = ErrorKind.GENERAL,
        attempts: int = 1,
        transient: bool = False,
    ) -> None:
        super().__init__(message, transient=transient)
        self.error_kind = error_kind
        self.attempts = attempts


class NetworkTransientError(SpawnError):
    """Spawn failed for a network reason after the retry budget ran out."""

    def __init__(self, message: str, *, attempts: int = 1) -> None:
        super().__init__(
            message,
            error_kind=ErrorKind.NETWORK,
            attempts=attempts,
            transient=True,
        )


class FilesystemTransientError(SpawnError):
    """Spawn failed for a filesystem reason after the retry budget ran out."""

    def __init__(self, message: str, *, attempts: int = 1) -> None:
        super().__init__(
            message,
            error_kind=ErrorKind.FILESYSTEM,
            attempts=attempts,
            transient=True,
        )


class ExternalToolError(ProviderError):
    """The wrapped command ran, exited non-zero and explained why on stderr."""

    def __init__(self, message: str, *, exit_code: int) -> None:
        super().__init__(message, transient=False)
        self.exit_code = exit_code


class HealthCheckError(ProviderError):
    """The initialization probe could not spawn the wrapped command."""


class ProviderNotInitializedError(ProviderError):
    """A completion was requested before ``initialize()``."""


class ProviderNotFoundError(KeyError):
    """No provider is registered under the requested name."""


def spawn_error_from_result(command: str, result: ExecutionResult) -> SpawnError:
    """Map a spawn-failure result to the matching typed error."""

    message = f"Failed to start {command!r}: {result.stderr.strip() or 'unknown error'}"
    if result.error_kind == ErrorKind.NETWORK:
        return NetworkTransientError(message, attempts=result.attempts)
    if result.error_kind == ErrorKind.FILESYSTEM:
        return FilesystemTransientError(message, attempts=result.attempts)
    return SpawnError(message, attempts=result.attempts)
