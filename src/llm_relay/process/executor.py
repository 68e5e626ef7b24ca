"""Subprocess runner that retries spawn failures classified as transient."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import shlex
import shutil
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from llm_relay.process.error_classifier import ErrorKind, classify_spawn_error, is_transient

logger = logging.getLogger(__name__)

DEFAULT_BACKOFF_SECONDS = 0.5
SPAWN_FAILURE_EXIT_CODE = -1


@dataclass(slots=True, frozen=True)
class RunOptions:
    """Per-call executor options."""

    retries: int = 0
    env: Mapping[str, str] = field(default_factory=dict)
    stdin_text: str | None = None
    cwd: Path | str | None = None
    backoff_seconds: float = DEFAULT_BACKOFF_SECONDS


@dataclass(slots=True, frozen=True)
class ExecutionResult:
    """Outcome of one executor call, possibly spanning several spawn attempts.

    ``error_kind`` is only set when the process could not be spawned; a
    child that ran and exited non-zero has ``error_kind=None``.
    """

    success: bool
    exit_code: int
    stdout: str
    stderr: str
    error_kind: ErrorKind | None = None
    attempts: int = 1

    @property
    def spawn_failed(self) -> bool:
        """True when no child process was created on the last attempt."""

        return self.error_kind is not None


class CommandExecutor:
    """Run external commands and capture their output in full.

    A spawn-level ``OSError`` is returned as a failed result, never raised.
    Network and filesystem spawn failures are retried after a fixed
    back-off while ``options.retries`` allows. Non-zero exits are final.
    """

    async def run(
        self,
        command: str,
        args: Sequence[str] = (),
        options: RunOptions | None = None,
    ) -> ExecutionResult:
        """Run ``command`` with ``args`` and return the captured result."""

        if not command or not command.strip():
            raise ValueError("Command must be a non-empty string.")
        opts = options or RunOptions()
        if opts.retries < 0:
            raise ValueError(f"retries must be >= 0, got {opts.retries}")
        if opts.backoff_seconds < 0:
            raise ValueError(f"backoff_seconds must be >= 0, got {opts.backoff_seconds}")

        argv = [command, *args]
        env = os.environ.copy()
        env.update(opts.env)
        stdin_bytes = _encode_stdin(opts.stdin_text)

        attempt = 0
        while True:
            attempt += 1
            result = await _run_once(
                argv=argv,
                env=env,
                options=opts,
                stdin_bytes=stdin_bytes,
                attempt=attempt,
            )
            if not result.spawn_failed:
                return result
            if attempt > opts.retries or not is_transient(result.error_kind):
                logger.error(
                    "Giving up on %s after %d attempt(s): %s (%s)",
                    command,
                    attempt,
                    result.stderr,
                    result.error_kind.value if result.error_kind else "-",
                )
                return result

            logger.warning(
                "Spawn of %s failed with %s error (attempt %d/%d), retrying in %.2fs",
                command,
                result.error_kind.value if result.error_kind else "-",
                attempt,
                opts.retries + 1,
                opts.backoff_seconds,
            )
            await asyncio.sleep(opts.backoff_seconds)


async def run_command(  # noqa: PLR0913
    command: str,
    args: Sequence[str] = (),
    *,
    retries: int = 0,
    env: Mapping[str, str] | None = None,
    stdin_text: str | None = None,
    cwd: Path | str | None = None,
    backoff_seconds: float = DEFAULT_BACKOFF_SECONDS,
) -> ExecutionResult:
    """Run one command through a default ``CommandExecutor``."""

    return await CommandExecutor().run(
        command,
        args,
        RunOptions(
            retries=retries,
            env=dict(env or {}),
            stdin_text=stdin_text,
            cwd=cwd,
            backoff_seconds=backoff_seconds,
        ),
    )


def split_command(command: str) -> list[str]:
    """Split a configured command string into argv, rejecting empty commands."""

    try:
        argv = shlex.split(command)
    except ValueError as error:
        raise ValueError(f"Invalid command {command!r}: {error}") from error
    if not argv:
        raise ValueError("Command must be a non-empty string.")
    return argv


def command_available(command: str) -> str | None:
    """Resolve the executable of ``command`` on PATH, or None if it is missing."""

    try:
        argv = split_command(command)
    except ValueError:
        return None
    return shutil.which(argv[0])


async def _run_once(
    *,
    argv: list[str],
    env: dict[str, str],
    options: RunOptions,
    stdin_bytes: bytes | None,
    attempt: int,
) -> ExecutionResult:
    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=env,
            cwd=str(options.cwd) if options.cwd is not None else None,
        )
    except OSError as error:
        error_kind = classify_spawn_error(error)
        logger.debug("Spawn of %s failed: %s (kind=%s)", argv[0], error, error_kind.value)
        return ExecutionResult(
            success=False,
            exit_code=SPAWN_FAILURE_EXIT_CODE,
            stdout="",
            stderr=str(error),
            error_kind=error_kind,
            attempts=attempt,
        )

    try:
        stdout, stderr = await process.communicate(stdin_bytes)
    except BaseException:
        with contextlib.suppress(ProcessLookupError):
            process.kill()
        await process.wait()
        raise
    exit_code = process.returncode if process.returncode is not None else SPAWN_FAILURE_EXIT_CODE
    logger.debug("Command %s exited with code %d", argv[0], exit_code)
    return ExecutionResult(
        success=exit_code == 0,
        exit_code=exit_code,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
        attempts=attempt,
    )


def _encode_stdin(text: str | None) -> bytes | None:
    # Lone surrogates from surrogateescape-decoded input map back to raw bytes.
    if text is None:
        return None
    try:
        return text.encode("utf-8", errors="surrogateescape")
    except UnicodeEncodeError:
        return text.encode("utf-8", errors="replace")
