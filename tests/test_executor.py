from __future__ import annotations

import asyncio
import errno
import sys

import allure
import pytest

from llm_relay.process.error_classifier import ErrorKind
from llm_relay.process.executor import (
    SPAWN_FAILURE_EXIT_CODE,
    CommandExecutor,
    RunOptions,
    command_available,
    run_command,
)

pytestmark = [
    allure.epic("Process Execution"),
    allure.feature("Resilient Command Executor"),
]


def _run(args: list[str], options: RunOptions | None = None):
    return asyncio.run(CommandExecutor().run(sys.executable, args, options))


def _install_failing_spawn(monkeypatch, error_number: int) -> list[tuple[object, ...]]:
    calls: list[tuple[object, ...]] = []

    async def _failing_spawn(*args, **kwargs):
        calls.append(args)
        raise OSError(error_number, "simulated spawn failure")

    monkeypatch.setattr(asyncio, "create_subprocess_exec", _failing_spawn)
    return calls


def test_run_captures_stdout_and_stderr() -> None:
    result = _run(["-c", "import sys; print('out'); print('err', file=sys.stderr)"])

    assert result.success is True
    assert result.exit_code == 0
    assert result.stdout.strip() == "out"
    assert result.stderr.strip() == "err"
    assert result.error_kind is None
    assert result.attempts == 1


def test_non_zero_exit_is_returned_without_retry(monkeypatch) -> None:
    real_spawn = asyncio.create_subprocess_exec
    calls: list[tuple[object, ...]] = []

    async def _counting_spawn(*args, **kwargs):
        calls.append(args)
        return await real_spawn(*args, **kwargs)

    monkeypatch.setattr(asyncio, "create_subprocess_exec", _counting_spawn)

    result = _run(
        ["-c", "import sys; sys.stderr.write('nope'); sys.exit(7)"],
        RunOptions(retries=3, backoff_seconds=0),
    )

    assert len(calls) == 1
    assert result.success is False
    assert result.exit_code == 7
    assert result.stderr == "nope"
    assert result.error_kind is None
    assert result.spawn_failed is False


def test_filesystem_spawn_errors_use_whole_retry_budget(monkeypatch) -> None:
    calls = _install_failing_spawn(monkeypatch, errno.ENOENT)

    result = asyncio.run(
        CommandExecutor().run("codex", ["exec"], RunOptions(retries=2, backoff_seconds=0)),
    )

    assert len(calls) == 3
    assert result.success is False
    assert result.spawn_failed is True
    assert result.error_kind == ErrorKind.FILESYSTEM
    assert result.exit_code == SPAWN_FAILURE_EXIT_CODE
    assert result.attempts == 3
    assert "simulated spawn failure" in result.stderr


def test_network_spawn_errors_never_exceed_retries_plus_one(monkeypatch) -> None:
    calls = _install_failing_spawn(monkeypatch, errno.ECONNREFUSED)

    result = asyncio.run(
        CommandExecutor().run("codex", (), RunOptions(retries=4, backoff_seconds=0)),
    )

    assert len(calls) == 5
    assert result.error_kind == ErrorKind.NETWORK
    assert result.attempts == 5


def test_general_spawn_errors_are_not_retried(monkeypatch) -> None:
    calls = _install_failing_spawn(monkeypatch, errno.ENOMEM)

    result = asyncio.run(
        CommandExecutor().run("codex", (), RunOptions(retries=5, backoff_seconds=0)),
    )

    assert len(calls) == 1
    assert result.error_kind == ErrorKind.GENERAL
    assert result.attempts == 1


def test_retry_waits_fixed_backoff_between_attempts(monkeypatch) -> None:
    _install_failing_spawn(monkeypatch, errno.EACCES)
    delays: list[float] = []

    async def _fake_sleep(delay: float) -> None:
        delays.append(delay)

    monkeypatch.setattr(asyncio, "sleep", _fake_sleep)

    asyncio.run(CommandExecutor().run("codex", (), RunOptions(retries=3)))

    assert delays == [0.5, 0.5, 0.5]


def test_missing_binary_is_a_failed_result_not_an_exception(tmp_path) -> None:
    missing = tmp_path / "no-such-tool"

    result = asyncio.run(CommandExecutor().run(str(missing)))

    assert result.success is False
    assert result.error_kind == ErrorKind.FILESYSTEM
    assert result.stdout == ""


def test_stdin_text_is_fed_to_child() -> None:
    result = _run(
        ["-c", "import sys; sys.stdout.write(sys.stdin.read().upper())"],
        RunOptions(stdin_text="hello stdin"),
    )

    assert result.stdout == "HELLO STDIN"


def test_env_overrides_are_merged_over_inherited_environment(monkeypatch) -> None:
    monkeypatch.setenv("LLM_RELAY_INHERITED", "parent")

    result = _run(
        [
            "-c",
            "import os; print(os.environ['LLM_RELAY_INHERITED'], os.environ['LLM_RELAY_EXTRA'])",
        ],
        RunOptions(env={"LLM_RELAY_EXTRA": "child"}),
    )

    assert result.stdout.strip() == "parent child"


def test_large_output_is_not_truncated() -> None:
    result = _run(["-c", "import sys; sys.stdout.write('x' * 300000)"])

    assert len(result.stdout) == 300_000


def test_cwd_option_sets_child_working_directory(tmp_path) -> None:
    result = _run(["-c", "import os; print(os.getcwd())"], RunOptions(cwd=tmp_path))

    assert result.stdout.strip() == str(tmp_path.resolve())


@pytest.mark.parametrize("command", ["", "   "])
def test_empty_command_is_rejected(command: str) -> None:
    with pytest.raises(ValueError, match="non-empty"):
        asyncio.run(CommandExecutor().run(command))


def test_negative_retries_are_rejected() -> None:
    with pytest.raises(ValueError, match="retries"):
        asyncio.run(CommandExecutor().run("codex", (), RunOptions(retries=-1)))


def test_run_command_convenience_wrapper() -> None:
    result = asyncio.run(
        run_command(sys.executable, ["-c", "print('wrapped')"], retries=1, backoff_seconds=0),
    )

    assert result.success is True
    assert result.stdout.strip() == "wrapped"


def test_command_available_resolves_first_token(tmp_path) -> None:
    assert command_available(f"{sys.executable} -c pass") is not None
    assert command_available(str(tmp_path / "missing-tool") + " --flag") is None
    assert command_available("") is None
    assert command_available("'unbalanced") is None


def test_surrogate_escaped_stdin_is_written_as_raw_bytes() -> None:
    result = _run(
        ["-c", "import sys; sys.stdout.write(sys.stdin.buffer.read().hex())"],
        RunOptions(stdin_text="bad \udcff byte"),
    )

    assert result.success is True
    assert result.stdout == (b"bad " + b"\xff" + b" byte").hex()


def test_unpaired_surrogate_stdin_is_replaced() -> None:
    result = _run(
        ["-c", "import sys; sys.stdout.write(sys.stdin.buffer.read().hex())"],
        RunOptions(stdin_text="x\ud800y"),
    )

    assert result.success is True
    assert result.stdout == b"x?y".hex()


def test_child_is_killed_and_reaped_when_communicate_fails(monkeypatch) -> None:
    events: list[str] = []

    class _StuckProcess:
        returncode = None

        async def communicate(self, stdin_bytes=None):
            raise RuntimeError("pipe broke")

        def kill(self) -> None:
            events.append("kill")

        async def wait(self) -> int:
            events.append("wait")
            return -9

    async def _spawn(*args, **kwargs):
        return _StuckProcess()

    monkeypatch.setattr(asyncio, "create_subprocess_exec", _spawn)

    with pytest.raises(RuntimeError, match="pipe broke"):
        asyncio.run(CommandExecutor().run("codex", (), RunOptions(stdin_text="hi")))

    assert events == ["kill", "wait"]
