"""Shared test fixtures."""

from __future__ import annotations

import shlex
import sys
from collections.abc import Callable

import pytest

ECHO_STDIN_SCRIPT = "import sys; sys.stdout.write(sys.stdin.read())"
BOOM_SCRIPT = "import sys; sys.stderr.write('boom\\n'); sys.exit(1)"
SILENT_FAILURE_SCRIPT = "import sys; sys.stdout.write('  partial output \\n'); sys.exit(3)"


def _python_command(script: str) -> str:
    return f"{shlex.quote(sys.executable)} -c {shlex.quote(script)}"


@pytest.fixture()
def python_command() -> Callable[[str], str]:
    """Build a command string that runs a script with the current interpreter."""

    return _python_command


@pytest.fixture()
def echo_command() -> str:
    return _python_command(ECHO_STDIN_SCRIPT)


@pytest.fixture()
def boom_command() -> str:
    return _python_command(BOOM_SCRIPT)


@pytest.fixture()
def silent_failure_command() -> str:
    return _python_command(SILENT_FAILURE_SCRIPT)
