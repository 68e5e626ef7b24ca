"""Child-process execution with classified spawn-error retry."""

from llm_relay.process.error_classifier import ErrorKind, classify_spawn_error, is_transient
from llm_relay.process.executor import (
    CommandExecutor,
    ExecutionResult,
    RunOptions,
    command_available,
    run_command,
)

__all__ = [
    "CommandExecutor",
    "ErrorKind",
    "ExecutionResult",
    "RunOptions",
    "classify_spawn_error",
    "command_available",
    "is_transient",
    "run_command",
]
