"""Deterministic spawn-error classification for executor retry policy."""

from __future__ import annotations

import errno
import socket
from enum import Enum


class ErrorKind(str, Enum):
    """Normalized spawn failure kinds used by retry policy."""

    NETWORK = "network"
    FILESYSTEM = "filesystem"
    GENERAL = "general"


_NETWORK_CODES: frozenset[str] = frozenset(
    {
        "ENOTFOUND",
        "EAI_AGAIN",
        "EAI_NONAME",
        "ECONNREFUSED",
        "ECONNRESET",
        "ETIMEDOUT",
    },
)
_FILESYSTEM_CODES: frozenset[str] = frozenset({"ENOENT", "EACCES", "EPERM", "EISDIR", "EMFILE"})

# getaddrinfo codes share no namespace with errno, so they are only
# looked up for socket.gaierror instances.
_GAI_CODE_NAMES: dict[int, str] = {
    getattr(socket, name): name for name in ("EAI_AGAIN", "EAI_NONAME") if hasattr(socket, name)
}

_NETWORK_TYPES: tuple[type[BaseException], ...] = (
    socket.gaierror,
    ConnectionError,
    TimeoutError,
)
_FILESYSTEM_TYPES: tuple[type[BaseException], ...] = (
    FileNotFoundError,
    PermissionError,
    IsADirectoryError,
)


def classify_spawn_error(error: BaseException | int | str | None) -> ErrorKind:
    """Classify a process-spawn failure.

    Accepts the raised exception, a raw errno number, or an errno name such
    as ``"ENOENT"``. Never raises; anything unrecognized is ``GENERAL``.
    """

    code_name = _code_name(error)
    if code_name in _NETWORK_CODES:
        return ErrorKind.NETWORK
    if code_name in _FILESYSTEM_CODES:
        return ErrorKind.FILESYSTEM

    if isinstance(error, BaseException) and code_name is None:
        if isinstance(error, _NETWORK_TYPES):
            return ErrorKind.NETWORK
        if isinstance(error, _FILESYSTEM_TYPES):
            return ErrorKind.FILESYSTEM
    return ErrorKind.GENERAL


def is_transient(kind: ErrorKind | None) -> bool:
    """Return whether a spawn failure of this kind is worth retrying."""

    return kind in (ErrorKind.NETWORK, ErrorKind.FILESYSTEM)


def _code_name(error: BaseException | int | str | None) -> str | None:
    if error is None or isinstance(error, bool):
        return None
    if isinstance(error, str):
        return error.strip().upper() or None
    if isinstance(error, int):
        return errno.errorcode.get(error)
    if isinstance(error, socket.gaierror):
        return _GAI_CODE_NAMES.get(error.errno) if isinstance(error.errno, int) else None
    if isinstance(error, OSError) and isinstance(error.errno, int):
        return errno.errorcode.get(error.errno)
    return None
