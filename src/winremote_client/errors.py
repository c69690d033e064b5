"""Classified exceptions raised by the winremote client."""

from __future__ import annotations

from enum import Enum
from typing import Any, TypeVar

E = TypeVar("E", bound="WinRemoteError")


class ErrorKind(str, Enum):
    CONFIGURATION = "configuration"
    CONNECTION = "connection"
    PROTOCOL = "protocol"


class WinRemoteError(Exception):
    """Base error for all client failures."""

    kind: ErrorKind | None = None

    def __init__(self, message: str, *, context: Any | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def with_operation(self: E, operation: str) -> E:
        """Return a copy prefixed with the operation name; the kind is kept."""
        wrapped = type(self)(f"{operation}: {self.message}", context=self.context)
        wrapped.__cause__ = self
        return wrapped


class ConfigurationError(WinRemoteError):
    """Raised for bad or missing input, always before any network I/O."""

    kind = ErrorKind.CONFIGURATION


class ConnectionError(WinRemoteError):
    """Raised when dialing, authenticating or opening a session fails."""

    kind = ErrorKind.CONNECTION


class ProtocolError(WinRemoteError):
    """Raised when a remote invocation returned something we cannot interpret."""

    kind = ErrorKind.PROTOCOL


class CancelledError(WinRemoteError):
    """Raised when the run context was cancelled before the command finished."""


class DeadlineExceededError(WinRemoteError):
    """Raised when the run context deadline passed before the command finished."""


__all__ = [
    "CancelledError",
    "ConfigurationError",
    "ConnectionError",
    "DeadlineExceededError",
    "ErrorKind",
    "ProtocolError",
    "WinRemoteError",
]
