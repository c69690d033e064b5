"""Cancellation and deadline handling for remote command runs."""

from __future__ import annotations

import threading
import time

from .errors import CancelledError, DeadlineExceededError, WinRemoteError


class RunContext:
    """Carries a cancel flag and an optional deadline across one remote call.

    ``RunContext()`` never expires on its own; ``RunContext(timeout=5)`` is done
    five seconds after creation or as soon as :meth:`cancel` is called,
    whichever comes first. A context is safe to cancel from another thread.
    """

    def __init__(self, *, timeout: float | None = None) -> None:
        if timeout is not None and timeout < 0:
            raise ValueError("timeout must not be negative")
        self._cancelled = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    @classmethod
    def background(cls) -> "RunContext":
        return cls()

    @property
    def deadline(self) -> float | None:
        return self._deadline

    def cancel(self) -> None:
        self._cancelled.set()

    def remaining(self) -> float | None:
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def done(self) -> bool:
        return self._cancelled.is_set() or self._expired()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the context is done or ``timeout`` elapses; return done()."""
        remaining = self.remaining()
        if remaining is not None and (timeout is None or remaining < timeout):
            timeout = remaining
        self._cancelled.wait(timeout)
        return self.done()

    def error(self) -> WinRemoteError | None:
        if self._cancelled.is_set():
            return CancelledError("context cancelled")
        if self._expired():
            return DeadlineExceededError("context deadline exceeded")
        return None

    def _expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline


__all__ = ["RunContext"]
