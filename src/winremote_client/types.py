"""Shared typing helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one remote invocation.

    When ``stderr`` is set it is the authoritative failure text and ``stdout``
    is empty. ``exit_status`` is informational; no decision is based on it.
    """

    stdout: str = ""
    stderr: str = ""
    exit_status: int | None = None

    @property
    def failed(self) -> bool:
        return bool(self.stderr)


@dataclass
class ExecuteResult(Generic[T]):
    ok: bool
    data: T | None = None
    error: Exception | None = None


__all__ = ["CommandResult", "ExecuteResult"]
