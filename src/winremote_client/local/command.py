"""Helpers for building PowerShell command lines."""

from __future__ import annotations

from typing import Any, Protocol

from ..context import RunContext


class CommandRunner(Protocol):
    def execute_json(self, command: str, ctx: RunContext | None = None) -> Any: ...


def ps_quote(value: str) -> str:
    """Quote ``value`` as a PowerShell single-quoted literal."""
    return "'" + value.replace("'", "''") + "'"


__all__ = ["CommandRunner", "ps_quote"]
