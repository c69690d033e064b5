"""Client for local group management on the remote host."""

from __future__ import annotations

from ..logger import BoundLogger, create_logger
from .command import CommandRunner
from .group import GroupOperations


class LocalClient(GroupOperations):
    def __init__(self, runner: CommandRunner, logger: BoundLogger | None = None) -> None:
        self._runner = runner
        self._logger = (logger or create_logger()).child("local")


__all__ = ["LocalClient"]
