"""High-level client tying the connection, error decoding and resource clients together."""

from __future__ import annotations

from typing import Any

from .config import ConnectionConfig
from .connection import Connection
from .context import RunContext
from .errors import ProtocolError
from .local import LocalClient
from .logger import LogLevel, create_logger
from .parser import error_message, is_clixml, parse_json_output
from .types import CommandResult, ExecuteResult


class WindowsClient:
    """Primary entry point for running PowerShell on a remote Windows host.

    ``run`` hands back the raw :class:`CommandResult`; ``execute`` turns a
    non-empty stderr into a :class:`ProtocolError` carrying the decoded
    PowerShell error text. Close the client when done, ideally with ``with``.
    """

    def __init__(
        self,
        config: ConnectionConfig,
        *,
        connection: Connection | None = None,
        logger: Any | None = None,
        log_level: LogLevel = "info",
    ) -> None:
        self._logger = create_logger(logger=logger, level=log_level)
        self._logger.info("Initializing WindowsClient for %s", config.host)
        self.connection = connection or Connection(config, logger=self._logger)
        self.local = LocalClient(self, self._logger)

    def run(self, command: str, ctx: RunContext | None = None) -> CommandResult:
        return self.connection.run(command, ctx)

    def execute(self, command: str, ctx: RunContext | None = None) -> str:
        result = self.run(command, ctx)
        if result.stderr:
            if is_clixml(result.stderr):
                self._logger.trace("Decoding CLIXML stderr (%d bytes)", len(result.stderr))
            raise ProtocolError(error_message(result.stderr), context=result)
        return result.stdout

    def execute_safe(self, command: str, ctx: RunContext | None = None) -> ExecuteResult[str]:
        try:
            return ExecuteResult(ok=True, data=self.execute(command, ctx))
        except Exception as exc:  # pragma: no cover - thin wrapper
            return ExecuteResult(ok=False, error=exc)

    def execute_json(self, command: str, ctx: RunContext | None = None) -> Any:
        return parse_json_output(self.execute(command, ctx))

    def close(self) -> None:
        self.connection.close()

    def __enter__(self) -> "WindowsClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


__all__ = ["WindowsClient"]
