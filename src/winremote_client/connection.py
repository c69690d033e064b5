"""The single command-running facade over the SSH and WinRM transports."""

from __future__ import annotations

from typing import Any

from .config import ConnectionConfig, SSHConfig, WinRMConfig
from .context import RunContext
from .errors import ConfigurationError, ConnectionError, ProtocolError
from .logger import BoundLogger, LogLevel, create_logger
from .transport import SSHTransport, Transport, TransportOutput, WinRMTransport
from .types import CommandResult


def create_transport(config: ConnectionConfig, logger: BoundLogger) -> Transport:
    if isinstance(config, SSHConfig):
        return SSHTransport(config, logger=logger)
    if isinstance(config, WinRMConfig):
        return WinRMTransport(config, logger=logger)
    raise ConfigurationError(f"connection: unsupported configuration type {type(config).__name__}")


def interpret_output(output: TransportOutput) -> CommandResult:
    """Apply the stream precedence shared by every transport.

    Non-empty stderr wins and stdout is dropped; otherwise stdout is returned;
    a run that produced neither is a protocol error.
    """
    if output.stderr:
        return CommandResult(stderr=output.stderr, exit_status=output.exit_status)
    if output.stdout:
        return CommandResult(stdout=output.stdout, exit_status=output.exit_status)
    raise ProtocolError(
        "connection: empty stdout and stderr",
        context={"exit_status": output.exit_status},
    )


class Connection:
    """Owns one transport for its whole lifetime.

    The transport is chosen from the type of ``config`` and opened here. A
    Connection must not be shared by concurrent callers; use one per thread
    or serialize ``run`` calls externally.
    """

    def __init__(
        self,
        config: ConnectionConfig,
        *,
        transport: Transport | None = None,
        logger: Any | None = None,
        log_level: LogLevel = "info",
    ) -> None:
        self.config = config
        base_logger = create_logger(logger=logger, level=log_level)
        self._logger = base_logger.child("connection")
        self._transport: Transport | None = transport or create_transport(config, base_logger)

    @property
    def kind(self) -> str:
        return self._require_transport().kind

    @property
    def closed(self) -> bool:
        return self._transport is None

    def run(self, command: str, ctx: RunContext | None = None) -> CommandResult:
        ctx = ctx or RunContext.background()
        transport = self._require_transport()
        error = ctx.error()
        if error is not None:
            raise error

        self._logger.trace("Running command: %s", command[:200])
        output = transport.run(command, ctx)
        return interpret_output(output)

    def close(self) -> None:
        transport, self._transport = self._transport, None
        if transport is not None:
            transport.close()

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise ConnectionError("connection: connection is closed")
        return self._transport


__all__ = ["Connection", "create_transport", "interpret_output"]
