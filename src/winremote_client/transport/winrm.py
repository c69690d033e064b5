"""WinRM transport built on top of pywinrm."""

from __future__ import annotations

import base64
from typing import Any, Callable

import requests
import winrm
from winrm.exceptions import WinRMError, WinRMOperationTimeoutError, WinRMTransportError

from ..config import WinRMConfig, codepage_encoding, winrm_endpoint
from ..context import RunContext
from ..errors import ConfigurationError, ConnectionError
from ..logger import BoundLogger, create_logger
from .base import Transport, TransportOutput, supervise
from .kerberos import kerberos_session_params, krb5_config, krb5_config_path

SessionFactory = Callable[..., Any]

POWERSHELL = "powershell.exe"

# Everything pywinrm and requests raise while talking to the endpoint.
TRANSPORT_ERRORS = (
    WinRMError,
    WinRMTransportError,
    WinRMOperationTimeoutError,
    requests.exceptions.RequestException,
    OSError,
)


def encode_powershell(command: str) -> list[str]:
    """Arguments for ``powershell.exe`` that run ``command`` without shell quoting."""
    encoded = base64.b64encode(command.encode("utf-16-le")).decode("ascii")
    return ["-EncodedCommand", encoded]


class _Exchange:
    """Shell and command ids of the in-flight run, shared with the interrupt path."""

    def __init__(self) -> None:
        self.shell_id: str | None = None
        self.command_id: str | None = None


class WinRMTransport:
    kind: Transport.Kind = "winrm"

    def __init__(
        self,
        config: WinRMConfig,
        *,
        logger: BoundLogger | None = None,
        session_factory: SessionFactory = winrm.Session,
    ) -> None:
        self._config = config
        self._logger = (logger or create_logger()).child("winrm")
        self._endpoint = winrm_endpoint(config)
        self._encoding = codepage_encoding(config.codepage)
        self._krb5_config = krb5_config_path(config)
        if self._krb5_config is not None:
            self._logger.debug("Using krb5 config %s", self._krb5_config)

        options: dict[str, Any] = {
            "server_cert_validation": "ignore" if config.insecure_skip_verify else "validate",
            "read_timeout_sec": config.read_timeout,
            "operation_timeout_sec": config.operation_timeout,
        }
        if config.kerberos is not None:
            username, auth_options = kerberos_session_params(config, self._logger)
        else:
            username, auth_options = config.username, {"transport": "ntlm"}
        options.update(auth_options)

        self._logger.info(
            "Configuring WinRM endpoint %s (transport=%s)", self._endpoint, options["transport"]
        )
        try:
            self._session = session_factory(
                self._endpoint, auth=(username, config.password or ""), **options
            )
        except (WinRMError, ValueError) as exc:
            raise ConfigurationError(f"winrm client: {exc}") from exc
        self._closed = False

    @property
    def endpoint(self) -> str:
        return self._endpoint

    def run(self, command: str, ctx: RunContext) -> TransportOutput:
        if self._closed:
            raise ConnectionError("winrm client: connection is closed")
        exchange = _Exchange()
        return supervise(
            ctx,
            lambda: self._exchange(command, exchange),
            interrupt=lambda: self._interrupt(exchange),
            logger=self._logger,
            name="winremote-winrm",
        )

    def close(self) -> None:
        # pywinrm keeps no connection between shells; nothing to release.
        self._closed = True

    def _exchange(self, command: str, exchange: _Exchange) -> TransportOutput:
        with krb5_config(self._krb5_config):
            stdout, stderr, status = self._round_trip(command, exchange)

        self._logger.debug("WinRM <- exit=%s stdout=%d stderr=%d", status, len(stdout), len(stderr))
        return TransportOutput(
            stdout=_decode(stdout, self._encoding),
            stderr=_decode(stderr, self._encoding),
            exit_status=status,
        )

    def _round_trip(self, command: str, exchange: _Exchange) -> tuple[bytes, bytes, int]:
        protocol = self._session.protocol
        try:
            exchange.shell_id = protocol.open_shell(codepage=self._config.codepage)
        except TRANSPORT_ERRORS as exc:
            raise ConnectionError(f"winrm client: cannot open shell on {self._endpoint}: {exc}") from exc

        try:
            try:
                exchange.command_id = protocol.run_command(
                    exchange.shell_id, POWERSHELL, encode_powershell(command)
                )
                self._logger.debug("WinRM exec bytes=%d", len(command))
                return protocol.get_command_output(exchange.shell_id, exchange.command_id)
            except TRANSPORT_ERRORS as exc:
                raise ConnectionError(f"winrm client: command exchange failed: {exc}") from exc
        finally:
            self._release(exchange)

    def _interrupt(self, exchange: _Exchange) -> None:
        # cleanup_command sends the WS-Man terminate signal.
        if exchange.shell_id and exchange.command_id:
            self._session.protocol.cleanup_command(exchange.shell_id, exchange.command_id)

    def _release(self, exchange: _Exchange) -> None:
        protocol = self._session.protocol
        shell_id, command_id = exchange.shell_id, exchange.command_id
        exchange.shell_id = exchange.command_id = None
        try:
            if shell_id and command_id:
                protocol.cleanup_command(shell_id, command_id)
            if shell_id:
                protocol.close_shell(shell_id)
        except TRANSPORT_ERRORS as exc:
            self._logger.debug("WinRM shell cleanup failed: %s", exc)


def _decode(data: bytes | str, encoding: str) -> str:
    if isinstance(data, bytes):
        return data.decode(encoding, errors="replace")
    return data


__all__ = ["WinRMTransport", "encode_powershell"]
