"""SSH transport built on top of paramiko."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import IO, Callable

import paramiko
from paramiko.common import cMSG_CHANNEL_REQUEST

from ..auth import SSHAuth
from ..config import SSHConfig, default_known_hosts_path
from ..context import RunContext
from ..errors import ConnectionError, ProtocolError
from ..logger import BoundLogger, create_logger
from .base import Transport, TransportOutput, supervise

ClientFactory = Callable[[], paramiko.SSHClient]


class SSHTransport:
    kind: Transport.Kind = "ssh"

    def __init__(
        self,
        config: SSHConfig,
        *,
        logger: BoundLogger | None = None,
        client_factory: ClientFactory = paramiko.SSHClient,
    ) -> None:
        self._config = config
        self._logger = (logger or create_logger()).child("ssh")
        # Credentials are resolved first so key problems surface before dialing.
        connect_kwargs = SSHAuth(config, self._logger).connect_kwargs()
        self._client: paramiko.SSHClient | None = self._dial(client_factory, connect_kwargs)

    def run(self, command: str, ctx: RunContext) -> TransportOutput:
        client = self._require_client()
        session = _Session()
        try:
            output = supervise(
                ctx,
                lambda: self._execute(client, command, session, ctx),
                interrupt=session.interrupt,
                logger=self._logger,
                name="winremote-ssh",
            )
        finally:
            session.release()

        if output.exit_status and not output.stderr:
            raise ProtocolError(
                f"ssh session: command exited with status {output.exit_status}",
                context=output,
            )
        return output

    def close(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            self._logger.debug("Closing SSH connection to %s", self._config.host)
            client.close()

    def _dial(self, client_factory: ClientFactory, connect_kwargs: dict) -> paramiko.SSHClient:
        config = self._config
        client = client_factory()
        try:
            self._apply_host_key_policy(client)
            self._logger.info("Connecting to %s:%s (ssh)", config.host, config.port)
            try:
                client.connect(**connect_kwargs)
            except (paramiko.SSHException, OSError) as exc:
                raise ConnectionError(f"ssh client: {exc}") from exc
        except ConnectionError:
            client.close()
            raise
        return client

    def _apply_host_key_policy(self, client: paramiko.SSHClient) -> None:
        if self._config.insecure_ignore_host_key:
            self._logger.warn("Host key verification disabled for %s", self._config.host)
            client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
            return

        known_hosts = Path(self._config.known_hosts_path or default_known_hosts_path()).expanduser()
        self._logger.trace("Loading known hosts from %s", known_hosts)
        try:
            client.load_host_keys(str(known_hosts))
        except OSError as exc:
            raise ConnectionError(f"ssh client: known hosts file {known_hosts} failed to load: {exc}") from exc
        client.set_missing_host_key_policy(paramiko.RejectPolicy())

    def _execute(
        self, client: paramiko.SSHClient, command: str, session: _Session, ctx: RunContext
    ) -> TransportOutput:
        timeout = self._config.connect_timeout
        remaining = ctx.remaining()
        if remaining is not None:
            timeout = min(timeout, remaining)
        try:
            transport = client.get_transport()
            if transport is None or not transport.is_active():
                raise paramiko.SSHException("transport is not active")
            channel = transport.open_session(timeout=timeout)
        except (paramiko.SSHException, OSError) as exc:
            raise ConnectionError(f"ssh session: cannot open session: {exc}") from exc
        session.attach(channel)

        # Attach both streams before the command starts.
        stdout = channel.makefile("rb")
        stderr = channel.makefile_stderr("rb")
        try:
            channel.exec_command(command)
        except (paramiko.SSHException, OSError) as exc:
            raise ConnectionError(f"ssh session: cannot start command: {exc}") from exc
        self._logger.debug("SSH exec bytes=%d", len(command))
        return self._collect(channel, stdout, stderr)

    def _collect(self, channel: paramiko.Channel, stdout: IO[bytes], stderr: IO[bytes]) -> TransportOutput:
        # Both drains must finish before the exit status is authoritative.
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="winremote-ssh-drain") as pool:
            out_future = pool.submit(stdout.read)
            err_future = pool.submit(stderr.read)
            out_bytes = out_future.result()
            err_bytes = err_future.result()
        exit_status = channel.recv_exit_status()
        self._logger.debug(
            "SSH <- exit=%s stdout=%d stderr=%d", exit_status, len(out_bytes), len(err_bytes)
        )
        return TransportOutput(
            stdout=out_bytes.decode("utf-8", errors="replace"),
            stderr=err_bytes.decode("utf-8", errors="replace"),
            exit_status=exit_status,
        )

    def _require_client(self) -> paramiko.SSHClient:
        if self._client is None:
            raise ConnectionError("ssh client: connection is closed")
        return self._client


class _Session:
    """Channel of the in-flight run, shared by the worker, the interrupt and the caller.

    A channel attached after ``release`` belongs to an abandoned run and is
    closed at once.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._released = False
        self.channel: paramiko.Channel | None = None

    def attach(self, channel: paramiko.Channel) -> None:
        with self._lock:
            if not self._released:
                self.channel = channel
                return
        channel.close()
        raise ConnectionError("ssh session: run was abandoned before the session opened")

    def interrupt(self) -> None:
        channel = self.channel
        if channel is not None:
            send_signal(channel, "INT")

    def release(self) -> None:
        with self._lock:
            self._released = True
            channel = self.channel
        if channel is not None:
            channel.close()


def send_signal(channel: paramiko.Channel, signal: str) -> None:
    """Send an RFC 4254 ``signal`` channel request; paramiko has no public API for it."""
    if channel.closed or channel.transport is None:
        return
    message = paramiko.Message()
    message.add_byte(cMSG_CHANNEL_REQUEST)
    message.add_int(channel.remote_chanid)
    message.add_string("signal")
    message.add_boolean(False)
    message.add_string(signal)
    channel.transport._send_user_message(message)


__all__ = ["SSHTransport", "send_signal"]
