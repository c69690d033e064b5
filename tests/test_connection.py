import pytest

from winremote_client import (
    CancelledError,
    CommandResult,
    ConfigurationError,
    Connection,
    ConnectionError,
    ErrorKind,
    ProtocolError,
    RunContext,
    SSHConfig,
    WinRMConfig,
)
from winremote_client import connection as connection_module
from winremote_client.transport.base import Transport, TransportOutput

SSH_CONFIG = SSHConfig(host="127.0.0.1", username="vagrant", password="vagrant")


class DummyTransport:
    def __init__(self, output: TransportOutput, *, kind: Transport.Kind = "ssh") -> None:
        self.output = output
        self.kind: Transport.Kind = kind
        self.commands: list[str] = []
        self.close_calls = 0

    def run(self, command: str, ctx: RunContext) -> TransportOutput:
        self.commands.append(command)
        return self.output

    def close(self) -> None:
        self.close_calls += 1


@pytest.mark.parametrize("stdout", ["", "partial output\n", '{"Name":"Users"}'])
def test_stderr_takes_precedence_over_stdout(stdout: str) -> None:
    transport = DummyTransport(TransportOutput(stdout=stdout, stderr="boom", exit_status=1))
    conn = Connection(SSH_CONFIG, transport=transport)
    assert conn.run("Get-Item C:\\missing") == CommandResult(stdout="", stderr="boom", exit_status=1)


def test_stdout_is_returned_when_stderr_is_empty() -> None:
    transport = DummyTransport(TransportOutput(stdout="ok\n", stderr=""))
    conn = Connection(SSH_CONFIG, transport=transport)
    result = conn.run("echo ok")
    assert result.stdout == "ok\n"
    assert result.failed is False
    assert transport.commands == ["echo ok"]


def test_empty_streams_are_a_protocol_error() -> None:
    transport = DummyTransport(TransportOutput(stdout="", stderr="", exit_status=0))
    conn = Connection(SSH_CONFIG, transport=transport)
    with pytest.raises(ProtocolError) as excinfo:
        conn.run("Remove-Item C:\\tmp\\x")
    assert excinfo.value.kind is ErrorKind.PROTOCOL
    assert "empty stdout and stderr" in str(excinfo.value)


def test_done_context_short_circuits_before_transport() -> None:
    transport = DummyTransport(TransportOutput(stdout="ok", stderr=""))
    conn = Connection(SSH_CONFIG, transport=transport)
    ctx = RunContext()
    ctx.cancel()
    with pytest.raises(CancelledError):
        conn.run("echo ok", ctx)
    assert transport.commands == []


def test_close_is_idempotent() -> None:
    transport = DummyTransport(TransportOutput(stdout="ok", stderr=""))
    conn = Connection(SSH_CONFIG, transport=transport)
    conn.close()
    conn.close()
    assert transport.close_calls == 1
    assert conn.closed is True
    with pytest.raises(ConnectionError):
        conn.run("echo ok")


def test_context_manager_closes_transport() -> None:
    transport = DummyTransport(TransportOutput(stdout="ok", stderr=""), kind="winrm")
    with Connection(SSH_CONFIG, transport=transport) as conn:
        assert conn.kind == "winrm"
    assert transport.close_calls == 1


def test_transport_is_selected_from_config_type(monkeypatch: pytest.MonkeyPatch) -> None:
    created: list[tuple[str, object]] = []

    class FakeSSH(DummyTransport):
        def __init__(self, config, *, logger=None) -> None:
            super().__init__(TransportOutput(stdout="ok", stderr=""), kind="ssh")
            created.append(("ssh", config))

    class FakeWinRM(DummyTransport):
        def __init__(self, config, *, logger=None) -> None:
            super().__init__(TransportOutput(stdout="ok", stderr=""), kind="winrm")
            created.append(("winrm", config))

    monkeypatch.setattr(connection_module, "SSHTransport", FakeSSH)
    monkeypatch.setattr(connection_module, "WinRMTransport", FakeWinRM)
    winrm_config = WinRMConfig(host="win01", username="vagrant", password="vagrant")

    assert Connection(SSH_CONFIG).kind == "ssh"
    assert Connection(winrm_config).kind == "winrm"
    assert created == [("ssh", SSH_CONFIG), ("winrm", winrm_config)]


def test_unknown_config_type_is_a_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        Connection({"host": "127.0.0.1"})  # type: ignore[arg-type]
