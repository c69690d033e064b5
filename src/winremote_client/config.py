"""Validated, immutable connection parameters for the SSH and WinRM transports."""

from __future__ import annotations

import codecs
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from .errors import ConfigurationError

SSH_PORT = 22
WINRM_HTTP_PORT = 5985
WINRM_HTTPS_PORT = 5986
UTF8_CODEPAGE = 65001


def default_ssh_port() -> int:
    return SSH_PORT


def default_known_hosts_path() -> Path:
    """Known-hosts file of the user running this process.

    Evaluated when a transport dials, not when a config is built, so a config
    object never captures a home directory.
    """
    return Path.home() / ".ssh" / "known_hosts"


def default_winrm_port(use_tls: bool) -> int:
    return WINRM_HTTPS_PORT if use_tls else WINRM_HTTP_PORT


def winrm_scheme(use_tls: bool) -> str:
    return "https" if use_tls else "http"


def codepage_encoding(codepage: int) -> str:
    """Python codec for a Windows console code page, e.g. 850 -> ``cp850``."""
    encoding = "utf-8" if codepage == UTF8_CODEPAGE else f"cp{codepage}"
    try:
        codecs.lookup(encoding)
    except LookupError as exc:
        raise ConfigurationError(f"winrm config: unsupported code page {codepage}") from exc
    return encoding


def _check_port(port: int, owner: str) -> None:
    if not isinstance(port, int) or isinstance(port, bool) or not 1 <= port <= 65535:
        raise ConfigurationError(f"{owner}: port must be between 1 and 65535, got {port!r}")


@dataclass(frozen=True)
class SSHConfig:
    host: str
    username: str
    port: int = SSH_PORT
    password: str | None = None
    private_key: bytes | str | None = None
    private_key_path: str | Path | None = None
    private_key_passphrase: str | None = None
    known_hosts_path: str | Path | None = None
    insecure_ignore_host_key: bool = False
    connect_timeout: float = 30.0

    def __post_init__(self) -> None:
        if not self.host or not self.username:
            raise ConfigurationError("ssh config: parameters 'host' and 'username' must be set")
        _check_port(self.port, "ssh config")

        methods = self.auth_methods()
        if not methods:
            raise ConfigurationError(
                "ssh config: one of 'password', 'private_key' or 'private_key_path' must be set"
            )
        if len(methods) > 1:
            raise ConfigurationError(
                f"ssh config: only one authentication method may be set, got {', '.join(methods)}"
            )
        if self.connect_timeout <= 0:
            raise ConfigurationError("ssh config: 'connect_timeout' must be positive")

    def auth_methods(self) -> list[str]:
        methods: list[str] = []
        if self.password:
            methods.append("password")
        if self.private_key:
            methods.append("private_key")
        if self.private_key_path:
            methods.append("private_key_path")
        return methods

    def __repr__(self) -> str:
        return (
            f"SSHConfig(host={self.host!r}, port={self.port}, username={self.username!r}, "
            f"auth={self.auth_methods()[0]!r}, insecure_ignore_host_key={self.insecure_ignore_host_key})"
        )


@dataclass(frozen=True)
class KerberosConfig:
    realm: str
    krb_config_file: str | Path | None = None

    def __post_init__(self) -> None:
        if not self.realm:
            raise ConfigurationError("kerberos config: parameter 'realm' must be set")


@dataclass(frozen=True)
class WinRMConfig:
    host: str
    username: str
    password: str | None = None
    port: int | None = None
    use_tls: bool = False
    insecure_skip_verify: bool = False
    kerberos: KerberosConfig | None = None
    read_timeout: int = 30
    operation_timeout: int = 20
    codepage: int = UTF8_CODEPAGE

    def __post_init__(self) -> None:
        if not self.host or not self.username:
            raise ConfigurationError("winrm config: parameters 'host' and 'username' must be set")
        # Kerberos authenticates from the ticket cache instead.
        if not self.password and self.kerberos is None:
            raise ConfigurationError("winrm config: parameter 'password' must be set")
        if self.password and self.kerberos is not None:
            raise ConfigurationError(
                "winrm config: 'password' cannot be used with Kerberos, obtain a ticket with kinit instead"
            )
        if self.port is not None:
            _check_port(self.port, "winrm config")
        if self.operation_timeout <= 0 or self.read_timeout <= self.operation_timeout:
            raise ConfigurationError(
                "winrm config: 'read_timeout' must exceed 'operation_timeout' and both must be positive"
            )
        codepage_encoding(self.codepage)

    @property
    def effective_port(self) -> int:
        return self.port if self.port is not None else default_winrm_port(self.use_tls)

    @property
    def scheme(self) -> str:
        return winrm_scheme(self.use_tls)

    def __repr__(self) -> str:
        return (
            f"WinRMConfig(host={self.host!r}, port={self.effective_port}, username={self.username!r}, "
            f"use_tls={self.use_tls}, kerberos={self.kerberos!r})"
        )


def winrm_endpoint(config: WinRMConfig) -> str:
    return f"{config.scheme}://{config.host}:{config.effective_port}/wsman"


ConnectionConfig = Union[SSHConfig, WinRMConfig]


__all__ = [
    "ConnectionConfig",
    "KerberosConfig",
    "SSHConfig",
    "WinRMConfig",
    "codepage_encoding",
    "default_known_hosts_path",
    "default_ssh_port",
    "default_winrm_port",
    "winrm_endpoint",
    "winrm_scheme",
]
