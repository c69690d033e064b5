"""SSH credential resolution.

Turns an :class:`~winremote_client.config.SSHConfig` into the keyword
arguments ``paramiko.SSHClient.connect`` expects. Private keys are loaded
here, before any socket is opened, so an unreadable or malformed key is
reported as a configuration problem rather than a failed connection.
"""

from __future__ import annotations

import io
from pathlib import Path
from typing import Any

import paramiko

from .config import SSHConfig
from .errors import ConfigurationError
from .logger import BoundLogger

# Tried in order when the key type is not known up front.
KEY_CLASSES: tuple[type[paramiko.PKey], ...] = (
    paramiko.Ed25519Key,
    paramiko.ECDSAKey,
    paramiko.RSAKey,
)


def load_private_key(data: bytes | str, passphrase: str | None = None) -> paramiko.PKey:
    try:
        text = data.decode("utf-8") if isinstance(data, bytes) else data
    except UnicodeDecodeError as exc:
        raise ConfigurationError(f"ssh auth: private key is not PEM or OpenSSH text: {exc}") from exc
    failures: list[str] = []
    for key_class in KEY_CLASSES:
        try:
            return key_class.from_private_key(io.StringIO(text), password=passphrase)
        except paramiko.PasswordRequiredException as exc:
            raise ConfigurationError("ssh auth: private key is encrypted and no passphrase was given") from exc
        except (paramiko.SSHException, ValueError) as exc:
            failures.append(f"{key_class.__name__}: {exc}")
    raise ConfigurationError(f"ssh auth: unable to parse private key ({'; '.join(failures)})")


def load_private_key_file(path: str | Path, passphrase: str | None = None) -> paramiko.PKey:
    try:
        data = Path(path).expanduser().read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigurationError(f"ssh auth: cannot read private key file {path}: {exc}") from exc
    return load_private_key(data, passphrase)


class SSHAuth:
    """Resolves the single authentication method configured for a host."""

    def __init__(self, config: SSHConfig, logger: BoundLogger) -> None:
        self._config = config
        self._logger = logger.child("auth")

    @property
    def method(self) -> str:
        return self._config.auth_methods()[0]

    def connect_kwargs(self) -> dict[str, Any]:
        config = self._config
        kwargs: dict[str, Any] = {
            "hostname": config.host,
            "port": config.port,
            "username": config.username,
            "timeout": config.connect_timeout,
            "auth_timeout": config.connect_timeout,
            "banner_timeout": config.connect_timeout,
            # Only the configured credential is offered to the server.
            "look_for_keys": False,
            "allow_agent": False,
        }
        if config.password:
            kwargs["password"] = config.password
        elif config.private_key:
            kwargs["pkey"] = load_private_key(config.private_key, config.private_key_passphrase)
        else:
            assert config.private_key_path is not None
            kwargs["pkey"] = load_private_key_file(config.private_key_path, config.private_key_passphrase)

        self._logger.debug("Authenticating %s@%s with %s", config.username, config.host, self.method)
        return kwargs


__all__ = ["SSHAuth", "load_private_key", "load_private_key_file"]
