"""Kerberos parameters for the WinRM transport."""

from __future__ import annotations

import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from ..config import WinRMConfig
from ..errors import ConfigurationError
from ..logger import BoundLogger

KRB5_CONFIG_ENV = "KRB5_CONFIG"

# Held while KRB5_CONFIG points at one transport's krb5.conf.
_krb5_config_lock = threading.Lock()


def kerberos_principal(username: str, realm: str) -> str:
    if "@" in username:
        return username
    return f"{username}@{realm}"


def krb5_config_path(config: WinRMConfig) -> Path | None:
    kerberos = config.kerberos
    if kerberos is None or not kerberos.krb_config_file:
        return None
    path = Path(kerberos.krb_config_file).expanduser()
    if not path.is_file():
        raise ConfigurationError(f"winrm kerberos: krb config file {path} does not exist")
    return path


@contextmanager
def krb5_config(path: Path | None) -> Iterator[None]:
    """Point ``KRB5_CONFIG`` at ``path`` for the duration of one exchange.

    The GSSAPI library reads its configuration from the environment only, so
    exchanges that bring their own krb5.conf are serialized and the previous
    value is restored afterwards. ``None`` leaves the environment alone.
    """
    if path is None:
        yield
        return
    with _krb5_config_lock:
        previous = os.environ.get(KRB5_CONFIG_ENV)
        os.environ[KRB5_CONFIG_ENV] = str(path)
        try:
            yield
        finally:
            if previous is None:
                os.environ.pop(KRB5_CONFIG_ENV, None)
            else:
                os.environ[KRB5_CONFIG_ENV] = previous


def kerberos_session_params(config: WinRMConfig, logger: BoundLogger) -> tuple[str, dict[str, Any]]:
    """Return the principal and pywinrm session options for a Kerberos login.

    Tickets come from the credential cache; the config never carries a
    password alongside Kerberos.
    """
    kerberos = config.kerberos
    if kerberos is None:
        raise ConfigurationError("winrm kerberos: 'kerberos' parameters must be set")

    principal = kerberos_principal(config.username, kerberos.realm)
    logger.debug("Using Kerberos principal %s", principal)
    options: dict[str, Any] = {
        "transport": "kerberos",
        "kerberos_hostname_override": config.host,
        "service": "HTTP",
    }
    return principal, options


__all__ = ["krb5_config", "krb5_config_path", "kerberos_principal", "kerberos_session_params"]
