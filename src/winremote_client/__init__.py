"""Public surface for the winremote Python client."""

from .client import WindowsClient
from .config import KerberosConfig, SSHConfig, WinRMConfig
from .connection import Connection
from .context import RunContext
from .errors import (
    CancelledError,
    ConfigurationError,
    ConnectionError,
    DeadlineExceededError,
    ErrorKind,
    ProtocolError,
    WinRemoteError,
)
from .local import Group, GroupParams, LocalClient
from .parser import decode_clixml
from .transport import SSHTransport, WinRMTransport
from .types import CommandResult, ExecuteResult
from .version import __version__

__all__ = [
    "__version__",
    "CancelledError",
    "CommandResult",
    "ConfigurationError",
    "Connection",
    "ConnectionError",
    "DeadlineExceededError",
    "ErrorKind",
    "ExecuteResult",
    "Group",
    "GroupParams",
    "KerberosConfig",
    "LocalClient",
    "ProtocolError",
    "RunContext",
    "SSHConfig",
    "SSHTransport",
    "WinRMConfig",
    "WinRMTransport",
    "WinRemoteError",
    "WindowsClient",
    "decode_clixml",
]
