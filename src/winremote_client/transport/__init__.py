"""Transport implementations exposed to users."""

from .base import Transport, TransportKind, TransportOutput, supervise
from .ssh import SSHTransport
from .winrm import WinRMTransport

__all__ = [
    "SSHTransport",
    "Transport",
    "TransportKind",
    "TransportOutput",
    "WinRMTransport",
    "supervise",
]
