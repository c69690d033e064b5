"""Local groups of the remote Windows host."""

from .client import LocalClient
from .command import CommandRunner, ps_quote
from .group import Group, GroupParams

__all__ = ["CommandRunner", "Group", "GroupParams", "LocalClient", "ps_quote"]
