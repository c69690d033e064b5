"""Local group operations built on ``*-LocalGroup`` cmdlets."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, TypeVar

from ..context import RunContext
from ..errors import ConfigurationError, ProtocolError, WinRemoteError
from ..logger import BoundLogger
from .command import CommandRunner, ps_quote

T = TypeVar("T")

JSON_SUFFIX = "| ConvertTo-Json -Compress"


@dataclass(frozen=True)
class Group:
    name: str
    description: str
    sid: str

    @classmethod
    def from_json(cls, data: Any) -> "Group":
        if not isinstance(data, dict):
            raise ProtocolError(f"expected a group object, got {type(data).__name__}", context=data)
        sid = data.get("SID") or {}
        return cls(
            name=data.get("Name") or "",
            description=data.get("Description") or "",
            sid=sid.get("Value", "") if isinstance(sid, dict) else str(sid),
        )


@dataclass(frozen=True)
class GroupParams:
    name: str = ""
    description: str = ""
    sid: str = ""

    def selector(self) -> str:
        # SID is unambiguous, so it wins over Name.
        if self.sid:
            return f"-SID {self.sid}"
        return f"-Name {ps_quote(self.name)}"


class GroupOperations:
    _runner: CommandRunner
    _logger: BoundLogger

    def group_read(self, params: GroupParams, ctx: RunContext | None = None) -> Group:
        """Get one local group by SID or Name."""
        operation = "local.group_read"
        if not params.name and not params.sid:
            raise ConfigurationError(f"{operation}: group parameter 'name' or 'sid' must be set")
        if "*" in params.name:
            raise ConfigurationError(f"{operation}: group parameter 'name' does not allow wildcards")

        cmd = f"Get-LocalGroup {params.selector()} {JSON_SUFFIX}"
        return self._run_group_command(operation, cmd, ctx, Group.from_json)

    def group_list(self, ctx: RunContext | None = None) -> list[Group]:
        operation = "local.group_list"
        cmd = f"Get-LocalGroup {JSON_SUFFIX}"

        def to_groups(data: Any) -> list[Group]:
            # ConvertTo-Json collapses a one-element array into an object.
            items = data if isinstance(data, list) else [data]
            return [Group.from_json(item) for item in items if item is not None]

        return self._run_group_command(operation, cmd, ctx, to_groups)

    def group_create(self, params: GroupParams, ctx: RunContext | None = None) -> Group:
        operation = "local.group_create"
        if not params.name:
            raise ConfigurationError(f"{operation}: group parameter 'name' must be set")

        cmds = ["New-LocalGroup", f"-Name {ps_quote(params.name)}"]
        if params.description:
            cmds.append(f"-Description {ps_quote(params.description)}")
        cmds.append(JSON_SUFFIX)
        return self._run_group_command(operation, " ".join(cmds), ctx, Group.from_json)

    def group_update(self, params: GroupParams, ctx: RunContext | None = None) -> Group:
        """Change the description of a group; returns the group as read back afterwards."""
        operation = "local.group_update"
        if not params.name and not params.sid:
            raise ConfigurationError(f"{operation}: group parameter 'name' or 'sid' must be set")
        if not params.description:
            raise ConfigurationError(f"{operation}: group parameter 'description' must be set")

        selector = params.selector()
        cmd = (
            f"Set-LocalGroup {selector} -Description {ps_quote(params.description)}; "
            f"Get-LocalGroup {selector} {JSON_SUFFIX}"
        )
        return self._run_group_command(operation, cmd, ctx, Group.from_json)

    def group_delete(self, params: GroupParams, ctx: RunContext | None = None) -> None:
        operation = "local.group_delete"
        if not params.name and not params.sid:
            raise ConfigurationError(f"{operation}: group parameter 'name' or 'sid' must be set")

        # Remove-LocalGroup prints nothing; emit a marker so success is not an empty run.
        cmd = f"Remove-LocalGroup {params.selector()}; $true {JSON_SUFFIX}"
        self._run_group_command(operation, cmd, ctx, lambda data: None)

    def _run_group_command(
        self,
        operation: str,
        cmd: str,
        ctx: RunContext | None,
        convert: Callable[[Any], T],
    ) -> T:
        self._logger.debug("%s: %s", operation, cmd)
        try:
            return convert(self._runner.execute_json(cmd, ctx))
        except WinRemoteError as exc:
            raise exc.with_operation(operation) from exc


__all__ = ["Group", "GroupOperations", "GroupParams"]
