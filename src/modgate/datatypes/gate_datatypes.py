"""
Invocation, decision and toggle-outcome types produced by the gating layer.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from modgate.datatypes.command_datatypes import DM_SCOPE, CommandDefinition, CommandScope
from modgate.datatypes.discord_datatypes import GuildID, UserID
from modgate.datatypes.permission_datatypes import PermissionLevel


class DenyReason(Enum):
    """Why an invocation was refused."""

    NOT_FOUND = "not_found"
    NOT_DM_CAPABLE = "not_dm_capable"
    DISABLED = "disabled"
    INSUFFICIENT_PERMISSION = "insufficient_permission"
    COOLDOWN = "cooldown"

    def __str__(self) -> str:
        return self.value


class ToggleOutcome(Enum):
    """Result of enabling or disabling a command or filter in a guild."""

    ENABLED = "enabled"
    DISABLED = "disabled"
    ALREADY_ENABLED = "already_enabled"
    ALREADY_DISABLED = "already_disabled"
    NOT_FOUND = "not_found"
    NOT_TOGGLABLE = "not_togglable"

    @property
    def changed(self) -> bool:
        return self in (ToggleOutcome.ENABLED, ToggleOutcome.DISABLED)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class Invocation:
    """
    A single attempt to run a command.

    Attributes:
        command_name: Name or alias typed by the invoker.
        user_id: Invoking user.
        guild_id: Guild the command was sent in, ``None`` for direct messages.
        permission_level: Level already resolved for the invoker.
    """

    command_name: str
    user_id: UserID
    guild_id: Optional[GuildID] = None
    permission_level: PermissionLevel = PermissionLevel.MEMBER

    @property
    def is_dm(self) -> bool:
        return self.guild_id is None

    @property
    def scope(self) -> CommandScope:
        return DM_SCOPE if self.guild_id is None else CommandScope(self.guild_id)


@dataclass(frozen=True, slots=True)
class GateDecision:
    """
    Allow or deny verdict for an invocation.

    ``definition`` is set whenever the command resolved, even on denial.
    ``remaining_ms`` is only meaningful for ``DenyReason.COOLDOWN``.
    """

    allowed: bool
    reason: Optional[DenyReason] = None
    definition: Optional[CommandDefinition] = None
    detail: Optional[str] = None
    remaining_ms: int = 0

    @classmethod
    def allow(cls, definition: CommandDefinition) -> "GateDecision":
        return cls(allowed=True, definition=definition)

    @classmethod
    def deny(
        cls,
        reason: DenyReason,
        definition: Optional[CommandDefinition] = None,
        detail: Optional[str] = None,
        remaining_ms: int = 0,
    ) -> "GateDecision":
        return cls(allowed=False, reason=reason, definition=definition, detail=detail, remaining_ms=remaining_ms)

    def __bool__(self) -> bool:
        return self.allowed
