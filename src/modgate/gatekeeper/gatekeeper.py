"""
Authorization and throttling decision for command invocations.

``GateKeeper.evaluate`` runs a fixed sequence of checks and stops at the
first failure:

1. the command exists (by name or alias)
2. it may run in direct messages, if invoked there
3. it is not disabled in the guild
4. the invoker's permission level is high enough
5. the usage limits allow it (disabled limits, then cooldowns)

Structural checks come before the permission check and the permission check
comes before cooldowns, so a command the invoker may not use never reveals
its cooldown state. The gatekeeper never records usage: callers do that with
``record_usage`` once the command actually ran.
"""

from __future__ import annotations

from typing import Optional

from modgate.database.mod_log import ModLogRepository
from modgate.datatypes.command_datatypes import DM_SCOPE, CommandDefinition, UsageVerdict
from modgate.datatypes.discord_datatypes import GuildID, UserID
from modgate.datatypes.gate_datatypes import DenyReason, GateDecision, Invocation, ToggleOutcome
from modgate.errors import NotFoundError
from modgate.registry.command_registry import CommandRegistry
from modgate.util.logger import get_logger
from modgate.util.parsers import DEFAULT_SIMILARITY_THRESHOLD
from modgate.util.time_utils import format_duration
from modgate.wrappers.state_manager import StateManager

logger = get_logger("gatekeeper")


class GateKeeper:
    """
    Decides whether an invocation may run.

    Args:
        registry: Commands known to the bot.
        state: Source of user, guild and member wrappers.
        mod_log: Where command toggles are recorded, if anywhere.
        suggestion_threshold: Minimum similarity for "did you mean" hints.
    """

    def __init__(
        self,
        registry: CommandRegistry,
        state: StateManager,
        mod_log: Optional[ModLogRepository] = None,
        suggestion_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
    ):
        self.registry = registry
        self.state = state
        self.mod_log = mod_log
        self.suggestion_threshold = suggestion_threshold

    async def evaluate(self, invocation: Invocation) -> GateDecision:
        definition = self.registry.resolve(invocation.command_name)
        if definition is None:
            suggestion = self.registry.suggest(invocation.command_name, self.suggestion_threshold)
            return GateDecision.deny(DenyReason.NOT_FOUND, detail=suggestion)

        if invocation.is_dm and not definition.dm_capable:
            return GateDecision.deny(DenyReason.NOT_DM_CAPABLE, definition)

        if not invocation.is_dm and definition.togglable:
            guild = self.state.guild(invocation.guild_id)
            if not await guild.is_command_enabled(definition):
                return GateDecision.deny(DenyReason.DISABLED, definition)

        if invocation.permission_level < definition.permission_level:
            return GateDecision.deny(
                DenyReason.INSUFFICIENT_PERMISSION,
                definition,
                detail=str(definition.permission_level),
            )

        verdict = await self.check_usage(invocation, definition)
        if not verdict.limits_enabled:
            return GateDecision.deny(DenyReason.DISABLED, definition)
        if not verdict.allowed:
            return GateDecision.deny(
                DenyReason.COOLDOWN,
                definition,
                detail=format_duration(verdict.remaining_ms),
                remaining_ms=verdict.remaining_ms,
            )

        return GateDecision.allow(definition)

    async def check_usage(self, invocation: Invocation, definition: CommandDefinition) -> UsageVerdict:
        """Usage-limit verdict for ``definition`` in the invocation's scope."""
        if invocation.is_dm:
            user = self.state.user(invocation.user_id)
            return await user.check_usage(DM_SCOPE, definition, self.state.dm_limits)
        member = self.state.member(invocation.guild_id, invocation.user_id)
        return await member.check_usage(definition)

    async def record_usage(self, invocation: Invocation, timestamp: Optional[int] = None) -> int:
        """
        Record that the invocation's command ran.

        Guild invocations go through the member wrapper (guild-local, then
        global); direct messages set the user's ``"dm"`` scope, which also
        sets ``"global"``.

        Raises:
            NotFoundError: If the command does not exist.
            PersistenceError: If a write fails.
        """
        definition = self.registry.resolve(invocation.command_name)
        if definition is None:
            raise NotFoundError(f"Unknown command '{invocation.command_name}'")
        timestamp = self.state.clock() if timestamp is None else timestamp

        if invocation.is_dm:
            return await self.state.user(invocation.user_id).set_command_last_used(DM_SCOPE, definition, timestamp)
        member = self.state.member(invocation.guild_id, invocation.user_id)
        return await member.set_command_last_used(definition, timestamp)

    async def set_command_enabled(
        self,
        guild_id: GuildID,
        name: str,
        enabled: bool,
        moderator_id: Optional[UserID] = None,
    ) -> ToggleOutcome:
        """
        Enable or disable a togglable command in a guild.

        Successful toggles are written to the moderation log.
        """
        definition = self.registry.resolve(name)
        if definition is None:
            return ToggleOutcome.NOT_FOUND
        if not definition.togglable:
            return ToggleOutcome.NOT_TOGGLABLE

        guild = self.state.guild(guild_id)
        if not await guild.set_command_enabled(definition, enabled):
            return ToggleOutcome.ALREADY_ENABLED if enabled else ToggleOutcome.ALREADY_DISABLED

        logger.info("[GATEKEEPER] %s command '%s' in guild %s", "Enabled" if enabled else "Disabled", definition.name, guild_id)
        if self.mod_log is not None:
            await self.mod_log.log_command_toggle(GuildID(guild_id), moderator_id, definition.name, enabled)
        return ToggleOutcome.ENABLED if enabled else ToggleOutcome.DISABLED
