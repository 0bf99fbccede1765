"""
Glue between slash commands and the ``GateKeeper``.

``GatedCog`` gives cogs two calls around every command body:

- ``gate(ctx, name)`` resolves the invoker's permission level, asks the
  gatekeeper and answers denials with one short ephemeral message.
- ``record(invocation)`` consumes the cooldown once the command succeeded.
"""

from __future__ import annotations

from typing import Optional

import discord
from discord.ext import commands

from modgate.bot.services import ModgateServices
from modgate.datatypes.discord_datatypes import GuildID, UserID
from modgate.datatypes.gate_datatypes import DenyReason, GateDecision, Invocation
from modgate.errors import ModgateError
from modgate.util.logger import get_logger

logger = get_logger("gating")


def deny_message(decision: GateDecision, command_name: str) -> str:
    """User-facing text for a denied invocation."""
    name = decision.definition.name if decision.definition else command_name
    if decision.reason is DenyReason.NOT_FOUND:
        if decision.detail:
            return f"Couldn't find '{command_name}' command. Did you mean `{decision.detail}`?"
        return f"Couldn't find '{command_name}' command."
    if decision.reason is DenyReason.NOT_DM_CAPABLE:
        return f"`{name}` can't be used in direct messages."
    if decision.reason is DenyReason.DISABLED:
        return f"`{name}` is disabled here."
    if decision.reason is DenyReason.INSUFFICIENT_PERMISSION:
        return f"You need to be {decision.detail or 'staff'} to use `{name}`."
    if decision.reason is DenyReason.COOLDOWN:
        return f"`{name}` is on cooldown, try again in {decision.detail}."
    return f"You can't use `{name}` right now."


class GatedCog(commands.Cog):
    """Base cog whose slash commands run through the gatekeeper."""

    def __init__(self, bot: discord.Bot, services: ModgateServices):
        self.bot = bot
        self.services = services

    async def invocation_for(self, ctx: discord.ApplicationContext, command_name: str) -> Invocation:
        guild_id = GuildID(ctx.guild_id) if ctx.guild_id else None
        guild = self.services.state.guild(guild_id) if guild_id is not None else None
        level = await self.services.permissions.resolve(ctx.user, guild)
        return Invocation(
            command_name=command_name,
            user_id=UserID.from_object(ctx.user),
            guild_id=guild_id,
            permission_level=level,
        )

    async def gate(self, ctx: discord.ApplicationContext, command_name: str) -> Optional[Invocation]:
        """
        Check whether the invoker may run ``command_name``.

        Returns:
            The invocation to pass to ``record`` when allowed, None after a
            denial has been sent.
        """
        try:
            invocation = await self.invocation_for(ctx, command_name)
            decision = await self.services.gatekeeper.evaluate(invocation)
        except ModgateError as exc:
            await self.respond_error(ctx, exc)
            return None

        if not decision:
            logger.debug("[GATING] %s denied for %s: %s", command_name, ctx.user, decision.reason)
            await ctx.respond(deny_message(decision, command_name), ephemeral=True)
            return None
        return invocation

    async def record(self, invocation: Invocation) -> None:
        """Consume the cooldown of a finished command. A failed write is logged, the command already ran."""
        try:
            await self.services.gatekeeper.record_usage(invocation)
        except ModgateError as exc:
            logger.error("[GATING] Failed to record usage of %s by %s: %s", invocation.command_name, invocation.user_id, exc, exc_info=exc)

    async def respond_error(self, ctx: discord.ApplicationContext, exc: Exception) -> None:
        logger.error("[GATING] Command failed for %s: %s", ctx.user, exc)
        await ctx.respond("A :bug: showed up while running this command.", ephemeral=True)
