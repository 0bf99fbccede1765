"""Event listener cog for modgate.

Handles bot lifecycle (on_ready), guild removal, periodic eviction of idle
document wrappers and application command errors.
"""

import asyncio
from typing import Optional

import discord
from discord.ext import commands

from modgate.bot.services import ModgateServices
from modgate.datatypes.discord_datatypes import GuildID
from modgate.errors import ModgateError
from modgate.util.logger import get_logger

logger = get_logger("events_listener_cog")

# Eviction runs this many times per idle window
EVICTION_PASSES_PER_WINDOW = 4


class EventsListenerCog(commands.Cog):
    """Cog containing bot lifecycle and command error handlers."""

    def __init__(self, bot: discord.Bot, services: ModgateServices):
        self.bot = bot
        self.services = services
        self._eviction_task: Optional[asyncio.Task] = None
        logger.info("Events listener cog loaded")

    @commands.Cog.listener(name="on_ready")
    async def on_ready(self):
        """Set the presence and start the wrapper eviction task."""
        if self.bot.user:
            await self.bot.change_presence(
                status=discord.Status.online,
                activity=discord.Activity(type=discord.ActivityType.watching, name="your commands. /help"),
            )
            logger.info(f"Bot connected as {self.bot.user} (ID: {self.bot.user.id})")
        else:
            logger.warning("Bot partially connected, but user information not yet available.")

        if self._eviction_task is None or self._eviction_task.done():
            self._eviction_task = asyncio.create_task(self.evict_idle_wrappers_task())

    async def evict_idle_wrappers_task(self) -> None:
        """Periodically drop cached wrappers that have not been used for a while."""
        max_idle = self.services.cache_max_idle_seconds
        interval = max(max_idle / EVICTION_PASSES_PER_WINDOW, 1.0)
        while True:
            await asyncio.sleep(interval)
            evicted = self.services.state.evict_idle(max_idle)
            if evicted:
                logger.debug("[EVENTS] Evicted %d idle wrapper(s), still cached: %s", evicted, self.services.state.stats())

    def cog_unload(self) -> None:
        if self._eviction_task is not None:
            self._eviction_task.cancel()

    @commands.Cog.listener(name="on_guild_remove")
    async def on_guild_remove(self, guild: discord.Guild):
        """Forget a guild's configuration once the bot leaves it."""
        try:
            await self.services.state.forget_guild(GuildID(guild.id))
        except ModgateError as exc:
            logger.error("[EVENTS] Failed to forget guild %s: %s", guild.id, exc)

    @commands.Cog.listener(name="on_application_command_error")
    async def on_application_command_error(self, application_context: discord.ApplicationContext, error: Exception):
        """Log command errors and answer with a short ephemeral message."""
        if isinstance(error, commands.CommandNotFound):
            return

        command_name = getattr(application_context.command, "name", "<unknown>")
        logger.error(f"Error in command '{command_name}': {error}", exc_info=error)

        error_message = "A :bug: showed up while running this command."
        try:
            await application_context.respond(error_message, ephemeral=True)
        except discord.InteractionResponded:
            await application_context.followup.send(error_message, ephemeral=True)


def setup(bot: discord.Bot, services: ModgateServices) -> None:
    """Register the events listener cog with the bot."""
    bot.add_cog(EventsListenerCog(bot, services))
