"""Message listener cog for modgate.

Runs every guild message through the guild's enabled content filters and
deletes messages that trip one. Bots, direct messages and staff (immune and
above) are never filtered.
"""

import discord
from discord.ext import commands

from modgate.bot.services import ModgateServices
from modgate.datatypes.discord_datatypes import GuildID
from modgate.datatypes.permission_datatypes import PermissionLevel
from modgate.errors import ModgateError
from modgate.util.logger import get_logger

logger = get_logger("message_listener_cog")


class MessageListenerCog(commands.Cog):
    """Applies content filters to new and edited messages."""

    def __init__(self, bot: discord.Bot, services: ModgateServices):
        self.bot = bot
        self.services = services
        logger.info("Message listener cog loaded")

    async def _is_exempt(self, message: discord.Message) -> bool:
        if message.guild is None or message.author.bot:
            return True
        guild = self.services.state.guild(GuildID(message.guild.id))
        level = await self.services.permissions.resolve(message.author, guild)
        return level >= PermissionLevel.IMMUNE

    async def apply_filters(self, message: discord.Message) -> bool:
        """
        Delete ``message`` if it trips an enabled filter.

        Returns:
            True if the message was deleted.
        """
        if not message.content:
            return False
        try:
            if await self._is_exempt(message):
                return False
            hits = await self.services.filters.scan(GuildID(message.guild.id), message.content)
        except ModgateError as exc:
            logger.error("[MESSAGE LISTENER] Filter scan failed for message %s: %s", message.id, exc)
            return False

        if not hits:
            return False

        names = ", ".join(d.name for d in hits)
        try:
            await message.delete()
        except discord.HTTPException as exc:
            logger.warning("[MESSAGE LISTENER] Could not delete message %s (%s): %s", message.id, names, exc)
            return False
        logger.info("[MESSAGE LISTENER] Deleted message %s by %s in guild %s (%s)", message.id, message.author, message.guild.id, names)
        return True

    @commands.Cog.listener(name="on_message")
    async def on_message(self, message: discord.Message):
        await self.apply_filters(message)

    @commands.Cog.listener(name="on_message_edit")
    async def on_message_edit(self, before: discord.Message, after: discord.Message):
        if (before.content or "") == (after.content or ""):
            return
        await self.apply_filters(after)


def setup(bot: discord.Bot, services: ModgateServices) -> None:
    """Register the message listener cog with the bot."""
    bot.add_cog(MessageListenerCog(bot, services))
