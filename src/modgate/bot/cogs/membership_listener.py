"""Membership listener cog for modgate.

Posts member joins and leaves, bans and unbans, nickname changes and channel
creation and deletion to the guild's log channel. Also mirrors every
moderation log entry into that channel.
"""

import discord
from discord.ext import commands

from modgate.bot.log_channel import (
    LogChannelPoster,
    ban_embed,
    channel_embed,
    member_embed,
    nickname_embed,
)
from modgate.bot.services import ModgateServices
from modgate.datatypes.discord_datatypes import GuildID
from modgate.util.logger import get_logger

logger = get_logger("membership_listener_cog")


class MembershipListenerCog(commands.Cog):
    """Writes membership and channel events to the log channel."""

    def __init__(self, bot: discord.Bot, services: ModgateServices):
        self.bot = bot
        self.services = services
        self.poster = LogChannelPoster(bot, services.state)
        if services.mod_log is not None:
            services.mod_log.add_listener(self.poster.post_entry)
        logger.info("Membership listener cog loaded")

    def cog_unload(self) -> None:
        if self.services.mod_log is not None:
            self.services.mod_log.remove_listener(self.poster.post_entry)

    @commands.Cog.listener(name="on_member_join")
    async def on_member_join(self, member: discord.Member):
        await self.poster.post(GuildID(member.guild.id), embed=member_embed(member, joined=True))

    @commands.Cog.listener(name="on_member_remove")
    async def on_member_remove(self, member: discord.Member):
        await self.poster.post(GuildID(member.guild.id), embed=member_embed(member, joined=False))

    @commands.Cog.listener(name="on_member_ban")
    async def on_member_ban(self, guild: discord.Guild, user: discord.User):
        await self.poster.post(GuildID(guild.id), embed=ban_embed(user, banned=True))

    @commands.Cog.listener(name="on_member_unban")
    async def on_member_unban(self, guild: discord.Guild, user: discord.User):
        await self.poster.post(GuildID(guild.id), embed=ban_embed(user, banned=False))

    @commands.Cog.listener(name="on_member_update")
    async def on_member_update(self, before: discord.Member, after: discord.Member):
        """Only nickname changes are logged."""
        if before.nick == after.nick:
            return
        logger.debug("[MEMBERSHIP] %s changed nickname in guild %s", after.id, after.guild.id)
        await self.poster.post(GuildID(after.guild.id), embed=nickname_embed(before, after))

    @commands.Cog.listener(name="on_guild_channel_create")
    async def on_guild_channel_create(self, channel: discord.abc.GuildChannel):
        await self.poster.post(GuildID(channel.guild.id), embed=channel_embed(channel, created=True))

    @commands.Cog.listener(name="on_guild_channel_delete")
    async def on_guild_channel_delete(self, channel: discord.abc.GuildChannel):
        await self.poster.post(GuildID(channel.guild.id), embed=channel_embed(channel, created=False))


def setup(bot: discord.Bot, services: ModgateServices) -> None:
    """Register the membership listener cog with the bot."""
    bot.add_cog(MembershipListenerCog(bot, services))
