"""
Posting to a guild's configured log channel.

``LogChannelPoster`` looks up the channel stored on the guild document and
sends to it. A missing channel, a channel the bot cannot see and a failed
send are logged and reported as ``False``; they never fail the caller.

The ``*_embed`` builders render membership events and moderation log entries.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

import discord

from modgate.database.mod_log import LogAction, LogType, ModLogEntry
from modgate.datatypes.discord_datatypes import GuildID
from modgate.errors import ModgateError
from modgate.util.logger import get_logger
from modgate.wrappers.state_manager import StateManager

logger = get_logger("log_channel")

POSITIVE_COLOR = discord.Color.green()
NEGATIVE_COLOR = discord.Color.red()
NEUTRAL_COLOR = discord.Color.blurple()


def describe_entry(entry: ModLogEntry) -> str:
    """One-line text for a moderation log entry."""
    added = entry.type is LogType.ADD
    if entry.action is LogAction.STAFF:
        if "role" in entry.info:
            target = f"Role <@&{entry.info['role']}>"
        else:
            target = f"User <@{entry.info.get('user')}>"
        text = f"{target} was {'added to' if added else 'removed from'} the {entry.info.get('rank')} rank"
    elif entry.action is LogAction.COMMAND:
        text = f"Command `{entry.info.get('command')}` was {'enabled' if added else 'disabled'}"
    else:
        text = f"Filter `{entry.info.get('filter')}` was {'enabled' if added else 'disabled'}"
    if entry.moderator_id is not None:
        text += f" by <@{entry.moderator_id}>"
    return text + "."


def entry_embed(entry: ModLogEntry) -> discord.Embed:
    embed = discord.Embed(
        title=f"{entry.action.value.capitalize()} Change",
        description=describe_entry(entry),
        color=POSITIVE_COLOR if entry.type is LogType.ADD else NEGATIVE_COLOR,
        timestamp=datetime.fromtimestamp(entry.timestamp / 1000, tz=timezone.utc),
    )
    if entry.id is not None:
        embed.set_footer(text=f"Entry #{entry.id}")
    return embed


def member_embed(member: Any, joined: bool) -> discord.Embed:
    embed = discord.Embed(
        title="Member Joined" if joined else "Member Left",
        description=member.mention,
        color=POSITIVE_COLOR if joined else NEGATIVE_COLOR,
    )
    joined_at = getattr(member, "joined_at", None)
    if not joined and joined_at is not None:
        embed.add_field(name="Joined At", value=discord.utils.format_dt(joined_at, "R"), inline=False)
    embed.set_footer(text=f"ID: {member.id}")
    return embed


def ban_embed(user: Any, banned: bool) -> discord.Embed:
    embed = discord.Embed(
        title="User Banned" if banned else "User Unbanned",
        description=user.mention,
        color=NEGATIVE_COLOR if banned else POSITIVE_COLOR,
    )
    embed.set_footer(text=f"ID: {user.id}")
    return embed


def nickname_embed(before: Any, after: Any) -> discord.Embed:
    embed = discord.Embed(title="Nickname Changed", description=after.mention, color=NEUTRAL_COLOR)
    embed.add_field(name="Before", value=before.nick or "*None*", inline=True)
    embed.add_field(name="After", value=after.nick or "*None*", inline=True)
    embed.set_footer(text=f"ID: {after.id}")
    return embed


def channel_embed(channel: Any, created: bool) -> discord.Embed:
    embed = discord.Embed(
        title="Channel Created" if created else "Channel Deleted",
        description=channel.mention if created else f"#{channel.name}",
        color=POSITIVE_COLOR if created else NEGATIVE_COLOR,
    )
    embed.set_footer(text=f"ID: {channel.id}")
    return embed


class LogChannelPoster:
    """Sends messages to the log channel configured for a guild."""

    def __init__(self, bot: discord.Bot, state: StateManager):
        self.bot = bot
        self.state = state

    async def channel_for(self, guild_id: GuildID) -> Optional[discord.abc.Messageable]:
        """The guild's log channel, or None if none is set or the bot can't see it."""
        channel_id = await self.state.guild(guild_id).get_log_channel()
        if channel_id is None:
            return None
        channel = self.bot.get_channel(channel_id.to_int())
        if channel is None or not hasattr(channel, "send"):
            logger.warning("[LOG CHANNEL] Log channel %s of guild %s is not reachable", channel_id, guild_id)
            return None
        return channel

    async def post(self, guild_id: GuildID, content: Optional[str] = None, *, embed: Optional[discord.Embed] = None) -> bool:
        """
        Send ``content`` and/or ``embed`` to the guild's log channel.

        Returns:
            True if a message was sent.
        """
        guild_id = GuildID(guild_id)
        try:
            channel = await self.channel_for(guild_id)
        except ModgateError as exc:
            logger.error("[LOG CHANNEL] Failed to read log channel of guild %s: %s", guild_id, exc)
            return False
        if channel is None:
            return False
        try:
            await channel.send(content=content, embed=embed)
        except discord.HTTPException as exc:
            logger.warning("[LOG CHANNEL] Could not post to log channel of guild %s: %s", guild_id, exc)
            return False
        return True

    async def post_entry(self, entry: ModLogEntry) -> None:
        """Mod log listener mirroring each entry into the log channel."""
        await self.post(entry.guild_id, embed=entry_embed(entry))
