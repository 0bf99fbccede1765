"""
Resolve the permission level of a Discord user.

Order of precedence:

1. Bot masters from the application config: ``BOT_MASTER`` everywhere.
2. Discord administrator permission in the guild: ``ADMIN``.
3. The guild's staff lists (admins, mods, immune), by user or role.
4. Everyone else: ``MEMBER``.

In direct messages only the bot master check applies.
"""

from __future__ import annotations

from typing import Iterable, Optional, Union

import discord

from modgate.datatypes.discord_datatypes import RoleID, UserID
from modgate.datatypes.permission_datatypes import PermissionLevel
from modgate.util.logger import get_logger
from modgate.wrappers.guild_wrapper import GuildWrapper

logger = get_logger("permissions")


def has_administrator(member: Union[discord.Member, discord.User]) -> bool:
    """Whether a member has the Discord administrator permission in its guild."""
    permissions = getattr(member, "guild_permissions", None)
    return bool(permissions and permissions.administrator)


def member_role_ids(member: Union[discord.Member, discord.User]) -> list[RoleID]:
    return [RoleID(role.id) for role in getattr(member, "roles", [])]


class PermissionResolver:
    """Maps a user in a guild (or DM) to a ``PermissionLevel``."""

    def __init__(self, bot_masters: Iterable[UserID] = ()):
        self.bot_masters = frozenset(UserID(m) for m in bot_masters)

    def is_bot_master(self, user_id: UserID) -> bool:
        return UserID(user_id) in self.bot_masters

    async def resolve(
        self,
        member: Union[discord.Member, discord.User],
        guild: Optional[GuildWrapper] = None,
    ) -> PermissionLevel:
        """
        Permission level of ``member``.

        Args:
            member: The invoking member, or a plain user in direct messages.
            guild: Configuration of the guild the command was sent in, None in DMs.
        """
        user_id = UserID.from_object(member)
        if self.is_bot_master(user_id):
            return PermissionLevel.BOT_MASTER
        if guild is None:
            return PermissionLevel.MEMBER
        if has_administrator(member):
            return PermissionLevel.ADMIN
        return await guild.staff_level(user_id, member_role_ids(member))
