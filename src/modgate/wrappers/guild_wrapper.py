"""
Wrapper around a guild's configuration document.

Stored shape::

    {
        "usage_limits": {"default": {...}, "commands": {"ping": {...}}},
        "commands": {"ping": {"enabled": false}},
        "filters": {"invites": {"enabled": true}},
        "staff": {"admins": {"roles": [...], "users": [...]}, "mods": {...}, "immune": {...}},
        "log_channel": 123456789012345678
    }

Commands without an entry are enabled, filters without an entry are disabled.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from modgate.database.doc_path import DocField, FieldPath, SetField, UnsetField
from modgate.database.document_store import Collection, DocumentStore
from modgate.datatypes.command_datatypes import CommandResolvable, UsageLimits, normalize_name, resolve_command_name
from modgate.datatypes.discord_datatypes import ChannelID, GuildID, RoleID, UserID
from modgate.datatypes.permission_datatypes import PermissionLevel, StaffRank
from modgate.util.logger import get_logger
from modgate.wrappers.doc_wrapper import DocWrapper

logger = get_logger("guild_wrapper")


@dataclass(frozen=True, slots=True)
class StaffEntry:
    """Roles and users holding one staff rank."""

    roles: Tuple[RoleID, ...] = ()
    users: Tuple[UserID, ...] = ()

    def includes(self, user_id: UserID, role_ids: Iterable[RoleID] = ()) -> bool:
        return user_id in self.users or any(r in self.roles for r in role_ids)


@dataclass(slots=True)
class _StaffChange:
    key: str
    current: List[str] = field(default_factory=list)


class GuildWrapper(DocWrapper):
    """
    A guild's stored configuration.

    Args:
        store: Backing document store.
        guild_id: Guild this document belongs to.
        default_limits: Application-wide usage limits used when the guild has
            configured none.
    """

    collection = Collection.GUILDS
    fields = (
        DocField.USAGE_LIMITS,
        DocField.COMMANDS,
        DocField.FILTERS,
        DocField.STAFF,
        DocField.LOG_CHANNEL,
    )
    defaults = {
        DocField.USAGE_LIMITS: dict,
        DocField.COMMANDS: dict,
        DocField.FILTERS: dict,
        DocField.STAFF: dict,
    }

    def __init__(self, store: DocumentStore, guild_id: GuildID, default_limits: Optional[UsageLimits] = None):
        super().__init__(store, str(guild_id))
        self.id = GuildID(guild_id)
        self.default_limits = default_limits or UsageLimits()

    # ------------------------------------------------------------------
    # Usage limits
    # ------------------------------------------------------------------

    async def get_usage_limits(self, command: CommandResolvable, fallback: Optional[UsageLimits] = None) -> UsageLimits:
        """
        Effective usage limits of ``command`` in this guild.

        Keys are taken from the per-command override, then the guild default,
        then ``fallback`` (or the application default).
        """
        command_name = resolve_command_name(command)
        limits = await self.aget(DocField.USAGE_LIMITS)
        base = UsageLimits.from_dict(limits.get("default"), fallback or self.default_limits)
        return UsageLimits.from_dict(limits.get("commands", {}).get(command_name), base)

    async def set_usage_limits(self, command: Optional[CommandResolvable], limits: UsageLimits) -> None:
        """Store ``limits`` for ``command``, or as the guild default when ``command`` is None."""
        path = FieldPath(DocField.USAGE_LIMITS)
        if command is None:
            path = path.child("default")
        else:
            path = path.child("commands").child(resolve_command_name(command))
        await self.update([SetField(path, limits.to_dict())])
        logger.debug("[GUILD] %s usage limits of %s set to %s", self.id, command or "default", limits)

    async def reset_usage_limits(self, command: Optional[CommandResolvable] = None) -> None:
        """Drop the override of ``command`` (or the guild default)."""
        path = FieldPath(DocField.USAGE_LIMITS)
        if command is None:
            path = path.child("default")
        else:
            path = path.child("commands").child(resolve_command_name(command))
        await self.update([UnsetField(path)])

    # ------------------------------------------------------------------
    # Command and filter state
    # ------------------------------------------------------------------

    async def is_command_enabled(self, command: CommandResolvable) -> bool:
        commands = await self.aget(DocField.COMMANDS)
        entry = commands.get(resolve_command_name(command), {})
        return bool(entry.get("enabled", True))

    async def set_command_enabled(self, command: CommandResolvable, enabled: bool) -> bool:
        """
        Enable or disable a command in this guild.

        Returns:
            True if the state changed, False if it already was ``enabled``
            (no store write in that case).
        """
        if await self.is_command_enabled(command) == enabled:
            return False
        path = FieldPath(DocField.COMMANDS, resolve_command_name(command), "enabled")
        await self.update([SetField(path, enabled)])
        return True

    async def is_filter_enabled(self, filter_name: str) -> bool:
        filters = await self.aget(DocField.FILTERS)
        entry = filters.get(normalize_name(filter_name), {})
        return bool(entry.get("enabled", False))

    async def set_filter_enabled(self, filter_name: str, enabled: bool) -> bool:
        """Same contract as ``set_command_enabled`` for filters."""
        if await self.is_filter_enabled(filter_name) == enabled:
            return False
        path = FieldPath(DocField.FILTERS, normalize_name(filter_name), "enabled")
        await self.update([SetField(path, enabled)])
        return True

    async def enabled_filter_names(self) -> List[str]:
        filters = await self.aget(DocField.FILTERS)
        return sorted(name for name, entry in filters.items() if entry.get("enabled", False))

    # ------------------------------------------------------------------
    # Staff
    # ------------------------------------------------------------------

    async def get_staff(self, rank: StaffRank) -> StaffEntry:
        staff = await self.aget(DocField.STAFF)
        entry = staff.get(rank.value, {})
        return StaffEntry(
            roles=tuple(RoleID(r) for r in entry.get("roles", [])),
            users=tuple(UserID(u) for u in entry.get("users", [])),
        )

    async def staff_level(self, user_id: UserID, role_ids: Iterable[RoleID] = ()) -> PermissionLevel:
        """Highest staff level granted to a user directly or through one of their roles."""
        role_ids = tuple(role_ids)
        for rank in (StaffRank.ADMINS, StaffRank.MODS, StaffRank.IMMUNE):
            if (await self.get_staff(rank)).includes(user_id, role_ids):
                return rank.level
        return PermissionLevel.MEMBER

    async def add_staff(
        self, rank: StaffRank, role_id: Optional[RoleID] = None, user_id: Optional[UserID] = None
    ) -> bool:
        """
        Add a role or a user to ``rank``.

        Returns:
            False if it already held the rank.
        """
        change = await self._staff_change(rank, role_id, user_id)
        value = str(role_id if role_id is not None else user_id)
        if value in change.current:
            return False
        await self.update([SetField(FieldPath(DocField.STAFF, rank.value, change.key), change.current + [value])])
        logger.info("[GUILD] %s: added %s %s to %s", self.id, change.key[:-1], value, rank)
        return True

    async def remove_staff(
        self, rank: StaffRank, role_id: Optional[RoleID] = None, user_id: Optional[UserID] = None
    ) -> bool:
        """
        Remove a role or a user from ``rank``.

        Returns:
            False if it did not hold the rank.
        """
        change = await self._staff_change(rank, role_id, user_id)
        value = str(role_id if role_id is not None else user_id)
        if value not in change.current:
            return False
        remaining = [v for v in change.current if v != value]
        await self.update([SetField(FieldPath(DocField.STAFF, rank.value, change.key), remaining)])
        logger.info("[GUILD] %s: removed %s %s from %s", self.id, change.key[:-1], value, rank)
        return True

    async def _staff_change(
        self, rank: StaffRank, role_id: Optional[RoleID], user_id: Optional[UserID]
    ) -> _StaffChange:
        if (role_id is None) == (user_id is None):
            raise ValueError("Exactly one of role_id and user_id must be given")
        key = "roles" if role_id is not None else "users"
        staff = await self.aget(DocField.STAFF)
        return _StaffChange(key, [str(v) for v in staff.get(rank.value, {}).get(key, [])])

    # ------------------------------------------------------------------
    # Log channel
    # ------------------------------------------------------------------

    async def get_log_channel(self) -> Optional[ChannelID]:
        value = await self.aget(DocField.LOG_CHANNEL)
        return ChannelID(value) if value is not None else None

    async def set_log_channel(self, channel_id: Optional[ChannelID]) -> None:
        path = FieldPath(DocField.LOG_CHANNEL)
        if channel_id is None:
            await self.update([UnsetField(path)])
        else:
            await self.update([SetField(path, channel_id.to_int())])
