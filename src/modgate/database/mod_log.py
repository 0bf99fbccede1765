"""
Moderation log: persisted record of administrative changes in a guild.

Three kinds of entries are written:

- staff changes (a role or user added to / removed from a staff rank)
- command toggles (a togglable command enabled / disabled)
- filter toggles (a content filter enabled / disabled)
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Awaitable, Callable, Dict, List, Optional

import aiosqlite

from modgate.database.db_connection import ConnectionManager
from modgate.datatypes.discord_datatypes import GuildID, RoleID, UserID
from modgate.datatypes.permission_datatypes import StaffRank
from modgate.errors import PersistenceError
from modgate.util.logger import get_logger
from modgate.util.time_utils import now_ms

logger = get_logger("mod_log")


class LogAction(Enum):
    """What kind of change an entry records."""

    STAFF = "staff"
    COMMAND = "command"
    FILTER = "filter"

    def __str__(self) -> str:
        return self.value


class LogType(IntEnum):
    """Direction of the change."""

    ADD = 0
    REMOVE = 1


@dataclass(slots=True)
class ModLogEntry:
    """A single moderation log row."""

    guild_id: GuildID
    action: LogAction
    type: LogType
    timestamp: int
    moderator_id: Optional[UserID] = None
    info: Dict[str, Any] = field(default_factory=dict)
    id: Optional[int] = None


EntryListener = Callable[[ModLogEntry], Awaitable[None]]


class ModLogRepository:
    """
    Appends to and reads from the ``mod_logs`` table.

    Listeners added with ``add_listener`` are awaited with every entry once it
    has been committed; the bot uses this to mirror entries into the guild's
    log channel.
    """

    def __init__(self, connection: ConnectionManager):
        self._connection = connection
        self._listeners: List[EntryListener] = []

    def add_listener(self, listener: EntryListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: EntryListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def log_staff_change(
        self,
        guild_id: GuildID,
        moderator_id: Optional[UserID],
        rank: StaffRank,
        log_type: LogType,
        role_id: Optional[RoleID] = None,
        user_id: Optional[UserID] = None,
    ) -> ModLogEntry:
        """Record a role or user being added to or removed from a staff rank."""
        info: Dict[str, Any] = {"rank": rank.value}
        if role_id is not None:
            info["role"] = str(role_id)
        if user_id is not None:
            info["user"] = str(user_id)
        return await self._append(guild_id, moderator_id, LogAction.STAFF, log_type, info)

    async def log_command_toggle(
        self, guild_id: GuildID, moderator_id: Optional[UserID], command_name: str, enabled: bool
    ) -> ModLogEntry:
        """Record a togglable command being enabled or disabled."""
        log_type = LogType.ADD if enabled else LogType.REMOVE
        return await self._append(guild_id, moderator_id, LogAction.COMMAND, log_type, {"command": command_name})

    async def log_filter_toggle(
        self, guild_id: GuildID, moderator_id: Optional[UserID], filter_name: str, enabled: bool
    ) -> ModLogEntry:
        """Record a filter being enabled or disabled."""
        log_type = LogType.ADD if enabled else LogType.REMOVE
        return await self._append(guild_id, moderator_id, LogAction.FILTER, log_type, {"filter": filter_name})

    async def recent(self, guild_id: GuildID, limit: int = 20, action: Optional[LogAction] = None) -> List[ModLogEntry]:
        """
        Return the newest entries for a guild, newest first.

        Args:
            guild_id: Guild to read.
            limit: Maximum number of entries.
            action: Only return entries of this kind.
        """
        query = "SELECT id, guild_id, moderator_id, action, type, info, timestamp FROM mod_logs WHERE guild_id = ?"
        params: List[Any] = [guild_id.to_int()]
        if action is not None:
            query += " AND action = ?"
            params.append(action.value)
        query += " ORDER BY timestamp DESC, id DESC LIMIT ?"
        params.append(limit)

        try:
            async with self._connection.read() as conn:
                async with conn.execute(query, params) as cursor:
                    rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            raise PersistenceError(f"Failed to read mod log for guild {guild_id}") from exc

        return [
            ModLogEntry(
                id=row[0],
                guild_id=GuildID(row[1]),
                moderator_id=UserID(row[2]) if row[2] is not None else None,
                action=LogAction(row[3]),
                type=LogType(row[4]),
                info=json.loads(row[5] or "{}"),
                timestamp=row[6],
            )
            for row in rows
        ]

    async def _append(
        self,
        guild_id: GuildID,
        moderator_id: Optional[UserID],
        action: LogAction,
        log_type: LogType,
        info: Dict[str, Any],
    ) -> ModLogEntry:
        entry = ModLogEntry(
            guild_id=guild_id,
            action=action,
            type=log_type,
            timestamp=now_ms(),
            moderator_id=moderator_id,
            info=info,
        )
        try:
            async with self._connection.transaction() as conn:
                cursor = await conn.execute(
                    """
                    INSERT INTO mod_logs (guild_id, moderator_id, action, type, info, timestamp)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        guild_id.to_int(),
                        moderator_id.to_int() if moderator_id is not None else None,
                        action.value,
                        int(log_type),
                        json.dumps(info),
                        entry.timestamp,
                    ),
                )
                entry.id = cursor.lastrowid
        except aiosqlite.Error as exc:
            logger.error("[MOD LOG] Failed to write %s entry for guild %s: %s", action, guild_id, exc)
            raise PersistenceError(f"Failed to write mod log for guild {guild_id}") from exc

        logger.debug("[MOD LOG] %s %s in guild %s: %s", action, log_type.name.lower(), guild_id, info)
        for listener in list(self._listeners):
            await listener(entry)
        return entry
