"""
Entry point for every document wrapper.

``StateManager`` owns one ``WrapperCache`` per collection and hands out the
single live wrapper for a key. It is constructed once in ``main`` and passed
to whatever needs wrappers; there is no module-level instance.
"""

from __future__ import annotations

import time
from typing import Callable, Dict, Optional, Set

from modgate.database.document_store import Collection, DocumentStore
from modgate.datatypes.command_datatypes import UsageLimits
from modgate.datatypes.discord_datatypes import GuildID, UserID
from modgate.util.logger import get_logger
from modgate.util.time_utils import now_ms
from modgate.wrappers.guild_member_wrapper import GuildMemberWrapper, member_key
from modgate.wrappers.guild_wrapper import GuildWrapper
from modgate.wrappers.user_wrapper import UserWrapper
from modgate.wrappers.wrapper_cache import WrapperCache

logger = get_logger("state_manager")


class StateManager:
    """
    Creates and caches user, guild and guild member wrappers.

    Args:
        store: Document store shared by every wrapper.
        default_limits: Application-wide usage limits for guild commands.
        dm_limits: Usage limits for commands run in direct messages.
        clock: Epoch-millisecond clock handed to wrappers for cooldown checks.
        cache_clock: Monotonic seconds clock used for idle eviction.
    """

    def __init__(
        self,
        store: DocumentStore,
        default_limits: Optional[UsageLimits] = None,
        dm_limits: Optional[UsageLimits] = None,
        clock: Callable[[], int] = now_ms,
        cache_clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.default_limits = default_limits or UsageLimits()
        self.dm_limits = dm_limits or self.default_limits
        self.clock = clock
        self._users: WrapperCache[UserWrapper] = WrapperCache(Collection.USERS, cache_clock)
        self._guilds: WrapperCache[GuildWrapper] = WrapperCache(Collection.GUILDS, cache_clock)
        self._members: WrapperCache[GuildMemberWrapper] = WrapperCache(Collection.GUILD_MEMBERS, cache_clock)

    def user(self, user_id: UserID) -> UserWrapper:
        user_id = UserID(user_id)
        return self._users.get_or_create(str(user_id), lambda: UserWrapper(self.store, user_id, self.clock))

    def guild(self, guild_id: GuildID) -> GuildWrapper:
        guild_id = GuildID(guild_id)
        return self._guilds.get_or_create(
            str(guild_id), lambda: GuildWrapper(self.store, guild_id, self.default_limits)
        )

    def member(self, guild_id: GuildID, user_id: UserID) -> GuildMemberWrapper:
        guild_id = GuildID(guild_id)
        user_id = UserID(user_id)
        return self._members.get_or_create(
            member_key(guild_id, user_id),
            lambda: GuildMemberWrapper(self.store, self.user(user_id), self.guild(guild_id), self.clock),
        )

    def evict_idle(self, max_idle_seconds: float) -> int:
        """
        Drop wrappers idle for longer than ``max_idle_seconds``.

        Members go first. Users and guilds still referenced by a cached member
        are kept so a member never points at a wrapper the cache forgot.

        Returns:
            Total number of wrappers evicted.
        """
        evicted = self._members.evict_idle(max_idle_seconds)
        referenced_users: Set[str] = {str(m.user.id) for m in self._members.values()}
        referenced_guilds: Set[str] = {str(m.guild_id) for m in self._members.values()}
        evicted += self._users.evict_idle(max_idle_seconds, pinned=lambda key: key in referenced_users)
        evicted += self._guilds.evict_idle(max_idle_seconds, pinned=lambda key: key in referenced_guilds)
        if evicted:
            logger.info("[STATE MANAGER] Evicted %d idle wrapper(s)", evicted)
        return evicted

    async def forget_guild(self, guild_id: GuildID) -> bool:
        """
        Drop a guild's configuration from the cache and the store.

        Member documents of the guild are left in place; their cached
        wrappers are evicted together with the guild wrapper.

        Returns:
            True if a stored document was removed.
        """
        guild_id = GuildID(guild_id)
        prefix = f"{guild_id}:"
        for member in self._members.values():
            if member.key.startswith(prefix):
                self._members.evict(member.key)
        self._guilds.evict(str(guild_id))
        removed = await self.store.delete(Collection.GUILDS, str(guild_id))
        logger.info("[STATE MANAGER] Forgot guild %s (stored document removed: %s)", guild_id, removed)
        return removed

    def stats(self) -> Dict[str, int]:
        return {
            Collection.USERS: len(self._users),
            Collection.GUILDS: len(self._guilds),
            Collection.GUILD_MEMBERS: len(self._members),
        }
