"""
Wrapper around a user's per-guild document.

Keyed ``"<guild id>:<user id>"``, it holds guild-local ``command_last_used``
(``{command: timestamp}``) and owns references to the user's ``UserWrapper``
and the ``GuildWrapper`` it lives in. Global cooldowns are read from and
written to the user's ``"global"`` scope.
"""

from __future__ import annotations

from typing import Callable, Dict

from modgate.database.doc_path import DocField, FieldPath, SetField
from modgate.database.document_store import Collection, DocumentStore
from modgate.datatypes.command_datatypes import (
    GLOBAL_SCOPE,
    CommandResolvable,
    UsageVerdict,
    evaluate_usage,
    resolve_command_name,
)
from modgate.datatypes.discord_datatypes import GuildID, UserID
from modgate.util.logger import get_logger
from modgate.util.time_utils import now_ms
from modgate.wrappers.doc_wrapper import DocWrapper
from modgate.wrappers.guild_wrapper import GuildWrapper
from modgate.wrappers.user_wrapper import UserWrapper

logger = get_logger("guild_member_wrapper")


def member_key(guild_id: GuildID, user_id: UserID) -> str:
    return f"{guild_id}:{user_id}"


class GuildMemberWrapper(DocWrapper):
    """
    A member's command usage inside one guild.

    Args:
        store: Backing document store.
        user: Wrapper of the member's user document.
        guild: Wrapper of the guild's configuration document.
        clock: Epoch-millisecond clock used for cooldown checks.
    """

    collection = Collection.GUILD_MEMBERS
    fields = (DocField.COMMAND_LAST_USED,)
    defaults = {DocField.COMMAND_LAST_USED: dict}

    def __init__(
        self,
        store: DocumentStore,
        user: UserWrapper,
        guild: GuildWrapper,
        clock: Callable[[], int] = now_ms,
    ):
        super().__init__(store, member_key(guild.id, user.id))
        self.id = user.id
        self.user = user
        self.guild = guild
        self._clock = clock

    @property
    def guild_id(self) -> GuildID:
        return self.guild.id

    @property
    def command_last_used(self) -> Dict[str, int]:
        return self.get(DocField.COMMAND_LAST_USED)

    async def get_command_last_used(self, command: CommandResolvable) -> int:
        """Guild-local last use of ``command`` in epoch ms, 0 if never."""
        await self.load(DocField.COMMAND_LAST_USED)
        return int(self.command_last_used.get(resolve_command_name(command), 0))

    async def set_command_last_used(self, command: CommandResolvable, timestamp: int) -> int:
        """
        Record a use of ``command`` in this guild.

        The guild-local entry is written first, then the user's global entry
        in a separate update. The two writes are not atomic: if the second
        one fails the local entry stays set and the error propagates.

        Raises:
            PersistenceError: If either write fails.
        """
        command_name = resolve_command_name(command)
        await self.update([SetField(FieldPath(DocField.COMMAND_LAST_USED, command_name), timestamp)])
        try:
            await self.user.set_command_last_used(GLOBAL_SCOPE, command_name, timestamp)
        except Exception:
            logger.warning(
                "[GUILD MEMBER] Global usage of %s by %s not recorded, guild %s entry already written",
                command_name, self.id, self.guild_id,
            )
            raise
        return timestamp

    async def check_usage(self, command: CommandResolvable) -> UsageVerdict:
        """
        Apply the guild's usage limits for ``command`` to this member.

        The local cooldown uses this document, the global cooldown uses the
        user's global scope.
        """
        limits = await self.guild.get_usage_limits(command)
        if not limits.enabled:
            return UsageVerdict(allowed=False, limits_enabled=False)

        local_last_used = await self.get_command_last_used(command)
        global_last_used = await self.user.get_command_last_used(GLOBAL_SCOPE, command)
        return evaluate_usage(limits, local_last_used, global_last_used, self._clock())

    async def can_use_command(self, command: CommandResolvable) -> bool:
        return (await self.check_usage(command)).allowed
