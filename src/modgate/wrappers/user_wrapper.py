"""
Wrapper around a user's stored document.

The only field is ``command_last_used``::

    {"global": {"ping": 1700000000000}, "dm": {...}, "<guild id>": {...}}

Any write to a non-global scope also writes ``global``, so the global scope
is always the most recent use across every scope and can back global
cooldowns.
"""

from __future__ import annotations

from typing import Callable, Dict, Optional, Union

from modgate.database.doc_path import DocField, FieldPath, SetField, UnsetField
from modgate.database.document_store import Collection, DocumentStore
from modgate.datatypes.command_datatypes import (
    GLOBAL_SCOPE,
    CommandResolvable,
    CommandScope,
    UsageLimits,
    UsageVerdict,
    evaluate_usage,
    resolve_command_name,
)
from modgate.datatypes.discord_datatypes import GuildID, UserID
from modgate.util.logger import get_logger
from modgate.util.time_utils import now_ms
from modgate.wrappers.doc_wrapper import DocWrapper

logger = get_logger("user_wrapper")

ScopeLike = Union[CommandScope, GuildID, str, int]


class UserWrapper(DocWrapper):
    """
    A user's command usage across every scope.

    Args:
        store: Backing document store.
        user_id: User this document belongs to.
        clock: Epoch-millisecond clock used for cooldown checks.
    """

    collection = Collection.USERS
    fields = (DocField.COMMAND_LAST_USED,)
    defaults = {DocField.COMMAND_LAST_USED: dict}

    def __init__(self, store: DocumentStore, user_id: UserID, clock: Callable[[], int] = now_ms):
        super().__init__(store, str(user_id))
        self.id = UserID(user_id)
        self._clock = clock

    @property
    def command_last_used(self) -> Dict[str, Dict[str, int]]:
        """Loaded ``command_last_used`` mapping; raises NotLoadedError if not loaded."""
        return self.get(DocField.COMMAND_LAST_USED)

    async def get_command_last_used(self, scope: ScopeLike, command: CommandResolvable) -> int:
        """
        When the user last used ``command`` in ``scope``.

        Returns:
            Epoch milliseconds, or 0 if the command was never used there.

        Raises:
            InvalidScopeError: If ``scope`` is not a guild id, "dm" or "global".
        """
        scope = CommandScope(scope)
        command_name = resolve_command_name(command)
        await self.load(DocField.COMMAND_LAST_USED)
        return int(self.command_last_used.get(str(scope), {}).get(command_name, 0))

    async def set_command_last_used(self, scope: ScopeLike, command: CommandResolvable, timestamp: int) -> int:
        """
        Record that the user used ``command`` in ``scope`` at ``timestamp``.

        A non-global scope also sets the global entry in the same update.

        Returns:
            The timestamp that was stored.

        Raises:
            InvalidScopeError: If ``scope`` is invalid.
            PersistenceError: If the store write fails; nothing changes in memory.
        """
        scope = CommandScope(scope)
        command_name = resolve_command_name(command)
        path = FieldPath(DocField.COMMAND_LAST_USED)

        ops = [SetField(path.child(scope).child(command_name), timestamp)]
        if not scope.is_global:
            ops.append(SetField(path.child(GLOBAL_SCOPE).child(command_name), timestamp))

        await self.update(ops)
        logger.debug("[USER] %s used %s in scope %s at %d", self.id, command_name, scope, timestamp)
        return timestamp

    async def reset_command_last_used(self, scope: ScopeLike) -> Optional[Dict[str, int]]:
        """
        Delete every last-used entry of ``scope``.

        Returns:
            The removed ``{command: timestamp}`` mapping, or None if the scope
            held nothing (no store write is issued in that case).
        """
        scope = CommandScope(scope)
        await self.load(DocField.COMMAND_LAST_USED)
        removed = self.command_last_used.get(str(scope))
        if not removed:
            return None

        removed = dict(removed)
        await self.update([UnsetField(FieldPath(DocField.COMMAND_LAST_USED, scope))])
        logger.debug("[USER] Reset %d command timestamp(s) of %s in scope %s", len(removed), self.id, scope)
        return removed

    async def check_usage(self, scope: ScopeLike, command: CommandResolvable, limits: UsageLimits) -> UsageVerdict:
        """
        Apply ``limits`` to this user's usage of ``command``.

        The local cooldown is measured against ``scope`` and the global
        cooldown against the global scope, both at the current clock time.
        """
        if not limits.enabled:
            return UsageVerdict(allowed=False, limits_enabled=False)

        local_last_used = await self.get_command_last_used(scope, command)
        global_last_used = await self.get_command_last_used(GLOBAL_SCOPE, command)
        return evaluate_usage(limits, local_last_used, global_last_used, self._clock())

    async def can_use_command(self, scope: ScopeLike, command: CommandResolvable, limits: UsageLimits) -> bool:
        """Whether the usage limits currently allow ``command`` in ``scope``."""
        return (await self.check_usage(scope, command, limits)).allowed
