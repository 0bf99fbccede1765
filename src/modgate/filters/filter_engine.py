"""
Content filters: registry, per-guild enable state and message scanning.

Filters share the category tree and listing contract of commands but have no
permission level or cooldown. A filter is off in a guild until enabled.
Enabling an enabled filter (or disabling a disabled one) is reported as a
``ToggleOutcome`` and does not touch the store.
"""

from __future__ import annotations

from typing import Iterable, Iterator, List, Optional

from modgate.database.mod_log import ModLogRepository
from modgate.datatypes.command_datatypes import FilterDefinition
from modgate.datatypes.discord_datatypes import GuildID, UserID
from modgate.datatypes.gate_datatypes import ToggleOutcome
from modgate.registry.definition_tree import DefinitionTree, NodeListing, TreeNode
from modgate.util.logger import get_logger
from modgate.util.parsers import DEFAULT_SIMILARITY_THRESHOLD
from modgate.wrappers.state_manager import StateManager

logger = get_logger("filter_engine")


class FilterRegistry:
    """Every filter definition, by name and by category."""

    def __init__(self, definitions: Iterable[FilterDefinition] = ()) -> None:
        self._tree: DefinitionTree[FilterDefinition] = DefinitionTree("filter")
        for definition in definitions:
            self.register(definition)

    def register(self, definition: FilterDefinition) -> FilterDefinition:
        return self._tree.register(definition)

    def resolve(self, name: str) -> Optional[FilterDefinition]:
        return self._tree.resolve(name)

    def resolve_category(self, path: str) -> TreeNode[FilterDefinition]:
        return self._tree.resolve_category(path)

    def list_category(self, path: str = "") -> NodeListing:
        return self._tree.list_category(path)

    def suggest(self, name: str, threshold: float = DEFAULT_SIMILARITY_THRESHOLD) -> Optional[str]:
        return self._tree.suggest(name, threshold)

    def __iter__(self) -> Iterator[FilterDefinition]:
        return iter(self._tree)

    def __len__(self) -> int:
        return len(self._tree)


class FilterEngine:
    """
    Enables, disables and applies filters per guild.

    Args:
        registry: Filters known to the bot.
        state: Source of guild wrappers.
        mod_log: Where toggles are recorded, if anywhere.
    """

    def __init__(self, registry: FilterRegistry, state: StateManager, mod_log: Optional[ModLogRepository] = None):
        self.registry = registry
        self.state = state
        self.mod_log = mod_log

    def resolve(self, name: str) -> Optional[FilterDefinition]:
        return self.registry.resolve(name)

    def resolve_category(self, path: str) -> TreeNode[FilterDefinition]:
        return self.registry.resolve_category(path)

    def list_category(self, path: str = "") -> NodeListing:
        """
        Raises:
            CategoryNotFoundError: If ``path`` does not name a category.
        """
        return self.registry.list_category(path)

    async def is_enabled(self, guild_id: GuildID, name: str) -> bool:
        definition = self.registry.resolve(name)
        if definition is None:
            return False
        return await self.state.guild(guild_id).is_filter_enabled(definition.name)

    async def enabled_filters(self, guild_id: GuildID) -> List[FilterDefinition]:
        """Enabled filters of a guild; stored names no longer registered are skipped."""
        names = await self.state.guild(guild_id).enabled_filter_names()
        return [d for d in (self.registry.resolve(n) for n in names) if d is not None]

    async def enable(self, guild_id: GuildID, name: str, moderator_id: Optional[UserID] = None) -> ToggleOutcome:
        return await self._toggle(guild_id, name, True, moderator_id)

    async def disable(self, guild_id: GuildID, name: str, moderator_id: Optional[UserID] = None) -> ToggleOutcome:
        return await self._toggle(guild_id, name, False, moderator_id)

    async def scan(self, guild_id: GuildID, content: str) -> List[FilterDefinition]:
        """Enabled filters of the guild that ``content`` trips."""
        if not content:
            return []
        return [d for d in await self.enabled_filters(guild_id) if d.matches(content)]

    async def _toggle(
        self, guild_id: GuildID, name: str, enabled: bool, moderator_id: Optional[UserID]
    ) -> ToggleOutcome:
        definition = self.registry.resolve(name)
        if definition is None:
            return ToggleOutcome.NOT_FOUND

        guild = self.state.guild(guild_id)
        if not await guild.set_filter_enabled(definition.name, enabled):
            return ToggleOutcome.ALREADY_ENABLED if enabled else ToggleOutcome.ALREADY_DISABLED

        logger.info("[FILTER ENGINE] %s filter '%s' in guild %s", "Enabled" if enabled else "Disabled", definition.name, guild_id)
        if self.mod_log is not None:
            await self.mod_log.log_filter_toggle(GuildID(guild_id), moderator_id, definition.name, enabled)
        return ToggleOutcome.ENABLED if enabled else ToggleOutcome.DISABLED
