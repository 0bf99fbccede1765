from __future__ import annotations

from typing import Iterable, Iterator, Optional

from modgate.datatypes.command_datatypes import CommandDefinition
from modgate.datatypes.permission_datatypes import PermissionLevel
from modgate.registry.definition_tree import DefinitionTree, NodeListing, TreeNode
from modgate.util.logger import get_logger
from modgate.util.parsers import DEFAULT_SIMILARITY_THRESHOLD

logger = get_logger("command_registry")


class CommandRegistry:
    """Every command definition the bot knows, by name and by category.

    Built once at startup and handed to the ``GateKeeper`` and the cogs.
    ``resolve`` is the only lookup used for gating; ``suggest`` only feeds
    "did you mean" hints.
    """

    def __init__(self, definitions: Iterable[CommandDefinition] = ()) -> None:
        self._tree: DefinitionTree[CommandDefinition] = DefinitionTree("command")
        for definition in definitions:
            self.register(definition)

    def register(self, definition: CommandDefinition) -> CommandDefinition:
        return self._tree.register(definition)

    def resolve(self, name: str) -> Optional[CommandDefinition]:
        return self._tree.resolve(name)

    def resolve_category(self, path: str) -> TreeNode[CommandDefinition]:
        return self._tree.resolve_category(path)

    def list_category(self, path: str = "", visibility_ceiling: PermissionLevel = PermissionLevel.ADMIN) -> NodeListing:
        """List a category, hiding commands that need more than ``visibility_ceiling``.

        Raises:
            CategoryNotFoundError: If ``path`` does not name a category.
        """
        return self._tree.list_category(path, lambda d: d.permission_level <= visibility_ceiling)

    def suggest(self, name: str, threshold: float = DEFAULT_SIMILARITY_THRESHOLD) -> Optional[str]:
        return self._tree.suggest(name, threshold)

    def names(self):
        return self._tree.names()

    def __contains__(self, name: str) -> bool:
        return name in self._tree

    def __iter__(self) -> Iterator[CommandDefinition]:
        return iter(self._tree)

    def __len__(self) -> int:
        return len(self._tree)
