"""
Category tree shared by the command and filter registries.

Definitions are grouped under slash separated category paths for listing::

    root
    ├── management/          (category)
    │   ├── commands         (leaf)
    │   └── filters          (leaf)
    └── help                 (leaf)

A node is either a category (children, no definition) or a leaf (a
definition, no children). Lookup by bare name goes through a flat index and
never walks the tree, so names and aliases must be unique across all depths.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, Generic, Iterator, List, Optional, Protocol, Tuple, TypeVar

from modgate.datatypes.command_datatypes import normalize_name
from modgate.errors import CategoryNotFoundError, DuplicateDefinitionError
from modgate.util.logger import get_logger
from modgate.util.parsers import DEFAULT_SIMILARITY_THRESHOLD, closest_match

logger = get_logger("definition_tree")


class Definition(Protocol):
    name: str
    path: str
    short_help: str

    @property
    def aliases(self) -> Tuple[str, ...]:
        ...


D = TypeVar("D", bound=Definition)


@dataclass(eq=False)
class TreeNode(Generic[D]):
    """A category (``definition is None``) or a leaf of the tree."""

    name: str
    definition: Optional[D] = None
    children: Dict[str, "TreeNode[D]"] = field(default_factory=dict)

    @property
    def is_leaf(self) -> bool:
        return self.definition is not None

    @property
    def is_category(self) -> bool:
        return self.definition is None


@dataclass(frozen=True)
class NodeListing:
    """
    Direct children of one category node.

    Attributes:
        path: Category path that was listed (``""`` for the root).
        categories: Names of sub-categories, sorted.
        leaves: ``(name, short_help)`` pairs of visible definitions, sorted.
    """

    path: str
    categories: Tuple[str, ...]
    leaves: Tuple[Tuple[str, str], ...]

    @property
    def is_empty(self) -> bool:
        return not self.categories and not self.leaves


def split_path(path: str) -> List[str]:
    """Split a category path into normalised segments; ``""`` is the root."""
    return [normalize_name(s) for s in path.strip().strip("/").split("/") if s.strip()]


class DefinitionTree(Generic[D]):
    """
    Tree plus flat name index of definitions.

    Args:
        kind: Label used in log lines and error messages ("command", "filter").
    """

    def __init__(self, kind: str):
        self.kind = kind
        self.root: TreeNode[D] = TreeNode("")
        self._by_name: Dict[str, D] = {}
        self._aliases: Dict[str, str] = {}

    def register(self, definition: D) -> D:
        """
        Add ``definition`` under its path, creating categories as needed.

        Raises:
            DuplicateDefinitionError: If the name or an alias is taken, or
                the path runs through a leaf, or the leaf name is already a
                category at that level.
        """
        names = (definition.name, *definition.aliases)
        for name in names:
            if name in self._by_name or name in self._aliases:
                raise DuplicateDefinitionError(f"{self.kind} name '{name}' is already registered")
        if len(set(names)) != len(names):
            raise DuplicateDefinitionError(f"{self.kind} '{definition.name}' repeats a name in its aliases")

        node = self.root
        for segment in split_path(definition.path):
            child = node.children.get(segment)
            if child is None:
                child = node.children[segment] = TreeNode(segment)
            elif child.is_leaf:
                raise DuplicateDefinitionError(
                    f"Category '{segment}' of {self.kind} '{definition.name}' clashes with a {self.kind} of that name"
                )
            node = child

        if definition.name in node.children:
            raise DuplicateDefinitionError(
                f"{self.kind} '{definition.name}' clashes with a category of that name"
            )

        node.children[definition.name] = TreeNode(definition.name, definition)
        self._by_name[definition.name] = definition
        for alias in definition.aliases:
            self._aliases[alias] = definition.name
        logger.debug("[REGISTRY] Registered %s '%s' at '%s'", self.kind, definition.name, definition.path)
        return definition

    def resolve(self, name: str) -> Optional[D]:
        """Definition registered under ``name`` or one of its aliases, case-insensitively."""
        key = normalize_name(name)
        key = self._aliases.get(key, key)
        return self._by_name.get(key)

    def resolve_category(self, path: str) -> TreeNode[D]:
        """
        Walk ``path`` from the root and return the category node reached.

        Raises:
            CategoryNotFoundError: At the first segment that is missing or
                names a leaf.
        """
        node = self.root
        for segment in split_path(path):
            child = node.children.get(segment)
            if child is None or child.is_leaf:
                raise CategoryNotFoundError(path, segment)
            node = child
        return node

    def list_node(self, node: TreeNode[D], path: str = "", include: Optional[Callable[[D], bool]] = None) -> NodeListing:
        """List the direct children of a category, hiding leaves ``include`` rejects."""
        categories = sorted(name for name, child in node.children.items() if child.is_category)
        leaves = sorted(
            (child.definition.name, child.definition.short_help)
            for child in node.children.values()
            if child.is_leaf and (include is None or include(child.definition))
        )
        return NodeListing(path=path.strip().strip("/"), categories=tuple(categories), leaves=tuple(leaves))

    def list_category(self, path: str = "", include: Optional[Callable[[D], bool]] = None) -> NodeListing:
        """``resolve_category`` followed by ``list_node``."""
        return self.list_node(self.resolve_category(path), path, include)

    def suggest(self, name: str, threshold: float = DEFAULT_SIMILARITY_THRESHOLD) -> Optional[str]:
        """Closest registered name or alias to ``name``, for "did you mean" hints only."""
        return closest_match(normalize_name(name), [*self._by_name, *self._aliases], threshold)

    def names(self) -> List[str]:
        return sorted(self._by_name)

    def __contains__(self, name: str) -> bool:
        return self.resolve(name) is not None

    def __iter__(self) -> Iterator[D]:
        return iter(self._by_name.values())

    def __len__(self) -> int:
        return len(self._by_name)
