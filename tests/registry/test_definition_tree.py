import pytest

from modgate.datatypes.command_datatypes import CommandDefinition, FilterDefinition
from modgate.datatypes.permission_datatypes import PermissionLevel
from modgate.errors import CategoryNotFoundError, DuplicateDefinitionError
from modgate.registry.command_registry import CommandRegistry
from modgate.registry.definition_tree import DefinitionTree, split_path


@pytest.fixture()
def registry():
    return CommandRegistry([
        CommandDefinition(name="help", short_help="Shows help", dm_capable=True, togglable=False),
        CommandDefinition(name="ping", path="a/b", short_help="Pong", aliases=("latency",)),
        CommandDefinition(name="ban", path="a", short_help="Bans", permission_level=PermissionLevel.MOD),
        CommandDefinition(name="shutdown", path="a", short_help="Stops", permission_level=PermissionLevel.BOT_MASTER),
    ])


def test_split_path():
    assert split_path("") == []
    assert split_path("/A/b/") == ["a", "b"]
    assert split_path("a//b") == ["a", "b"]


def test_resolve_by_name_and_alias(registry):
    assert registry.resolve("ping").path == "a/b"
    assert registry.resolve("PING") is registry.resolve("ping")
    assert registry.resolve("Latency") is registry.resolve("ping")
    assert registry.resolve("pong") is None
    assert "latency" in registry
    assert "pong" not in registry


def test_resolve_category(registry):
    node = registry.resolve_category("a/b")
    assert node.is_category
    assert node.children["ping"].is_leaf
    assert registry.list_category("a/b").leaves == (("ping", "Pong"),)
    assert registry.resolve_category("") is registry.resolve_category("/")


def test_missing_category_reports_segment(registry):
    with pytest.raises(CategoryNotFoundError) as exc_info:
        registry.resolve_category("a/x")
    assert exc_info.value.segment == "x"
    assert exc_info.value.path == "a/x"


def test_leaf_is_not_a_category(registry):
    with pytest.raises(CategoryNotFoundError):
        registry.resolve_category("a/ban")


def test_listing_hides_commands_above_ceiling(registry):
    listing = registry.list_category("a")
    assert listing.categories == ("b",)
    assert listing.leaves == (("ban", "Bans"),)

    listing = registry.list_category("a", visibility_ceiling=PermissionLevel.BOT_MASTER)
    assert [name for name, _ in listing.leaves] == ["ban", "shutdown"]

    root = registry.list_category()
    assert root.categories == ("a",)
    assert root.leaves == (("help", "Shows help"),)
    assert not root.is_empty


def test_empty_category_listing():
    tree = DefinitionTree("command")
    assert tree.list_category("").is_empty


@pytest.mark.parametrize(
    "definition",
    [
        CommandDefinition(name="ping"),
        CommandDefinition(name="latency"),
        CommandDefinition(name="pong", aliases=("ping",)),
        CommandDefinition(name="kick", aliases=("boot", "boot")),
        CommandDefinition(name="kick", aliases=("kick",)),
        CommandDefinition(name="kick", path="help"),
        CommandDefinition(name="a"),
    ],
    ids=["name", "name-is-alias", "alias-is-name", "repeated-alias", "alias-is-own-name", "through-leaf", "category-name"],
)
def test_duplicates_are_rejected(registry, definition):
    with pytest.raises(DuplicateDefinitionError):
        registry.register(definition)


def test_suggest_only_above_threshold(registry):
    assert registry.suggest("pnig") == "ping"
    assert registry.suggest("latncy") == "latency"
    assert registry.suggest("zzzzzzzzzz") is None


def test_names_and_iteration(registry):
    assert registry.names() == ["ban", "help", "ping", "shutdown"]
    assert len(registry) == 4
    assert {d.name for d in registry} == set(registry.names())


def test_filter_definitions_share_the_tree():
    tree = DefinitionTree("filter")
    tree.register(FilterDefinition(name="caps", path="spam", short_help="Caps"))
    assert tree.resolve("CAPS").path == "spam"
    assert tree.list_category("spam").leaves == (("caps", "Caps"),)
