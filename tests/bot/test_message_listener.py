from types import SimpleNamespace
from unittest.mock import AsyncMock

import discord
import pytest
import pytest_asyncio

from modgate.bot.cogs import message_listener
from modgate.datatypes.discord_datatypes import GuildID, UserID
from modgate.datatypes.permission_datatypes import StaffRank
from modgate.errors import PersistenceError

GUILD_ID = 10
LOUD = "WHY IS NOBODY ANSWERING ME"


class FakeMessage:
    def __init__(self, *, author, content="", guild_id=GUILD_ID, message_id=1):
        self.author = author
        self.content = content
        self.guild = SimpleNamespace(id=guild_id) if guild_id is not None else None
        self.id = message_id
        self.delete = AsyncMock()


@pytest.fixture()
def cog(services):
    return message_listener.MessageListenerCog(SimpleNamespace(), services)


@pytest_asyncio.fixture
async def caps_enabled(services):
    await services.filters.enable(GuildID(GUILD_ID), "caps")


@pytest.mark.asyncio
async def test_tripping_message_is_deleted(cog, caps_enabled, make_user):
    message = FakeMessage(author=make_user(), content=LOUD)

    await cog.on_message(message)

    message.delete.assert_awaited_once()


@pytest.mark.asyncio
async def test_clean_message_is_kept(cog, caps_enabled, make_user):
    message = FakeMessage(author=make_user(), content="hello there everyone")

    assert await cog.apply_filters(message) is False
    message.delete.assert_not_awaited()


@pytest.mark.asyncio
async def test_disabled_filters_do_nothing(cog, make_user):
    message = FakeMessage(author=make_user(), content=LOUD)

    assert await cog.apply_filters(message) is False


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "user_kwargs, guild_id",
    [
        ({"bot": True}, GUILD_ID),
        ({"administrator": True}, GUILD_ID),
        ({}, None),
    ],
    ids=["bot", "administrator", "direct-message"],
)
async def test_exempt_authors(cog, caps_enabled, make_user, user_kwargs, guild_id):
    message = FakeMessage(author=make_user(**user_kwargs), content=LOUD, guild_id=guild_id)

    assert await cog.apply_filters(message) is False
    message.delete.assert_not_awaited()


@pytest.mark.asyncio
async def test_immune_staff_are_exempt(cog, services, caps_enabled, make_user):
    await services.state.guild(GuildID(GUILD_ID)).add_staff(StaffRank.IMMUNE, user_id=UserID(3))

    message = FakeMessage(author=make_user(3), content=LOUD)

    assert await cog.apply_filters(message) is False


@pytest.mark.asyncio
async def test_delete_failure_is_logged(cog, caps_enabled, make_user):
    message = FakeMessage(author=make_user(), content=LOUD)
    message.delete.side_effect = discord.HTTPException(SimpleNamespace(status=403, reason="Forbidden"), "Missing Permissions")

    assert await cog.apply_filters(message) is False


@pytest.mark.asyncio
async def test_store_failure_keeps_message(cog, store, make_user):
    store.fetch = AsyncMock(side_effect=PersistenceError("down"))
    message = FakeMessage(author=make_user(), content=LOUD)

    assert await cog.apply_filters(message) is False
    message.delete.assert_not_awaited()


@pytest.mark.asyncio
async def test_edits_are_rescanned_only_when_content_changes(cog, caps_enabled, make_user):
    author = make_user()
    before = FakeMessage(author=author, content=LOUD)
    after = FakeMessage(author=author, content=LOUD)

    await cog.on_message_edit(before, after)
    after.delete.assert_not_awaited()

    before.content = "quiet"
    await cog.on_message_edit(before, after)
    after.delete.assert_awaited_once()


def test_setup_registers_cog(services):
    added = []
    message_listener.setup(SimpleNamespace(add_cog=added.append), services)
    assert isinstance(added[0], message_listener.MessageListenerCog)
