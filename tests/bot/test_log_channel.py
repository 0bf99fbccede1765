from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest
import pytest_asyncio

from modgate.bot.log_channel import LogChannelPoster, describe_entry, entry_embed
from modgate.database.mod_log import LogAction, LogType, ModLogEntry
from modgate.datatypes.discord_datatypes import ChannelID, GuildID, UserID
from modgate.errors import PersistenceError

GUILD_ID = 10
LOG_CHANNEL_ID = 55


def make_entry(action, log_type, info, moderator_id=UserID(1), entry_id=None):
    return ModLogEntry(
        guild_id=GuildID(GUILD_ID),
        action=action,
        type=log_type,
        timestamp=1_700_000_000_000,
        moderator_id=moderator_id,
        info=info,
        id=entry_id,
    )


@pytest.fixture()
def channel():
    return SimpleNamespace(send=AsyncMock())


@pytest.fixture()
def fake_bot(channel):
    return SimpleNamespace(get_channel=MagicMock(return_value=channel))


@pytest.fixture()
def poster(fake_bot, services):
    return LogChannelPoster(fake_bot, services.state)


@pytest_asyncio.fixture()
async def configured(services):
    await services.state.guild(GUILD_ID).set_log_channel(ChannelID(LOG_CHANNEL_ID))


@pytest.mark.parametrize(
    "entry, expected",
    [
        (
            make_entry(LogAction.STAFF, LogType.ADD, {"rank": "mods", "role": "5"}),
            "Role <@&5> was added to the mods rank by <@1>.",
        ),
        (
            make_entry(LogAction.STAFF, LogType.REMOVE, {"rank": "admins", "user": "7"}, moderator_id=None),
            "User <@7> was removed from the admins rank.",
        ),
        (
            make_entry(LogAction.COMMAND, LogType.REMOVE, {"command": "ping"}),
            "Command `ping` was disabled by <@1>.",
        ),
        (
            make_entry(LogAction.FILTER, LogType.ADD, {"filter": "caps"}),
            "Filter `caps` was enabled by <@1>.",
        ),
    ],
)
def test_describe_entry(entry, expected):
    assert describe_entry(entry) == expected


def test_entry_embed():
    embed = entry_embed(make_entry(LogAction.COMMAND, LogType.ADD, {"command": "ping"}, entry_id=3))

    assert embed.title == "Command Change"
    assert embed.color == discord.Color.green()
    assert embed.footer.text == "Entry #3"
    assert int(embed.timestamp.timestamp() * 1000) == 1_700_000_000_000


@pytest.mark.asyncio
async def test_post_without_log_channel_sends_nothing(poster, fake_bot):
    assert await poster.post(GuildID(GUILD_ID), "hello") is False
    fake_bot.get_channel.assert_not_called()


@pytest.mark.asyncio
async def test_post_sends_to_configured_channel(poster, fake_bot, channel, configured):
    embed = discord.Embed(title="x")

    assert await poster.post(GuildID(GUILD_ID), embed=embed) is True

    fake_bot.get_channel.assert_called_once_with(LOG_CHANNEL_ID)
    channel.send.assert_awaited_once_with(content=None, embed=embed)


@pytest.mark.asyncio
async def test_post_to_unreachable_channel(poster, fake_bot, configured):
    fake_bot.get_channel.return_value = None

    assert await poster.post(GuildID(GUILD_ID), "hello") is False


@pytest.mark.asyncio
async def test_post_send_failure_is_reported(poster, channel, configured):
    channel.send.side_effect = discord.HTTPException(SimpleNamespace(status=403, reason="Forbidden"), "Missing Access")

    assert await poster.post(GuildID(GUILD_ID), "hello") is False


@pytest.mark.asyncio
async def test_post_store_failure_is_reported(poster, services, channel):
    services.state.guild(GUILD_ID).get_log_channel = AsyncMock(side_effect=PersistenceError("down"))

    assert await poster.post(GuildID(GUILD_ID), "hello") is False
    channel.send.assert_not_awaited()


@pytest.mark.asyncio
async def test_post_entry_sends_entry_embed(poster, channel, configured):
    await poster.post_entry(make_entry(LogAction.FILTER, LogType.REMOVE, {"filter": "caps"}))

    embed = channel.send.await_args.kwargs["embed"]
    assert embed.description == "Filter `caps` was disabled by <@1>."
    assert embed.color == discord.Color.red()
