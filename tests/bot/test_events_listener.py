import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from modgate.bot.cogs import events_listener
from modgate.database.document_store import Collection
from modgate.datatypes.discord_datatypes import GuildID
from modgate.errors import PersistenceError

GUILD_ID = 10


@pytest.fixture
def fake_bot():
    return SimpleNamespace(
        user=SimpleNamespace(id=999, display_name="ModgateBot"),
        change_presence=AsyncMock(),
    )


@pytest.fixture
def cog(fake_bot, services):
    return events_listener.EventsListenerCog(fake_bot, services)


@pytest.mark.asyncio
async def test_on_ready_sets_presence_and_starts_eviction(cog, fake_bot):
    await cog.on_ready()

    fake_bot.change_presence.assert_awaited_once()
    activity = fake_bot.change_presence.await_args.kwargs["activity"]
    assert activity.name == "your commands. /help"
    task = cog._eviction_task
    assert task is not None and not task.done()

    # A second ready event (reconnect) keeps the running task
    await cog.on_ready()
    assert cog._eviction_task is task

    cog.cog_unload()
    with pytest.raises(asyncio.CancelledError):
        await task


@pytest.mark.asyncio
async def test_on_ready_without_user(fake_bot, services):
    fake_bot.user = None
    cog = events_listener.EventsListenerCog(fake_bot, services)

    await cog.on_ready()

    fake_bot.change_presence.assert_not_awaited()
    cog.cog_unload()
    with pytest.raises(asyncio.CancelledError):
        await cog._eviction_task


@pytest.mark.asyncio
async def test_eviction_task_runs_per_interval(cog, services, monkeypatch):
    sleep = AsyncMock(side_effect=[None, asyncio.CancelledError()])
    monkeypatch.setattr(events_listener, "asyncio", SimpleNamespace(sleep=sleep))
    services.state.evict_idle = MagicMock(return_value=0)
    services.cache_max_idle_seconds = 100.0

    with pytest.raises(asyncio.CancelledError):
        await cog.evict_idle_wrappers_task()

    sleep.assert_awaited_with(25.0)
    services.state.evict_idle.assert_called_once_with(100.0)


@pytest.mark.asyncio
async def test_eviction_task_reports_cache_sizes(cog, services, monkeypatch):
    sleep = AsyncMock(side_effect=[None, asyncio.CancelledError()])
    monkeypatch.setattr(events_listener, "asyncio", SimpleNamespace(sleep=sleep))
    services.state.evict_idle = MagicMock(return_value=2)
    services.state.stats = MagicMock(return_value={Collection.USERS: 0})

    with pytest.raises(asyncio.CancelledError):
        await cog.evict_idle_wrappers_task()

    services.state.stats.assert_called_once_with()


@pytest.mark.asyncio
async def test_on_guild_remove_forgets_configuration(cog, services, store):
    await services.state.guild(GuildID(GUILD_ID)).set_command_enabled("ping", False)

    await cog.on_guild_remove(SimpleNamespace(id=GUILD_ID))

    assert store.body(Collection.GUILDS, str(GUILD_ID)) is None
    assert await services.state.guild(GuildID(GUILD_ID)).is_command_enabled("ping") is True


@pytest.mark.asyncio
async def test_on_guild_remove_logs_store_failure(cog, services):
    services.state.forget_guild = AsyncMock(side_effect=PersistenceError("down"))

    await cog.on_guild_remove(SimpleNamespace(id=GUILD_ID))

    services.state.forget_guild.assert_awaited_once()


@pytest.mark.asyncio
async def test_application_command_error_responds(cog, make_ctx):
    ctx = make_ctx()

    await cog.on_application_command_error(ctx, RuntimeError("boom"))

    ctx.respond.assert_awaited_once_with("A :bug: showed up while running this command.", ephemeral=True)


@pytest.mark.asyncio
async def test_application_command_error_uses_followup(cog, make_ctx):
    ctx = make_ctx()
    ctx.respond.side_effect = discord.InteractionResponded(SimpleNamespace())

    await cog.on_application_command_error(ctx, RuntimeError("boom"))

    ctx.followup.send.assert_awaited_once_with("A :bug: showed up while running this command.", ephemeral=True)


def test_setup_registers_cog(fake_bot, services):
    added = []
    fake_bot.add_cog = added.append

    events_listener.setup(fake_bot, services)

    assert isinstance(added[0], events_listener.EventsListenerCog)
