from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from modgate.bot import gating
from modgate.bot.gating import GatedCog, deny_message
from modgate.datatypes.command_datatypes import CommandDefinition
from modgate.datatypes.gate_datatypes import DenyReason, GateDecision, Invocation
from modgate.datatypes.permission_datatypes import PermissionLevel
from modgate.errors import PersistenceError

GUILD_ID = 10
BOT_MASTER_ID = 99

PING = CommandDefinition(name="ping")


@pytest.mark.parametrize(
    "decision, expected",
    [
        (GateDecision.deny(DenyReason.NOT_FOUND, detail="ping"), "Couldn't find 'pnig' command. Did you mean `ping`?"),
        (GateDecision.deny(DenyReason.NOT_FOUND), "Couldn't find 'pnig' command."),
        (GateDecision.deny(DenyReason.NOT_DM_CAPABLE, PING), "`ping` can't be used in direct messages."),
        (GateDecision.deny(DenyReason.DISABLED, PING), "`ping` is disabled here."),
        (GateDecision.deny(DenyReason.INSUFFICIENT_PERMISSION, PING, "admin"), "You need to be admin to use `ping`."),
        (GateDecision.deny(DenyReason.COOLDOWN, PING, "3s", 2500), "`ping` is on cooldown, try again in 3s."),
    ],
)
def test_deny_message(decision, expected):
    assert deny_message(decision, "pnig") == expected


@pytest.fixture()
def cog(services):
    return GatedCog(SimpleNamespace(), services)


@pytest.mark.asyncio
async def test_gate_denies_with_ephemeral_message(cog, make_ctx):
    ctx = make_ctx()

    assert await cog.gate(ctx, "commands") is None
    ctx.respond.assert_awaited_once_with("You need to be admin to use `commands`.", ephemeral=True)


@pytest.mark.asyncio
async def test_gate_allows_administrator(cog, make_ctx, make_user):
    ctx = make_ctx(make_user(administrator=True))

    invocation = await cog.gate(ctx, "commands")

    assert invocation.permission_level is PermissionLevel.ADMIN
    assert invocation.guild_id == GUILD_ID
    ctx.respond.assert_not_awaited()


@pytest.mark.asyncio
async def test_gate_in_direct_messages(cog, make_ctx, make_user):
    dm_ctx = make_ctx(make_user(BOT_MASTER_ID), guild_id=None)

    invocation = await cog.gate(dm_ctx, "help")
    assert invocation.is_dm
    assert invocation.permission_level is PermissionLevel.BOT_MASTER

    assert await cog.gate(dm_ctx, "commands") is None
    dm_ctx.respond.assert_awaited_once_with("`commands` can't be used in direct messages.", ephemeral=True)


@pytest.mark.asyncio
async def test_gate_reports_store_failures(cog, services, make_ctx):
    services.permissions = SimpleNamespace(resolve=AsyncMock(side_effect=PersistenceError("down")))
    ctx = make_ctx()

    assert await cog.gate(ctx, "help") is None
    ctx.respond.assert_awaited_once_with("A :bug: showed up while running this command.", ephemeral=True)


@pytest.mark.asyncio
async def test_record_consumes_usage(cog, services, clock):
    invocation = Invocation(command_name="help", user_id=1, guild_id=GUILD_ID)

    await cog.record(invocation)

    assert await services.state.member(GUILD_ID, 1).get_command_last_used("help") == clock.now


@pytest.mark.asyncio
async def test_record_logs_instead_of_raising(cog, store, monkeypatch):
    fake_logger = MagicMock()
    monkeypatch.setattr(gating, "logger", fake_logger)
    store.fail_updates = True
    await cog.record(Invocation(command_name="help", user_id=1, guild_id=GUILD_ID))
    await cog.record(Invocation(command_name="nope", user_id=1, guild_id=GUILD_ID))

    assert fake_logger.error.call_count == 2
    assert isinstance(fake_logger.error.call_args_list[0].kwargs["exc_info"], PersistenceError)
