from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from modgate.bot.cogs.management_cmds import COMMAND_DEFINITIONS
from modgate.bot.services import ModgateServices
from modgate.datatypes.command_datatypes import CommandDefinition, UsageLimits
from modgate.datatypes.discord_datatypes import UserID
from modgate.filters.builtin_filters import builtin_filters
from modgate.filters.filter_engine import FilterEngine, FilterRegistry
from modgate.gatekeeper.gatekeeper import GateKeeper
from modgate.gatekeeper.permissions import PermissionResolver
from modgate.registry.command_registry import CommandRegistry
from modgate.wrappers.state_manager import StateManager

GUILD_ID = 10
BOT_MASTER_ID = 99


def _make_user(user_id=1, administrator=False, roles=(), bot=False):
    return SimpleNamespace(
        id=user_id,
        bot=bot,
        mention=f"<@{user_id}>",
        guild_permissions=SimpleNamespace(administrator=administrator),
        roles=[SimpleNamespace(id=r) for r in roles],
    )


def _make_ctx(user=None, guild_id=GUILD_ID):
    return SimpleNamespace(
        user=user or _make_user(),
        guild_id=guild_id,
        respond=AsyncMock(),
        followup=SimpleNamespace(send=AsyncMock()),
        command=SimpleNamespace(name="help"),
    )


@pytest.fixture()
def make_user():
    return _make_user


@pytest.fixture()
def make_ctx():
    return _make_ctx


@pytest.fixture()
def mod_log():
    return AsyncMock()


@pytest.fixture()
def services(store, clock, mod_log):
    state = StateManager(store, UsageLimits(), UsageLimits(), clock=clock)
    commands = CommandRegistry([*COMMAND_DEFINITIONS, CommandDefinition(name="ping", short_help="Pong")])
    return ModgateServices(
        state=state,
        commands=commands,
        gatekeeper=GateKeeper(commands, state, mod_log),
        filters=FilterEngine(FilterRegistry(builtin_filters()), state, mod_log),
        permissions=PermissionResolver([UserID(BOT_MASTER_ID)]),
        mod_log=mod_log,
    )
