import pytest

from modgate.database.document_store import Collection
from modgate.datatypes.command_datatypes import UsageLimits
from modgate.datatypes.discord_datatypes import GuildID, UserID
from modgate.wrappers.state_manager import StateManager


class MonotonicStub:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.fixture()
def cache_clock():
    return MonotonicStub()


@pytest.fixture()
def state(store, clock, cache_clock):
    return StateManager(
        store,
        default_limits=UsageLimits(local_cooldown=1000),
        dm_limits=UsageLimits(global_cooldown=500),
        clock=clock,
        cache_clock=cache_clock,
    )


def test_same_key_same_instance(state):
    assert state.user(UserID(1)) is state.user("1")
    assert state.guild(GuildID(10)) is state.guild(10)
    assert state.member(GuildID(10), UserID(1)) is state.member("10", 1)


def test_member_shares_user_and_guild_wrappers(state):
    member = state.member(GuildID(10), UserID(1))

    assert member.user is state.user(UserID(1))
    assert member.guild is state.guild(GuildID(10))
    assert state.stats() == {Collection.USERS: 1, Collection.GUILDS: 1, Collection.GUILD_MEMBERS: 1}


def test_dm_limits_default_to_application_limits(store):
    state = StateManager(store, default_limits=UsageLimits(local_cooldown=7))
    assert state.dm_limits == UsageLimits(local_cooldown=7)


@pytest.mark.asyncio
async def test_guild_wrapper_gets_application_limits(state):
    assert await state.guild(GuildID(10)).get_usage_limits("ping") == UsageLimits(local_cooldown=1000)


def test_evict_idle_pins_wrappers_referenced_by_members(state, cache_clock):
    member = state.member(GuildID(10), UserID(1))
    lonely_user = state.user(UserID(2))

    cache_clock.now = 100.0
    state.member(GuildID(10), UserID(1))

    evicted = state.evict_idle(50.0)

    assert evicted == 1
    assert state.user(UserID(1)) is member.user
    assert state.guild(GuildID(10)) is member.guild
    assert state.user(UserID(2)) is not lonely_user


def test_evict_idle_drops_members_then_their_parents(state, cache_clock):
    state.member(GuildID(10), UserID(1))
    cache_clock.now = 100.0

    assert state.evict_idle(50.0) == 3
    assert state.stats() == {Collection.USERS: 0, Collection.GUILDS: 0, Collection.GUILD_MEMBERS: 0}


@pytest.mark.asyncio
async def test_forget_guild_evicts_and_deletes(state, store):
    store.seed(Collection.GUILDS, "10", {"commands": {"ping": {"enabled": False}}})
    member = state.member(GuildID(10), UserID(1))
    other = state.member(GuildID(11), UserID(1))
    guild = state.guild(GuildID(10))

    assert await state.forget_guild(GuildID(10)) is True

    assert store.body(Collection.GUILDS, "10") is None
    assert state.guild(GuildID(10)) is not guild
    assert state.member(GuildID(10), UserID(1)) is not member
    assert state.member(GuildID(11), UserID(1)) is other
    assert await state.guild(GuildID(10)).is_command_enabled("ping") is True
    assert await state.forget_guild(GuildID(10)) is False
