import pytest

from modgate.database.document_store import Collection
from modgate.datatypes.command_datatypes import CommandDefinition, UsageLimits
from modgate.datatypes.discord_datatypes import GuildID, UserID
from modgate.errors import InvalidScopeError, PersistenceError
from modgate.wrappers.user_wrapper import UserWrapper

GUILD = "123456789"


@pytest.fixture()
def user(store, clock):
    return UserWrapper(store, UserID(1), clock)


@pytest.mark.asyncio
async def test_never_used_command_is_zero(user):
    assert await user.get_command_last_used("global", "ping") == 0
    assert await user.get_command_last_used(GuildID(GUILD), "ping") == 0


@pytest.mark.asyncio
async def test_set_guild_scope_also_sets_global(user, store):
    assert await user.set_command_last_used(GUILD, "ping", 500) == 500

    assert await user.get_command_last_used(GUILD, "ping") == 500
    assert await user.get_command_last_used("global", "ping") == 500
    # One logical update carrying both paths
    assert len(store.update_calls) == 1
    assert store.body(Collection.USERS, "1") == {
        "command_last_used": {GUILD: {"ping": 500}, "global": {"ping": 500}}
    }


@pytest.mark.asyncio
async def test_set_global_scope_writes_only_global(user, store):
    await user.set_command_last_used("global", "ping", 7)
    assert store.body(Collection.USERS, "1") == {"command_last_used": {"global": {"ping": 7}}}


@pytest.mark.asyncio
async def test_dm_scope_and_command_definitions_are_accepted(user):
    definition = CommandDefinition(name="Ping")
    await user.set_command_last_used("dm", definition, 9)
    assert await user.get_command_last_used("dm", "PING") == 9


@pytest.mark.parametrize("scope", ["guild", "", "12a", -1, None, True, "²", "٣٤", "１２"])
@pytest.mark.asyncio
async def test_invalid_scope_is_rejected(user, store, scope):
    with pytest.raises(InvalidScopeError):
        await user.set_command_last_used(scope, "ping", 1)
    with pytest.raises(InvalidScopeError):
        await user.get_command_last_used(scope, "ping")
    assert store.update_calls == []


@pytest.mark.asyncio
async def test_padded_guild_scope_shares_key_with_guild_id(user, store):
    await user.set_command_last_used("0042", "ping", 5)

    assert await user.get_command_last_used(GuildID("0042"), "ping") == 5
    assert await user.get_command_last_used(42, "ping") == 5
    assert "42" in store.body(Collection.USERS, "1")["command_last_used"]


@pytest.mark.asyncio
async def test_reset_returns_removed_mapping(user, store):
    await user.set_command_last_used(GUILD, "ping", 1)
    await user.set_command_last_used(GUILD, "help", 2)

    removed = await user.reset_command_last_used(GUILD)

    assert removed == {"ping": 1, "help": 2}
    assert await user.get_command_last_used(GUILD, "ping") == 0
    assert await user.get_command_last_used("global", "ping") == 1
    assert store.body(Collection.USERS, "1")["command_last_used"] == {"global": {"ping": 1, "help": 2}}


@pytest.mark.asyncio
async def test_reset_of_empty_scope_does_not_write(user, store):
    assert await user.reset_command_last_used("dm") is None
    assert store.update_calls == []


@pytest.mark.asyncio
async def test_failed_write_keeps_previous_timestamp(user, store):
    await user.set_command_last_used(GUILD, "ping", 1)
    store.fail_updates = True

    with pytest.raises(PersistenceError):
        await user.set_command_last_used(GUILD, "ping", 2)

    assert await user.get_command_last_used(GUILD, "ping") == 1
    assert await user.get_command_last_used("global", "ping") == 1


@pytest.mark.asyncio
async def test_disabled_limits_deny_immediately(user, store):
    verdict = await user.check_usage(GUILD, "ping", UsageLimits(enabled=False))
    assert not verdict.allowed
    assert verdict.limits_enabled is False
    assert await user.can_use_command(GUILD, "ping", UsageLimits(enabled=False)) is False
    assert store.fetch_calls == []


@pytest.mark.asyncio
async def test_local_cooldown_window(user, clock):
    limits = UsageLimits(local_cooldown=1000)
    await user.set_command_last_used(GUILD, "ping", clock.now)

    clock.advance(999)
    verdict = await user.check_usage(GUILD, "ping", limits)
    assert not verdict.allowed
    assert verdict.remaining_ms == 1

    clock.advance(1)
    assert await user.can_use_command(GUILD, "ping", limits) is True
    # A different scope has its own local window
    assert await user.can_use_command("dm", "ping", UsageLimits(local_cooldown=1000)) is True


@pytest.mark.asyncio
async def test_global_cooldown_applies_across_scopes(user, clock):
    await user.set_command_last_used(GUILD, "ping", clock.now)
    limits = UsageLimits(global_cooldown=5000)

    clock.advance(1000)
    verdict = await user.check_usage("dm", "ping", limits)
    assert not verdict.allowed
    assert verdict.remaining_ms == 4000

    clock.advance(4000)
    assert await user.can_use_command("dm", "ping", limits) is True


@pytest.mark.asyncio
async def test_zero_cooldowns_never_block(user, clock):
    await user.set_command_last_used(GUILD, "ping", clock.now)
    assert await user.can_use_command(GUILD, "ping", UsageLimits()) is True


@pytest.mark.asyncio
async def test_cooldown_blocks_now_and_clears_after_window(user, clock):
    limits = UsageLimits(local_cooldown=5000)
    await user.set_command_last_used(GUILD, "ping", clock.now)

    assert await user.can_use_command(GUILD, "ping", limits) is False
    clock.advance(5001)
    assert await user.can_use_command(GUILD, "ping", limits) is True
