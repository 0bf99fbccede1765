"""
Container for everything the cogs need.

Built once by ``main`` (or by tests) and passed to each cog's ``setup``; the
cogs never reach for module-level state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

from modgate.configuration.app_configuration import AppConfig
from modgate.database.db_connection import ConnectionManager
from modgate.database.document_store import SqliteDocumentStore
from modgate.database.mod_log import ModLogRepository
from modgate.datatypes.command_datatypes import CommandDefinition, FilterDefinition
from modgate.datatypes.permission_datatypes import PermissionLevel
from modgate.filters.filter_engine import FilterEngine, FilterRegistry
from modgate.gatekeeper.gatekeeper import GateKeeper
from modgate.gatekeeper.permissions import PermissionResolver
from modgate.registry.command_registry import CommandRegistry
from modgate.wrappers.state_manager import StateManager


@dataclass
class ModgateServices:
    """Wired services shared by the cogs."""

    state: StateManager
    commands: CommandRegistry
    gatekeeper: GateKeeper
    filters: FilterEngine
    permissions: PermissionResolver
    mod_log: Optional[ModLogRepository] = None
    help_visibility_ceiling: PermissionLevel = PermissionLevel.ADMIN
    cache_max_idle_seconds: float = 900.0
    connection: Optional[ConnectionManager] = field(default=None, repr=False)


def build_services(
    connection: ConnectionManager,
    config: AppConfig,
    command_definitions: Iterable[CommandDefinition],
    filter_definitions: Iterable[FilterDefinition],
) -> ModgateServices:
    """Wire the store, wrappers, registries and engines on top of an open connection."""
    store = SqliteDocumentStore(connection)
    mod_log = ModLogRepository(connection)
    state = StateManager(store, config.default_usage_limits, config.dm_usage_limits)
    commands = CommandRegistry(command_definitions)
    return ModgateServices(
        state=state,
        commands=commands,
        gatekeeper=GateKeeper(commands, state, mod_log, config.suggestion_threshold),
        filters=FilterEngine(FilterRegistry(filter_definitions), state, mod_log),
        permissions=PermissionResolver(config.bot_masters),
        mod_log=mod_log,
        help_visibility_ceiling=config.help_visibility_ceiling,
        cache_max_idle_seconds=config.wrapper_cache_max_idle_seconds,
        connection=connection,
    )
