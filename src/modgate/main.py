"""
modgate Discord bot
===================

Command gating, per-guild content filters and a moderation log on top of a
lazily loaded document store.
"""

import os
import sys
from pathlib import Path


def resolve_base_dir() -> Path:
    """Determine the base directory of the project.

    Resolution order:
    1. MODGATE_HOME environment variable, if set.
    2. If running in a frozen/compiled context, use the executable's directory.
    3. Otherwise, assume running from source and use the grandparent of this file's directory.
    """
    if env_home := os.getenv("MODGATE_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]


BASE_DIR = resolve_base_dir()
os.chdir(BASE_DIR)

import asyncio
import discord
from dotenv import load_dotenv

from modgate.bot.services import ModgateServices, build_services
from modgate.configuration.app_configuration import CONFIG_PATH, AppConfig
from modgate.database.db_connection import ConnectionManager
from modgate.database.db_schema import SchemaManager
from modgate.filters.builtin_filters import builtin_filters
from modgate.util.logger import get_logger, handle_exception

logger = get_logger("main")


def load_environment() -> str:
    """Load environment variables and return the Discord bot token.

    Raises
    ------
    SystemExit
        If the required ``DISCORD_BOT_TOKEN`` variable is missing.
    """
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        logger.critical("'DISCORD_BOT_TOKEN' environment variable not set. Bot cannot start.")
        sys.exit(1)
    return token


def build_intents() -> discord.Intents:
    """Intents for slash commands, guild membership and message filtering."""
    intents = discord.Intents.default()
    intents.message_content = True
    intents.guilds = True
    intents.messages = True
    intents.members = True
    intents.bans = True
    return intents


def load_cogs(bot: discord.Bot, services: ModgateServices) -> None:
    """Register all cogs with the bot, handing each the shared services."""
    from modgate.bot.cogs import events_listener, management_cmds, membership_listener, message_listener

    events_listener.setup(bot, services)
    management_cmds.setup(bot, services)
    message_listener.setup(bot, services)
    membership_listener.setup(bot, services)

    logger.info("All cogs loaded successfully.")


async def open_database(config: AppConfig) -> ConnectionManager:
    """Open the SQLite database and make sure the schema exists."""
    connection = ConnectionManager()
    await connection.open(config.database_path)
    try:
        async with connection.transaction() as db:
            await SchemaManager.initialize_schema(db)
    except BaseException:
        await connection.close()
        raise
    return connection


def create_bot(services: ModgateServices) -> discord.Bot:
    """Instantiate the Discord bot and register all cogs."""
    bot = discord.Bot(intents=build_intents())
    load_cogs(bot, services)
    return bot


async def start_bot(bot: discord.Bot, token: str) -> None:
    """Start the Discord bot and log around the connection lifecycle."""
    logger.info("Attempting to connect to Discord…")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("Discord bot start cancelled; shutting down")
    finally:
        logger.info("Discord bot start routine finished.")


async def shutdown_runtime(bot: discord.Bot | None, connection: ConnectionManager | None) -> None:
    """Close the Discord client and the database connection."""
    if bot is not None and not bot.is_closed():
        try:
            await bot.close()
        except Exception as exc:
            logger.exception("Error while closing the Discord client: %s", exc)

    if connection is not None:
        await connection.close()

    logger.info("Shutdown complete.")


async def async_main() -> int:
    """Bootstrap configuration, database and bot, returning an exit code."""
    token = load_environment()
    config = AppConfig(CONFIG_PATH)

    try:
        logger.info("Opening database at %s...", config.database_path)
        connection = await open_database(config)
    except Exception as exc:
        logger.critical("Failed to initialize database: %s", exc)
        return 1

    bot = None
    try:
        services = build_services(
            connection,
            config,
            command_definitions=_command_definitions(),
            filter_definitions=builtin_filters(),
        )
        bot = create_bot(services)
    except Exception as exc:
        logger.critical("Failed to initialize Discord bot: %s", exc)
        await shutdown_runtime(bot, connection)
        return 1

    exit_code = 0
    try:
        await start_bot(bot, token)
    except Exception as exc:
        logger.critical("Discord bot runtime error: %s", exc)
        exit_code = 1
    finally:
        await shutdown_runtime(bot, connection)

    return exit_code


def _command_definitions():
    from modgate.bot.cogs.management_cmds import COMMAND_DEFINITIONS

    return COMMAND_DEFINITIONS


def main() -> int:
    """Entrypoint that runs the async runtime and returns the process exit code."""
    sys.excepthook = handle_exception
    logger.info("Starting modgate…")
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0
    except SystemExit as exit_exc:
        code = exit_exc.code
        if isinstance(code, int):
            return code
        return 1
    except Exception as exc:
        logger.critical("An unexpected error occurred while running the bot: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
