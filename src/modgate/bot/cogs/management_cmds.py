"""
Management cog: help, command toggles, filter toggles and staff ranks.

Slash commands:
- /help [query]: command list of a category, or details of one command
- /commands enable|disable: toggle a togglable command in this server
- /filters list|enabled|enable|disable|info: browse and toggle content filters
- /staff add|remove|list: manage the server's admin, mod and immune ranks
- /limits set|reset|show: per-server usage limits, for one command or as default
- /logchannel set|clear|show: where moderation and membership events are posted

Every command runs through the gatekeeper first and records its usage only
after it succeeded. Replies are ephemeral.
"""

from typing import Optional

import discord
from discord import Option
from discord.ext import commands

from modgate.bot.gating import GatedCog
from modgate.bot.log_channel import describe_entry
from modgate.bot.services import ModgateServices
from modgate.database.mod_log import LogType
from modgate.datatypes.command_datatypes import CommandDefinition, FilterDefinition, UsageLimits
from modgate.datatypes.discord_datatypes import ChannelID, GuildID, RoleID, UserID
from modgate.datatypes.gate_datatypes import ToggleOutcome
from modgate.datatypes.permission_datatypes import PermissionLevel, StaffRank
from modgate.errors import CategoryNotFoundError, ModgateError
from modgate.registry.definition_tree import NodeListing
from modgate.util.logger import get_logger
from modgate.util.time_utils import Durations, format_duration

logger = get_logger("management_cog")

HELP_COLOR = discord.Color.blurple()
RECENT_LOG_ENTRIES = 10

COMMAND_DEFINITIONS = (
    CommandDefinition(
        name="help",
        dm_capable=True,
        togglable=False,
        short_help="Gives a command list",
        long_help="Lists all commands and categories and can give detailed help for a command.",
        usage_examples=("/help", "/help filters", "/help management"),
    ),
    CommandDefinition(
        name="commands",
        path="management",
        permission_level=PermissionLevel.ADMIN,
        togglable=False,
        short_help="Lets you toggle commands",
        long_help="Enables and disables togglable commands in this server.",
        usage_examples=("/commands disable help", "/commands enable help"),
    ),
    CommandDefinition(
        name="filters",
        path="management",
        permission_level=PermissionLevel.ADMIN,
        togglable=False,
        short_help="Lets you toggle filters",
        long_help="Lists, enables and disables content filters in this server.",
        usage_examples=("/filters list", "/filters list spam", "/filters enabled", "/filters enable caps"),
    ),
    CommandDefinition(
        name="staff",
        path="management",
        permission_level=PermissionLevel.ADMIN,
        togglable=False,
        short_help="Manages admins, mods and immune members",
        long_help="Adds roles or users to a staff rank, removes them, or lists a rank.",
        usage_examples=("/staff add mods @Moderators", "/staff list admins"),
        aliases=("staffs",),
    ),
    CommandDefinition(
        name="limits",
        path="management",
        permission_level=PermissionLevel.ADMIN,
        togglable=False,
        short_help="Sets cooldowns and usage limits",
        long_help="Sets, resets or shows the usage limits of one command or the server default. Cooldowns are in seconds.",
        usage_examples=("/limits set ping local_cooldown:10", "/limits reset ping", "/limits show"),
    ),
    CommandDefinition(
        name="logchannel",
        path="management",
        permission_level=PermissionLevel.ADMIN,
        togglable=False,
        short_help="Sets the log channel",
        long_help="Sets or clears the channel moderation and membership events are posted to, or shows it with the latest log entries.",
        usage_examples=("/logchannel set #mod-log", "/logchannel clear", "/logchannel show"),
    ),
)

TOGGLE_MESSAGES = {
    ToggleOutcome.ENABLED: "Successfully enabled the `{name}` {kind}.",
    ToggleOutcome.DISABLED: "Successfully disabled the `{name}` {kind}.",
    ToggleOutcome.ALREADY_ENABLED: "The `{name}` {kind} is already enabled.",
    ToggleOutcome.ALREADY_DISABLED: "The `{name}` {kind} is already disabled.",
    ToggleOutcome.NOT_FOUND: "That isn't a {kind}.",
    ToggleOutcome.NOT_TOGGLABLE: "The `{name}` {kind} can't be toggled.",
}


def toggle_message(outcome: ToggleOutcome, name: str, kind: str) -> str:
    return TOGGLE_MESSAGES[outcome].format(name=name.lower(), kind=kind)


def build_listing_embed(title: str, listing: NodeListing) -> discord.Embed:
    """Render a category listing: sub-categories first, then one field per leaf."""
    embed = discord.Embed(title=title, color=HELP_COLOR)
    if listing.path:
        embed.set_footer(text=f"Path: ~{listing.path}")
    if listing.categories:
        embed.add_field(name="Subcategories:", value="\n".join(listing.categories), inline=False)
    for name, short_help in listing.leaves:
        embed.add_field(name=name, value=short_help or "-", inline=False)
    if listing.is_empty:
        embed.description = "Nothing to list here."
    return embed


def build_command_help_embed(definition: CommandDefinition) -> discord.Embed:
    embed = discord.Embed(title=f"Command: /{definition.name}", color=HELP_COLOR)
    embed.add_field(name="Description:", value=definition.long_help or definition.short_help or "-", inline=False)
    embed.add_field(name="Need to be:", value=str(definition.permission_level), inline=True)
    embed.add_field(name="DM capable:", value="yes" if definition.dm_capable else "no", inline=True)
    if definition.aliases:
        embed.add_field(name="Aliases:", value=", ".join(definition.aliases), inline=False)
    if definition.usage_examples:
        embed.add_field(name="Example:", value="\n".join(definition.usage_examples), inline=False)
    return embed


def describe_limits(limits: UsageLimits) -> str:
    if not limits.enabled:
        return "disabled"
    return f"local cooldown {format_duration(limits.local_cooldown)}, global cooldown {format_duration(limits.global_cooldown)}"


def build_filter_help_embed(definition: FilterDefinition) -> discord.Embed:
    embed = discord.Embed(title=f"Filter: {definition.name}", color=HELP_COLOR)
    embed.add_field(name="Description:", value=definition.long_help or definition.short_help or "-", inline=False)
    if definition.path:
        embed.add_field(name="Category:", value=definition.path, inline=True)
    if definition.usage_examples:
        embed.add_field(name="Example:", value="\n".join(definition.usage_examples), inline=False)
    return embed


class ManagementCog(GatedCog):
    """Help and per-server configuration commands."""

    commands_group = discord.SlashCommandGroup("commands", "Enable or disable commands in this server")
    filters_group = discord.SlashCommandGroup("filters", "List, enable or disable content filters")
    staff_group = discord.SlashCommandGroup("staff", "Manage admin, mod and immune ranks")
    limits_group = discord.SlashCommandGroup("limits", "Set cooldowns and usage limits in this server")
    logchannel_group = discord.SlashCommandGroup("logchannel", "Set where moderation events are posted")

    def __init__(self, bot: discord.Bot, services: ModgateServices):
        super().__init__(bot, services)
        logger.info("Management cog loaded")

    # ------------------------------------------------------------------
    # /help
    # ------------------------------------------------------------------

    def help_response(self, query: Optional[str]) -> dict:
        """Keyword arguments for ``ctx.respond`` answering ``/help query``."""
        registry = self.services.commands
        ceiling = self.services.help_visibility_ceiling
        query = (query or "").strip()

        if not query:
            return {"embed": build_listing_embed("Command List:", registry.list_category("", ceiling))}

        definition = registry.resolve(query)
        if definition is not None and definition.permission_level <= ceiling:
            return {"embed": build_command_help_embed(definition)}

        try:
            listing = registry.list_category(query, ceiling)
        except CategoryNotFoundError:
            suggestion = registry.suggest(query, self.services.gatekeeper.suggestion_threshold)
            hinted = registry.resolve(suggestion) if suggestion else None
            content = f"Couldn't find '{query.lower()}' command or category."
            if hinted is not None and hinted.permission_level <= ceiling:
                content += f" Did you mean `{suggestion}`?"
            return {"content": content}
        return {"embed": build_listing_embed("Command List:", listing)}

    @commands.slash_command(name="help", description="Lists commands or shows help for one command.")
    async def help_command(
        self,
        ctx: discord.ApplicationContext,
        query: Option(str, "Command name or category path, e.g. management", required=False, default=None),  # type: ignore
    ):
        invocation = await self.gate(ctx, "help")
        if invocation is None:
            return
        await ctx.respond(**self.help_response(query), ephemeral=True)
        await self.record(invocation)

    # ------------------------------------------------------------------
    # /commands
    # ------------------------------------------------------------------

    async def toggle_command(self, ctx: discord.ApplicationContext, name: str, enabled: bool) -> None:
        invocation = await self.gate(ctx, "commands")
        if invocation is None:
            return
        try:
            outcome = await self.services.gatekeeper.set_command_enabled(
                GuildID(ctx.guild_id), name, enabled, UserID.from_object(ctx.user)
            )
        except ModgateError as exc:
            await self.respond_error(ctx, exc)
            return
        await ctx.respond(toggle_message(outcome, name, "command"), ephemeral=True)
        await self.record(invocation)

    @commands_group.command(name="enable", description="Enable a command in this server")
    async def commands_enable(
        self,
        ctx: discord.ApplicationContext,
        name: Option(str, "Command to enable", required=True),  # type: ignore
    ):
        await self.toggle_command(ctx, name, True)

    @commands_group.command(name="disable", description="Disable a command in this server")
    async def commands_disable(
        self,
        ctx: discord.ApplicationContext,
        name: Option(str, "Command to disable", required=True),  # type: ignore
    ):
        await self.toggle_command(ctx, name, False)

    # ------------------------------------------------------------------
    # /filters
    # ------------------------------------------------------------------

    async def toggle_filter(self, ctx: discord.ApplicationContext, name: str, enabled: bool) -> None:
        invocation = await self.gate(ctx, "filters")
        if invocation is None:
            return
        engine = self.services.filters
        moderator = UserID.from_object(ctx.user)
        try:
            if enabled:
                outcome = await engine.enable(GuildID(ctx.guild_id), name, moderator)
            else:
                outcome = await engine.disable(GuildID(ctx.guild_id), name, moderator)
        except ModgateError as exc:
            await self.respond_error(ctx, exc)
            return
        await ctx.respond(toggle_message(outcome, name, "filter"), ephemeral=True)
        await self.record(invocation)

    @filters_group.command(name="list", description="List filters of a category")
    async def filters_list(
        self,
        ctx: discord.ApplicationContext,
        category: Option(str, "Category path, e.g. spam", required=False, default=None),  # type: ignore
    ):
        invocation = await self.gate(ctx, "filters")
        if invocation is None:
            return
        try:
            listing = self.services.filters.list_category(category or "")
        except CategoryNotFoundError:
            await ctx.respond("Couldn't find specified category.", ephemeral=True)
            return
        await ctx.respond(embed=build_listing_embed("Filter List:", listing), ephemeral=True)
        await self.record(invocation)

    @filters_group.command(name="enabled", description="List the filters enabled in this server")
    async def filters_enabled(self, ctx: discord.ApplicationContext):
        invocation = await self.gate(ctx, "filters")
        if invocation is None:
            return
        try:
            enabled = await self.services.filters.enabled_filters(GuildID(ctx.guild_id))
        except ModgateError as exc:
            await self.respond_error(ctx, exc)
            return
        if not enabled:
            await ctx.respond("There aren't any enabled filters.", ephemeral=True)
        else:
            embed = discord.Embed(title="Enabled Filters:", color=HELP_COLOR)
            for definition in enabled:
                embed.add_field(name=definition.name, value=definition.short_help or "-", inline=False)
            await ctx.respond(embed=embed, ephemeral=True)
        await self.record(invocation)

    @filters_group.command(name="enable", description="Enable a filter in this server")
    async def filters_enable(
        self,
        ctx: discord.ApplicationContext,
        name: Option(str, "Filter to enable", required=True),  # type: ignore
    ):
        await self.toggle_filter(ctx, name, True)

    @filters_group.command(name="disable", description="Disable a filter in this server")
    async def filters_disable(
        self,
        ctx: discord.ApplicationContext,
        name: Option(str, "Filter to disable", required=True),  # type: ignore
    ):
        await self.toggle_filter(ctx, name, False)

    @filters_group.command(name="info", description="Show help for one filter")
    async def filters_info(
        self,
        ctx: discord.ApplicationContext,
        name: Option(str, "Filter name", required=True),  # type: ignore
    ):
        invocation = await self.gate(ctx, "filters")
        if invocation is None:
            return
        definition = self.services.filters.resolve(name)
        if definition is None:
            await ctx.respond("That isn't a filter.", ephemeral=True)
            return
        await ctx.respond(embed=build_filter_help_embed(definition), ephemeral=True)
        await self.record(invocation)

    # ------------------------------------------------------------------
    # /staff
    # ------------------------------------------------------------------

    async def change_staff(
        self,
        ctx: discord.ApplicationContext,
        rank: str,
        role: Optional[discord.Role],
        user: Optional[discord.Member],
        log_type: LogType,
    ) -> None:
        invocation = await self.gate(ctx, "staff")
        if invocation is None:
            return
        if (role is None) == (user is None):
            await ctx.respond("Please give either a role or a user.", ephemeral=True)
            return

        staff_rank = StaffRank(rank)
        guild_id = GuildID(ctx.guild_id)
        role_id = RoleID(role.id) if role is not None else None
        user_id = UserID(user.id) if user is not None else None
        target = role.mention if role is not None else user.mention
        guild = self.services.state.guild(guild_id)
        try:
            if log_type is LogType.ADD:
                changed = await guild.add_staff(staff_rank, role_id=role_id, user_id=user_id)
            else:
                changed = await guild.remove_staff(staff_rank, role_id=role_id, user_id=user_id)
            if changed and self.services.mod_log is not None:
                await self.services.mod_log.log_staff_change(
                    guild_id, UserID.from_object(ctx.user), staff_rank, log_type, role_id=role_id, user_id=user_id
                )
        except ModgateError as exc:
            await self.respond_error(ctx, exc)
            return

        if log_type is LogType.ADD:
            message = f"Added {target} to {staff_rank}." if changed else f"{target} already is in {staff_rank}."
        else:
            message = f"Removed {target} from {staff_rank}." if changed else f"{target} isn't in {staff_rank}."
        await ctx.respond(message, ephemeral=True)
        await self.record(invocation)

    @staff_group.command(name="add", description="Add a role or user to a staff rank")
    async def staff_add(
        self,
        ctx: discord.ApplicationContext,
        rank: Option(str, "Staff rank", choices=[r.value for r in StaffRank]),  # type: ignore
        role: Option(discord.Role, "Role to add", required=False, default=None),  # type: ignore
        user: Option(discord.Member, "User to add", required=False, default=None),  # type: ignore
    ):
        await self.change_staff(ctx, rank, role, user, LogType.ADD)

    @staff_group.command(name="remove", description="Remove a role or user from a staff rank")
    async def staff_remove(
        self,
        ctx: discord.ApplicationContext,
        rank: Option(str, "Staff rank", choices=[r.value for r in StaffRank]),  # type: ignore
        role: Option(discord.Role, "Role to remove", required=False, default=None),  # type: ignore
        user: Option(discord.Member, "User to remove", required=False, default=None),  # type: ignore
    ):
        await self.change_staff(ctx, rank, role, user, LogType.REMOVE)

    @staff_group.command(name="list", description="List the roles and users of a staff rank")
    async def staff_list(
        self,
        ctx: discord.ApplicationContext,
        rank: Option(str, "Staff rank", choices=[r.value for r in StaffRank]),  # type: ignore
    ):
        invocation = await self.gate(ctx, "staff")
        if invocation is None:
            return
        staff_rank = StaffRank(rank)
        try:
            entry = await self.services.state.guild(GuildID(ctx.guild_id)).get_staff(staff_rank)
        except ModgateError as exc:
            await self.respond_error(ctx, exc)
            return
        embed = discord.Embed(title=f"Staff: {staff_rank}", color=HELP_COLOR)
        embed.add_field(name="Roles:", value="\n".join(f"<@&{r}>" for r in entry.roles) or "-", inline=False)
        embed.add_field(name="Users:", value="\n".join(f"<@{u}>" for u in entry.users) or "-", inline=False)
        await ctx.respond(embed=embed, ephemeral=True)
        await self.record(invocation)

    # ------------------------------------------------------------------
    # /limits
    # ------------------------------------------------------------------

    async def change_limits(
        self, ctx: discord.ApplicationContext, command: Optional[str], limits: Optional[UsageLimits]
    ) -> None:
        """Store ``limits`` for ``command`` (the server default when None), or drop them when ``limits`` is None."""
        invocation = await self.gate(ctx, "limits")
        if invocation is None:
            return
        definition = None
        if command:
            definition = self.services.commands.resolve(command)
            if definition is None:
                await ctx.respond("That isn't a command.", ephemeral=True)
                return

        target = f"`{definition.name}`" if definition is not None else "the server default"
        guild = self.services.state.guild(GuildID(ctx.guild_id))
        try:
            if limits is None:
                await guild.reset_usage_limits(definition)
            else:
                await guild.set_usage_limits(definition, limits)
        except ModgateError as exc:
            await self.respond_error(ctx, exc)
            return

        if limits is None:
            message = f"Reset the usage limits of {target}."
        else:
            message = f"Set the usage limits of {target} to {describe_limits(limits)}."
        await ctx.respond(message, ephemeral=True)
        await self.record(invocation)

    @limits_group.command(name="set", description="Set the usage limits of a command or the server default")
    async def limits_set(
        self,
        ctx: discord.ApplicationContext,
        command: Option(str, "Command, leave empty for the server default", required=False, default=None),  # type: ignore
        enabled: Option(bool, "Whether the command can be used at all", required=False, default=True),  # type: ignore
        local_cooldown: Option(int, "Cooldown in this server, in seconds", min_value=0, required=False, default=0),  # type: ignore
        global_cooldown: Option(int, "Cooldown across all servers, in seconds", min_value=0, required=False, default=0),  # type: ignore
    ):
        try:
            limits = UsageLimits(
                enabled=enabled,
                local_cooldown=local_cooldown * Durations.SECOND,
                global_cooldown=global_cooldown * Durations.SECOND,
            )
        except ValueError:
            await ctx.respond("Cooldowns can't be negative.", ephemeral=True)
            return
        await self.change_limits(ctx, command, limits)

    @limits_group.command(name="reset", description="Go back to the default usage limits")
    async def limits_reset(
        self,
        ctx: discord.ApplicationContext,
        command: Option(str, "Command, leave empty for the server default", required=False, default=None),  # type: ignore
    ):
        await self.change_limits(ctx, command, None)

    @limits_group.command(name="show", description="Show the usage limits in effect for a command")
    async def limits_show(
        self,
        ctx: discord.ApplicationContext,
        command: Option(str, "Command", required=True),  # type: ignore
    ):
        invocation = await self.gate(ctx, "limits")
        if invocation is None:
            return
        definition = self.services.commands.resolve(command)
        if definition is None:
            await ctx.respond("That isn't a command.", ephemeral=True)
            return
        try:
            limits = await self.services.state.guild(GuildID(ctx.guild_id)).get_usage_limits(definition)
        except ModgateError as exc:
            await self.respond_error(ctx, exc)
            return
        await ctx.respond(f"`{definition.name}`: {describe_limits(limits)}.", ephemeral=True)
        await self.record(invocation)

    # ------------------------------------------------------------------
    # /logchannel
    # ------------------------------------------------------------------

    async def change_log_channel(self, ctx: discord.ApplicationContext, channel: Optional[discord.TextChannel]) -> None:
        invocation = await self.gate(ctx, "logchannel")
        if invocation is None:
            return
        guild = self.services.state.guild(GuildID(ctx.guild_id))
        try:
            await guild.set_log_channel(ChannelID(channel.id) if channel is not None else None)
        except ModgateError as exc:
            await self.respond_error(ctx, exc)
            return
        if channel is None:
            message = "Cleared the log channel."
        else:
            message = f"Moderation and membership events will be posted to {channel.mention}."
        await ctx.respond(message, ephemeral=True)
        await self.record(invocation)

    @logchannel_group.command(name="set", description="Post moderation and membership events to a channel")
    async def logchannel_set(
        self,
        ctx: discord.ApplicationContext,
        channel: Option(discord.TextChannel, "Log channel", required=True),  # type: ignore
    ):
        await self.change_log_channel(ctx, channel)

    @logchannel_group.command(name="clear", description="Stop posting events to the log channel")
    async def logchannel_clear(self, ctx: discord.ApplicationContext):
        await self.change_log_channel(ctx, None)

    @logchannel_group.command(name="show", description="Show the log channel and the latest log entries")
    async def logchannel_show(self, ctx: discord.ApplicationContext):
        invocation = await self.gate(ctx, "logchannel")
        if invocation is None:
            return
        guild_id = GuildID(ctx.guild_id)
        try:
            channel_id = await self.services.state.guild(guild_id).get_log_channel()
            entries = []
            if self.services.mod_log is not None:
                entries = await self.services.mod_log.recent(guild_id, limit=RECENT_LOG_ENTRIES)
        except ModgateError as exc:
            await self.respond_error(ctx, exc)
            return
        embed = discord.Embed(title="Log Channel", color=HELP_COLOR)
        embed.add_field(name="Channel:", value=f"<#{channel_id}>" if channel_id is not None else "-", inline=False)
        latest = "\n".join(describe_entry(entry) for entry in entries)
        embed.add_field(name="Latest entries:", value=latest[:1024] or "-", inline=False)
        await ctx.respond(embed=embed, ephemeral=True)
        await self.record(invocation)


def setup(bot: discord.Bot, services: ModgateServices) -> None:
    """Register the management cog with the bot."""
    bot.add_cog(ManagementCog(bot, services))
