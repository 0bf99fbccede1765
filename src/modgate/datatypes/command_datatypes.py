"""
Command, filter and usage-limit datatypes.

This module defines the immutable definitions that live in the command and
filter trees, the per-command usage limits read from guild configuration, and
the validated usage scope under which "last used" timestamps are tracked.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Tuple, Union

from modgate.datatypes.discord_datatypes import GuildID
from modgate.datatypes.permission_datatypes import PermissionLevel
from modgate.errors import InvalidScopeError


# -------------------- Scopes --------------------

class CommandScope:
    """
    Domain over which a command-usage timestamp is tracked.

    Valid scopes are ``"global"``, ``"dm"`` and a guild id (ASCII digit string).
    Guild ids are stored in their canonical ``GuildID`` form, so ``"0042"`` and
    ``GuildID(42)`` name the same scope.
    Construction validates the value, so an instance is always a legal
    document key.

    Raises:
        InvalidScopeError: For any other value.
    """

    __slots__ = ("_value",)

    GLOBAL_KEY = "global"
    DM_KEY = "dm"

    def __init__(self, value: Union[str, int, GuildID, "CommandScope"]) -> None:
        if isinstance(value, CommandScope):
            self._value = value._value
        elif isinstance(value, GuildID):
            self._value = str(value)
        elif isinstance(value, int) and not isinstance(value, bool) and value >= 0:
            self._value = str(value)
        elif isinstance(value, str) and value in (self.GLOBAL_KEY, self.DM_KEY):
            self._value = value
        elif isinstance(value, str) and value.isascii() and value.isdigit():
            self._value = str(GuildID(value))
        else:
            raise InvalidScopeError(value)

    @property
    def is_global(self) -> bool:
        return self._value == self.GLOBAL_KEY

    @property
    def is_dm(self) -> bool:
        return self._value == self.DM_KEY

    @property
    def is_guild(self) -> bool:
        return not (self.is_global or self.is_dm)

    def __str__(self) -> str:
        return self._value

    def __repr__(self) -> str:
        return f"CommandScope({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, CommandScope):
            return self._value == other._value
        if isinstance(other, str):
            return self._value == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)


GLOBAL_SCOPE = CommandScope(CommandScope.GLOBAL_KEY)
DM_SCOPE = CommandScope(CommandScope.DM_KEY)


# -------------------- Usage limits --------------------

@dataclass(frozen=True, slots=True)
class UsageLimits:
    """Per-command usage limits; cooldowns are milliseconds, 0 means none."""

    enabled: bool = True
    local_cooldown: int = 0
    global_cooldown: int = 0

    def __post_init__(self) -> None:
        if self.local_cooldown < 0 or self.global_cooldown < 0:
            raise ValueError("Cooldowns must not be negative")

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]], fallback: Optional["UsageLimits"] = None) -> "UsageLimits":
        """
        Build limits from a stored mapping, taking missing keys from ``fallback``.

        Args:
            data: Mapping with any of ``enabled``, ``local_cooldown``, ``global_cooldown``.
            fallback: Limits supplying values for keys absent from ``data``.
        """
        base = fallback or cls()
        if not data:
            return base
        return cls(
            enabled=bool(data.get("enabled", base.enabled)),
            local_cooldown=int(data.get("local_cooldown", base.local_cooldown)),
            global_cooldown=int(data.get("global_cooldown", base.global_cooldown)),
        )

    def to_dict(self) -> dict:
        return {
            "enabled": self.enabled,
            "local_cooldown": self.local_cooldown,
            "global_cooldown": self.global_cooldown,
        }


@dataclass(frozen=True, slots=True)
class UsageVerdict:
    """
    Outcome of a usage-limit check.

    Attributes:
        allowed: Whether the command may run now.
        limits_enabled: False when the limits disable the command outright.
        remaining_ms: Time left on the longest violated cooldown, 0 if none.
    """

    allowed: bool
    limits_enabled: bool = True
    remaining_ms: int = 0

    def __bool__(self) -> bool:
        return self.allowed


def evaluate_usage(limits: UsageLimits, local_last_used: int, global_last_used: int, now: int) -> UsageVerdict:
    """
    Apply usage limits to a pair of last-used timestamps.

    Timestamps are epoch milliseconds; 0 means the command was never used.
    A cooldown of 0 never blocks.
    """
    if not limits.enabled:
        return UsageVerdict(allowed=False, limits_enabled=False)

    remaining = 0
    if limits.local_cooldown > 0 and now < local_last_used + limits.local_cooldown:
        remaining = local_last_used + limits.local_cooldown - now
    if limits.global_cooldown > 0 and now < global_last_used + limits.global_cooldown:
        remaining = max(remaining, global_last_used + limits.global_cooldown - now)

    return UsageVerdict(allowed=remaining == 0, remaining_ms=remaining)


# -------------------- Definitions --------------------

def normalize_name(name: str) -> str:
    """Case-normalise a command or filter name."""
    return name.strip().lower()


@dataclass(frozen=True, slots=True)
class CommandDefinition:
    """
    Static description of a command.

    ``path`` is the slash separated category path (``""`` for the root).
    """

    name: str
    path: str = ""
    permission_level: PermissionLevel = PermissionLevel.MEMBER
    dm_capable: bool = False
    togglable: bool = True
    short_help: str = ""
    long_help: str = ""
    usage_examples: Tuple[str, ...] = ()
    aliases: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", normalize_name(self.name))
        object.__setattr__(self, "path", self.path.strip("/").lower())
        object.__setattr__(self, "aliases", tuple(normalize_name(a) for a in self.aliases))
        object.__setattr__(self, "usage_examples", tuple(self.usage_examples))
        if not self.name:
            raise ValueError("Command name must not be empty")


@dataclass(frozen=True, slots=True)
class FilterDefinition:
    """
    Static description of a content filter.

    Filters have no permission level or cooldown; ``matcher`` returns True
    when a message's content trips the filter.
    """

    name: str
    path: str = ""
    short_help: str = ""
    long_help: str = ""
    usage_examples: Tuple[str, ...] = ()
    matcher: Optional[Callable[[str], bool]] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", normalize_name(self.name))
        object.__setattr__(self, "path", self.path.strip("/").lower())
        object.__setattr__(self, "usage_examples", tuple(self.usage_examples))
        if not self.name:
            raise ValueError("Filter name must not be empty")

    @property
    def aliases(self) -> Tuple[str, ...]:
        return ()

    def matches(self, content: str) -> bool:
        return bool(self.matcher and self.matcher(content))


CommandResolvable = Union[str, CommandDefinition]


def resolve_command_name(command: CommandResolvable) -> str:
    """Return the normalised name of a command given by name or definition."""
    if isinstance(command, CommandDefinition):
        return command.name
    return normalize_name(command)
