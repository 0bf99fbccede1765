"""
Type-safe wrappers for Discord identifiers.

Snowflakes are 64-bit integers but are stored as strings in documents and
used as path segments, so each wrapper keeps the canonical string form and
converts to ``int`` only for Discord API calls.
"""

from __future__ import annotations

from typing import Any, Union


class Snowflake:
    """
    Base class for Discord snowflake wrappers.

    Subclasses only differ by name so a ``UserID`` never compares equal to a
    ``GuildID`` with the same digits.

    Example:
        >>> gid = GuildID(123456789012345678)
        >>> str(gid)
        '123456789012345678'
        >>> GuildID("123456789012345678").to_int()
        123456789012345678
    """

    __slots__ = ("_value",)

    def __init__(self, value: Union[str, int, "Snowflake"]) -> None:
        """
        Args:
            value: The snowflake ID as a string, int, or wrapper of the same type.

        Raises:
            ValueError: If the value is not a non-negative integer.
        """
        if isinstance(value, type(self)):
            self._value = value._value
            return
        if isinstance(value, bool) or not isinstance(value, (int, str)):
            raise ValueError(f"Cannot create {type(self).__name__} from {type(value).__name__}: {value}")
        if isinstance(value, str):
            digits = value.strip()
            if not (digits.isascii() and digits.isdigit()):
                raise ValueError(f"{type(self).__name__} must be a decimal snowflake: {value!r}")
            number = int(digits)
        else:
            number = value
        if number < 0:
            raise ValueError(f"{type(self).__name__} must not be negative: {value}")
        self._value = str(number)

    @classmethod
    def from_object(cls, obj: Any):
        """Create a wrapper from any Discord object exposing ``.id``."""
        return cls(obj.id)

    def to_int(self) -> int:
        """Convert to an integer for Discord API calls."""
        return int(self._value)

    def __str__(self) -> str:
        return self._value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Snowflake):
            return type(self) is type(other) and self._value == other._value
        if isinstance(other, str):
            return self._value == other
        if isinstance(other, int) and not isinstance(other, bool):
            return self._value == str(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)


class UserID(Snowflake):
    """Discord user snowflake."""

    __slots__ = ()


class GuildID(Snowflake):
    """Discord guild snowflake."""

    __slots__ = ()


class ChannelID(Snowflake):
    """Discord channel snowflake."""

    __slots__ = ()


class RoleID(Snowflake):
    """Discord role snowflake."""

    __slots__ = ()
