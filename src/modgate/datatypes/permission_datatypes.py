"""
Permission levels used to gate commands.

Levels are ordinal: a higher level may do everything a lower one can.
"""

from __future__ import annotations

from enum import Enum, IntEnum


class PermissionLevel(IntEnum):
    """Ordinal rank required to invoke a command."""

    MEMBER = 0
    IMMUNE = 1
    MOD = 2
    ADMIN = 3
    BOT_MASTER = 4

    def __str__(self) -> str:
        return _LEVEL_NAMES[self]


_LEVEL_NAMES = {
    PermissionLevel.MEMBER: "member",
    PermissionLevel.IMMUNE: "immune member",
    PermissionLevel.MOD: "mod",
    PermissionLevel.ADMIN: "admin",
    PermissionLevel.BOT_MASTER: "my master",
}


class StaffRank(Enum):
    """Guild staff ranks that grant a permission level."""

    ADMINS = "admins"
    MODS = "mods"
    IMMUNE = "immune"

    def __str__(self) -> str:
        return self.value

    @property
    def level(self) -> PermissionLevel:
        return _RANK_LEVELS[self]


_RANK_LEVELS = {
    StaffRank.ADMINS: PermissionLevel.ADMIN,
    StaffRank.MODS: PermissionLevel.MOD,
    StaffRank.IMMUNE: PermissionLevel.IMMUNE,
}
