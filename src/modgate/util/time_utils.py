"""
Millisecond time helpers.

All cooldowns and last-used timestamps in modgate are integer epoch
milliseconds.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import IntEnum


class Durations(IntEnum):
    """Common durations in milliseconds."""

    SECOND = 1000
    MINUTE = SECOND * 60
    HOUR = MINUTE * 60
    DAY = HOUR * 24
    THIRTY_DAYS = DAY * 30


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def duration_diff(timestamp0: int, timestamp1: int, duration: int) -> float:
    """How many times ``duration`` fits between two timestamps."""
    return abs(timestamp0 - timestamp1) / duration


def day_diff(timestamp0: int, timestamp1: int) -> int:
    """Rounded number of days between two timestamps."""
    return round(duration_diff(timestamp0, timestamp1, Durations.DAY))


@dataclass(frozen=True, slots=True)
class DistributedDuration:
    days: int
    hours: int
    minutes: int
    seconds: int
    milliseconds: int


def distribute_duration(ms_duration: int) -> DistributedDuration:
    """Split a millisecond duration into days, hours, minutes, seconds and milliseconds."""
    ms_duration = abs(int(ms_duration))
    return DistributedDuration(
        days=ms_duration // Durations.DAY,
        hours=(ms_duration // Durations.HOUR) % 24,
        minutes=(ms_duration // Durations.MINUTE) % 60,
        seconds=(ms_duration // Durations.SECOND) % 60,
        milliseconds=ms_duration % 1000,
    )


def format_duration(ms_duration: int) -> str:
    """
    Render a duration for chat, e.g. ``"1h 5m 3s"``.

    Sub-second remainders round up to a whole second so a running cooldown
    never renders as ``"0s"``.
    """
    ms_duration = abs(int(ms_duration))
    if ms_duration == 0:
        return "0s"
    parts = distribute_duration(-(-ms_duration // 1000) * 1000)
    rendered = [
        f"{value}{unit}"
        for value, unit in (
            (parts.days, "d"),
            (parts.hours, "h"),
            (parts.minutes, "m"),
            (parts.seconds, "s"),
        )
        if value
    ]
    return " ".join(rendered)
