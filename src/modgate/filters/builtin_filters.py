"""
Filters shipped with the bot.

Each matcher takes raw message content and returns True when the message
should be removed.
"""

from __future__ import annotations

import re
from typing import List

from modgate.datatypes.command_datatypes import FilterDefinition

INVITE_PATTERN = re.compile(r"(discord\.gg|discord(?:app)?\.com/invite)/[\w-]+", re.IGNORECASE)
LINK_PATTERN = re.compile(r"https?://\S+", re.IGNORECASE)
MENTION_PATTERN = re.compile(r"<@[!&]?\d+>")

CAPS_MIN_LETTERS = 10
CAPS_RATIO = 0.7
MENTION_LIMIT = 5


def contains_invite(content: str) -> bool:
    return INVITE_PATTERN.search(content) is not None


def contains_link(content: str) -> bool:
    return LINK_PATTERN.search(content) is not None


def excessive_caps(content: str) -> bool:
    """At least ``CAPS_MIN_LETTERS`` letters of which ``CAPS_RATIO`` are upper case."""
    letters = [c for c in content if c.isalpha()]
    if len(letters) < CAPS_MIN_LETTERS:
        return False
    return sum(c.isupper() for c in letters) / len(letters) >= CAPS_RATIO


def mass_mention(content: str) -> bool:
    return len(MENTION_PATTERN.findall(content)) >= MENTION_LIMIT


def builtin_filters() -> List[FilterDefinition]:
    return [
        FilterDefinition(
            name="invites",
            path="advertising",
            short_help="Deletes Discord server invites",
            long_help="Deletes every message containing a discord.gg or discord.com/invite link.",
            usage_examples=("join discord.gg/abc123",),
            matcher=contains_invite,
        ),
        FilterDefinition(
            name="links",
            path="advertising",
            short_help="Deletes messages with links",
            long_help="Deletes every message containing an http or https link.",
            usage_examples=("check out https://example.com",),
            matcher=contains_link,
        ),
        FilterDefinition(
            name="caps",
            path="spam",
            short_help="Deletes messages written mostly in capitals",
            long_help=(
                f"Deletes messages with at least {CAPS_MIN_LETTERS} letters of which "
                f"{int(CAPS_RATIO * 100)}% or more are upper case."
            ),
            usage_examples=("WHY IS NOBODY ANSWERING",),
            matcher=excessive_caps,
        ),
        FilterDefinition(
            name="mentions",
            path="spam",
            short_help="Deletes mass mentions",
            long_help=f"Deletes messages mentioning {MENTION_LIMIT} or more users or roles.",
            usage_examples=("<@1> <@2> <@3> <@4> <@5>",),
            matcher=mass_mention,
        ),
    ]
