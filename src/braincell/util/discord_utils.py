"""
discord_utils.py
================

Stateless Discord helpers shared by the rotation engine and the cogs: author
filtering, presence checks, DM delivery, and name formatting. Nothing here
touches the community registry.
"""

from typing import List, Optional, Union

import discord

from braincell.util.logger import get_logger

logger = get_logger("discord_utils")


def is_ignored_author(author: Union[discord.User, discord.Member]) -> bool:
    """Return True for authors the bot never reacts to (other bots, including itself)."""
    return bool(getattr(author, "bot", False))


def is_online(member: discord.Member) -> bool:
    """Return True if the member's live presence is ``online``.

    ``discord.Status`` stringifies to its value, so a plain string works too.
    """
    return str(getattr(member, "status", "")) == "online"


def text_channels(guild: discord.Guild) -> List[discord.TextChannel]:
    """Return the guild's text channels in sidebar order."""
    return list(getattr(guild, "text_channels", []))


def live_member(guild: discord.Guild, member: discord.Member) -> discord.Member:
    """Return the cached copy of ``member`` carrying the latest presence.

    Members fetched over HTTP at startup carry no presence, the gateway cache
    does. Falls back to the stored object when the cache has no entry.
    """
    cached = guild.get_member(member.id)
    return cached if cached is not None else member


def display_name(member: discord.Member) -> str:
    """Nickname if set, otherwise the member's display name."""
    return getattr(member, "nick", None) or member.display_name


def format_member(member: discord.Member, tag: bool) -> str:
    """Mention the member (pinging them) when ``tag`` is set, otherwise just name them."""
    if tag:
        return f"<@{member.id}>"
    return f"{member.display_name}"


def resolve_colour(name: str) -> discord.Colour:
    """Turn a colour name such as ``gold`` into a :class:`discord.Colour`."""
    factory = getattr(discord.Colour, name, None)
    if callable(factory):
        colour = factory()
        if isinstance(colour, discord.Colour):
            return colour
    logger.warning("Unknown role colour %r; falling back to gold", name)
    return discord.Colour.gold()


async def send_direct_message(user: Union[discord.User, discord.Member], content: str) -> Optional[discord.Message]:
    """Open (or reuse) a DM channel with ``user`` and send ``content``.

    Platform errors propagate to the caller.
    """
    dm_channel = getattr(user, "dm_channel", None) or await user.create_dm()
    return await dm_channel.send(content)
