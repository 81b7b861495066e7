"""
Resolution of the announcement channel and the braincell role for a guild.

Each resolver returns a human-readable status line. The same text is used as
the reply to the ``channel``/``role`` commands and as the startup announcement,
so a miss is reported instead of raised.
"""

from typing import Optional

import discord

from braincell.configuration.app_configuration import AppConfig, app_config
from braincell.datatypes.community_record import CommunityRecord
from braincell.util.discord_utils import resolve_colour, text_channels
from braincell.util.logger import get_logger

logger = get_logger("guild_resources")

UNKNOWN_GUILD_REPLY = "I've never heard of this server before! Weird!"
HOIST_REASON = "Look upon me and see my works, ye brainless ones"
CREATE_REASON = "Need a braincell to pass around"


def resolve_channel(guild: discord.Guild, record: Optional[CommunityRecord], name: Optional[str] = None) -> str:
    """Point ``record.channel`` at a text channel of ``guild`` and describe the outcome.

    With ``name``, the channel with exactly that name wins; if there is none the
    first text channel is used and the reply says so. Without ``name`` the first
    text channel is used. The cached channel survives only when the guild has no
    text channel at all.
    """
    if record is None:
        return UNKNOWN_GUILD_REPLY

    channels = text_channels(guild)
    response = ""
    chosen: Optional[discord.TextChannel] = None

    if name:
        chosen = next((c for c in channels if c.name == name), None)
        if chosen is None:
            response = f"Couldn't find channel `{name}`, so "

    if chosen is None and channels:
        chosen = channels[0]

    if chosen is not None:
        record.channel = chosen

    if record.channel is None:
        logger.warning("Guild %s has no text channel to announce in", guild.id)
        return response + "I don't have a text channel to talk in!"

    logger.debug("Guild %s announcements go to #%s", guild.id, record.channel.name)
    return response + f"I'll respond to <#{record.channel.id}>"


async def resolve_role(guild: discord.Guild, record: Optional[CommunityRecord], role_name: str) -> str:
    """Point ``record.role`` at the guild role named ``role_name``.

    Roles are re-fetched first so a role created a moment ago is found. A found
    role is hoisted if it isn't already. On a miss the cached role is kept.
    """
    if record is None:
        return UNKNOWN_GUILD_REPLY

    roles = await guild.fetch_roles()
    found = next((r for r in roles if r.name == role_name), None)

    if found is None:
        message = f"Couldn't find the role `{role_name}`"
        if record.role is not None:
            message += f", so I'm gonna keep using `{record.role.name}`"
        logger.info("Role %r not found in guild %s", role_name, guild.id)
        return message

    # Prefer the gateway-cached object so role.members stays live
    record.role = guild.get_role(found.id) or found
    if not record.role.hoist:
        await record.role.edit(hoist=True, reason=HOIST_REASON)
        logger.info("Hoisted role %r in guild %s", record.role.name, guild.id)

    return f"The braincell is now `{record.role.name}`"


async def create_role(guild: discord.Guild, record: Optional[CommunityRecord], config: AppConfig = app_config) -> discord.Role:
    """Create the default braincell role and cache it on ``record``."""
    role = await guild.create_role(
        name=config.role_name,
        colour=resolve_colour(config.role_colour),
        hoist=True,
        mentionable=True,
        reason=CREATE_REASON,
    )
    if record is not None:
        record.role = role
    logger.info("Created role %r in guild %s", role.name, guild.id)
    return role
