"""
Passing the braincell around.

The engine revokes the braincell role from whoever holds it, picks a random
online member from the guild's roster, grants them the role, and announces
it. It also owns roster changes, since removing the current holder has to
trigger a new pass.
"""

from __future__ import annotations

import asyncio
from typing import Iterable, Optional

import discord

from braincell.configuration.app_configuration import app_config
from braincell.configuration.community_registry import CommunityRegistry, community_registry
from braincell.datatypes import command_datatypes
from braincell.datatypes.community_record import CommunityRecord
from braincell.rotation.selector import UniformSelector
from braincell.scheduler.rotation_scheduler import RotationScheduler
from braincell.util import discord_utils
from braincell.util.logger import get_logger

logger = get_logger("rotation_engine")

REVOKE_REASON = "Passing the braincell on"
GRANT_REASON = "Their turn with the braincell"
OPTED_OUT_NOTICE = "No problem, opted out!"
ALREADY_OPTED_IN_NOTICE = "You're already in line for the braincell!"


def opted_in_notice(prefix: str) -> str:
    return (
        "You can now get the braincell. Sometimes you'll get the braincell, and have extra permissions. "
        f"To opt out, `{command_datatypes.OPT_OUT.usage_for(prefix)}`"
    )


class RotationEngine:
    """Rotation, roster, and announcement operations over community records."""

    def __init__(
        self,
        registry: CommunityRegistry,
        selector: Optional[UniformSelector] = None,
        bot: Optional[discord.Bot] = None,
    ) -> None:
        self.registry = registry
        self.selector = selector if selector is not None else UniformSelector(app_config.selection_seed)
        self.bot = bot
        self.scheduler = RotationScheduler(self.rotate)

    def set_bot(self, bot: Optional[discord.Bot]) -> None:
        """Attach the client used for presence updates."""
        self.bot = bot

    # --------------------------
    # Rotation
    # --------------------------
    async def rotate(self, record: CommunityRecord) -> Optional[discord.Member]:
        """Pass the braincell once and return the new holder, if any.

        Rotations of the same guild are serialised, so overlapping triggers can
        never leave two members holding the role.
        """
        async with record.rotation_lock:
            role = record.role
            if role is None:
                logger.debug("Guild %s has no braincell role; skipping pass", record.guild_id)
                return None

            await self.clear_role_holders(role)

            winner = self.pick_winner(record)
            if winner is None:
                logger.info("Nobody online to take the braincell in guild %s", record.guild_id)
                return None

            record.holder = winner
            await winner.add_roles(role, reason=GRANT_REASON)
            logger.info("Guild %s: %s has the braincell", record.guild_id, winner.display_name)

            await self.announce(record, f"{discord_utils.format_member(winner, record.display_tags)} has the braincell!")
            await self.set_activity(f"{discord_utils.display_name(winner)} has the braincell!")
            return winner

    def pick_winner(self, record: CommunityRecord) -> Optional[discord.Member]:
        """Choose uniformly among roster members whose live presence is online."""
        candidates = [
            live
            for live in (discord_utils.live_member(record.guild, m) for m in record.members)
            if discord_utils.is_online(live)
        ]
        return self.selector.choose(candidates)

    async def clear_role_holders(self, role: discord.Role) -> None:
        """Revoke ``role`` from everyone holding it, concurrently.

        A failed revocation is logged and does not stop the others.
        """
        holders = list(role.members)
        if not holders:
            return

        results = await asyncio.gather(
            *(m.remove_roles(role, reason=REVOKE_REASON) for m in holders),
            return_exceptions=True,
        )
        for member, result in zip(holders, results):
            if isinstance(result, Exception):
                logger.warning("Failed to take the braincell from %s: %s", member.display_name, result)

    async def schedule_rotation(self, record: CommunityRecord, minutes: float) -> None:
        """Replace the guild's timer: pass now, then every ``minutes`` minutes."""
        await self.scheduler.schedule(record, minutes)

    # --------------------------
    # Roster
    # --------------------------
    def populate_roster(self, record: CommunityRecord, members: Iterable[discord.Member]) -> int:
        """Silently add every non-bot member not already on the roster. Returns how many were added."""
        added = 0
        for member in members:
            if discord_utils.is_ignored_author(member) or record.has_member(member.id):
                continue
            record.members.append(member)
            added += 1
        return added

    async def add_member(self, record: CommunityRecord, member: discord.Member) -> bool:
        """Opt ``member`` in and DM them how to opt out.

        Bots are never added and a member already on the roster is not added twice.
        """
        if discord_utils.is_ignored_author(member):
            return False

        if record.has_member(member.id):
            await discord_utils.send_direct_message(member, ALREADY_OPTED_IN_NOTICE)
            return False

        record.members.append(member)
        logger.debug("Guild %s: %s opted in", record.guild_id, member.display_name)
        await discord_utils.send_direct_message(member, opted_in_notice(record.prefix))
        return True

    async def remove_member(
        self,
        record: CommunityRecord,
        member: discord.abc.Snowflake,
        notify: bool = True,
    ) -> bool:
        """Take ``member`` off the roster; pass the braincell on if they held it.

        Returns True if the member was on the roster.
        """
        before = len(record.members)
        record.members = [m for m in record.members if m.id != member.id]
        removed = len(record.members) != before
        if removed:
            logger.debug("Guild %s: member %s left the roster", record.guild_id, member.id)

        if notify:
            await discord_utils.send_direct_message(member, OPTED_OUT_NOTICE)

        if record.is_holder(member.id):
            await self.rotate(record)

        return removed

    # --------------------------
    # Output
    # --------------------------
    async def announce(self, record: CommunityRecord, content: str) -> None:
        """Post ``content`` in the guild's braincell channel, if it has one."""
        if record.channel is None:
            logger.warning("Guild %s has no channel; dropping announcement %r", record.guild_id, content)
            return
        await record.channel.send(content)

    async def set_activity(self, text: str) -> None:
        """Show ``text`` as the bot's activity."""
        if self.bot is None:
            return
        await self.bot.change_presence(activity=discord.Game(name=text))


# Shared engine bound to the global registry
rotation_engine = RotationEngine(community_registry)
