"""Event listener Cog for Braincell.

This cog sets every guild up when the bot connects and keeps the community
records in step with Discord afterwards: members joining and leaving, and the
braincell role or channel being deleted. Chat commands are handled by the
MessageListenerCog.
"""

import asyncio
import discord
from discord.ext import commands

from braincell.configuration.app_configuration import app_config
from braincell.configuration.community_registry import community_registry
from braincell.rotation import guild_resources
from braincell.rotation.rotation_engine import rotation_engine
from braincell.util import discord_utils
from braincell.util.logger import get_logger

logger = get_logger("events_listener_cog")

READY_ANNOUNCEMENT = "The braincell is ready to be passed around!"
ROLE_DELETED_ANNOUNCEMENT = "The Braincell role was deleted. Register a new role!"


class EventsListenerCog(commands.Cog):
    """Cog containing guild lifecycle and membership handlers."""

    def __init__(self, discord_bot_instance, engine=None, config=None):
        """Initialize the events listener cog.

        Parameters
        ----------
        discord_bot_instance:
            The Discord bot instance to attach this cog to.
        engine:
            Rotation engine to drive; the shared engine when omitted.
        config:
            Application configuration; the shared config when omitted.
        """
        self.bot = discord_bot_instance
        self.engine = engine if engine is not None else rotation_engine
        self.registry = self.engine.registry
        self.config = config if config is not None else app_config
        logger.info("Events listener cog loaded")

    @commands.Cog.listener(name='on_ready')
    async def on_ready(self):
        """Rename the bot, then set up every guild not yet registered, concurrently.

        on_ready fires again after a reconnect; guilds already set up are left alone.
        """
        if self.bot.user:
            logger.info(f"Bot connected as {self.bot.user} (ID: {self.bot.user.id})")
            await self._apply_username()
        else:
            logger.warning("Bot partially connected, but user information not yet available.")

        logger.info("--==--==--==--==--==--==--==--==--==--==--==--==--==--==--==--==--")

        pending = [g for g in self.bot.guilds if g.id not in self.registry]
        if not pending:
            return

        logger.info("Setting up %d guild(s)...", len(pending))
        results = await asyncio.gather(*(self.setup_community(g) for g in pending), return_exceptions=True)
        for guild, result in zip(pending, results):
            if isinstance(result, Exception):
                logger.error("Failed to set up guild %s (%s): %s", guild.name, guild.id, result, exc_info=result)

    async def _apply_username(self) -> None:
        username = self.config.bot_username
        if not username or self.bot.user.name == username:
            return
        try:
            await self.bot.user.edit(username=username)
            logger.info("Renamed bot to %r", username)
        except discord.HTTPException as exc:
            # Discord rate-limits username changes heavily
            logger.warning("Could not rename bot to %r: %s", username, exc)

    async def setup_community(self, guild: discord.Guild) -> None:
        """Register ``guild`` and get its first rotation going.

        1. Resolve the announcement channel and say hello
        2. Put every non-bot member on the roster
        3. Resolve the braincell role, creating it if the guild has none
        4. Start the rotation timer
        """
        record = self.registry.create(guild)

        await self.engine.announce(record, guild_resources.resolve_channel(guild, record, self.config.default_channel))
        await self.engine.announce(record, READY_ANNOUNCEMENT)

        members = await guild.fetch_members(limit=None).flatten()
        added = self.engine.populate_roster(record, members)
        logger.info("Guild %s: %d member(s) on the roster", guild.id, added)

        status = await guild_resources.resolve_role(guild, record, self.config.role_name)
        logger.debug("Guild %s role resolution: %s", guild.id, status)
        if record.role is None:
            await guild_resources.create_role(guild, record, self.config)

        await self.engine.schedule_rotation(record, self.config.rotation_minutes)

    @commands.Cog.listener(name='on_guild_join')
    async def on_guild_join(self, guild: discord.Guild):
        """A guild added after startup gets the same setup as one seen at startup."""
        if guild.id in self.registry:
            return
        logger.info("Joined guild %s (%s)", guild.name, guild.id)
        try:
            await self.setup_community(guild)
        except Exception as e:
            logger.error(f"Failed to set up guild {guild.name} ({guild.id}): {e}", exc_info=True)

    @commands.Cog.listener(name='on_guild_role_delete')
    async def on_guild_role_delete(self, role: discord.Role):
        """Forget the braincell role if it was deleted and tell the guild."""
        record = self.registry.get(role.guild.id)
        if record is None or record.role is None or record.role.id != role.id:
            return

        record.role = None
        logger.info("Braincell role deleted in guild %s", role.guild.id)
        try:
            await self.engine.announce(record, ROLE_DELETED_ANNOUNCEMENT)
        except Exception as e:
            logger.error(f"Could not announce role deletion in guild {role.guild.id}: {e}", exc_info=True)

    @commands.Cog.listener(name='on_member_join')
    async def on_member_join(self, member: discord.Member):
        """New members are opted in and told how to opt out."""
        record = self.registry.get(member.guild.id)
        if record is None or discord_utils.is_ignored_author(member):
            return
        try:
            await self.engine.add_member(record, member)
        except discord.HTTPException as exc:
            logger.warning("Added %s to guild %s roster but could not DM them: %s", member, member.guild.id, exc)
        except Exception as e:
            logger.error(f"Error handling member join in guild {member.guild.id}: {e}", exc_info=True)

    @commands.Cog.listener(name='on_member_remove')
    async def on_member_remove(self, member: discord.Member):
        """Members who leave come off the roster quietly."""
        record = self.registry.get(member.guild.id)
        if record is None:
            return
        try:
            await self.engine.remove_member(record, member, notify=False)
        except Exception as e:
            logger.error(f"Error handling member leave in guild {member.guild.id}: {e}", exc_info=True)

    @commands.Cog.listener(name='on_guild_channel_delete')
    async def on_guild_channel_delete(self, channel: discord.abc.GuildChannel):
        """Move announcements to another text channel if ours was deleted."""
        guild = getattr(channel, "guild", None)
        if guild is None:
            return
        record = self.registry.get(guild.id)
        if record is None or record.channel is None or record.channel.id != channel.id:
            return

        status = guild_resources.resolve_channel(guild, record)
        logger.info("Braincell channel deleted in guild %s: %s", guild.id, status)


def setup(discord_bot_instance):
    """Register the EventsListenerCog with the bot.

    Parameters
    ----------
    discord_bot_instance:
        The Discord bot instance to add this cog to.
    """
    discord_bot_instance.add_cog(EventsListenerCog(discord_bot_instance))
