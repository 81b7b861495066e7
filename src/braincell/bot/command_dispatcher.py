"""
Prefix command handling for Braincell.

A command is a guild message of the form ``<prefix> <name> [args...]``. The
dispatcher parses it, looks the name up in the command table, and runs the
matching handler against the guild's community record. Messages that don't
match are ignored without a reply.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional

import discord

from braincell.configuration.community_registry import CommunityRegistry, community_registry
from braincell.datatypes import command_datatypes
from braincell.datatypes.command_datatypes import Action
from braincell.datatypes.community_record import CommunityRecord
from braincell.rotation import guild_resources
from braincell.rotation.rotation_engine import RotationEngine, rotation_engine
from braincell.util import discord_utils
from braincell.util.logger import get_logger

logger = get_logger("command_dispatcher")

DM_OPT_IN_REPLY = "Can't add users from DMs. Try again in a channel!"
COMMAND_FAILED_REPLY = "A :bug: showed up while running this command."

CommandHandler = Callable[[discord.Message, Optional[CommunityRecord], List[str]], Awaitable[None]]


@dataclass(slots=True)
class ParsedCommand:
    """A command name and its whitespace-separated arguments."""

    name: str
    args: List[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        """Arguments re-joined with single spaces, for free-text commands."""
        return " ".join(self.args)


def parse_command(content: str, prefix: str) -> Optional[ParsedCommand]:
    """Split ``content`` into a command if it starts with ``prefix`` and a space."""
    marker = f"{prefix} "
    if not content.startswith(marker):
        return None

    tokens = content[len(marker):].split()
    if not tokens:
        return None
    return ParsedCommand(name=tokens[0], args=tokens[1:])


def parse_minutes(args: List[str]) -> Optional[float]:
    """Return the interval from ``timer`` arguments, or None if they are malformed."""
    if len(args) != 1:
        return None
    try:
        minutes = float(args[0])
    except ValueError:
        return None
    if not math.isfinite(minutes) or minutes < 0:
        return None
    return minutes


def usage_reply(action: Action, prefix: str) -> str:
    return f"I didn't understand! Usage: `{action.usage_for(prefix)}`"


def debug_dump(record: CommunityRecord) -> str:
    channel_name = record.channel.name if record.channel else None
    role_name = record.role.name if record.role else None
    holder_name = record.holder.display_name if record.holder else None
    return (
        f"Channel Name: {channel_name}\n"
        f"Role Name: {role_name}\n"
        f"Prefix: {record.prefix}\n"
        f"Timer length: {record.timer_minutes}\n"
        f"Holder: {holder_name}"
    )


class CommandDispatcher:
    """Routes prefixed chat messages to the command handlers."""

    def __init__(
        self,
        engine: RotationEngine = rotation_engine,
        registry: Optional[CommunityRegistry] = None,
    ) -> None:
        self.engine = engine
        self.registry = registry if registry is not None else engine.registry
        self.handlers: Dict[str, CommandHandler] = {
            command_datatypes.SET_PREFIX.action: self.cmd_prefix,
            command_datatypes.SET_CHANNEL.action: self.cmd_channel,
            command_datatypes.SET_TIMER.action: self.cmd_timer,
            command_datatypes.SET_ROLE_NAME.action: self.cmd_role,
            command_datatypes.DEBUG.action: self.cmd_debug,
            command_datatypes.OPT_OUT.action: self.cmd_opt_out,
            command_datatypes.OPT_IN.action: self.cmd_opt_in,
            command_datatypes.TOGGLE_TAGS.action: self.cmd_toggle_tags,
            command_datatypes.HELP.action: self.cmd_help,
        }

    async def dispatch(self, message: discord.Message) -> bool:
        """Handle ``message`` if it is a command. Returns True when a handler ran."""
        if discord_utils.is_ignored_author(message.author):
            return False

        if message.guild is None:
            return await self._dispatch_private(message)

        record = self.registry.get(message.guild.id)
        if record is None:
            return False

        parsed = parse_command(message.content, record.prefix)
        if parsed is None:
            return False

        handler = self.handlers.get(parsed.name)
        if handler is None:
            logger.debug("Ignoring unknown command %r in guild %s", parsed.name, record.guild_id)
            return False

        logger.debug("Guild %s: %s ran %r", record.guild_id, message.author, parsed.name)
        await self._run(handler, message, record, parsed.args)
        return True

    async def _dispatch_private(self, message: discord.Message) -> bool:
        """DMs carry no guild, so only ``opt-in`` (which explains that) is answered."""
        parsed = parse_command(message.content, self.registry.default_prefix)
        if parsed is None or parsed.name != command_datatypes.OPT_IN.action:
            return False
        await self._run(self.cmd_opt_in, message, None, parsed.args)
        return True

    async def _run(
        self,
        handler: CommandHandler,
        message: discord.Message,
        record: Optional[CommunityRecord],
        args: List[str],
    ) -> None:
        try:
            await handler(message, record, args)
        except Exception as exc:
            logger.error("Error in command handler %s: %s", handler.__name__, exc, exc_info=True)
            try:
                await message.reply(COMMAND_FAILED_REPLY)
            except discord.HTTPException as reply_error:
                logger.warning("Could not report command failure: %s", reply_error)

    # --------------------------
    # Command handlers
    # --------------------------
    async def cmd_prefix(self, message: discord.Message, record: CommunityRecord, args: List[str]) -> None:
        prefix = " ".join(args)
        record.prefix = prefix
        logger.info("Guild %s prefix set to %r", record.guild_id, prefix)
        await message.reply(f"Set to `{prefix}`")

    async def cmd_channel(self, message: discord.Message, record: CommunityRecord, args: List[str]) -> None:
        if len(args) != 1:
            await message.reply(usage_reply(command_datatypes.SET_CHANNEL, record.prefix))
            return
        await message.reply(guild_resources.resolve_channel(record.guild, record, args[0]))

    async def cmd_timer(self, message: discord.Message, record: CommunityRecord, args: List[str]) -> None:
        minutes = parse_minutes(args)
        if minutes is None:
            await message.reply(usage_reply(command_datatypes.SET_TIMER, record.prefix))
            return
        await message.reply(f"Restarting the timer at {args[0]} mins, but first lets pass the braincell!")
        await self.engine.schedule_rotation(record, minutes)

    async def cmd_role(self, message: discord.Message, record: CommunityRecord, args: List[str]) -> None:
        role_name = " ".join(args)
        await message.reply(await guild_resources.resolve_role(record.guild, record, role_name))

    async def cmd_debug(self, message: discord.Message, record: CommunityRecord, args: List[str]) -> None:
        await message.reply(debug_dump(record))

    async def cmd_opt_out(self, message: discord.Message, record: CommunityRecord, args: List[str]) -> None:
        await self.engine.remove_member(record, message.author)

    async def cmd_opt_in(self, message: discord.Message, record: Optional[CommunityRecord], args: List[str]) -> None:
        guild = message.guild
        if guild is None or record is None:
            await message.reply(DM_OPT_IN_REPLY)
            return
        member = guild.get_member(message.author.id) or await guild.fetch_member(message.author.id)
        await self.engine.add_member(record, member)

    async def cmd_toggle_tags(self, message: discord.Message, record: CommunityRecord, args: List[str]) -> None:
        record.display_tags = not record.display_tags
        await message.reply(f"Tags are now {'On' if record.display_tags else 'Off'}")

    async def cmd_help(self, message: discord.Message, record: CommunityRecord, args: List[str]) -> None:
        await discord_utils.send_direct_message(message.author, command_datatypes.render_help(record.prefix))


# Shared dispatcher bound to the global engine
command_dispatcher = CommandDispatcher()
