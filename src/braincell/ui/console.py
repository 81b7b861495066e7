"""
Operator console for a running Braincell process.

A prompt_toolkit prompt runs next to the Discord client. Commands are plain
coroutines registered with :func:`console_command`; the first line of each
docstring doubles as its ``help`` text.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass

import discord
from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import FormattedText
from prompt_toolkit.patch_stdout import patch_stdout
from prompt_toolkit.shortcuts import PromptSession

from braincell.configuration.community_registry import CommunityRegistry, community_registry
from braincell.rotation.rotation_engine import RotationEngine, rotation_engine
from braincell.util.logger import get_logger

logger = get_logger("console")

BOX_WIDTH = 45


def box_title(title: str) -> list[str]:
    inner = BOX_WIDTH - 2
    return [f"╔{'═' * inner}╗", f"║{title.center(inner)}║", f"╚{'═' * inner}╝"]


def console_print(message: str, style: str = "") -> None:
    """Print above the active prompt, optionally in a prompt_toolkit style."""
    print_formatted_text(FormattedText([(style, message)]) if style else message)


class ConsoleControl:
    """Shutdown and restart requests shared by the console, the bot session and ``main``.

    Also carries what the console commands act on: the live bot, the registry
    and the rotation engine.
    """

    def __init__(
        self,
        registry: CommunityRegistry | None = None,
        engine: RotationEngine | None = None,
    ) -> None:
        self.registry = registry if registry is not None else community_registry
        self.engine = engine if engine is not None else rotation_engine
        self.bot: discord.Bot | None = None
        self._stopped = asyncio.Event()
        self._restart = False

    def set_bot(self, bot: discord.Bot | None) -> None:
        self.bot = bot

    def request_shutdown(self, restart: bool = False) -> None:
        # A restart request survives a later plain shutdown
        self._restart = self._restart or restart
        self._stopped.set()

    def is_shutdown_requested(self) -> bool:
        return self._stopped.is_set()

    def is_restart_requested(self) -> bool:
        return self._restart


async def close_bot_instance(bot: discord.Bot | None, *, log_close: bool = False) -> None:
    """Close ``bot`` unless it is missing or already closed. Errors are logged, not raised."""
    if bot is None or bot.is_closed():
        return
    try:
        await bot.close()
    except Exception as exc:
        logger.exception("Error while closing Discord bot: %s", exc)
        return
    if log_close:
        logger.info("Discord bot connection closed.")


async def stop_bot(control: ConsoleControl, restart: bool = False) -> None:
    control.request_shutdown(restart=restart)
    await close_bot_instance(control.bot)


# ==================== Command registry ====================

CommandHandler = Callable[[ConsoleControl, list[str]], Awaitable[None]]


@dataclass(frozen=True)
class Command:
    name: str
    handler: CommandHandler
    aliases: tuple[str, ...] = ()
    usage: str = ""

    @property
    def description(self) -> str:
        doc = self.handler.__doc__ or ""
        return doc.strip().splitlines()[0] if doc.strip() else ""

    def matches(self, name: str) -> bool:
        return name == self.name or name in self.aliases


COMMANDS: list[Command] = []


def console_command(name: str, *aliases: str, usage: str = "") -> Callable[[CommandHandler], CommandHandler]:
    """Register the decorated coroutine as console command ``name``."""
    def register(handler: CommandHandler) -> CommandHandler:
        COMMANDS.append(Command(name, handler, aliases, usage))
        return handler
    return register


def find_command(name: str) -> Command | None:
    return next((cmd for cmd in COMMANDS if cmd.matches(name)), None)


# ==================== Commands ====================

@console_command("help", "h", "?")
async def cmd_help(control: ConsoleControl, args: list[str]) -> None:
    """Show every console command."""
    for line in box_title("Console Commands Reference"):
        console_print(line, "ansigreen")

    for cmd in COMMANDS:
        aliases = f" (aliases: {', '.join(cmd.aliases)})" if cmd.aliases else ""
        console_print(f"\n  {cmd.name}{aliases}", "ansicyan")
        console_print(f"    {cmd.description}")
        if cmd.usage:
            console_print(f"    Usage: {cmd.usage}", "ansibrightblack")
    console_print("")


@console_command("status", "stat", "info")
async def cmd_status(control: ConsoleControl, args: list[str]) -> None:
    """Show the connection and how many guilds have a running timer."""
    for line in box_title("Bot Status"):
        console_print(line, "ansiblue")

    bot = control.bot
    if bot is None:
        console_print("  Bot:        🔴 Not initialized")
    else:
        console_print(f"  Bot:        {'🔴 Disconnected' if bot.is_closed() else '🟢 Connected'}")
        console_print(f"  Guilds:     {len(bot.guilds)}")
        console_print(f"  Latency:    {bot.latency * 1000:.0f}ms")

    rotating = sum(1 for record in control.registry if record.timer_active())
    console_print(f"  Rotating:   {rotating}/{len(control.registry)} guilds")
    console_print("")


@console_command("guilds", "servers", "g")
async def cmd_guilds(control: ConsoleControl, args: list[str]) -> None:
    """List registered guilds with roster size and current holder."""
    records = list(control.registry)
    if not records:
        console_print("No guilds registered yet.", "ansiyellow")
        return

    for line in box_title(f"Registered Guilds ({len(records)})"):
        console_print(line, "ansiblue")
    for record in records:
        holder = record.holder.display_name if record.holder else "nobody"
        console_print(
            f"  • {record.guild.name} (ID: {record.guild_id}) "
            f"roster={len(record.members)} holder={holder} every={record.timer_minutes} min"
        )
    console_print("")


@console_command("rotate", "pass", usage="rotate <guild id>")
async def cmd_rotate(control: ConsoleControl, args: list[str]) -> None:
    """Pass the braincell right now in one guild."""
    if len(args) != 1 or not args[0].isdigit():
        console_print("Usage: rotate <guild id>", "ansired")
        return

    record = control.registry.get(int(args[0]))
    if record is None:
        console_print(f"No guild with ID {args[0]} is registered.", "ansiyellow")
        return

    winner = await control.engine.rotate(record)
    if winner is None:
        console_print("Nobody got the braincell this time.", "ansiyellow")
    else:
        console_print(f"{winner.display_name} has the braincell!", "ansigreen")


@console_command("clear", "cls")
async def cmd_clear(control: ConsoleControl, args: list[str]) -> None:
    """Clear the screen."""
    os.system("cls" if os.name == "nt" else "clear")


@console_command("restart", "reboot")
async def cmd_restart(control: ConsoleControl, args: list[str]) -> None:
    """Shut down and start a fresh process."""
    console_print("Restart requested. Bot will shut down and restart...", "ansiyellow")
    await stop_bot(control, restart=True)


@console_command("shutdown", "stop", "quit", "exit")
async def cmd_shutdown(control: ConsoleControl, args: list[str]) -> None:
    """Cancel every timer and disconnect."""
    console_print("Shutdown requested.", "ansiyellow")
    await stop_bot(control)


# ==================== Input loop ====================

async def handle_console_command(line: str, control: ConsoleControl) -> None:
    """Run one line typed at the prompt."""
    parts = line.split()
    if not parts:
        return

    name, args = parts[0].lower(), parts[1:]
    cmd = find_command(name)
    if cmd is None:
        console_print(f"Unknown command '{name}'. Type 'help' for available commands.", "ansired")
        return

    try:
        await cmd.handler(control, args)
    except Exception as exc:
        logger.exception("Console command '%s' failed: %s", name, exc)
        console_print(f"Error executing command: {exc}", "ansired")


async def run_console(control: ConsoleControl) -> None:
    """Read commands until shutdown is requested or the operator hits Ctrl+C/Ctrl+D."""
    session = PromptSession("> ")

    for line in box_title("Braincell Interactive Console"):
        console_print(line, "ansigreen")
    console_print("Type 'help' for available commands or 'exit' to quit.\n", "ansibrightblack")

    with patch_stdout():
        while not control.is_shutdown_requested():
            try:
                line = await session.prompt_async()
            except (EOFError, KeyboardInterrupt):
                console_print("\nShutdown requested by user.", "ansiyellow")
                await stop_bot(control)
                break
            except Exception as exc:
                logger.exception("Console input failed: %s", exc)
                console_print(f"Error: {exc}", "ansired")
                continue
            await handle_console_command(line, control)


@contextlib.asynccontextmanager
async def console_session(control: ConsoleControl) -> AsyncIterator[ConsoleControl]:
    """Run the console in the background for the duration of the ``async with`` block."""
    task = asyncio.create_task(run_console(control), name="braincell-console")
    try:
        yield control
    finally:
        control.request_shutdown()
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
