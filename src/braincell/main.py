"""
Braincell Discord Bot
=====================

Passes a single "braincell" role around each Discord server: every few minutes
one random online member who has opted in gets the role, and the bot says so.
Server members configure it with prefix chat commands.

``main()`` runs the bot next to the operator console and turns the outcome
into a process exit code:

- 0 after a normal shutdown
- 1 when the token is missing or rejected, or the client crashes
- 42 when the console asked for a restart; ``main()`` then re-executes itself
"""

import asyncio
import os
import sys

import discord
from dotenv import load_dotenv

from braincell.configuration.app_configuration import resolve_base_dir
from braincell.configuration.community_registry import community_registry
from braincell.rotation.rotation_engine import rotation_engine
from braincell.ui.console import ConsoleControl, close_bot_instance, console_session
from braincell.util.logger import get_logger, handle_exception

logger = get_logger("main")

RESTART_EXIT_CODE = 42
TOKEN_VARIABLE = "DISCORD_TOKEN"


def load_environment() -> str:
    """Load ``.env`` from the base directory and return the bot token.

    Raises
    ------
    SystemExit
        With code 1 when ``DISCORD_TOKEN`` is not set.
    """
    load_dotenv(dotenv_path=resolve_base_dir() / ".env")
    token = os.getenv(TOKEN_VARIABLE)
    if not token:
        logger.critical("'%s' environment variable not set. Bot cannot start.", TOKEN_VARIABLE)
        sys.exit(1)
    return token


def build_intents() -> discord.Intents:
    """Members and presences are privileged: the roster needs the member list
    and choosing a winner needs to know who is online."""
    intents = discord.Intents.default()
    intents.guilds = True
    intents.messages = True
    intents.message_content = True
    intents.members = True
    intents.presences = True
    return intents


def load_cogs(discord_bot_instance: discord.Bot) -> None:
    from braincell.bot.cogs import events_listener, message_listener

    for cog_module in (events_listener, message_listener):
        cog_module.setup(discord_bot_instance)
    logger.info("All cogs loaded successfully.")


def create_bot() -> discord.Bot:
    bot = discord.Bot(intents=build_intents())
    load_cogs(bot)
    rotation_engine.set_bot(bot)
    return bot


async def shutdown_runtime(bot: discord.Bot | None = None) -> None:
    """Stop every rotation timer, then close the Discord connection."""
    try:
        await community_registry.shutdown()
    except Exception as exc:
        logger.exception("Error while cancelling rotation timers: %s", exc)

    await close_bot_instance(bot, log_close=True)
    rotation_engine.set_bot(None)
    logger.info("Shutdown complete.")


async def run_bot_session(bot: discord.Bot, token: str, control: ConsoleControl) -> int:
    """Connect ``bot`` and block until it disconnects. Always cleans up; returns an exit code."""
    control.set_bot(bot)
    exit_code = 0

    try:
        async with console_session(control):
            logger.info("Attempting to connect to Discord…")
            try:
                await bot.start(token)
            except discord.LoginFailure as exc:
                logger.critical("Failed to login, %s", exc)
                exit_code = 1
            except asyncio.CancelledError:
                logger.info("Bot start cancelled; proceeding to shutdown")
            except Exception as exc:
                logger.critical("Discord bot runtime error: %s", exc, exc_info=True)
                exit_code = 1
    finally:
        control.set_bot(None)
        await shutdown_runtime(bot)

    return exit_code


async def async_main() -> int:
    token = load_environment()

    try:
        bot = create_bot()
    except Exception as exc:
        logger.critical("Failed to initialize Discord bot: %s", exc)
        return 1

    control = ConsoleControl()
    exit_code = await run_bot_session(bot, token, control)

    if control.is_restart_requested():
        logger.info("Restart requested, returning exit code %d", RESTART_EXIT_CODE)
        return RESTART_EXIT_CODE
    return exit_code


def _exit_code_from(exc: SystemExit) -> int:
    code = exc.code
    if code is None:
        return 1
    try:
        return int(code)
    except (TypeError, ValueError):
        logger.warning("SystemExit.code is not an int (%r); defaulting to 1", code)
        return 1


def main() -> int:
    """Console-script entry point."""
    os.chdir(resolve_base_dir())
    sys.excepthook = handle_exception
    logger.info("Starting Braincell…")

    try:
        exit_code = asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0
    except SystemExit as exc:
        return _exit_code_from(exc)
    except Exception as exc:
        logger.critical("An unexpected error occurred while running the bot: %s", exc, exc_info=True)
        return 1

    if exit_code == RESTART_EXIT_CODE:
        logger.info("Replacing current process with a new instance.")
        os.execv(sys.executable, [sys.executable] + sys.argv)
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
