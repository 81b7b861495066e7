"""Message listener Cog for Braincell.

Hands every incoming message to the command dispatcher, which decides whether
it is a braincell command.
"""

import discord
from discord.ext import commands

from braincell.bot.command_dispatcher import command_dispatcher
from braincell.util.logger import get_logger

logger = get_logger("message_listener_cog")


class MessageListenerCog(commands.Cog):
    """Cog responsible for turning chat messages into commands."""

    def __init__(self, discord_bot_instance, dispatcher=None):
        """
        Initialize the message listener cog.

        Parameters
        ----------
        discord_bot_instance:
            The Discord bot instance to attach this cog to.
        dispatcher:
            Command dispatcher to use; the shared dispatcher when omitted.
        """
        self.bot = discord_bot_instance
        self.dispatcher = dispatcher if dispatcher is not None else command_dispatcher
        logger.info("Message listener cog loaded")

    @commands.Cog.listener(name='on_message')
    async def on_message(self, message: discord.Message):
        """Dispatch ``message`` if it is a command; everything else is ignored."""
        await self.dispatcher.dispatch(message)


def setup(discord_bot_instance):
    """Register the MessageListenerCog with the bot."""
    discord_bot_instance.add_cog(MessageListenerCog(discord_bot_instance))
