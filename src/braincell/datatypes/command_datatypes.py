"""
Chat command table for Braincell.

Pure data: the name a member types after the prefix, a one-line description,
and the usage string shown in ``help`` and in "I didn't understand!" replies.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Action:
    """A recognised chat command."""

    action: str
    desc: str
    usage: str

    def usage_for(self, prefix: str) -> str:
        """Return the usage string as the member would type it."""
        return f"{prefix} {self.usage}"


SET_PREFIX = Action("prefix", "Sets a new prefix for commands", "prefix <prefix>")
SET_CHANNEL = Action("channel", "Sets a new channel to push messages to", "channel <channel>")
SET_TIMER = Action("timer", "Sets the timer between braincell passes", "timer <time (in minutes)>")
SET_ROLE_NAME = Action("role", "Sets the role to pass around", "role <role>")
DEBUG = Action("debug", "dumps some debug info", "debug")
OPT_OUT = Action("opt-out", "Opt yourself out of being passed the braincell", "opt-out")
OPT_IN = Action("opt-in", "Opt yourself in to being passed the braincell", "opt-in")
TOGGLE_TAGS = Action("toggle-tags", "Toggles whether or not braincell messages tag the user", "toggle-tags")
HELP = Action("help", "Sends you a list of commands", "help")

# Order is the order ``help`` lists them in
ACTIONS: tuple[Action, ...] = (
    SET_PREFIX,
    SET_CHANNEL,
    SET_TIMER,
    SET_ROLE_NAME,
    DEBUG,
    OPT_OUT,
    OPT_IN,
    TOGGLE_TAGS,
    HELP,
)

ACTIONS_BY_NAME: dict[str, Action] = {a.action: a for a in ACTIONS}


def find_action(name: str) -> Action | None:
    """Look up a command by its exact (case-sensitive) name."""
    return ACTIONS_BY_NAME.get(name)


def render_help(prefix: str) -> str:
    """Render the whole table the way the ``help`` DM shows it."""
    return "\n".join(f"{a.action}: {a.desc}\n\t`{a.usage_for(prefix)}`" for a in ACTIONS)
