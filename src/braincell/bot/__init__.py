"""
Discord-facing layer of Braincell.

- **command_dispatcher.py**: Parses ``<prefix> <command> [args]`` messages and
  runs the matching command against the guild's community record
- **cogs/events_listener.py**: Guild setup on ready/join, and roster/role/channel
  upkeep as the guild changes
- **cogs/message_listener.py**: Feeds chat messages to the command dispatcher
"""
