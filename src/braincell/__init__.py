"""
Braincell - pass one brain cell around your Discord server

Core Components:

- **Community Registry**: One in-memory record per guild holding its prefix,
  announcement channel, braincell role, opt-in roster, current holder, and
  rotation timer
- **Rotation Engine**: Revokes the role from whoever holds it, picks a random
  online member from the roster, grants the role, and announces the winner
- **Rotation Scheduler**: One cancellable timer task per guild
- **Event Listeners**: Guild setup on connect; roster and cache upkeep as
  members come and go and roles or channels are deleted
- **Command Dispatcher**: Prefix chat commands (prefix, channel, timer, role,
  debug, opt-in, opt-out, toggle-tags, help)
- **Interactive Console**: Operator status, forced rotations, and graceful
  restart/shutdown

Usage:
    from braincell.main import main
    main()  # Starts the bot with console interface
"""
