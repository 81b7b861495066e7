"""
The braincell rotation itself.

- **rotation_engine.py**: Revoke, pick, grant, announce; roster changes
- **guild_resources.py**: Resolving the announcement channel and the braincell role
- **selector.py**: Seedable uniform random choice
"""
