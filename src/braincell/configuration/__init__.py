"""
Configuration and per-guild state for Braincell.

- **app_configuration.py**: File-locked YAML loader for the global defaults
  (bot username, default prefix, channel, role name and colour, rotation
  interval, selection seed). Falls back to built-in defaults on missing or
  malformed config files.

- **community_registry.py**: In-memory registry holding one community record
  per guild. Nothing is persisted; records are rebuilt from Discord on startup.
"""
