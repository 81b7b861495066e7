from __future__ import annotations
from pathlib import Path
import fcntl
import math
import os
import sys
from typing import Any, Dict
import yaml

from braincell.util.logger import get_logger

logger = get_logger("app_configuration")


def resolve_base_dir() -> Path:
    """Directory holding ``config/``, ``logs/`` and ``.env``.

    ``BRAINCELL_HOME`` wins when set. A frozen build uses the executable's
    directory; a source checkout uses the project root.
    """
    if env_home := os.getenv("BRAINCELL_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[3]


CONFIG_PATH = resolve_base_dir() / "config" / "app_config.yml"

DEFAULT_USERNAME = "The Brain Cell"
DEFAULT_PREFIX = "🧠"
DEFAULT_CHANNEL = "fishing-channel"
DEFAULT_ROLE_NAME = "The Braincell"
DEFAULT_ROLE_COLOUR = "gold"
DEFAULT_ROTATION_MINUTES = 10.0


class AppConfig:
    """File-lock based accessor around the YAML application configuration.

    The class caches the contents of ``./config/app_config.yml`` and exposes the
    community defaults used when a guild is first seen. Every property falls
    back to a built-in default, so a missing or malformed file still yields a
    working bot.
    """

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                data = yaml.safe_load(f)
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)
                if not isinstance(data, dict):
                    logger.warning("[APP CONFIGURATION] Config %s is not a mapping; using defaults.", self.config_path)
                    return {}
                return data
        except FileNotFoundError:
            logger.error("[APP CONFIGURATION] Config file %s not found.", self.config_path)
        except Exception as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
        return {}

    def _section(self, name: str) -> Dict[str, Any]:
        section = self._data.get(name, {})
        return section if isinstance(section, dict) else {}

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Re-read the YAML file, replace the cache, and return the new mapping."""
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    # --------------------------
    # High-level shortcuts
    # --------------------------
    @property
    def bot_username(self) -> str | None:
        """Username applied to the bot account on startup, or None to leave it alone."""
        bot_section = self._section("bot")
        if "username" not in bot_section:
            return DEFAULT_USERNAME
        value = bot_section.get("username")
        return str(value) if value else None

    @property
    def default_prefix(self) -> str:
        value = self._section("community").get("default_prefix")
        return str(value) if value else DEFAULT_PREFIX

    @property
    def default_channel(self) -> str:
        value = self._section("community").get("default_channel")
        return str(value) if value else DEFAULT_CHANNEL

    @property
    def role_name(self) -> str:
        value = self._section("community").get("role_name")
        return str(value) if value else DEFAULT_ROLE_NAME

    @property
    def role_colour(self) -> str:
        """Name of a ``discord.Colour`` factory (``gold``, ``teal``, ...) for new roles."""
        value = self._section("community").get("role_colour")
        return str(value).lower() if value else DEFAULT_ROLE_COLOUR

    @property
    def rotation_minutes(self) -> float:
        """Rotation interval applied to every guild at startup.

        Invalid, negative, or non-finite values fall back to the default.
        """
        value = self._section("community").get("rotation_minutes", DEFAULT_ROTATION_MINUTES)
        try:
            minutes = float(value)
        except (TypeError, ValueError):
            logger.warning("[APP CONFIGURATION] Invalid rotation_minutes %r; using %s", value, DEFAULT_ROTATION_MINUTES)
            return DEFAULT_ROTATION_MINUTES
        if not math.isfinite(minutes) or minutes < 0:
            logger.warning("[APP CONFIGURATION] Invalid rotation_minutes %r; using %s", value, DEFAULT_ROTATION_MINUTES)
            return DEFAULT_ROTATION_MINUTES
        return minutes

    @property
    def selection_seed(self) -> int | None:
        """Optional seed for the winner selector, useful for reproducible runs."""
        value = self._section("selection").get("seed")
        if value is None:
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.warning("[APP CONFIGURATION] Ignoring non-integer selection seed %r", value)
            return None


# Shared application-wide configuration instance
app_config = AppConfig(CONFIG_PATH)
