"""
Registry of per-guild rotation state.

Responsibilities:
- Own exactly one :class:`CommunityRecord` per guild the bot has joined
- Hand records out by guild id; records are never removed while the process runs
- Cancel every rotation timer on shutdown
"""

import asyncio
from typing import Dict, Iterator, List, Optional

import discord

from braincell.configuration.app_configuration import app_config
from braincell.datatypes.community_record import CommunityRecord
from braincell.util.logger import get_logger

logger = get_logger("community_registry")


class CommunityRegistry:
    """Mapping from guild id to the guild's :class:`CommunityRecord`."""

    def __init__(self, default_prefix: Optional[str] = None) -> None:
        self.communities: Dict[int, CommunityRecord] = {}
        self._default_prefix = default_prefix
        logger.info("[COMMUNITY REGISTRY] Community registry initialized")

    @property
    def default_prefix(self) -> str:
        return self._default_prefix or app_config.default_prefix

    def get(self, guild_id: int) -> Optional[CommunityRecord]:
        """Return the record for ``guild_id`` or None if the guild was never registered."""
        return self.communities.get(guild_id)

    def create(self, guild: discord.Guild) -> CommunityRecord:
        """Register ``guild`` and return its record.

        Registering a guild twice returns the existing record untouched.
        """
        record = self.communities.get(guild.id)
        if record is None:
            record = CommunityRecord(guild=guild, prefix=self.default_prefix)
            self.communities[guild.id] = record
            logger.debug("[COMMUNITY REGISTRY] Registered guild %s (%s)", guild.name, guild.id)
        return record

    def __contains__(self, guild_id: object) -> bool:
        return guild_id in self.communities

    def __len__(self) -> int:
        return len(self.communities)

    def __iter__(self) -> Iterator[CommunityRecord]:
        return iter(list(self.communities.values()))

    def list_guild_ids(self) -> List[int]:
        return list(self.communities.keys())

    async def shutdown(self) -> None:
        """Cancel every rotation timer and wait for the tasks to finish."""
        timers = []
        for record in self.communities.values():
            if record.timer is not None and not record.timer.done():
                record.timer.cancel()
                timers.append(record.timer)
            record.timer = None

        if timers:
            await asyncio.gather(*timers, return_exceptions=True)

        logger.info("[COMMUNITY REGISTRY] Cancelled %d rotation timer(s)", len(timers))


# Global community registry instance
community_registry = CommunityRegistry()
