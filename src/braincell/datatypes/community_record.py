"""
In-memory per-guild state for the braincell rotation.

Nothing here is persisted: records are rebuilt from Discord every time the bot
starts.
"""
import asyncio
from dataclasses import dataclass, field
from typing import List, Optional

import discord

from braincell.configuration.app_configuration import DEFAULT_PREFIX


@dataclass(slots=True, eq=False)
class CommunityRecord:
    """Mutable rotation state owned by a single guild."""

    guild: discord.Guild
    prefix: str = DEFAULT_PREFIX
    role: Optional[discord.Role] = None
    channel: Optional[discord.TextChannel] = None
    members: List[discord.Member] = field(default_factory=list)
    holder: Optional[discord.Member] = None
    display_tags: bool = False
    timer: Optional[asyncio.Task] = None
    timer_minutes: Optional[float] = None
    rotation_lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    @property
    def guild_id(self) -> int:
        return self.guild.id

    def has_member(self, member_id: int) -> bool:
        return any(m.id == member_id for m in self.members)

    def is_holder(self, member_id: int) -> bool:
        return self.holder is not None and self.holder.id == member_id

    def timer_active(self) -> bool:
        return self.timer is not None and not self.timer.done()
