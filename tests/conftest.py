"""
Pytest configuration and fixtures for Braincell tests.

The fakes below stand in for py-cord's Guild, Member, Role, and TextChannel.
They keep just enough state (who holds which role, which members are cached)
for the rotation logic to be checked end to end, and record every platform
call through AsyncMock so tests can assert on it.
"""

import sys
from itertools import count
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from braincell.configuration.community_registry import CommunityRegistry  # noqa: E402
from braincell.rotation.rotation_engine import RotationEngine  # noqa: E402
from braincell.rotation.selector import UniformSelector  # noqa: E402

_ids = count(1000)


class FakeChannel:
    def __init__(self, name, channel_id=None, guild=None):
        self.id = channel_id if channel_id is not None else next(_ids)
        self.name = name
        self.guild = guild
        self.send = AsyncMock()


class FakeRole:
    def __init__(self, name, role_id=None, hoist=False, guild=None):
        self.id = role_id if role_id is not None else next(_ids)
        self.name = name
        self.hoist = hoist
        self.guild = guild
        self.holders = []
        self.edit = AsyncMock(side_effect=self._edit)

    async def _edit(self, *, hoist=None, reason=None):
        if hoist is not None:
            self.hoist = hoist

    @property
    def members(self):
        return list(self.holders)

    def __str__(self):
        return self.name


class FakeMember:
    def __init__(self, name, member_id=None, status="online", bot=False, guild=None):
        self.id = member_id if member_id is not None else next(_ids)
        self.name = name
        self.display_name = name
        self.nick = None
        self.status = status
        self.bot = bot
        self.guild = guild
        self.dm_channel = SimpleNamespace(send=AsyncMock())
        self.create_dm = AsyncMock(return_value=self.dm_channel)
        self.add_roles = AsyncMock(side_effect=self._add_role)
        self.remove_roles = AsyncMock(side_effect=self._remove_role)

    async def _add_role(self, role, reason=None):
        if self not in role.holders:
            role.holders.append(self)

    async def _remove_role(self, role, reason=None):
        if self in role.holders:
            role.holders.remove(self)

    @property
    def dms(self):
        """Every text DM'd to this member, in order."""
        return [c.args[0] for c in self.dm_channel.send.await_args_list]

    def __str__(self):
        return self.name


class FakeGuild:
    def __init__(self, name="Test Guild", guild_id=None, channel_names=("general",), role_names=()):
        self.id = guild_id if guild_id is not None else next(_ids)
        self.name = name
        self.text_channels = [FakeChannel(n, guild=self) for n in channel_names]
        self.roles = [FakeRole(n, guild=self) for n in role_names]
        self.cached_members = {}
        self.fetch_roles = AsyncMock(side_effect=lambda: list(self.roles))
        self.create_role = AsyncMock(side_effect=self._create_role)
        self.fetch_member = AsyncMock(side_effect=lambda member_id: self.cached_members[member_id])

    def add_member(self, name, status="online", bot=False):
        member = FakeMember(name, status=status, bot=bot, guild=self)
        self.cached_members[member.id] = member
        return member

    def get_member(self, member_id):
        return self.cached_members.get(member_id)

    def get_role(self, role_id):
        return next((r for r in self.roles if r.id == role_id), None)

    def fetch_members(self, limit=1000):
        return SimpleNamespace(flatten=AsyncMock(return_value=list(self.cached_members.values())))

    async def _create_role(self, *, name, colour=None, hoist=False, mentionable=False, reason=None):
        role = FakeRole(name, hoist=hoist, guild=self)
        role.colour = colour
        role.mentionable = mentionable
        self.roles.append(role)
        return role


class FakeMessage:
    def __init__(self, content, author, guild=None):
        self.content = content
        self.author = author
        self.guild = guild
        self.reply = AsyncMock()

    @property
    def replies(self):
        return [c.args[0] for c in self.reply.await_args_list]


@pytest.fixture
def guild():
    return FakeGuild(channel_names=("general", "fishing-channel"))


@pytest.fixture
def registry():
    return CommunityRegistry(default_prefix="🧠")


@pytest.fixture
def fake_bot():
    return SimpleNamespace(
        user=SimpleNamespace(id=999, name="The Brain Cell", edit=AsyncMock()),
        change_presence=AsyncMock(),
        guilds=[],
    )


@pytest.fixture
def engine(registry, fake_bot):
    return RotationEngine(registry, selector=UniformSelector(seed=1234), bot=fake_bot)


@pytest.fixture
def record(registry, guild):
    record = registry.create(guild)
    record.channel = guild.text_channels[0]
    return record


@pytest.fixture
def fakes():
    return SimpleNamespace(
        Guild=FakeGuild,
        Member=FakeMember,
        Role=FakeRole,
        Channel=FakeChannel,
        Message=FakeMessage,
    )
