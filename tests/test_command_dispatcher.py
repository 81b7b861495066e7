"""Tests for prefix command parsing and the command handlers."""

from unittest.mock import AsyncMock

import pytest

from braincell.bot import command_dispatcher as dispatcher_module
from braincell.bot.command_dispatcher import CommandDispatcher, parse_command, parse_minutes


@pytest.fixture
def dispatcher(engine, registry):
    return CommandDispatcher(engine=engine, registry=registry)


@pytest.fixture
def author(guild):
    return guild.add_member("alice")


def message(fakes, content, author, guild):
    return fakes.Message(content, author, guild)


# --------------------------
# Parsing
# --------------------------

def test_parse_command_splits_name_and_args():
    parsed = parse_command("🧠 role The   Big Brain", "🧠")

    assert parsed.name == "role"
    assert parsed.args == ["The", "Big", "Brain"]
    assert parsed.text == "The Big Brain"


@pytest.mark.parametrize("content", ["🧠help", "help", "! help", "🧠 ", ""])
def test_parse_command_rejects_unprefixed(content):
    assert parse_command(content, "🧠") is None


@pytest.mark.parametrize(
    "args, expected",
    [(["10"], 10.0), (["0.5"], 0.5), (["0"], 0.0), (["abc"], None), ([], None), (["1", "2"], None),
     (["-3"], None), (["inf"], None), (["nan"], None)],
)
def test_parse_minutes(args, expected):
    assert parse_minutes(args) == expected


# --------------------------
# Filtering
# --------------------------

@pytest.mark.asyncio
async def test_bot_messages_are_ignored(dispatcher, record, guild, fakes):
    robot = guild.add_member("robot", bot=True)
    msg = message(fakes, "🧠 toggle-tags", robot, guild)

    assert await dispatcher.dispatch(msg) is False
    assert record.display_tags is False
    msg.reply.assert_not_awaited()


@pytest.mark.asyncio
async def test_unknown_guild_is_ignored(dispatcher, fakes):
    stranger_guild = fakes.Guild()
    msg = message(fakes, "🧠 debug", stranger_guild.add_member("x"), stranger_guild)

    assert await dispatcher.dispatch(msg) is False
    msg.reply.assert_not_awaited()


@pytest.mark.asyncio
async def test_unknown_command_is_silently_ignored(dispatcher, record, author, guild, fakes):
    msg = message(fakes, "🧠 dance", author, guild)

    assert await dispatcher.dispatch(msg) is False
    msg.reply.assert_not_awaited()


@pytest.mark.asyncio
async def test_command_names_are_case_sensitive(dispatcher, record, author, guild, fakes):
    msg = message(fakes, "🧠 DEBUG", author, guild)

    assert await dispatcher.dispatch(msg) is False


# --------------------------
# Commands
# --------------------------

@pytest.mark.asyncio
async def test_prefix_round_trip(dispatcher, record, author, guild, fakes):
    set_prefix = message(fakes, "🧠 prefix !", author, guild)
    await dispatcher.dispatch(set_prefix)

    assert record.prefix == "!"
    assert set_prefix.replies == ["Set to `!`"]

    old_prefix = message(fakes, "🧠 help", author, guild)
    assert await dispatcher.dispatch(old_prefix) is False

    help_msg = message(fakes, "! help", author, guild)
    assert await dispatcher.dispatch(help_msg) is True
    assert "`! prefix <prefix>`" in author.dms[-1]


@pytest.mark.asyncio
async def test_prefix_accepts_multi_word_prefix(dispatcher, record, author, guild, fakes):
    await dispatcher.dispatch(message(fakes, "🧠 prefix hey brain", author, guild))

    assert record.prefix == "hey brain"


@pytest.mark.asyncio
async def test_channel_command_sets_channel(dispatcher, record, author, guild, fakes):
    msg = message(fakes, "🧠 channel fishing-channel", author, guild)

    await dispatcher.dispatch(msg)

    assert record.channel is guild.text_channels[1]
    assert msg.replies == [f"I'll respond to <#{guild.text_channels[1].id}>"]


@pytest.mark.asyncio
async def test_channel_command_fallback_mentions_missing_channel(dispatcher, registry, fakes):
    guild = fakes.Guild(channel_names=("lobby",))
    registry.create(guild)
    author = guild.add_member("alice")
    msg = message(fakes, "🧠 channel general", author, guild)

    await dispatcher.dispatch(msg)

    assert msg.replies[0].startswith("Couldn't find channel `general`, so ")


@pytest.mark.asyncio
async def test_channel_command_needs_exactly_one_argument(dispatcher, record, author, guild, fakes):
    msg = message(fakes, "🧠 channel two words", author, guild)
    before = record.channel

    await dispatcher.dispatch(msg)

    assert record.channel is before
    assert msg.replies == ["I didn't understand! Usage: `🧠 channel <channel>`"]


@pytest.mark.asyncio
async def test_timer_command_reschedules(dispatcher, engine, record, author, guild, fakes, monkeypatch):
    schedule = AsyncMock()
    monkeypatch.setattr(engine, "schedule_rotation", schedule)
    msg = message(fakes, "🧠 timer 2.5", author, guild)

    await dispatcher.dispatch(msg)

    assert msg.replies == ["Restarting the timer at 2.5 mins, but first lets pass the braincell!"]
    schedule.assert_awaited_once_with(record, 2.5)


@pytest.mark.asyncio
async def test_timer_command_rejects_non_numeric(dispatcher, engine, record, author, guild, fakes, monkeypatch):
    schedule = AsyncMock()
    monkeypatch.setattr(engine, "schedule_rotation", schedule)
    sentinel_timer = record.timer
    msg = message(fakes, "🧠 timer abc", author, guild)

    await dispatcher.dispatch(msg)

    schedule.assert_not_awaited()
    assert record.timer is sentinel_timer
    assert msg.replies == ["I didn't understand! Usage: `🧠 timer <time (in minutes)>`"]


@pytest.mark.asyncio
async def test_timer_command_passes_the_braincell_immediately(dispatcher, engine, record, author, guild, fakes):
    role = fakes.Role("The Braincell", guild=guild)
    record.role = role
    record.members.append(author)

    await dispatcher.dispatch(message(fakes, "🧠 timer 15", author, guild))

    assert record.holder is author
    assert record.timer_active()
    engine.scheduler.cancel(record)


@pytest.mark.asyncio
async def test_role_command_joins_remainder(dispatcher, record, author, guild, fakes):
    big = fakes.Role("Big Brain", guild=guild, hoist=True)
    guild.roles.append(big)
    msg = message(fakes, "🧠 role Big Brain", author, guild)

    await dispatcher.dispatch(msg)

    assert record.role is big
    assert msg.replies == ["The braincell is now `Big Brain`"]


@pytest.mark.asyncio
async def test_role_command_reports_miss(dispatcher, record, author, guild, fakes):
    msg = message(fakes, "🧠 role Nope", author, guild)

    await dispatcher.dispatch(msg)

    assert msg.replies == ["Couldn't find the role `Nope`"]


@pytest.mark.asyncio
async def test_debug_dump(dispatcher, record, author, guild, fakes):
    record.role = fakes.Role("The Braincell")
    record.holder = author
    record.timer_minutes = 10
    msg = message(fakes, "🧠 debug", author, guild)

    await dispatcher.dispatch(msg)

    assert msg.replies == [
        "Channel Name: general\nRole Name: The Braincell\nPrefix: 🧠\nTimer length: 10\nHolder: alice"
    ]


@pytest.mark.asyncio
async def test_opt_in_adds_sender(dispatcher, record, author, guild, fakes):
    await dispatcher.dispatch(message(fakes, "🧠 opt-in", author, guild))

    assert record.members == [author]
    assert "You can now get the braincell" in author.dms[0]


@pytest.mark.asyncio
async def test_opt_in_fetches_uncached_member(dispatcher, record, guild, fakes):
    author = guild.add_member("alice")
    cached = guild.cached_members
    guild.get_member = lambda member_id: None
    msg = message(fakes, "🧠 opt-in", author, guild)

    await dispatcher.dispatch(msg)

    guild.fetch_member.assert_awaited_once_with(author.id)
    assert record.members == [cached[author.id]]


@pytest.mark.asyncio
async def test_opt_in_from_dm_is_refused(dispatcher, registry, record, author, fakes):
    msg = message(fakes, "🧠 opt-in", author, None)

    assert await dispatcher.dispatch(msg) is True

    assert msg.replies == ["Can't add users from DMs. Try again in a channel!"]
    assert record.members == []


@pytest.mark.asyncio
async def test_other_commands_from_dm_are_ignored(dispatcher, record, author, fakes):
    msg = message(fakes, "🧠 toggle-tags", author, None)

    assert await dispatcher.dispatch(msg) is False
    msg.reply.assert_not_awaited()


@pytest.mark.asyncio
async def test_opt_out_removes_sender_and_acknowledges(dispatcher, record, author, guild, fakes):
    record.members.append(author)

    await dispatcher.dispatch(message(fakes, "🧠 opt-out", author, guild))

    assert record.members == []
    assert author.dms == ["No problem, opted out!"]


@pytest.mark.asyncio
async def test_toggle_tags_flips_and_reports(dispatcher, record, author, guild, fakes):
    first = message(fakes, "🧠 toggle-tags", author, guild)
    second = message(fakes, "🧠 toggle-tags", author, guild)

    await dispatcher.dispatch(first)
    assert record.display_tags is True
    await dispatcher.dispatch(second)
    assert record.display_tags is False

    assert first.replies == ["Tags are now On"]
    assert second.replies == ["Tags are now Off"]


@pytest.mark.asyncio
async def test_help_is_sent_privately(dispatcher, record, author, guild, fakes):
    msg = message(fakes, "🧠 help", author, guild)

    await dispatcher.dispatch(msg)

    msg.reply.assert_not_awaited()
    text = author.dms[0]
    for name in ("prefix", "channel", "timer", "role", "debug", "opt-out", "opt-in", "toggle-tags", "help"):
        assert f"{name}: " in text
    assert "\t`🧠 timer <time (in minutes)>`" in text


@pytest.mark.asyncio
async def test_platform_failure_gets_bug_reply(dispatcher, record, author, guild, fakes):
    author.dm_channel.send.side_effect = RuntimeError("Cannot send messages to this user")
    msg = message(fakes, "🧠 help", author, guild)

    assert await dispatcher.dispatch(msg) is True

    assert msg.replies == [dispatcher_module.COMMAND_FAILED_REPLY]
