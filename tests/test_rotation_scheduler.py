import asyncio
import math
from unittest.mock import AsyncMock, MagicMock

import pytest

from braincell.scheduler import rotation_scheduler
from braincell.scheduler.rotation_scheduler import RotationScheduler


@pytest.mark.asyncio
async def test_schedule_rotates_immediately_and_installs_timer(record):
    rotate = AsyncMock()
    scheduler = RotationScheduler(rotate)

    await scheduler.schedule(record, 10)

    rotate.assert_awaited_once_with(record)
    assert record.timer_active()
    assert record.timer_minutes == 10

    scheduler.cancel(record)


@pytest.mark.asyncio
async def test_rescheduling_cancels_previous_timer(record):
    scheduler = RotationScheduler(AsyncMock())

    await scheduler.schedule(record, 10)
    first = record.timer
    await scheduler.schedule(record, 5)
    second = record.timer

    await asyncio.sleep(0)
    assert first is not second
    assert first.cancelled()
    assert record.timer_active()
    assert record.timer_minutes == 5

    scheduler.cancel(record)


@pytest.mark.asyncio
async def test_overlapping_schedules_leave_a_single_timer(record):
    gate = asyncio.Event()
    calls = 0

    async def slow_rotate(_record):
        nonlocal calls
        calls += 1
        if calls == 1:
            await gate.wait()

    scheduler = RotationScheduler(slow_rotate)
    created: list[asyncio.Task] = []
    original_create_task = asyncio.create_task

    def tracking_create_task(coro, **kwargs):
        task = original_create_task(coro, **kwargs)
        created.append(task)
        return task

    asyncio.create_task = tracking_create_task
    try:
        first = original_create_task(scheduler.schedule(record, 10))
        await asyncio.sleep(0)
        await scheduler.schedule(record, 3)
        gate.set()
        await first
    finally:
        asyncio.create_task = original_create_task

    await asyncio.sleep(0)
    live = [t for t in created if not t.done()]
    assert live == [record.timer]
    assert record.timer_minutes == 10

    scheduler.cancel(record)


@pytest.mark.asyncio
async def test_zero_minutes_rotates_once_without_timer(record):
    rotate = AsyncMock()
    scheduler = RotationScheduler(rotate)

    await scheduler.schedule(record, 0)

    rotate.assert_awaited_once()
    assert record.timer is None
    assert record.timer_minutes == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("minutes", [-1, math.inf, math.nan])
async def test_invalid_interval_is_rejected_without_side_effects(record, minutes):
    rotate = AsyncMock()
    scheduler = RotationScheduler(rotate)

    with pytest.raises(ValueError):
        await scheduler.schedule(record, minutes)

    rotate.assert_not_awaited()
    assert record.timer is None


@pytest.mark.asyncio
async def test_failed_immediate_rotation_still_installs_timer(record):
    rotate = AsyncMock(side_effect=RuntimeError("Forbidden"))
    scheduler = RotationScheduler(rotate)

    with pytest.raises(RuntimeError):
        await scheduler.schedule(record, 10)

    assert record.timer_active()
    scheduler.cancel(record)


@pytest.mark.asyncio
async def test_timer_keeps_rotating_after_a_failure(record, monkeypatch):
    ticks = 0

    async def flaky_rotate(_record):
        nonlocal ticks
        ticks += 1
        if ticks == 2:
            raise RuntimeError("gateway hiccup")

    scheduler = RotationScheduler(flaky_rotate)
    real_sleep = asyncio.sleep
    log = MagicMock()
    monkeypatch.setattr(rotation_scheduler, "logger", log)

    async def fast_sleep(delay):
        await real_sleep(0)

    monkeypatch.setattr("braincell.scheduler.rotation_scheduler.asyncio.sleep", fast_sleep)

    await scheduler.schedule(record, 1)
    for _ in range(100):
        await real_sleep(0)

    assert ticks > 3
    assert record.timer_active()
    log.error.assert_called_once()
    scheduler.cancel(record)


@pytest.mark.asyncio
async def test_tick_failing_after_cancel_is_still_logged(record, monkeypatch):
    gate = asyncio.Event()
    calls = 0

    async def slow_failing_rotate(_record):
        nonlocal calls
        calls += 1
        if calls == 1:
            return
        await gate.wait()
        raise RuntimeError("Missing Permissions")

    scheduler = RotationScheduler(slow_failing_rotate)
    real_sleep = asyncio.sleep
    log = MagicMock()
    monkeypatch.setattr(rotation_scheduler, "logger", log)

    async def fast_sleep(delay):
        await real_sleep(0)

    monkeypatch.setattr("braincell.scheduler.rotation_scheduler.asyncio.sleep", fast_sleep)

    await scheduler.schedule(record, 1)
    timer = record.timer
    for _ in range(20):
        if calls == 2:
            break
        await real_sleep(0)
    assert calls == 2

    scheduler.cancel(record)
    for _ in range(3):
        await real_sleep(0)
    assert timer.cancelled()

    gate.set()
    for _ in range(5):
        await real_sleep(0)

    log.error.assert_called_once()
    assert "Missing Permissions" in str(log.error.call_args)


@pytest.mark.asyncio
async def test_cancel_reports_whether_a_timer_was_live(record):
    scheduler = RotationScheduler(AsyncMock())

    assert scheduler.cancel(record) is False
    await scheduler.schedule(record, 10)
    assert scheduler.cancel(record) is True
    assert record.timer is None
