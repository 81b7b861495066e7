"""Per-guild recurring rotation timer.

Each :class:`CommunityRecord` owns at most one timer task. Rescheduling always
cancels the old task before a new one is installed.
"""

from __future__ import annotations

import asyncio
import functools
import math
from typing import Any, Awaitable, Callable

from braincell.datatypes.community_record import CommunityRecord
from braincell.util.logger import get_logger

logger = get_logger("rotation_scheduler")


class RotationScheduler:
    """
    Installs and cancels the recurring rotation task of each record.

    Args:
        rotate: Coroutine function run on every tick with the record as its only argument.
    """

    def __init__(self, rotate: Callable[[CommunityRecord], Awaitable[Any]]) -> None:
        self._rotate = rotate

    def cancel(self, record: CommunityRecord) -> bool:
        """Cancel the record's timer. Returns True if a live timer was cancelled."""
        timer = record.timer
        record.timer = None
        if timer is None or timer.done():
            return False
        timer.cancel()
        return True

    async def schedule(self, record: CommunityRecord, minutes: float) -> None:
        """Rotate now, then every ``minutes`` minutes.

        A zero interval rotates once and leaves no recurring timer. If the
        immediate rotation fails the timer is still installed and the error is
        re-raised for the caller to report.

        Raises:
            ValueError: ``minutes`` is negative or not finite.
        """
        if not math.isfinite(minutes) or minutes < 0:
            raise ValueError(f"rotation interval must be a finite, non-negative number of minutes, got {minutes!r}")

        self.cancel(record)

        failure: Exception | None = None
        try:
            await self._rotate(record)
        except Exception as exc:
            failure = exc

        # Another schedule() may have installed a timer while we were rotating
        self.cancel(record)
        record.timer_minutes = minutes
        if minutes > 0:
            record.timer = asyncio.create_task(
                self._run_loop(record, minutes * 60),
                name=f"braincell-rotation-{record.guild_id}",
            )
            logger.info("[rotation] Guild %s rotates every %s min", record.guild_id, minutes)
        else:
            logger.info("[rotation] Guild %s has no recurring rotation", record.guild_id)

        if failure is not None:
            raise failure

    async def _run_loop(self, record: CommunityRecord, interval: float) -> None:
        """Sleep, rotate, repeat. A failed rotation is logged and the loop carries on."""
        try:
            while True:
                await asyncio.sleep(interval)
                rotation = asyncio.ensure_future(self._rotate(record))
                rotation.add_done_callback(functools.partial(self._report_failure, record))
                try:
                    # Shielded so cancelling the timer never interrupts a rotation mid-flight
                    await asyncio.shield(rotation)
                except asyncio.CancelledError:
                    raise
                except Exception:
                    # Already logged by _report_failure
                    continue
        except asyncio.CancelledError:
            logger.debug("[rotation] Timer for guild %s cancelled", record.guild_id)
            raise

    @staticmethod
    def _report_failure(record: CommunityRecord, rotation: asyncio.Future) -> None:
        """Log a tick's failure, including one that finishes after its timer was cancelled."""
        if rotation.cancelled():
            return
        exc = rotation.exception()
        if exc is not None:
            logger.error(
                "[rotation] Failed to pass the braincell in guild %s: %s",
                record.guild_id, exc, exc_info=exc,
            )
