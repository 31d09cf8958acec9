"""Timed multi-shot capture loop.

For each shot the sequencer counts down, takes a snapshot, fires a flash and
pauses before the next one. Cancellation is cooperative: the ``cancelled``
callable is consulted after every suspension point, so a shot that has
started drawing always finishes and a cancelled run never appends a frame.
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Union

from funbooth.config import settings

logger = logging.getLogger(__name__)

MaybeAwaitable = Union[None, Awaitable[None]]


@dataclass
class SequenceResult:
    frames: List[bytes] = field(default_factory=list)
    completed: bool = False


async def _call(callback: Optional[Callable[..., MaybeAwaitable]], *args) -> None:
    if callback is None:
        return
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


class CaptureSequencer:
    def __init__(
            self,
            countdown_from: int = settings.countdown_from,
            tick_seconds: float = settings.countdown_tick_seconds,
            shot_interval_seconds: float = settings.shot_interval_seconds,
            sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.countdown_from = countdown_from
        self.tick_seconds = tick_seconds
        self.shot_interval_seconds = shot_interval_seconds
        self.sleep = sleep
        self.countdown = 0

    async def run(
            self,
            shot_count: int,
            take_shot: Callable[[], Awaitable[bytes]],
            on_frame: Optional[Callable[[bytes, int], MaybeAwaitable]] = None,
            on_countdown: Optional[Callable[[int], MaybeAwaitable]] = None,
            on_flash: Optional[Callable[[int], MaybeAwaitable]] = None,
            cancelled: Callable[[], bool] = lambda: False,
    ) -> SequenceResult:
        result = SequenceResult()
        try:
            for shot in range(shot_count):
                for value in range(self.countdown_from, 0, -1):
                    if cancelled():
                        return result
                    await self._set_countdown(value, on_countdown)
                    await self.sleep(self.tick_seconds)
                await self._set_countdown(0, on_countdown)
                if cancelled():
                    return result

                frame = await take_shot()
                if cancelled():
                    return result
                result.frames.append(frame)
                await _call(on_frame, frame, shot)
                logger.info("Captured shot %d of %d", shot + 1, shot_count)

                await self._flash(on_flash, shot)

                if shot < shot_count - 1:
                    await self.sleep(self.shot_interval_seconds)

            result.completed = not cancelled()
            return result
        finally:
            self.countdown = 0

    async def _set_countdown(self, value: int, on_countdown) -> None:
        self.countdown = value
        await _call(on_countdown, value)

    async def _flash(self, on_flash, shot: int) -> None:
        # The flash is cosmetic; a failed flash never interrupts the sequence
        try:
            await _call(on_flash, shot)
        except Exception:
            logger.exception("Flash effect failed for shot %d", shot + 1)
