"""Cancellable per-room countdown running on the asyncio event loop."""

import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)

TickCallback = Callable[[int], None]
CompleteCallback = Callable[[], None]


class PhaseTimer:
    """
    One countdown slot for one room. Starting a new countdown always supersedes
    the previous one. on_tick receives the remaining units: once immediately on
    start, then once per elapsed unit down to 0. on_complete fires exactly once,
    after the final tick, unless the timer was cancelled first.

    Every arm bumps a generation counter; a completion whose generation is stale
    is dropped, so a cancel that lands between the last sleep and the callback
    never lets the callback through.
    """

    def __init__(
        self,
        on_tick: Optional[TickCallback] = None,
        tick_seconds: float = 1.0,
        name: str = "",
    ):
        self._on_tick = on_tick
        self._tick_seconds = tick_seconds
        self._name = name
        self._task: Optional[asyncio.Task] = None
        self._generation = 0
        self.remaining = 0

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, duration: int, on_complete: CompleteCallback) -> None:
        """Cancel whatever is running and count down from duration."""
        self.cancel()
        self._generation += 1
        self.remaining = duration
        self._tick()
        self._task = asyncio.get_running_loop().create_task(
            self._countdown(self._generation, on_complete)
        )

    def delay(self, units: float, on_complete: CompleteCallback) -> None:
        """Single-shot wait in the same slot, without tick notifications."""
        self.cancel()
        self._generation += 1
        self._task = asyncio.get_running_loop().create_task(
            self._wait(self._generation, units, on_complete)
        )

    def cancel(self) -> bool:
        """Stop the countdown and zero the remaining time. Returns True if something was running."""
        self.remaining = 0
        self._generation += 1
        task, self._task = self._task, None
        if task is None or task.done():
            return False
        task.cancel()
        return True

    def _tick(self) -> None:
        if self._on_tick is not None:
            self._on_tick(self.remaining)

    async def _countdown(self, generation: int, on_complete: CompleteCallback) -> None:
        while self.remaining > 0:
            await asyncio.sleep(self._tick_seconds)
            if generation != self._generation:
                return
            self.remaining -= 1
            self._tick()
        self._fire(generation, on_complete)

    async def _wait(self, generation: int, units: float, on_complete: CompleteCallback) -> None:
        await asyncio.sleep(units * self._tick_seconds)
        self._fire(generation, on_complete)

    def _fire(self, generation: int, on_complete: CompleteCallback) -> None:
        if generation != self._generation:
            logger.debug("[%s] stale timer completion dropped", self._name)
            return
        # Release the slot first so on_complete may arm the next phase.
        self._task = None
        self._generation += 1
        on_complete()
