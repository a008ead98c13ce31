"""Tests for the asyncio phase timer."""

import asyncio

from game.timer import PhaseTimer

TICK = 0.005


def test_countdown_ticks_then_completes_once():
    async def scenario():
        ticks, done = [], []
        timer = PhaseTimer(on_tick=ticks.append, tick_seconds=TICK)
        timer.start(3, lambda: done.append(True))
        assert ticks == [3]
        assert timer.active
        await asyncio.sleep(TICK * 20)
        return ticks, done, timer

    ticks, done, timer = asyncio.run(scenario())
    assert ticks == [3, 2, 1, 0]
    assert done == [True]
    assert not timer.active
    assert timer.remaining == 0


def test_cancel_stops_countdown():
    async def scenario():
        ticks, done = [], []
        timer = PhaseTimer(on_tick=ticks.append, tick_seconds=TICK)
        timer.start(50, lambda: done.append(True))
        await asyncio.sleep(TICK * 3)
        cancelled = timer.cancel()
        seen = len(ticks)
        await asyncio.sleep(TICK * 10)
        return cancelled, seen, ticks, done, timer

    cancelled, seen, ticks, done, timer = asyncio.run(scenario())
    assert cancelled
    assert len(ticks) == seen
    assert done == []
    assert timer.remaining == 0
    assert not timer.active


def test_cancel_when_idle_is_safe():
    timer = PhaseTimer()
    assert timer.cancel() is False
    assert timer.cancel() is False
    assert timer.remaining == 0


def test_cancel_before_expiry_fires_nothing():
    async def scenario():
        done = []
        timer = PhaseTimer(tick_seconds=TICK)
        # Zero-length countdown: the completion is already due on the next loop pass.
        timer.start(0, lambda: done.append(True))
        timer.cancel()
        await asyncio.sleep(TICK * 5)
        return done

    assert asyncio.run(scenario()) == []


def test_new_start_supersedes_previous():
    async def scenario():
        fired = []
        timer = PhaseTimer(tick_seconds=TICK)
        timer.start(5, lambda: fired.append("first"))
        timer.start(1, lambda: fired.append("second"))
        await asyncio.sleep(TICK * 20)
        return fired

    assert asyncio.run(scenario()) == ["second"]


def test_completion_can_arm_next_phase():
    async def scenario():
        fired = []
        timer = PhaseTimer(tick_seconds=TICK)

        def first_done():
            fired.append("night")
            timer.start(1, lambda: fired.append("day"))

        timer.start(1, first_done)
        await asyncio.sleep(TICK * 20)
        return fired, timer

    fired, timer = asyncio.run(scenario())
    assert fired == ["night", "day"]
    assert not timer.active


def test_delay_fires_once_without_ticks():
    async def scenario():
        ticks, done = [], []
        timer = PhaseTimer(on_tick=ticks.append, tick_seconds=TICK)
        timer.delay(2, lambda: done.append(True))
        assert timer.active
        await asyncio.sleep(TICK * 10)
        return ticks, done

    ticks, done = asyncio.run(scenario())
    assert ticks == []
    assert done == [True]
