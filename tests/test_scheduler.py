"""
PaperDesk Poll Scheduler Tests

Start/stop lifecycle, deterministic ticking via a manual trigger,
non-overlap and failure isolation.
"""

import asyncio

import pytest

from conftest import ManualTrigger, settle
from data.scheduler import PollScheduler, SchedulerState


class Counter:
    def __init__(self):
        self.count = 0

    async def __call__(self):
        self.count += 1


@pytest.mark.asyncio
async def test_first_tick_runs_on_start():
    """Test the first tick runs immediately on start."""
    counter = Counter()
    scheduler = PollScheduler(counter, trigger=ManualTrigger())

    scheduler.start()
    await settle()

    assert counter.count == 1
    assert scheduler.state == SchedulerState.RUNNING
    await scheduler.stop()


@pytest.mark.asyncio
async def test_each_trigger_runs_one_tick():
    """Test each trigger releases exactly one tick."""
    counter = Counter()
    trigger = ManualTrigger()
    scheduler = PollScheduler(counter, trigger=trigger)
    scheduler.start()
    await settle()

    trigger.fire()
    await settle()
    trigger.fire()
    await settle()

    assert counter.count == 3
    assert scheduler.ticks_run == 3
    await scheduler.stop()


@pytest.mark.asyncio
async def test_no_tick_after_stop():
    """Test no tick runs after stop."""
    counter = Counter()
    trigger = ManualTrigger()
    scheduler = PollScheduler(counter, trigger=trigger)
    scheduler.start()
    await settle()

    await scheduler.stop()
    trigger.fire()
    await settle()

    assert counter.count == 1
    assert scheduler.state == SchedulerState.STOPPED
    assert await scheduler.tick() is False


@pytest.mark.asyncio
async def test_overlapping_tick_is_skipped():
    """Test a tick issued while one runs is skipped."""
    release = asyncio.Event()
    calls = []

    async def slow():
        calls.append(1)
        await release.wait()

    scheduler = PollScheduler(slow, trigger=ManualTrigger())
    scheduler.start()
    await settle()

    assert await scheduler.tick() is False
    assert scheduler.ticks_skipped == 1
    assert len(calls) == 1

    release.set()
    await settle()
    assert scheduler.ticks_run == 1
    await scheduler.stop()


@pytest.mark.asyncio
async def test_failing_tick_does_not_stop_loop():
    """Test a failing tick is counted and the loop continues."""
    outcomes = [RuntimeError("boom"), None]

    async def flaky():
        outcome = outcomes.pop(0)
        if outcome is not None:
            raise outcome

    trigger = ManualTrigger()
    scheduler = PollScheduler(flaky, trigger=trigger)
    scheduler.start()
    await settle()
    trigger.fire()
    await settle()

    assert scheduler.ticks_failed == 1
    assert scheduler.ticks_run == 1
    assert scheduler.is_running
    await scheduler.stop()


@pytest.mark.asyncio
async def test_stop_cancels_in_flight_tick():
    """Test stop cancels a hanging tick."""
    started = asyncio.Event()

    async def hang():
        started.set()
        await asyncio.Event().wait()

    scheduler = PollScheduler(hang, trigger=ManualTrigger())
    scheduler.start()
    await started.wait()

    await asyncio.wait_for(scheduler.stop(), timeout=1)

    assert scheduler.state == SchedulerState.STOPPED
    assert scheduler.ticks_run == 0


@pytest.mark.asyncio
async def test_default_trigger_sleeps_interval():
    """Test the default trigger polls on the interval."""
    counter = Counter()
    scheduler = PollScheduler(counter, interval_seconds=0.01)
    scheduler.start()

    await asyncio.sleep(0.1)
    await scheduler.stop()

    assert counter.count >= 2


def test_rejects_non_positive_interval():
    """Test a non-positive interval is rejected."""
    with pytest.raises(ValueError):
        PollScheduler(Counter(), interval_seconds=0)
