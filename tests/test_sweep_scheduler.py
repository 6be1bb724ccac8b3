"""Tests for the periodic sweep scheduler."""

import asyncio
from unittest.mock import MagicMock

import pytest

from rolegate.scheduler.sweep_scheduler import SweepScheduler


def test_run_once_swallows_sweep_errors():
    sweep = MagicMock(side_effect=RuntimeError("boom"))
    scheduler = SweepScheduler("test", sweep)

    scheduler.run_once()

    sweep.assert_called_once()


@pytest.mark.asyncio
async def test_start_runs_sweeps_until_shutdown():
    swept = asyncio.Event()
    scheduler = SweepScheduler("test", swept.set, lambda: 0)

    scheduler.start()
    assert scheduler.running is True

    await asyncio.wait_for(swept.wait(), 1)
    await scheduler.shutdown()

    assert scheduler.running is False


@pytest.mark.asyncio
async def test_failing_sweep_keeps_loop_alive():
    second_call = asyncio.Event()

    def failing_sweep():
        if sweep.call_count >= 2:
            second_call.set()
        raise RuntimeError("boom")

    sweep = MagicMock(side_effect=failing_sweep)
    scheduler = SweepScheduler("test", sweep, lambda: 0)

    scheduler.start()
    await asyncio.wait_for(second_call.wait(), 1)

    assert scheduler.running is True
    assert sweep.call_count >= 2
    await scheduler.shutdown()


@pytest.mark.asyncio
async def test_start_twice_keeps_single_task():
    scheduler = SweepScheduler("test", lambda: None, lambda: 10)

    scheduler.start()
    first_task = scheduler._task
    scheduler.start()

    assert scheduler._task is first_task
    await scheduler.shutdown()


@pytest.mark.asyncio
async def test_shutdown_without_start_is_safe():
    scheduler = SweepScheduler("test", lambda: None)

    await scheduler.shutdown()
    await scheduler.shutdown()

    assert scheduler.running is False
