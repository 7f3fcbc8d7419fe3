"""Tests for PeriodicTask"""

import asyncio

import pytest

from swerve_drive.periodic import PeriodicTask


def test_invalid_period():
    """Test non-positive periods are rejected"""
    with pytest.raises(ValueError):
        PeriodicTask("bad", lambda: None, 0.0)


def test_runs_repeatedly():
    """Test the callback runs on schedule until stopped"""
    calls = []
    task = PeriodicTask("counter", lambda: calls.append(1), 0.01)

    async def run():
        task.start()
        assert task.running
        await asyncio.sleep(0.1)
        await task.stop()

    asyncio.run(run())

    assert len(calls) >= 3
    assert task.ticks == len(calls)
    assert not task.running


def test_survives_failing_tick():
    """Test an exception in one tick does not end the schedule"""

    def explode():
        raise RuntimeError("sensor read failed")

    task = PeriodicTask("failing", explode, 0.01)

    async def run():
        task.start()
        await asyncio.sleep(0.1)
        assert task.running
        await task.stop()

    asyncio.run(run())

    assert task.errors >= 3
    assert task.errors == task.ticks


def test_awaits_coroutine_callback():
    """Test coroutine callbacks are awaited"""
    done = []

    async def tick():
        await asyncio.sleep(0)
        done.append(1)

    task = PeriodicTask("async", tick, 0.01)

    async def run():
        task.start()
        await asyncio.sleep(0.05)
        await task.stop()

    asyncio.run(run())

    assert len(done) >= 2
    assert task.errors == 0


def test_stop_without_start():
    """Test stopping an idle task is a no-op"""
    task = PeriodicTask("idle", lambda: None, 0.01)

    asyncio.run(task.stop())

    assert not task.running
