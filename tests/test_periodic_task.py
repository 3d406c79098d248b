"""Tests for the periodic task scheduler."""

from __future__ import annotations

import asyncio

from core.scheduler import PeriodicTask


def test_fires_repeatedly_until_stopped() -> None:
    calls: list[int] = []

    async def _body() -> None:
        calls.append(1)

    async def _run() -> PeriodicTask:
        task = PeriodicTask("test", _body, 0.01)
        task.start()
        await asyncio.sleep(0.065)
        task.stop()
        fired = task.fired
        await asyncio.sleep(0.03)
        assert task.fired == fired
        return task

    task = asyncio.run(_run())

    assert not task.is_armed
    assert task.fired >= 3
    assert len(calls) == task.fired


def test_interval_source_is_reread_before_each_wait() -> None:
    intervals = [0.01, 0.02, 0.03]
    requested: list[float] = []

    def _next() -> float:
        value = intervals[min(len(requested), len(intervals) - 1)]
        requested.append(value)
        return value

    async def _body() -> None:
        return None

    async def _run() -> None:
        task = PeriodicTask("adaptive", _body, _next)
        task.start()
        await asyncio.sleep(0.08)
        task.stop()

    asyncio.run(_run())

    assert requested[:3] == [0.01, 0.02, 0.03]


def test_stop_lets_in_flight_body_finish() -> None:
    finished: list[bool] = []

    async def _run() -> None:
        started = asyncio.Event()

        async def _slow_body() -> None:
            started.set()
            await asyncio.sleep(0.05)
            finished.append(True)

        task = PeriodicTask("slow", _slow_body, 0.01)
        task.start()
        await started.wait()
        task.stop()
        assert task.in_flight == 1
        await task.wait_in_flight()

    asyncio.run(_run())

    assert finished == [True]


def test_body_errors_are_counted_and_loop_continues() -> None:
    async def _failing() -> None:
        raise RuntimeError("cycle failure")

    async def _run() -> PeriodicTask:
        task = PeriodicTask("failing", _failing, 0.01)
        task.start()
        await asyncio.sleep(0.045)
        task.stop()
        await task.wait_in_flight()
        return task

    task = asyncio.run(_run())

    assert task.errors >= 2
    assert task.errors == task.fired


def test_await_body_reads_interval_after_body_returns() -> None:
    state = {"interval": 0.01}
    requested: list[float] = []

    async def _run() -> None:
        enough = asyncio.Event()

        def _next() -> float:
            requested.append(state["interval"])
            if len(requested) >= 3:
                enough.set()
            return state["interval"]

        async def _body() -> None:
            await asyncio.sleep(0)
            state["interval"] *= 2

        task = PeriodicTask("inline", _body, _next, await_body=True)
        task.start()
        await enough.wait()
        task.stop()
        assert task.in_flight == 0

    asyncio.run(_run())

    assert requested[:3] == [0.01, 0.02, 0.04]
