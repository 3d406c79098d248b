"""Cancellable periodic tasks on the running asyncio loop."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from core.logging import logger as LOGGER


IntervalSource = Callable[[], float]


class PeriodicTask:
    """Fire ``callback`` every interval until stopped.

    The interval source is re-read before each wait, so a callable that
    returns a changing value re-arms the timer on every tick. By default each
    firing runs as its own task; ``stop()`` cancels only the timer, and bodies
    already in flight finish on their own. With ``await_body`` the timer runs
    the body inline and reads the next interval only after it returns.
    """

    def __init__(
        self,
        name: str,
        callback: Callable[[], Awaitable[object]],
        interval_s: float | IntervalSource,
        *,
        await_body: bool = False,
    ) -> None:
        self.name = name
        self._callback = callback
        self._await_body = await_body
        if callable(interval_s):
            self._interval_source: IntervalSource = interval_s
        else:
            fixed = float(interval_s)
            self._interval_source = lambda: fixed
        self._timer: asyncio.Task[None] | None = None
        self._in_flight: set[asyncio.Task[None]] = set()
        self._fired = 0
        self._errors = 0

    @property
    def is_armed(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def fired(self) -> int:
        return self._fired

    @property
    def errors(self) -> int:
        return self._errors

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    def next_interval(self) -> float:
        return max(float(self._interval_source()), 0.0)

    def start(self) -> None:
        if self.is_armed:
            return
        self._timer = asyncio.get_running_loop().create_task(
            self._run_timer(), name=f"{self.name}-timer"
        )

    def stop(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def wait_in_flight(self) -> None:
        """Wait for bodies that were already running when the timer stopped."""

        if self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    async def _run_timer(self) -> None:
        while True:
            await asyncio.sleep(self.next_interval())
            self._fired += 1
            if self._await_body:
                await self._run_body()
                continue
            task = asyncio.get_running_loop().create_task(
                self._run_body(), name=f"{self.name}-body"
            )
            self._in_flight.add(task)
            task.add_done_callback(self._in_flight.discard)

    async def _run_body(self) -> None:
        try:
            await self._callback()
        except Exception as exc:
            LOGGER.exception("[Scheduler] %s body failed: %s", self.name, exc)
            self._errors += 1
