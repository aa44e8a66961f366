from __future__ import annotations

import asyncio
from typing import Callable, Protocol


class ScheduledTask(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledTask: ...


class LoopScheduler:
    """Schedules one-shot callbacks on an asyncio event loop.

    The returned handle is an ``asyncio.TimerHandle``; cancelling it before
    it fires guarantees the callback never runs.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self.loop.call_later(delay, callback)
