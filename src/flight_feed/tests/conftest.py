from __future__ import annotations

import pytest


class ManualTask:
    def __init__(self, delay: float, callback):
        self.delay = delay
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Records scheduled callbacks so tests decide when timers fire."""

    def __init__(self):
        self.tasks: list[ManualTask] = []

    def call_later(self, delay: float, callback) -> ManualTask:
        task = ManualTask(delay, callback)
        self.tasks.append(task)
        return task

    @property
    def pending(self) -> list[ManualTask]:
        return [t for t in self.tasks if not t.cancelled and not t.fired]

    def fire_next(self) -> ManualTask:
        task = self.pending[0]
        task.fired = True
        task.callback()
        return task


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def __call__(self) -> float:
        return self.now


@pytest.fixture(autouse=True)
def isolate_environment(tmp_path, monkeypatch):
    """Keep every test in simulation mode with its own DuckDB cache."""
    monkeypatch.setenv("FLIGHT_FEED_CACHE_DB", str(tmp_path / "flight_feed.db"))
    monkeypatch.delenv("FLIGHTAWARE_CREDENTIALS", raising=False)
    monkeypatch.delenv("FLIGHT_FEED_SIMULATION_DATE", raising=False)
    monkeypatch.delenv("FLIGHT_FEED_CAPTURE", raising=False)
    yield


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
