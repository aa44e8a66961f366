from __future__ import annotations

import json
import os
import time
from collections.abc import MutableMapping
from pathlib import Path
from typing import Callable, Iterator

PROCESS_START = time.time()


class SimulationDataset(MutableMapping[str, str]):
    """Canned response bodies keyed by the exact query string they answer."""

    def __init__(self, fixtures: dict[str, str] | None = None):
        self._fixtures: dict[str, str] = dict(fixtures or {})

    @classmethod
    def from_json_file(cls, filepath: str | os.PathLike[str]) -> SimulationDataset:
        payload = json.loads(Path(filepath).read_text(encoding="utf-8"))
        if not isinstance(payload, dict):
            raise ValueError(f"{filepath} must contain a JSON object of query -> body")
        return cls({str(k): v if isinstance(v, str) else json.dumps(v) for k, v in payload.items()})

    def write_json(self, filepath: str | os.PathLike[str]) -> None:
        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(self._fixtures, f, indent=2, sort_keys=True)

    def body(self, query: str) -> bytes | None:
        text = self._fixtures.get(query)
        return None if text is None else text.encode("utf-8")

    def capture(self, query: str, body: bytes) -> None:
        self._fixtures[query] = body.decode("utf-8", errors="replace")

    def __getitem__(self, query: str) -> str:
        return self._fixtures[query]

    def __setitem__(self, query: str, body: str) -> None:
        self._fixtures[query] = body

    def __delitem__(self, query: str) -> None:
        del self._fixtures[query]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fixtures)

    def __len__(self) -> int:
        return len(self._fixtures)


class FlightClock:
    """Current time in epoch seconds, pinned to a fixed anchor in demo mode.

    Without credentials, with fixtures loaded and an anchor configured, time
    is the anchor plus the wall-clock time elapsed since the process
    started, so cache ages line up with the canned data on every run.
    """

    def __init__(
        self,
        credentials: str | None = None,
        simulation: SimulationDataset | None = None,
        simulation_date: float | None = None,
        wall: Callable[[], float] = time.time,
        launch: float = PROCESS_START,
    ):
        self._credentials = credentials
        self._simulation = simulation
        self._simulation_date = simulation_date
        self._wall = wall
        self._launch = launch

    @property
    def simulating(self) -> bool:
        return (
            not self._credentials
            and bool(self._simulation)
            and self._simulation_date is not None
        )

    def now(self) -> float:
        if self.simulating:
            return self._simulation_date + (self._wall() - self._launch)
        return self._wall()

    def __call__(self) -> float:
        return self.now()
