from __future__ import annotations

import asyncio
import enum
import logging
import math
import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Generic, Hashable, TypeVar

import duckdb
import httpx
from pydantic import TypeAdapter

from .cache import CachedResults, CacheStore
from .config import Config
from .credentials import capture_enabled, resolve_credentials, resolve_simulation_date
from .db import DuckDb
from .requests import FLIGHTAWARE_BASE_URL, authorized_request
from .results import CurrentValue
from .scheduling import LoopScheduler, ScheduledTask, Scheduler
from .simulation import FlightClock, SimulationDataset

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Hashable)


class MergePolicy(enum.Enum):
    """Which instance survives when a fetched record equals one already held."""

    UNION_KEEP_EXISTING = "keep_existing"
    UNION_PREFER_NEW = "prefer_new"

    def merge(self, held: set, batch: set) -> set:
        if self is MergePolicy.UNION_PREFER_NEW:
            return batch | held
        return held | batch


@dataclass(frozen=True)
class FetchStrategy(Generic[T]):
    """What a fetcher asks for and how it reads the answer.

    record_type
        Type of a single record; used to (de)serialize cached result sets.
    query
        Builds the query string for a pagination offset.
    decode
        Turns a response body into a batch of records. Raises ValueError
        on malformed payloads.
    filter
        Optional post-filter applied to the merged result set.
    cache_key
        Key under which settled result sets are cached; None disables caching.
    """

    record_type: type[T]
    query: Callable[[int], str]
    decode: Callable[[bytes], set[T]]
    filter: Callable[[set[T]], set[T]] | None = None
    cache_key: str | None = None


@dataclass
class FetchEnvironment:
    """Collaborators shared by every fetcher in a process."""

    credentials: str | None = None
    simulation: SimulationDataset = field(default_factory=SimulationDataset)
    cache_store: CacheStore | None = None
    clock: Callable[[], float] | None = None
    capture_simulation_data: bool = False
    base_url: str = FLIGHTAWARE_BASE_URL
    timeout: float = 30.0

    def __post_init__(self):
        if self.clock is None:
            self.clock = FlightClock(self.credentials, self.simulation)

    @classmethod
    def from_config(
        cls,
        config: Config | None = None,
        *,
        fixtures_path: str | os.PathLike[str] | None = None,
        db_path: str | os.PathLike[str] | None = None,
    ) -> FetchEnvironment:
        cfg = config or Config()
        credentials = resolve_credentials(cfg)
        simulation = (
            SimulationDataset.from_json_file(fixtures_path)
            if fixtures_path
            else SimulationDataset()
        )
        return cls(
            credentials=credentials,
            simulation=simulation,
            cache_store=DuckDb(db_path, config=cfg),
            clock=FlightClock(credentials, simulation, resolve_simulation_date(cfg)),
            capture_simulation_data=capture_enabled(cfg),
            base_url=cfg.api_base_url,
            timeout=cfg.request_timeout,
        )

    def request(self, query: str) -> httpx.Request | None:
        return authorized_request(query, self.credentials, self.base_url)

    def close(self) -> None:
        if isinstance(self.cache_store, DuckDb):
            self.cache_store.close()


class ScheduledFetcher(Generic[T]):
    """Fetches pages of records on a schedule into an observable result set.

    Each fetch tries the cache, then the network, then the simulation
    fixtures. Full pages trigger an immediate follow-up page until
    ``how_many`` records are held; otherwise the next fetch lands
    ``fetch_interval`` seconds after the data was obtained. All state is
    mutated on the event loop that runs the fetcher.
    """

    BATCH_SIZE = 15
    SEQUENCE_DELAY = 1.0

    def __init__(
        self,
        strategy: FetchStrategy[T],
        environment: FetchEnvironment | None = None,
        *,
        how_many: int | None = None,
        batch_size: int = BATCH_SIZE,
        merge_policy: MergePolicy = MergePolicy.UNION_KEEP_EXISTING,
        scheduler: Scheduler | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if how_many is not None and how_many < 1:
            raise ValueError("how_many must be at least 1 when provided")

        self.strategy = strategy
        self.environment = environment or FetchEnvironment()
        self.batch_size = batch_size
        self.how_many = how_many if how_many is not None else batch_size
        self.merge_policy = merge_policy
        self.offset = 0
        self.fetch_interval = 0.0
        self.fetch_sequence_count = 0
        self.results: CurrentValue[frozenset[T]] = CurrentValue(frozenset())

        self._scheduler = scheduler or LoopScheduler()
        self._client = client
        self._adapter = TypeAdapter(list[strategy.record_type])
        self._fetch_task: asyncio.Task | None = None
        self._fetch_timer: ScheduledTask | None = None
        self._closed = False
        self._last_response_source = "uninitialized"

        store = self.environment.cache_store
        self._cache = (
            CachedResults(store, strategy.cache_key, self.environment.clock)
            if store is not None and strategy.cache_key
            else None
        )

    @property
    def query(self) -> str:
        return self.strategy.query(self.offset)

    @property
    def request(self) -> httpx.Request | None:
        return self.environment.request(self.query)

    @property
    def sequence_limit(self) -> int:
        """Pagination continuations allowed after the first page."""
        return math.ceil(self.how_many / self.batch_size) - 1

    @property
    def last_response_source(self) -> str:
        return self._last_response_source

    @property
    def idle(self) -> bool:
        return self._fetch_task is None and self._fetch_timer is None

    def start(self, interval: float, use_cache: bool | None = None) -> None:
        """Fetch now and then every ``interval`` seconds (0 fetches once)."""
        if interval < 0:
            raise ValueError("interval must not be negative")
        self.fetch_interval = interval
        if use_cache is None:
            self.fetch()
        else:
            self.fetch(use_cache=use_cache)

    def stop(self) -> None:
        self._cancel_fetch()
        if self._fetch_timer is not None:
            self._fetch_timer.cancel()
            self._fetch_timer = None
        self.fetch_interval = 0.0
        self.fetch_sequence_count = 0
        self.offset = 0

    def close(self) -> None:
        self.stop()
        self._closed = True

    async def __aenter__(self) -> ScheduledFetcher[T]:
        return self

    async def __aexit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    async def join(self) -> None:
        """Wait for the request in flight, if any, to be handled."""
        task = self._fetch_task
        if task is not None:
            await asyncio.wait({task})

    def fetch(self, use_cache: bool = True) -> None:
        if self._closed:
            return
        if use_cache and self._fetch_from_cache():
            return

        query = self.query
        request = self.request
        if request is not None:
            logger.info("fetching %s", request.url)
            if self.offset == 0:
                self.fetch_sequence_count = 0
            self._cancel_fetch()
            self._fetch_task = asyncio.get_running_loop().create_task(
                self._perform(request, query)
            )
        else:
            body = self.environment.simulation.body(query)
            if body is not None:
                logger.info("simulating %s", query)
                self._last_response_source = "simulation"
                self._handle_results(self._decode(body, query), is_cacheable=False)

    async def _perform(self, request: httpx.Request, query: str) -> None:
        try:
            response = await self._send(request)
            response.raise_for_status()
            body = response.content
            if self.environment.capture_simulation_data:
                self.environment.simulation.capture(query, body)
            batch = await asyncio.to_thread(self.strategy.decode, body)
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("fetching %s failed: %s", query, exc)
            batch = set()

        self._fetch_task = None
        if self._closed:
            return
        self._last_response_source = "network"
        self._handle_results(batch)

    async def _send(self, request: httpx.Request) -> httpx.Response:
        request.extensions.setdefault(
            "timeout", httpx.Timeout(self.environment.timeout).as_dict()
        )
        if self._client is not None:
            return await self._client.send(request)
        async with httpx.AsyncClient(timeout=self.environment.timeout) as client:
            return await client.send(request)

    def _decode(self, body: bytes, query: str) -> set[T]:
        try:
            return self.strategy.decode(body)
        except ValueError as exc:
            logger.warning("couldn't decode response to %s: %s", query, exc)
            return set()

    def _cancel_fetch(self) -> None:
        if self._fetch_task is not None:
            self._fetch_task.cancel()
            self._fetch_task = None

    def _handle_results(
        self,
        batch: set[T],
        age: float = 0.0,
        is_cacheable: bool = True,
    ) -> None:
        held = set(self.results.value)
        merged = self.merge_policy.merge(held, set(batch))
        added = len(merged) - len(held)
        filtered = self.strategy.filter(merged) if self.strategy.filter else merged
        self.results.value = frozenset(filtered)

        sequencing = (
            age == 0
            and added == self.batch_size
            and len(self.results.value) < self.how_many
            and self.fetch_sequence_count < self.sequence_limit
        )
        if sequencing:
            interval = self.SEQUENCE_DELAY
        elif 0 < age < self.fetch_interval:
            interval = self.fetch_interval - age
        else:
            interval = self.fetch_interval

        if is_cacheable and age == 0 and not sequencing:
            self._write_cache(merged)

        if sequencing:
            self.fetch_sequence_count += 1
            self.offset = self.fetch_sequence_count * self.batch_size
        else:
            self.fetch_sequence_count = 0
            self.offset = 0

        if interval > 0:
            self._schedule(interval)

    def _schedule(self, interval: float) -> None:
        if self._fetch_timer is not None:
            self._fetch_timer.cancel()
        self._fetch_timer = self._scheduler.call_later(interval, self._on_timer)

    def _on_timer(self) -> None:
        self._fetch_timer = None
        if self._closed:
            return
        if self.fetch_interval > 0 or self.fetch_sequence_count > 0:
            self.fetch()

    def _fetch_from_cache(self) -> bool:
        """Handle cached results if they are usable; returns whether it did."""
        if self.fetch_sequence_count != 0 or self._cache is None:
            return False
        age = self._cache.age
        if age is None or age <= 0:
            return False
        if not (
            self.fetch_interval == 0
            or age < self.fetch_interval
            or self.request is None
        ):
            return False
        data = self._cache.data
        if data is None:
            return False
        try:
            cached = set(self._adapter.validate_json(data))
        except ValueError as exc:
            logger.warning(
                "couldn't decode information from %ds old cache %s: %s",
                int(age),
                self._cache.key,
                exc,
            )
            return False
        logger.info("using %ds old cache %s", int(age), self._cache.key)
        self._last_response_source = "cache"
        self._handle_results(cached, age=age)
        return True

    def _write_cache(self, merged: set[T]) -> None:
        if self._cache is None:
            return
        try:
            stamp = self._cache.write(self._adapter.dump_json(list(merged)))
        except (duckdb.Error, OSError) as exc:
            logger.warning("couldn't cache %s: %s", self._cache.key, exc)
            return
        logger.info(
            "caching %s at %s",
            self._cache.key,
            datetime.fromtimestamp(stamp).strftime("%H:%M:%S"),
        )
