from __future__ import annotations

from typing import Callable, Protocol, runtime_checkable


@runtime_checkable
class CacheStore(Protocol):
    """Key-value store shared by fetchers; last writer wins."""

    def get_bytes(self, key: str) -> bytes | None: ...

    def put_bytes(self, key: str, value: bytes) -> None: ...

    def get_float(self, key: str) -> float | None: ...

    def put_float(self, key: str, value: float) -> None: ...


class MemoryCacheStore:
    """Process-local cache store, mostly useful for demos and tests."""

    def __init__(self):
        self._bytes: dict[str, bytes] = {}
        self._floats: dict[str, float] = {}

    def get_bytes(self, key: str) -> bytes | None:
        return self._bytes.get(key)

    def put_bytes(self, key: str, value: bytes) -> None:
        self._bytes[key] = bytes(value)

    def get_float(self, key: str) -> float | None:
        return self._floats.get(key)

    def put_float(self, key: str, value: float) -> None:
        self._floats[key] = float(value)


class CachedResults:
    """A serialized result set plus the time it was written, under one key.

    The payload lives under ``key`` and the epoch-seconds timestamp under
    ``key + ".timestamp"``.
    """

    def __init__(self, store: CacheStore, key: str, now: Callable[[], float]):
        self._store = store
        self.key = key
        self._now = now

    @property
    def timestamp_key(self) -> str:
        return f"{self.key}.timestamp"

    @property
    def age(self) -> float | None:
        written = self._store.get_float(self.timestamp_key)
        if not written or written <= 0:
            return None
        return self._now() - written

    @property
    def data(self) -> bytes | None:
        return self._store.get_bytes(self.key)

    def write(self, data: bytes) -> float:
        stamp = self._now()
        self._store.put_float(self.timestamp_key, stamp)
        self._store.put_bytes(self.key, data)
        return stamp
