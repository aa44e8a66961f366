from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class WatchOptions:
    airport: str
    kind: str
    airline: str | None
    interval: float
    how_many: int | None
    fixtures: str | None
    capture_to: str | None
    cache_db: str | None
    run_for: float | None
    use_cache: bool
