from __future__ import annotations

import os
from datetime import datetime, timezone

from .config import Config

TRUTHY = ("1", "true", "yes")


def resolve_credentials(config: Config | None = None) -> str | None:
    """Return the configured "account:api-key" string, or None for simulation mode."""
    cfg = config or Config()
    credentials = os.environ.get(cfg.credentials_env, "").strip()
    return credentials or None


def capture_enabled(config: Config | None = None) -> bool:
    cfg = config or Config()
    return os.environ.get(cfg.capture_env, "false").lower() in TRUTHY


def resolve_simulation_date(config: Config | None = None) -> float | None:
    """Parse the simulation anchor as epoch seconds.

    Accepts either a number of seconds since 1970 or an ISO-8601 timestamp;
    naive timestamps are read as UTC.
    """
    cfg = config or Config()
    raw = os.environ.get(cfg.simulation_date_env, "").strip()
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        pass
    try:
        anchor = datetime.fromisoformat(raw)
    except ValueError as exc:
        raise ValueError(
            f"{cfg.simulation_date_env} must be epoch seconds or ISO-8601, got {raw!r}"
        ) from exc
    if anchor.tzinfo is None:
        anchor = anchor.replace(tzinfo=timezone.utc)
    return anchor.timestamp()
