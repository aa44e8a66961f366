from __future__ import annotations

import base64
from dataclasses import dataclass, field
from datetime import datetime

import httpx

from .config import Config

FLIGHTAWARE_BASE_URL = Config().api_base_url


def authorized_request(
    query: str,
    credentials: str | None,
    base_url: str = FLIGHTAWARE_BASE_URL,
) -> httpx.Request | None:
    """Build a Basic-Auth GET for ``query``, or None when there are no credentials.

    A None result is what switches a fetcher into simulation mode.
    """
    if not credentials:
        return None
    token = base64.b64encode(credentials.encode("utf-8")).decode("ascii")
    return httpx.Request(
        "GET",
        base_url + query,
        headers={"Authorization": f"Basic {token}"},
    )


@dataclass
class QueryBuilder:
    """Mutable FlightXML2 query string: ``Operation?a=1&b=2``."""

    operation: str
    _query: str = field(init=False, default="")

    def __post_init__(self):
        self._query = self.operation + "?"

    def add(self, name: str, value: str | None) -> QueryBuilder:
        if value is not None:
            separator = "" if self._query.endswith("?") else "&"
            self._query += f"{separator}{name}={value}"
        return self

    def add_int(self, name: str, value: int | None, default: int = 0) -> QueryBuilder:
        if value is not None and value != default:
            self.add(name, str(value))
        return self

    def add_date(self, name: str, value: datetime | None) -> QueryBuilder:
        if value is not None:
            self.add(name, str(int(value.timestamp())))
        return self

    @property
    def query(self) -> str:
        return self._query

    def __str__(self) -> str:
        return self._query
