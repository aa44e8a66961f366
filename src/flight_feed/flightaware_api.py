from __future__ import annotations

import enum
import json
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field
from typing_extensions import Annotated

from .fetcher import FetchEnvironment, FetchStrategy, ScheduledFetcher
from .requests import QueryBuilder


class BoardKind(str, enum.Enum):
    """FlightXML2 airport board operations."""

    ENROUTE = "Enroute"
    ARRIVED = "Arrived"
    DEPARTED = "Departed"
    SCHEDULED = "Scheduled"

    @property
    def result_key(self) -> str:
        return f"{self.value}Result"

    @property
    def list_key(self) -> str:
        return {
            BoardKind.ENROUTE: "enroute",
            BoardKind.ARRIVED: "arrivals",
            BoardKind.DEPARTED: "departures",
            BoardKind.SCHEDULED: "scheduled",
        }[self]


def _epoch(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    except (TypeError, OverflowError, OSError) as exc:
        raise ValueError(f"bad FlightXML2 timestamp {value!r}") from exc


class FAFlight(BaseModel):
    model_config = ConfigDict(frozen=True)

    ident: Annotated[str, Field(description="Flight identifier, e.g. UAL123")]
    aircraft: Annotated[str, Field(default="", description="Aircraft type code")]
    origin: Annotated[str, Field(description="ICAO code of the departure airport")]
    destination: Annotated[str, Field(description="ICAO code of the arrival airport")]
    departure: Annotated[
        Optional[datetime], Field(default=None, description="Actual or filed departure")
    ]
    arrival: Annotated[
        Optional[datetime], Field(default=None, description="Actual or estimated arrival")
    ]
    filed: Annotated[
        Optional[datetime], Field(default=None, description="Filed departure time")
    ]

    @classmethod
    def from_flightxml(cls, entry: dict[str, Any]) -> FAFlight:
        """Build a flight from one FlightXML2 board entry (epoch-second times)."""
        if not isinstance(entry, dict):
            raise ValueError(f"FlightXML2 board entry must be an object, got {entry!r}")
        return cls.model_validate(
            {
                "ident": entry.get("ident"),
                "aircraft": entry.get("aircrafttype") or "",
                "origin": entry.get("origin"),
                "destination": entry.get("destination"),
                "departure": _epoch(entry.get("actualdeparturetime"))
                or _epoch(entry.get("filed_departuretime")),
                "arrival": _epoch(entry.get("actualarrivaltime"))
                or _epoch(entry.get("estimatedarrivaltime")),
                "filed": _epoch(entry.get("filed_departuretime")),
            }
        )

    @property
    def airline_code(self) -> str:
        match = re.match(r"[A-Za-z]+", self.ident)
        return match.group(0).upper() if match else ""

    @property
    def number(self) -> int:
        match = re.search(r"\d.*$", self.ident)
        if match is None:
            return 0
        try:
            return int(match.group(0))
        except ValueError:
            return 0


class BoardResponse(BaseModel):
    flights: Annotated[list[dict], Field(default_factory=list, description="Raw board entries")]

    @classmethod
    def from_json(cls, kind: BoardKind, body: bytes) -> BoardResponse:
        payload = json.loads(body)
        if not isinstance(payload, dict):
            raise ValueError("FlightXML2 response must be a JSON object")
        if "error" in payload:
            raise ValueError(f"FlightXML2 error: {payload['error']}")
        result = payload.get(kind.result_key)
        if not isinstance(result, dict):
            raise ValueError(f"FlightXML2 response has no {kind.result_key}")
        return cls(flights=result.get(kind.list_key) or [])

    def to_flights(self) -> set[FAFlight]:
        return {FAFlight.from_flightxml(entry) for entry in self.flights}


def sorted_flights(flights: Iterable[FAFlight]) -> list[FAFlight]:
    """Order flights by arrival time, unknown arrivals last."""
    earliest = datetime.min.replace(tzinfo=timezone.utc)
    return sorted(
        flights,
        key=lambda f: (f.arrival is None, f.arrival or earliest, f.ident),
    )


@dataclass(frozen=True)
class AirportBoard:
    """One airport board (e.g. flights enroute to KSFO), optionally for one airline."""

    airport: str
    kind: BoardKind = BoardKind.ENROUTE
    airline: str | None = None
    batch_size: int = ScheduledFetcher.BATCH_SIZE

    def query(self, offset: int = 0) -> str:
        return (
            QueryBuilder(self.kind.value)
            .add("airport", self.airport)
            .add_int("howMany", self.batch_size)
            .add("filter", "airline")
            .add_int("offset", offset)
            .query
        )

    @property
    def cache_key(self) -> str:
        return f"{self.kind.value}.{self.airport}"

    def decode(self, body: bytes) -> set[FAFlight]:
        return BoardResponse.from_json(self.kind, body).to_flights()

    def filter(self, flights: set[FAFlight]) -> set[FAFlight]:
        if not self.airline:
            return flights
        airline = self.airline.upper()
        return {flight for flight in flights if flight.airline_code == airline}

    def strategy(self) -> FetchStrategy[FAFlight]:
        return FetchStrategy(
            record_type=FAFlight,
            query=self.query,
            decode=self.decode,
            filter=self.filter if self.airline else None,
            cache_key=self.cache_key,
        )

    def fetcher(
        self,
        environment: FetchEnvironment | None = None,
        *,
        how_many: int | None = None,
        **kwargs: Any,
    ) -> ScheduledFetcher[FAFlight]:
        return ScheduledFetcher(
            self.strategy(),
            environment,
            how_many=how_many,
            batch_size=self.batch_size,
            **kwargs,
        )
