from .fetcher import FetchEnvironment, FetchStrategy, MergePolicy, ScheduledFetcher
from .flightaware_api import AirportBoard, BoardKind, FAFlight

__all__ = [
    "AirportBoard",
    "BoardKind",
    "FAFlight",
    "FetchEnvironment",
    "FetchStrategy",
    "MergePolicy",
    "ScheduledFetcher",
]
