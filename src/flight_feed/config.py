from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Config:
    credentials_env: str = "FLIGHTAWARE_CREDENTIALS"
    cache_db_default: str = "~/.flight_feed.db"
    cache_db_env: str = "FLIGHT_FEED_CACHE_DB"
    simulation_date_env: str = "FLIGHT_FEED_SIMULATION_DATE"
    capture_env: str = "FLIGHT_FEED_CAPTURE"
    api_base_url: str = "https://flightxml.flightaware.com/json/FlightXML2/"
    request_timeout: float = 30.0
