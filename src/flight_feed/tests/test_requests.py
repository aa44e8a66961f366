from __future__ import annotations

import base64
from datetime import datetime, timezone

from flight_feed.requests import FLIGHTAWARE_BASE_URL, QueryBuilder, authorized_request


def test_authorized_request_sets_basic_auth_header():
    request = authorized_request("Enroute?airport=KSFO", "joepilot:2ab78c93fccc11f9")

    assert request is not None
    assert request.method == "GET"
    assert str(request.url) == FLIGHTAWARE_BASE_URL + "Enroute?airport=KSFO"
    expected = base64.b64encode(b"joepilot:2ab78c93fccc11f9").decode("ascii")
    assert request.headers["Authorization"] == f"Basic {expected}"


def test_authorized_request_is_none_without_credentials():
    assert authorized_request("Enroute?airport=KSFO", None) is None
    assert authorized_request("Enroute?airport=KSFO", "") is None


def test_authorized_request_uses_custom_base_url():
    request = authorized_request("Arrived?airport=KLAX", "a:b", base_url="https://example.test/")

    assert request is not None
    assert str(request.url) == "https://example.test/Arrived?airport=KLAX"


def test_query_builder_separators():
    query = QueryBuilder("Enroute").add("airport", "KSFO").add("filter", "airline").query

    assert query == "Enroute?airport=KSFO&filter=airline"


def test_query_builder_omits_default_ints_and_missing_values():
    query = (
        QueryBuilder("Enroute")
        .add_int("offset", 0)
        .add_int("howMany", 15, default=15)
        .add_int("howMany", None)
        .add("airline", None)
        .add_int("offset", 30)
        .query
    )

    assert query == "Enroute?offset=30"


def test_query_builder_encodes_dates_as_epoch_seconds():
    start = datetime(2022, 8, 15, 12, 0, 30, tzinfo=timezone.utc)
    query = QueryBuilder("Scheduled").add_date("startDate", start).add_date("endDate", None)

    assert str(query) == f"Scheduled?startDate={int(start.timestamp())}"
