from __future__ import annotations

import json

import pytest

from flight_feed.config import Config
from flight_feed.credentials import resolve_simulation_date
from flight_feed.simulation import PROCESS_START, FlightClock, SimulationDataset


class Wall:
    def __init__(self, now: float):
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_dataset_lookup_is_exact_query_match():
    dataset = SimulationDataset({"Enroute?airport=KSFO": '{"a": 1}'})

    assert dataset.body("Enroute?airport=KSFO") == b'{"a": 1}'
    assert dataset.body("Enroute?airport=KSFO&offset=15") is None


def test_dataset_capture_and_round_trip(tmp_path):
    dataset = SimulationDataset()
    dataset.capture("Arrived?airport=KLAX", b'{"ArrivedResult": {}}')
    path = tmp_path / "fixtures.json"

    dataset.write_json(path)
    reloaded = SimulationDataset.from_json_file(path)

    assert dict(reloaded) == {"Arrived?airport=KLAX": '{"ArrivedResult": {}}'}


def test_dataset_accepts_inline_json_objects(tmp_path):
    path = tmp_path / "fixtures.json"
    path.write_text(json.dumps({"Enroute?airport=KSFO": {"EnrouteResult": {"enroute": []}}}))

    dataset = SimulationDataset.from_json_file(path)

    assert json.loads(dataset["Enroute?airport=KSFO"]) == {"EnrouteResult": {"enroute": []}}


def test_dataset_rejects_non_object_files(tmp_path):
    path = tmp_path / "fixtures.json"
    path.write_text("[1, 2]")

    with pytest.raises(ValueError):
        SimulationDataset.from_json_file(path)


def test_clock_advances_from_anchor_in_simulation():
    wall = Wall(5_000.0)
    clock = FlightClock(
        credentials=None,
        simulation=SimulationDataset({"q": "{}"}),
        simulation_date=1_660_000_000.0,
        wall=wall,
        launch=5_000.0,
    )
    wall.now += 12.5

    assert clock.simulating
    assert clock.now() == 1_660_000_012.5
    assert clock() == clock.now()


@pytest.mark.parametrize(
    ("credentials", "fixtures", "anchor"),
    [
        ("joe:key", {"q": "{}"}, 1_660_000_000.0),
        (None, {}, 1_660_000_000.0),
        (None, {"q": "{}"}, None),
    ],
)
def test_clock_uses_wall_time_otherwise(credentials, fixtures, anchor):
    wall = Wall(5_000.0)
    clock = FlightClock(
        credentials, SimulationDataset(fixtures), anchor, wall=wall, launch=5_000.0
    )
    wall.now += 3

    assert not clock.simulating
    assert clock.now() == 5_003.0


def test_simulation_date_accepts_epoch_and_iso(monkeypatch):
    monkeypatch.setenv("FLIGHT_FEED_SIMULATION_DATE", "1660550400")
    assert resolve_simulation_date() == 1660550400.0

    monkeypatch.setenv("FLIGHT_FEED_SIMULATION_DATE", "2022-08-15T08:00:00")
    assert resolve_simulation_date(Config()) == 1660550400.0


def test_simulation_date_rejects_garbage(monkeypatch):
    monkeypatch.setenv("FLIGHT_FEED_SIMULATION_DATE", "next tuesday")

    with pytest.raises(ValueError):
        resolve_simulation_date()


def test_simulation_date_absent():
    assert resolve_simulation_date() is None


def test_clocks_share_the_process_start():
    fixtures = SimulationDataset({"q": "{}"})
    wall = Wall(PROCESS_START + 30)
    early = FlightClock(None, fixtures, 1_660_000_000.0, wall=wall)
    wall.now += 100
    late = FlightClock(None, fixtures, 1_660_000_000.0, wall=wall)

    assert early.now() == late.now()
    assert early.now() == pytest.approx(1_660_000_130.0)
