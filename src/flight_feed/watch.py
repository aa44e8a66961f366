from __future__ import annotations

import asyncio
import logging
from typing import Callable, Iterable

import click

from .cli_options import WatchOptions
from .config import Config
from .fetcher import FetchEnvironment
from .flightaware_api import AirportBoard, BoardKind, FAFlight, sorted_flights

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.05


def format_flight(flight: FAFlight) -> str:
    arrival = flight.arrival.strftime("%Y-%m-%d %H:%M") if flight.arrival else "--"
    return f"{flight.ident:<10} {flight.origin:>5} -> {flight.destination:<5} {arrival}"


def render_board(flights: Iterable[FAFlight]) -> list[str]:
    ordered = sorted_flights(flights)
    return [f"{len(ordered)} flights"] + [format_flight(f) for f in ordered]


async def watch(
    options: WatchOptions,
    *,
    config: Config | None = None,
    echo: Callable[[str], None] = click.echo,
) -> list[FAFlight]:
    """Run one board subscription until it goes idle or ``run_for`` elapses."""
    environment = FetchEnvironment.from_config(
        config, fixtures_path=options.fixtures, db_path=options.cache_db
    )
    if options.capture_to:
        environment.capture_simulation_data = True
    if environment.credentials is None:
        logger.info("no FlightAware credentials configured, simulating")

    board = AirportBoard(
        airport=options.airport,
        kind=BoardKind(options.kind),
        airline=options.airline,
    )
    fetcher = board.fetcher(environment, how_many=options.how_many)

    def publish(flights: frozenset[FAFlight]) -> None:
        if flights:
            for line in render_board(flights):
                echo(line)

    unsubscribe = fetcher.results.subscribe(publish)
    loop = asyncio.get_running_loop()
    deadline = None if options.run_for is None else loop.time() + options.run_for
    try:
        async with fetcher:
            fetcher.start(options.interval, use_cache=None if options.use_cache else False)
            while not fetcher.idle and (deadline is None or loop.time() < deadline):
                await asyncio.sleep(POLL_INTERVAL)
        return sorted_flights(fetcher.results.value)
    finally:
        unsubscribe()
        if options.capture_to:
            environment.simulation.write_json(options.capture_to)
        environment.close()


@click.command()
@click.option("--airport", type=str, required=True, help="ICAO code, e.g. KSFO.")
@click.option(
    "--kind",
    type=click.Choice([k.value for k in BoardKind], case_sensitive=True),
    default=BoardKind.ENROUTE.value,
    help="Which airport board to fetch.",
)
@click.option(
    "--airline",
    type=str,
    default=None,
    help="Only keep flights of this airline code (e.g. UAL).",
)
@click.option(
    "--interval",
    type=click.FloatRange(min=0),
    default=0.0,
    help="Seconds between refreshes; 0 fetches once.",
)
@click.option(
    "--how-many",
    type=click.IntRange(min=1),
    default=None,
    help="Keep paginating until this many flights are held.",
    show_default=False,
)
@click.option(
    "--fixtures",
    type=click.Path(exists=True, dir_okay=False, path_type=str),
    default=None,
    help="JSON file mapping query strings to canned responses (simulation mode).",
)
@click.option(
    "--capture-to",
    type=click.Path(dir_okay=False, path_type=str),
    default=None,
    help="Write live responses to this JSON fixtures file on exit.",
)
@click.option(
    "--cache-db",
    type=click.Path(dir_okay=False, path_type=str),
    default=None,
    help="DuckDB cache file (defaults to FLIGHT_FEED_CACHE_DB or ~/.flight_feed.db).",
)
@click.option(
    "--run-for",
    type=click.FloatRange(min=0),
    default=None,
    help="Stop after this many seconds even if refreshes are pending.",
)
@click.option(
    "--cache/--no-cache",
    "use_cache",
    default=True,
    help="Whether the first fetch may use cached results.",
)
@click.option("--verbose", is_flag=True, default=False, help="Log debug output.")
def click_main(
    airport: str,
    kind: str,
    airline: str | None,
    interval: float,
    how_many: int | None,
    fixtures: str | None,
    capture_to: str | None,
    cache_db: str | None,
    run_for: float | None,
    use_cache: bool,
    verbose: bool,
):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    options = WatchOptions(
        airport=airport,
        kind=kind,
        airline=airline,
        interval=interval,
        how_many=how_many,
        fixtures=fixtures,
        capture_to=capture_to,
        cache_db=cache_db,
        run_for=run_for,
        use_cache=use_cache,
    )
    flights = asyncio.run(watch(options))
    if not flights:
        click.echo("no flights")


if __name__ == "__main__":
    click_main()
