#!/usr/bin/env python3
"""Command-line interface for Metro Connect."""

import argparse
import math
import sys

from .config import API_HOST, API_PORT, setup_logging
from .matching import SearchQuery, min_station_distance
from .stations import LINE_DISPLAY_NAMES, find_station, grouped_stations


def resolve(name: str) -> str:
    """Resolve a station name or exit with a message."""
    station = find_station(name)
    if station is None:
        print(f"Unknown station: {name}", file=sys.stderr)
        sys.exit(1)
    return station


def cmd_serve(args):
    from .api import run_server
    run_server(args.host, args.port)


def cmd_stations(args):
    for line, stations in grouped_stations():
        if args.line and line.value.lower() != args.line.lower():
            continue
        print(f"\n{LINE_DISPLAY_NAMES[line]}")
        for s in stations:
            marker = " *" if s.is_interchange else ""
            print(f"  {s.sequence_index:>3}  {s.name}{marker}")


def cmd_distance(args):
    start = resolve(args.start)
    end = resolve(args.end)
    distance = min_station_distance(start, end)
    if distance == math.inf:
        print(f"{start} and {end} share no line")
    else:
        print(f"{start} -> {end}: {distance} station(s)")


def cmd_search(args):
    from .database import get_db
    from .search import search_trips

    query = SearchQuery(
        start_station=resolve(args.start),
        end_station=resolve(args.end),
        travel_date=args.date,
        travel_time=args.time,
        gender_filter=args.gender,
    )
    results = search_trips(get_db(), args.user, query)
    if not results:
        print("No matching trips found.")
        return
    for i, r in enumerate(results, 1):
        owner = (r.get("user") or {}).get("name", r["user_id"])
        print(f"{i}. {owner}: {r['start_station']} -> {r['end_station']} at {r['travel_time']} "
              f"[{r['match_quality']}, {r['time_diff']} min apart, score {r['sort_score']:.1f}]")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="metro-connect", description="Find fellow metro commuters")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=API_HOST)
    serve.add_argument("--port", type=int, default=API_PORT)
    serve.set_defaults(func=cmd_serve)

    stations = sub.add_parser("stations", help="List stations by line")
    stations.add_argument("line", nargs="?")
    stations.set_defaults(func=cmd_stations)

    distance = sub.add_parser("distance", help="Stations between two stops on a shared line")
    distance.add_argument("start")
    distance.add_argument("end")
    distance.set_defaults(func=cmd_distance)

    search = sub.add_parser("search", help="Search posted trips")
    search.add_argument("start")
    search.add_argument("end")
    search.add_argument("date", help="YYYY-MM-DD")
    search.add_argument("time", help="HH:MM")
    search.add_argument("--gender", default="All", choices=["All", "Male", "Female", "Other"])
    search.add_argument("--user", default="cli_user", help="Searching user's id")
    search.set_defaults(func=cmd_search)
    return parser


def main(argv=None):
    """Run the CLI."""
    args = build_parser().parse_args(argv)
    setup_logging()
    args.func(args)


if __name__ == "__main__":
    main()
