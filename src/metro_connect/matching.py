"""Route matching: station proximity, time windows and match ranking."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import time as dt_time
from typing import Any, Iterable, Mapping, Optional, Union

from .config import STATION_THRESHOLD, TIME_THRESHOLD_MINUTES
from .stations import STATION_INDEX, StationEntry

logger = logging.getLogger(__name__)

TIME_WEIGHT = 0.1  # score points per minute of departure difference
EXACT_MATCH_LABEL = "Exact route match"
GENDER_FILTERS = ("All", "Male", "Female", "Other")

StationIndex = Mapping[str, tuple[StationEntry, ...]]
TimeValue = Union[str, dt_time]


def min_station_distance(station1: str, station2: str, index: StationIndex = STATION_INDEX) -> float:
    """Get the minimum hop count between two stations across all shared lines.

    Each shared line is measured on its own; changing lines is not modelled.
    Returns ``math.inf`` if the stations share no line or either is unknown.
    """
    entries1 = index.get(station1)
    entries2 = index.get(station2)
    if not entries1 or not entries2:
        return math.inf

    min_dist = math.inf
    for e1 in entries1:
        for e2 in entries2:
            if e1.line == e2.line:
                dist = abs(e1.sequence_index - e2.sequence_index)
                if dist < min_dist:
                    min_dist = dist
    return min_dist


def is_within_stations(station1: str, station2: str, max_distance: float,
                       index: StationIndex = STATION_INDEX) -> bool:
    """Check if two stations are within N stations of each other on any shared line."""
    return min_station_distance(station1, station2, index) <= max_distance


def parse_time_minutes(value: TimeValue) -> int:
    """Minutes since midnight for an ``HH:MM`` (or ``HH:MM:SS``) time."""
    if isinstance(value, dt_time):
        return value.hour * 60 + value.minute
    hours, minutes = value.split(":")[:2]
    return int(hours) * 60 + int(minutes)


def get_time_diff_minutes(time1: TimeValue, time2: TimeValue) -> int:
    """Absolute difference in minutes between two times of day.

    Times are compared on the same day: 23:50 and 00:10 are 1420 minutes apart.
    """
    return abs(parse_time_minutes(time1) - parse_time_minutes(time2))


@dataclass(frozen=True)
class MatchQuality:
    start_distance: float
    end_distance: float
    label: str


def format_match_label(start_distance: float, end_distance: float) -> str:
    if start_distance == 0 and end_distance == 0:
        return EXACT_MATCH_LABEL

    # An unreachable leg counts as 0 here; such trips never pass the hard filter
    max_dist = max(
        0 if start_distance == math.inf else start_distance,
        0 if end_distance == math.inf else end_distance,
    )
    return f"±{max_dist} station{'s' if max_dist != 1 else ''}"


def get_match_quality(search_start: str, search_end: str, trip_start: str, trip_end: str,
                      index: StationIndex = STATION_INDEX) -> MatchQuality:
    """Calculate endpoint distances and the human-readable match label."""
    start_dist = min_station_distance(search_start, trip_start, index)
    end_dist = min_station_distance(search_end, trip_end, index)
    return MatchQuality(start_dist, end_dist, format_match_label(start_dist, end_dist))


@dataclass(frozen=True)
class SearchQuery:
    """One traveller's search, built per request."""
    start_station: str
    end_station: str
    travel_date: str
    travel_time: str
    gender_filter: str = "All"


@dataclass(frozen=True)
class MatchResult:
    """A candidate trip that survived filtering, with its ranking data."""
    trip: Mapping[str, Any]
    start_distance: float
    end_distance: float
    time_diff_minutes: int
    match_label: str
    sort_score: float

    def to_dict(self) -> dict[str, Any]:
        """Trip fields plus match metadata, as returned by the search API."""
        result = dict(self.trip)
        result.update(
            match_quality=self.match_label,
            start_distance=self.start_distance,
            end_distance=self.end_distance,
            time_diff=self.time_diff_minutes,
            sort_score=self.sort_score,
        )
        return result


def passes_gender_filter(trip: Mapping[str, Any], gender_filter: str) -> bool:
    """'All' keeps everyone; otherwise the owner's gender must match exactly."""
    if gender_filter == "All":
        return True
    owner = trip.get("user") or {}
    return owner.get("gender") == gender_filter


def score_trip(query: SearchQuery, trip: Mapping[str, Any], *,
               station_threshold: float = STATION_THRESHOLD,
               time_threshold: int = TIME_THRESHOLD_MINUTES,
               index: StationIndex = STATION_INDEX) -> Optional[MatchResult]:
    """Run one candidate through the filters. Returns None if it is dropped."""
    if not passes_gender_filter(trip, query.gender_filter):
        return None

    quality = get_match_quality(
        query.start_station, query.end_station,
        trip["start_station"], trip["end_station"],
        index,
    )
    if quality.start_distance > station_threshold or quality.end_distance > station_threshold:
        return None

    time_diff = get_time_diff_minutes(query.travel_time, trip["travel_time"])
    if time_diff > time_threshold:
        return None

    return MatchResult(
        trip=trip,
        start_distance=quality.start_distance,
        end_distance=quality.end_distance,
        time_diff_minutes=time_diff,
        match_label=quality.label,
        sort_score=quality.start_distance + quality.end_distance + time_diff * TIME_WEIGHT,
    )


def rank_trips(query: SearchQuery, trips: Iterable[Mapping[str, Any]], *,
               station_threshold: float = STATION_THRESHOLD,
               time_threshold: int = TIME_THRESHOLD_MINUTES,
               index: StationIndex = STATION_INDEX) -> list[MatchResult]:
    """Filter and score candidate trips, best match first (lowest sort score).

    Candidates should already be limited to the right day and exclude the
    searcher's own trips.
    """
    results = []
    candidates = 0
    for trip in trips:
        candidates += 1
        result = score_trip(
            query, trip,
            station_threshold=station_threshold,
            time_threshold=time_threshold,
            index=index,
        )
        if result is not None:
            results.append(result)

    results.sort(key=lambda r: r.sort_score)
    logger.debug("Ranked %d of %d candidate trips", len(results), candidates)
    return results
