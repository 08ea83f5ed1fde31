"""Trip search: gathers candidate trips and ranks them for a traveller."""

from __future__ import annotations

import datetime as dt
import logging
from typing import TYPE_CHECKING, Any, Mapping

from .matching import SearchQuery, rank_trips

if TYPE_CHECKING:
    from .database import Database

logger = logging.getLogger(__name__)


def js_weekday(date: dt.date) -> int:
    """Weekday numbered 0 = Sunday .. 6 = Saturday, as stored in repeat_days."""
    return (date.weekday() + 1) % 7


def is_candidate(trip: Mapping[str, Any], travel_date: dt.date) -> bool:
    """True if the trip runs on the date, directly or as a weekly repeat."""
    if str(trip["travel_date"]) == travel_date.isoformat():
        return True
    return bool(trip.get("is_repeating")) and js_weekday(travel_date) in (trip.get("repeat_days") or [])


def search_trips(db: Database, user_id: str, query: SearchQuery) -> list[dict[str, Any]]:
    """Find other travellers' trips close to the query, best match first."""
    travel_date = dt.date.fromisoformat(query.travel_date)
    candidates = db.get_candidate_trips(user_id, travel_date)
    results = rank_trips(query, candidates)
    logger.info(
        "Search %s -> %s on %s at %s (%s): %d of %d candidates matched",
        query.start_station, query.end_station, query.travel_date, query.travel_time,
        query.gender_filter, len(results), len(candidates),
    )
    return [r.to_dict() for r in results]
