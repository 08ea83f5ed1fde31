"""Shared fixtures."""

import datetime as dt
import tempfile
from pathlib import Path

import pytest
from metro_connect.database import Database


@pytest.fixture
def test_db():
    """Create a temporary test database."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        db = Database(db_path)
        yield db
        db.engine.dispose()


def add_profile(db, user_id, name="Asha Verma", gender="Female", age=27):
    return db.upsert_profile(user_id, {"name": name, "age": age, "gender": gender})


def add_trip(db, user_id, start, end, travel_date=dt.date(2099, 1, 5), travel_time="09:00",
             is_repeating=False, repeat_days=()):
    return db.create_trip(user_id, {
        "start_station": start,
        "end_station": end,
        "travel_date": travel_date,
        "travel_time": travel_time,
        "is_repeating": is_repeating,
        "repeat_days": list(repeat_days),
    })
