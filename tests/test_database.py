"""Tests for database functionality."""

import datetime as dt

import pytest
from conftest import add_profile, add_trip
from metro_connect.exceptions import (
    ConflictException, NotFoundException, PermissionDeniedException, ValidationException,
)


def test_upsert_and_get_profile(test_db):
    """Test saving and retrieving a profile."""
    add_profile(test_db, "u1", name="Asha Verma")
    profile = test_db.get_profile("u1")
    assert profile["name"] == "Asha Verma"
    assert profile["gender"] == "Female"


def test_update_profile(test_db):
    add_profile(test_db, "u1", name="Old Name")
    test_db.upsert_profile("u1", {"bio": "Daily Blue Line commuter"})
    profile = test_db.get_profile("u1")
    assert profile["name"] == "Old Name"
    assert profile["bio"] == "Daily Blue Line commuter"


def test_get_missing_profile(test_db):
    with pytest.raises(NotFoundException):
        test_db.get_profile("nobody")


def test_search_people_by_name(test_db):
    """Test name search is case-insensitive and excludes the searcher."""
    add_profile(test_db, "u1", name="Asha Ravindran")
    add_profile(test_db, "u2", name="Ravi Kumar", gender="Male")
    add_profile(test_db, "u3", name="Meera")
    people = test_db.search_people("u1", "  RAVI ")
    assert [p["id"] for p in people] == ["u2"]
    assert "phone" not in people[0]
    assert "instagram_handle" not in people[0]
    assert people[0]["connection_status"] == "none"
    assert people[0]["connection_id"] is None


def test_search_people_query_too_short(test_db):
    with pytest.raises(ValidationException):
        test_db.search_people("u1", "r")
    with pytest.raises(ValidationException):
        test_db.search_people("u1", None)


def test_search_people_limit(test_db):
    for i in range(25):
        add_profile(test_db, f"u{i}", name=f"Commuter {i:02d}")
    assert len(test_db.search_people("me", "commuter")) == 20


def test_search_people_connection_status(test_db):
    """Test each result carries the connection to the searcher, either direction."""
    add_profile(test_db, "me", name="Asha")
    add_profile(test_db, "u1", name="Ravi")
    add_profile(test_db, "u2", name="Ravina")
    sent = test_db.create_connection("me", "u1")
    received = test_db.create_connection("u2", "me")
    test_db.respond_to_connection("me", received["id"], "accepted")

    people = {p["id"]: p for p in test_db.search_people("me", "rav")}
    assert people["u1"]["connection_status"] == "pending"
    assert people["u1"]["connection_id"] == sent["id"]
    assert people["u2"]["connection_status"] == "accepted"
    assert people["u2"]["connection_id"] == received["id"]


def test_are_connected(test_db):
    add_profile(test_db, "u1")
    add_profile(test_db, "u2")
    conn = test_db.create_connection("u1", "u2")
    assert not test_db.are_connected("u1", "u2")
    test_db.respond_to_connection("u2", conn["id"], "accepted")
    assert test_db.are_connected("u1", "u2")
    assert test_db.are_connected("u2", "u1")


def test_create_trip_requires_profile(test_db):
    with pytest.raises(NotFoundException):
        add_trip(test_db, "ghost", "Rajiv Chowk", "Hauz Khas")


def test_user_trips_ordered(test_db):
    """Test trips come back by date then time."""
    add_profile(test_db, "u1")
    add_trip(test_db, "u1", "Rajiv Chowk", "Hauz Khas", dt.date(2099, 1, 6), "08:00")
    add_trip(test_db, "u1", "Rajiv Chowk", "Hauz Khas", dt.date(2099, 1, 5), "18:30")
    add_trip(test_db, "u1", "Rajiv Chowk", "Hauz Khas", dt.date(2099, 1, 5), "09:15")
    trips = test_db.get_user_trips("u1")
    assert [(t["travel_date"], t["travel_time"]) for t in trips] == [
        ("2099-01-05", "09:15"), ("2099-01-05", "18:30"), ("2099-01-06", "08:00"),
    ]


def test_user_trips_from_date(test_db):
    add_profile(test_db, "u1")
    add_trip(test_db, "u1", "Rajiv Chowk", "Hauz Khas", dt.date(2000, 1, 1))
    add_trip(test_db, "u1", "Rajiv Chowk", "Hauz Khas", dt.date(2099, 1, 1))
    trips = test_db.get_user_trips("u1", from_date=dt.date(2026, 1, 1))
    assert [t["travel_date"] for t in trips] == ["2099-01-01"]


def test_update_and_delete_trip(test_db):
    add_profile(test_db, "u1")
    add_profile(test_db, "u2")
    trip = add_trip(test_db, "u1", "Rajiv Chowk", "Hauz Khas")

    updated = test_db.update_trip("u1", trip["id"], {"travel_time": "10:45"})
    assert updated["travel_time"] == "10:45"

    with pytest.raises(NotFoundException):
        test_db.update_trip("u2", trip["id"], {"travel_time": "11:00"})
    with pytest.raises(NotFoundException):
        test_db.delete_trip("u2", trip["id"])

    test_db.delete_trip("u1", trip["id"])
    assert test_db.get_user_trips("u1") == []


def test_candidate_trips(test_db):
    """Test candidates cover the date and weekly repeats, never the searcher."""
    monday = dt.date(2099, 1, 5)
    assert monday.weekday() == 0
    for user in ("me", "u1", "u2", "u3", "u4"):
        add_profile(test_db, user)

    add_trip(test_db, "me", "Rajiv Chowk", "Hauz Khas", monday)
    same_day = add_trip(test_db, "u1", "Rajiv Chowk", "Hauz Khas", monday)
    repeats_monday = add_trip(test_db, "u2", "Rajiv Chowk", "Hauz Khas", dt.date(2098, 12, 1),
                              is_repeating=True, repeat_days=[1, 3])
    add_trip(test_db, "u3", "Rajiv Chowk", "Hauz Khas", dt.date(2098, 12, 1),
             is_repeating=True, repeat_days=[2])
    add_trip(test_db, "u4", "Rajiv Chowk", "Hauz Khas", dt.date(2099, 1, 6))

    candidates = test_db.get_candidate_trips("me", monday)
    assert [c["id"] for c in candidates] == [same_day["id"], repeats_monday["id"]]
    assert candidates[0]["user"]["id"] == "u1"
    assert set(candidates[0]["user"]) == {
        "id", "name", "age", "gender", "profile_pic_url", "bio",
        "instagram_handle", "twitter_handle",
    }


def test_connection_lifecycle(test_db):
    """Test requesting and accepting a connection."""
    add_profile(test_db, "u1")
    add_profile(test_db, "u2")
    conn = test_db.create_connection("u1", "u2")
    assert conn["status"] == "pending"

    assert test_db.get_connections("u2")["pendingCount"] == 1
    assert len(test_db.get_connections("u1")["sent"]) == 1

    accepted = test_db.respond_to_connection("u2", conn["id"], "accepted")
    assert accepted["status"] == "accepted"

    connections = test_db.get_connections("u1")
    assert connections["pendingCount"] == 0
    assert connections["accepted"][0]["recipient"]["id"] == "u2"


def test_connection_rules(test_db):
    add_profile(test_db, "u1")
    add_profile(test_db, "u2")

    with pytest.raises(ValidationException):
        test_db.create_connection("u1", "u1")
    with pytest.raises(NotFoundException):
        test_db.create_connection("u1", "ghost")

    conn = test_db.create_connection("u1", "u2")
    with pytest.raises(ConflictException) as exc_info:
        test_db.create_connection("u2", "u1")
    assert exc_info.value.status == "pending"

    with pytest.raises(PermissionDeniedException):
        test_db.respond_to_connection("u1", conn["id"], "accepted")
    with pytest.raises(ValidationException):
        test_db.respond_to_connection("u2", conn["id"], "maybe")

    test_db.respond_to_connection("u2", conn["id"], "declined")
    with pytest.raises(ValidationException):
        test_db.respond_to_connection("u2", conn["id"], "accepted")
    with pytest.raises(NotFoundException):
        test_db.respond_to_connection("u2", 999, "accepted")


def accepted_connection(db, a="u1", b="u2"):
    add_profile(db, a)
    add_profile(db, b)
    conn = db.create_connection(a, b)
    db.respond_to_connection(b, conn["id"], "accepted")
    return conn


def test_messages_in_order(test_db):
    """Test both members can chat and history comes back oldest first."""
    conn = accepted_connection(test_db)
    test_db.send_message("u1", conn["id"], "  Same train tomorrow?  ")
    test_db.send_message("u2", conn["id"], "Yes, 9:00 from Rajiv Chowk")

    messages = test_db.get_messages("u2", conn["id"])
    assert [m["content"] for m in messages] == ["Same train tomorrow?", "Yes, 9:00 from Rajiv Chowk"]
    assert [m["sender_id"] for m in messages] == ["u1", "u2"]


def test_message_rules(test_db):
    conn = accepted_connection(test_db)
    add_profile(test_db, "u3")

    with pytest.raises(ValidationException):
        test_db.send_message("u1", conn["id"], "   ")
    with pytest.raises(ValidationException):
        test_db.send_message("u1", conn["id"], "x" * 501)
    test_db.send_message("u1", conn["id"], "x" * 500)

    with pytest.raises(NotFoundException):
        test_db.send_message("u3", conn["id"], "hello")
    with pytest.raises(NotFoundException):
        test_db.get_messages("u3", conn["id"])


def test_messages_need_accepted_connection(test_db):
    add_profile(test_db, "u1")
    add_profile(test_db, "u2")
    conn = test_db.create_connection("u1", "u2")
    with pytest.raises(NotFoundException):
        test_db.send_message("u1", conn["id"], "hello")


def test_create_report(test_db):
    add_profile(test_db, "u1")
    add_profile(test_db, "u2")
    report = test_db.create_report("u1", "u2", "spam", "  Sends links  ")
    assert report["status"] == "pending"
    assert report["description"] == "Sends links"
    assert test_db.create_report("u2", "u1", "other")["description"] is None


def test_report_rules(test_db):
    add_profile(test_db, "u1")
    add_profile(test_db, "u2")

    with pytest.raises(ValidationException):
        test_db.create_report("u1", "u1", "spam")
    with pytest.raises(ValidationException):
        test_db.create_report("u1", "u2", "rude")
    with pytest.raises(ValidationException):
        test_db.create_report("u1", "u2", "spam", "x" * 501)
    with pytest.raises(NotFoundException):
        test_db.create_report("u1", "ghost", "spam")

    test_db.create_report("u1", "u2", "harassment")
    with pytest.raises(ConflictException):
        test_db.create_report("u1", "u2", "safety")
