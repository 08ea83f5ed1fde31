"""SQLite storage for profiles, trips, connections, messages and reports."""

from __future__ import annotations

import datetime as dt
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from sqlalchemy import (
    JSON, Boolean, Column, Date, DateTime, ForeignKey, Integer, String, Text,
    and_, create_engine, or_,
)
from sqlalchemy.orm import declarative_base, joinedload, relationship, sessionmaker

from .config import DB_PATH
from .exceptions import (
    ConflictException, NotFoundException, PermissionDeniedException, ValidationException,
)
from .search import is_candidate

logger = logging.getLogger(__name__)

Base = declarative_base()

PUBLIC_PROFILE_FIELDS = (
    "id", "name", "age", "gender", "profile_pic_url", "bio",
    "instagram_handle", "twitter_handle",
)
PEOPLE_SEARCH_FIELDS = ("id", "name", "age", "gender", "profile_pic_url", "bio")
CONNECTION_STATUSES = ("accepted", "declined")
REPORT_REASONS = ("fake_profile", "harassment", "inappropriate", "spam", "safety", "other")
MAX_MESSAGE_LENGTH = 500
MAX_REPORT_DESCRIPTION_LENGTH = 500
PEOPLE_SEARCH_MIN_LENGTH = 2
PEOPLE_SEARCH_LIMIT = 20


class Profile(Base):
    """A traveller's profile, keyed by the externally issued user id."""
    __tablename__ = "profiles"

    id = Column(String(64), primary_key=True)
    name = Column(String(50), nullable=False)
    age = Column(Integer, nullable=False)
    gender = Column(String(10), nullable=False)
    bio = Column(String(100), default="")
    profile_pic_url = Column(Text)
    instagram_handle = Column(String(30), default="")
    twitter_handle = Column(String(30), default="")
    phone = Column(String(15), default="")
    phone_visible = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)


class Trip(Base):
    """A posted trip. repeat_days holds weekdays, 0 = Sunday."""
    __tablename__ = "trips"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(64), ForeignKey("profiles.id"), nullable=False, index=True)
    start_station = Column(String(100), nullable=False)
    end_station = Column(String(100), nullable=False)
    travel_date = Column(Date, nullable=False, index=True)
    travel_time = Column(String(5), nullable=False)  # "HH:MM"
    is_repeating = Column(Boolean, default=False)
    repeat_days = Column(JSON, default=list)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("Profile")


class Connection(Base):
    """A connection request between two travellers."""
    __tablename__ = "connections"

    id = Column(Integer, primary_key=True)
    requester_id = Column(String(64), ForeignKey("profiles.id"), nullable=False)
    recipient_id = Column(String(64), ForeignKey("profiles.id"), nullable=False)
    status = Column(String(10), default="pending")  # pending, accepted, declined
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)

    requester = relationship("Profile", foreign_keys=[requester_id])
    recipient = relationship("Profile", foreign_keys=[recipient_id])


class Message(Base):
    """A chat message within an accepted connection."""
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True)
    connection_id = Column(Integer, ForeignKey("connections.id"), nullable=False, index=True)
    sender_id = Column(String(64), ForeignKey("profiles.id"), nullable=False)
    content = Column(String(MAX_MESSAGE_LENGTH), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)


class Report(Base):
    """A report against another user, pending moderation."""
    __tablename__ = "reports"

    id = Column(Integer, primary_key=True)
    reporter_id = Column(String(64), ForeignKey("profiles.id"), nullable=False)
    reported_user_id = Column(String(64), ForeignKey("profiles.id"), nullable=False)
    reason = Column(String(20), nullable=False)
    description = Column(String(MAX_REPORT_DESCRIPTION_LENGTH))
    status = Column(String(10), default="pending")
    created_at = Column(DateTime, default=datetime.utcnow)


def public_profile(profile: Optional[Profile]) -> Optional[dict[str, Any]]:
    if profile is None:
        return None
    return {field: getattr(profile, field) for field in PUBLIC_PROFILE_FIELDS}


def profile_to_dict(profile: Profile) -> dict[str, Any]:
    data = public_profile(profile)
    data.update(
        phone=profile.phone,
        phone_visible=profile.phone_visible,
        created_at=profile.created_at.isoformat() if profile.created_at else None,
    )
    return data


def trip_to_dict(trip: Trip, with_user: bool = False) -> dict[str, Any]:
    data = {
        "id": trip.id,
        "user_id": trip.user_id,
        "start_station": trip.start_station,
        "end_station": trip.end_station,
        "travel_date": trip.travel_date.isoformat(),
        "travel_time": trip.travel_time,
        "is_repeating": bool(trip.is_repeating),
        "repeat_days": list(trip.repeat_days or []),
    }
    if with_user:
        data["user"] = public_profile(trip.user)
    return data


def connection_to_dict(conn: Connection, with_profiles: bool = False) -> dict[str, Any]:
    data = {
        "id": conn.id,
        "requester_id": conn.requester_id,
        "recipient_id": conn.recipient_id,
        "status": conn.status,
        "created_at": conn.created_at.isoformat() if conn.created_at else None,
        "updated_at": conn.updated_at.isoformat() if conn.updated_at else None,
    }
    if with_profiles:
        data["requester"] = public_profile(conn.requester)
        data["recipient"] = public_profile(conn.recipient)
    return data


def message_to_dict(message: Message) -> dict[str, Any]:
    return {
        "id": message.id,
        "connection_id": message.connection_id,
        "sender_id": message.sender_id,
        "content": message.content,
        "created_at": message.created_at.isoformat() if message.created_at else None,
    }


def report_to_dict(report: Report) -> dict[str, Any]:
    return {
        "id": report.id,
        "reporter_id": report.reporter_id,
        "reported_user_id": report.reported_user_id,
        "reason": report.reason,
        "description": report.description,
        "status": report.status,
        "created_at": report.created_at.isoformat() if report.created_at else None,
    }


def _between(user_a: str, user_b: str):
    """Filter for a connection between two users in either direction."""
    return or_(
        and_(Connection.requester_id == user_a, Connection.recipient_id == user_b),
        and_(Connection.requester_id == user_b, Connection.recipient_id == user_a),
    )


class Database:
    """Database manager for Metro Connect."""

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = db_path or DB_PATH
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self.engine = create_engine(f"sqlite:///{self.db_path}")
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(bind=self.engine)

    # Profiles

    def upsert_profile(self, user_id: str, data: dict[str, Any]) -> dict[str, Any]:
        """Create or update a user's profile."""
        session = self.Session()
        try:
            profile = session.get(Profile, user_id)
            if profile is None:
                profile = Profile(id=user_id)
                session.add(profile)
            for key, value in data.items():
                setattr(profile, key, value)
            profile.updated_at = datetime.utcnow()
            session.commit()
            return profile_to_dict(profile)
        finally:
            session.close()

    def get_profile(self, user_id: str) -> dict[str, Any]:
        session = self.Session()
        try:
            profile = session.get(Profile, user_id)
            if profile is None:
                raise NotFoundException("Profile not found")
            return profile_to_dict(profile)
        finally:
            session.close()

    def search_people(self, user_id: str, query: Optional[str]) -> list[dict[str, Any]]:
        """Other users whose name contains the query, with their connection to the user."""
        query = (query or "").strip()
        if len(query) < PEOPLE_SEARCH_MIN_LENGTH:
            raise ValidationException("Search query must be at least 2 characters")

        session = self.Session()
        try:
            people = (
                session.query(Profile)
                .filter(Profile.id != user_id)
                .filter(Profile.name.ilike(f"%{query}%"))
                .order_by(Profile.name)
                .limit(PEOPLE_SEARCH_LIMIT)
                .all()
            )
            if not people:
                return []

            ids = [p.id for p in people]
            connections = session.query(Connection).filter(or_(
                and_(Connection.requester_id == user_id, Connection.recipient_id.in_(ids)),
                and_(Connection.recipient_id == user_id, Connection.requester_id.in_(ids)),
            )).all()
            by_person = {}
            for conn in connections:
                other = conn.recipient_id if conn.requester_id == user_id else conn.requester_id
                by_person[other] = conn

            results = []
            for person in people:
                data = {field: getattr(person, field) for field in PEOPLE_SEARCH_FIELDS}
                conn = by_person.get(person.id)
                data["connection_status"] = conn.status if conn else "none"
                data["connection_id"] = conn.id if conn else None
                results.append(data)
            return results
        finally:
            session.close()

    # Trips

    def create_trip(self, user_id: str, data: dict[str, Any]) -> dict[str, Any]:
        """Post a new trip for a user."""
        session = self.Session()
        try:
            if session.get(Profile, user_id) is None:
                raise NotFoundException("Create a profile before posting trips")
            trip = Trip(user_id=user_id, **data)
            session.add(trip)
            session.commit()
            logger.info("User %s posted trip %s -> %s", user_id, trip.start_station, trip.end_station)
            return trip_to_dict(trip)
        finally:
            session.close()

    def update_trip(self, user_id: str, trip_id: int, data: dict[str, Any]) -> dict[str, Any]:
        """Update one of the user's own trips."""
        session = self.Session()
        try:
            trip = session.query(Trip).filter_by(id=trip_id, user_id=user_id).first()
            if trip is None:
                raise NotFoundException("Trip not found")
            for key, value in data.items():
                setattr(trip, key, value)
            session.commit()
            return trip_to_dict(trip)
        finally:
            session.close()

    def delete_trip(self, user_id: str, trip_id: int):
        session = self.Session()
        try:
            deleted = session.query(Trip).filter_by(id=trip_id, user_id=user_id).delete()
            session.commit()
            if not deleted:
                raise NotFoundException("Trip not found")
        finally:
            session.close()

    def get_user_trips(self, user_id: str, from_date: Optional[dt.date] = None) -> list[dict[str, Any]]:
        """A user's trips ordered by date and time, optionally only from a date on."""
        session = self.Session()
        try:
            query = session.query(Trip).filter(Trip.user_id == user_id)
            if from_date is not None:
                query = query.filter(Trip.travel_date >= from_date)
            trips = query.order_by(Trip.travel_date, Trip.travel_time).all()
            return [trip_to_dict(t) for t in trips]
        finally:
            session.close()

    def get_candidate_trips(self, user_id: str, travel_date: dt.date) -> list[dict[str, Any]]:
        """Other users' trips on the date, or repeating on its weekday.

        Each trip carries its owner's public profile under ``"user"``.
        """
        session = self.Session()
        try:
            trips = (
                session.query(Trip)
                .options(joinedload(Trip.user))
                .filter(Trip.user_id != user_id)
                .filter(or_(Trip.travel_date == travel_date, Trip.is_repeating.is_(True)))
                .order_by(Trip.id)
                .all()
            )
            # JSON array containment is filtered here, SQLite has no operator for it
            candidates = [trip_to_dict(t, with_user=True) for t in trips]
            return [t for t in candidates if is_candidate(t, travel_date)]
        finally:
            session.close()

    # Connections

    def create_connection(self, requester_id: str, recipient_id: str) -> dict[str, Any]:
        """Send a connection request."""
        if requester_id == recipient_id:
            raise ValidationException("Cannot connect with yourself")

        session = self.Session()
        try:
            if session.get(Profile, recipient_id) is None:
                raise NotFoundException("Recipient not found")

            existing = session.query(Connection).filter(_between(requester_id, recipient_id)).first()
            if existing:
                raise ConflictException("Connection already exists", status=existing.status)

            conn = Connection(requester_id=requester_id, recipient_id=recipient_id)
            session.add(conn)
            session.commit()
            logger.info("Connection request %s -> %s", requester_id, recipient_id)
            return connection_to_dict(conn)
        finally:
            session.close()

    def respond_to_connection(self, user_id: str, connection_id: int, status: str) -> dict[str, Any]:
        """Accept or decline a pending request addressed to the user."""
        if status not in CONNECTION_STATUSES:
            raise ValidationException("Status must be 'accepted' or 'declined'")

        session = self.Session()
        try:
            conn = session.get(Connection, connection_id)
            if conn is None:
                raise NotFoundException("Connection not found")
            if conn.recipient_id != user_id:
                raise PermissionDeniedException("Only the recipient can accept or decline")
            if conn.status != "pending":
                raise ValidationException("Connection is no longer pending")

            conn.status = status
            conn.updated_at = datetime.utcnow()
            session.commit()
            return connection_to_dict(conn)
        finally:
            session.close()

    def get_connections(self, user_id: str) -> dict[str, Any]:
        """A user's connections split into pending, sent and accepted."""
        session = self.Session()
        try:
            connections = (
                session.query(Connection)
                .options(joinedload(Connection.requester), joinedload(Connection.recipient))
                .filter(or_(Connection.requester_id == user_id, Connection.recipient_id == user_id))
                .order_by(Connection.updated_at.desc())
                .all()
            )
            pending = [c for c in connections if c.status == "pending" and c.recipient_id == user_id]
            sent = [c for c in connections if c.status == "pending" and c.requester_id == user_id]
            accepted = [c for c in connections if c.status == "accepted"]
            return {
                "pending": [connection_to_dict(c, with_profiles=True) for c in pending],
                "sent": [connection_to_dict(c, with_profiles=True) for c in sent],
                "accepted": [connection_to_dict(c, with_profiles=True) for c in accepted],
                "pendingCount": len(pending),
            }
        finally:
            session.close()

    def are_connected(self, user_id: str, other_id: str) -> bool:
        """True if the two users share an accepted connection."""
        session = self.Session()
        try:
            conn = (
                session.query(Connection)
                .filter(_between(user_id, other_id))
                .filter(Connection.status == "accepted")
                .first()
            )
            return conn is not None
        finally:
            session.close()

    # Messages

    def _accepted_connection(self, session, user_id: str, connection_id: int) -> Connection:
        conn = (
            session.query(Connection)
            .filter(Connection.id == connection_id, Connection.status == "accepted")
            .filter(or_(Connection.requester_id == user_id, Connection.recipient_id == user_id))
            .first()
        )
        if conn is None:
            raise NotFoundException("Connection not found or not accepted")
        return conn

    def get_messages(self, user_id: str, connection_id: int) -> list[dict[str, Any]]:
        """Messages of an accepted connection the user belongs to, oldest first."""
        session = self.Session()
        try:
            self._accepted_connection(session, user_id, connection_id)
            messages = (
                session.query(Message)
                .filter_by(connection_id=connection_id)
                .order_by(Message.created_at, Message.id)
                .all()
            )
            return [message_to_dict(m) for m in messages]
        finally:
            session.close()

    def send_message(self, user_id: str, connection_id: int, content: str) -> dict[str, Any]:
        """Post a message to an accepted connection the user belongs to."""
        if not content or not content.strip():
            raise ValidationException("connection_id and content are required")
        if len(content) > MAX_MESSAGE_LENGTH:
            raise ValidationException("Message too long (max 500 characters)")

        session = self.Session()
        try:
            self._accepted_connection(session, user_id, connection_id)
            message = Message(connection_id=connection_id, sender_id=user_id, content=content.strip())
            session.add(message)
            session.commit()
            return message_to_dict(message)
        finally:
            session.close()

    # Reports

    def create_report(self, reporter_id: str, reported_user_id: str, reason: str,
                      description: Optional[str] = None) -> dict[str, Any]:
        """File a report against another user. One pending report per pair."""
        if reporter_id == reported_user_id:
            raise ValidationException("Cannot report yourself")
        if reason not in REPORT_REASONS:
            raise ValidationException("Invalid reason")
        if description and len(description) > MAX_REPORT_DESCRIPTION_LENGTH:
            raise ValidationException("Description too long (max 500 characters)")

        session = self.Session()
        try:
            if session.get(Profile, reported_user_id) is None:
                raise NotFoundException("Reported user not found")

            existing = session.query(Report).filter_by(
                reporter_id=reporter_id, reported_user_id=reported_user_id, status="pending"
            ).first()
            if existing:
                raise ConflictException("You have already reported this user")

            report = Report(
                reporter_id=reporter_id,
                reported_user_id=reported_user_id,
                reason=reason,
                description=(description or "").strip() or None,
            )
            session.add(report)
            session.commit()
            logger.info("User %s reported %s for %s", reporter_id, reported_user_id, reason)
            return report_to_dict(report)
        finally:
            session.close()


_db: Optional[Database] = None


def get_db() -> Database:
    """Process-wide Database, created on first use."""
    global _db
    if _db is None:
        _db = Database()
    return _db
