"""Request schemas for profiles, trips, searches, connections, messages and reports."""

from __future__ import annotations

import datetime as dt
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .matching import SearchQuery

Gender = Literal["Male", "Female", "Other"]
GenderFilter = Literal["All", "Male", "Female", "Other"]

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class ProfileIn(BaseModel):
    name: str = Field(min_length=2, max_length=50)
    age: int = Field(ge=18, le=100)
    gender: Gender
    bio: Optional[str] = Field(default="", max_length=100)
    profile_pic_url: Optional[str] = None
    instagram_handle: Optional[str] = Field(default="", max_length=30)
    twitter_handle: Optional[str] = Field(default="", max_length=30)
    phone: Optional[str] = Field(default="", max_length=15)
    phone_visible: bool = False


class _StationPair(BaseModel):
    start_station: str = Field(min_length=1)
    end_station: str = Field(min_length=1)

    @model_validator(mode="after")
    def check_distinct_stations(self):
        if self.start_station == self.end_station:
            raise ValueError("Start and end stations must be different")
        return self


class TripIn(_StationPair):
    travel_date: dt.date
    travel_time: str = Field(pattern=TIME_PATTERN)
    is_repeating: bool = False
    repeat_days: list[int] = Field(default_factory=list)

    @field_validator("repeat_days")
    @classmethod
    def check_repeat_days(cls, days: list[int]) -> list[int]:
        if any(day < 0 or day > 6 for day in days):
            raise ValueError("Repeat days must be between 0 (Sunday) and 6 (Saturday)")
        return sorted(set(days))


class SearchParams(_StationPair):
    travel_date: dt.date
    travel_time: str = Field(pattern=TIME_PATTERN)
    gender_filter: GenderFilter = "All"

    def to_query(self) -> SearchQuery:
        return SearchQuery(
            start_station=self.start_station,
            end_station=self.end_station,
            travel_date=self.travel_date.isoformat(),
            travel_time=self.travel_time,
            gender_filter=self.gender_filter,
        )


class ConnectionIn(BaseModel):
    recipient_id: str = Field(min_length=1)


class ConnectionUpdate(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def check_status(cls, status: str) -> str:
        if status not in ("accepted", "declined"):
            raise ValueError("Status must be 'accepted' or 'declined'")
        return status


class MessageIn(BaseModel):
    connection_id: Optional[int] = None
    content: Optional[str] = None

    @model_validator(mode="after")
    def check_required(self):
        if not self.connection_id or not (self.content or "").strip():
            raise ValueError("connection_id and content are required")
        return self


class ReportIn(BaseModel):
    reported_user_id: Optional[str] = None
    reason: Optional[str] = None
    description: Optional[str] = None

    @model_validator(mode="after")
    def check_required(self):
        if not self.reported_user_id or not self.reason:
            raise ValueError("reported_user_id and reason are required")
        return self
