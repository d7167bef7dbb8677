"""Topic schemas."""

from datetime import date
from typing import Any

from pydantic import Field, field_validator, model_validator

from studygroup.db.models import IntervalType
from studygroup.schemas.base import BaseSchema, DayStamp, UrlStr
from studygroup.schemas.sessions import SessionRead


def _attendee_ids(value: Any) -> Any:
    """Membership rows come from the ORM; the API exposes bare user ids."""
    if value is None:
        return []
    return [getattr(item, "user_id", item) for item in value]


class TopicBase(BaseSchema):
    """Base topic schema."""

    title: str = Field(..., min_length=3, max_length=255)
    start_date: date
    end_date: date
    interval_type: IntervalType
    outline: str = ""
    reference_urls: list[UrlStr] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)


def with_creator(creator_id: int, attendees: list[int]) -> list[int]:
    """Creator first, then the rest in order, without duplicates."""
    unique = [creator_id]
    for user_id in attendees:
        if user_id not in unique:
            unique.append(user_id)
    return unique


class TopicCreate(TopicBase):
    """Schema for creating a topic. The creator is always added to attendees."""

    attendees: list[int] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_date_range(self) -> "TopicCreate":
        if self.end_date < self.start_date:
            raise ValueError("endDate must not be before startDate")
        return self


class TopicRead(TopicBase):
    """Schema for reading topic data, including its sessions."""

    id: int
    attendees: list[int] = Field(default_factory=list)
    created_by: int
    created_at: DayStamp
    sessions: list[SessionRead] = Field(default_factory=list)

    @field_validator("attendees", mode="before")
    @classmethod
    def normalize_attendees(cls, v: Any) -> Any:
        return _attendee_ids(v)

    @field_validator("outline", mode="before")
    @classmethod
    def ensure_outline(cls, v: Any) -> str:
        return v or ""


class TopicUpdate(BaseSchema):
    """Schema for updating a topic. All fields optional; attendees replace the set."""

    title: str | None = Field(None, min_length=3, max_length=255)
    start_date: date | None = None
    end_date: date | None = None
    interval_type: IntervalType | None = None
    outline: str | None = None
    reference_urls: list[UrlStr] | None = None
    keywords: list[str] | None = None
    attendees: list[int] | None = None
