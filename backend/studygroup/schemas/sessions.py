"""Session schemas."""

from typing import Any

from pydantic import Field, field_validator

from studygroup.db.models import ReferenceCategory
from studygroup.schemas.base import BaseSchema, MinuteDateTime, UrlStr


class ReferenceLink(BaseSchema):
    """A labelled link attached to a session."""

    label: str
    description: str = ""
    url: UrlStr
    category: ReferenceCategory = ReferenceCategory.WEB


class StoredReferenceLink(BaseSchema):
    """Lenient reading of references already in the database."""

    label: str = ""
    description: str = ""
    url: str = ""
    category: ReferenceCategory = ReferenceCategory.WEB


def _user_ids(value: Any) -> Any:
    if value is None:
        return []
    return [getattr(item, "user_id", item) for item in value]


class SessionCreate(BaseSchema):
    """Schema for scheduling a session. Only admins may create sessions."""

    topic_id: int
    presenter_id: int
    start_date_time: MinuteDateTime
    scope: str = Field(..., min_length=3, max_length=500)
    outline: str = ""
    note_links: list[str] = Field(default_factory=list)
    references: list[ReferenceLink] = Field(default_factory=list)
    attendees: list[int] = Field(default_factory=list)


class SessionRead(BaseSchema):
    """Schema for reading session data."""

    id: int
    topic_id: int
    presenter_id: int
    start_date_time: MinuteDateTime
    scope: str
    outline: str = ""
    note_links: list[str] = Field(default_factory=list)
    references: list[StoredReferenceLink] = Field(default_factory=list)
    attendees: list[int] = Field(default_factory=list)

    @field_validator("attendees", mode="before")
    @classmethod
    def normalize_attendees(cls, v: Any) -> Any:
        return _user_ids(v)

    @field_validator("outline", mode="before")
    @classmethod
    def ensure_outline(cls, v: Any) -> str:
        return v or ""

    @field_validator("note_links", "references", mode="before")
    @classmethod
    def ensure_list(cls, v: Any) -> list:
        return v if isinstance(v, list) else []


class SessionUpdate(BaseSchema):
    """Schema for updating a session. The presenter cannot be reassigned."""

    topic_id: int | None = None
    presenter_id: int | None = None
    start_date_time: MinuteDateTime | None = None
    scope: str | None = Field(None, min_length=3, max_length=500)
    outline: str | None = None
    note_links: list[str] | None = None
    references: list[ReferenceLink] | None = None
    attendees: list[int] | None = None
