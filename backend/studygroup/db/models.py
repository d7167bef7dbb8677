"""
SQLAlchemy 2.0 Models for the Study Group Platform.

Uses modern declarative syntax with Mapped[] type annotations.
Column types are kept portable (JSON, Enum, DateTime) so the schema runs on
PostgreSQL in production and SQLite in the test-suite.
"""

from datetime import date, datetime, timezone
from enum import Enum as PyEnum
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studygroup.db.base import Base

# JSONB on PostgreSQL, plain JSON elsewhere
JSONList = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum_values(enum_cls: type[PyEnum]) -> list[str]:
    return [member.value for member in enum_cls]


# =============================================================================
# ENUMS
# =============================================================================


class UserRole(str, PyEnum):
    """Capability dimension of a user account."""

    USER = "user"
    ADMIN = "admin"


class IntervalType(str, PyEnum):
    """How often a topic meets."""

    WEEKLY = "WEEKLY"
    BIWEEKLY = "BIWEEKLY"


class InteractionType(str, PyEnum):
    """Kind of contribution attached to a session."""

    QUESTION = "question"
    NOTE_LINK = "noteLink"
    REFERENCE = "reference"
    SPEAKER_FEEDBACK = "speakerFeedback"
    WEEKLY_INSIGHT = "weeklyInsight"
    OUTLINE_SUGGESTION = "outlineSuggestion"


class ReferenceCategory(str, PyEnum):
    """Category of a reference link."""

    WEB = "web"
    BOOK = "book"
    PAPER = "paper"


# =============================================================================
# MODELS
# =============================================================================


class User(Base):
    """
    Core user account.

    Accounts created through Google sign-in start without a password and with
    is_profile_complete=False until the profile-completion step runs.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(320), unique=True, index=True, nullable=False)
    password_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role", values_callable=_enum_values),
        default=UserRole.USER,
        nullable=False,
    )
    is_profile_complete: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    reset_token_hash: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    reset_token_expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    # Relationships
    auth_identities: Mapped[list["AuthIdentity"]] = relationship(
        "AuthIdentity", back_populates="user", passive_deletes=True
    )


class AuthIdentity(Base):
    """
    OAuth provider identity linked to a user.

    Does NOT store OAuth access/refresh tokens - we only verify id_tokens at login.
    """

    __tablename__ = "auth_identities"
    __table_args__ = (
        UniqueConstraint("provider", "provider_user_id", name="unique_provider_identity"),
        Index("idx_auth_identities_provider_lookup", "provider", "provider_user_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    provider: Mapped[str] = mapped_column(String(50), nullable=False)  # 'google'
    provider_user_id: Mapped[str] = mapped_column(String(255), nullable=False)  # Provider's 'sub' claim
    email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)  # For audit
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    last_login_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    user: Mapped["User"] = relationship("User", back_populates="auth_identities")


class Topic(Base):
    """A recurring study subject with a date range and membership."""

    __tablename__ = "topics"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    interval_type: Mapped[IntervalType] = mapped_column(
        Enum(IntervalType, name="interval_type", values_callable=_enum_values),
        nullable=False,
    )
    outline: Mapped[str] = mapped_column(Text, default="", nullable=False)
    reference_urls: Mapped[list[str]] = mapped_column(JSONList, default=list, nullable=False)
    keywords: Mapped[list[str]] = mapped_column(JSONList, default=list, nullable=False)
    # Owner; never reassigned after creation
    created_by: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    attendees: Mapped[list["TopicAttendee"]] = relationship(
        "TopicAttendee",
        back_populates="topic",
        passive_deletes=True,
        order_by="TopicAttendee.id",
    )
    sessions: Mapped[list["StudySession"]] = relationship(
        "StudySession",
        back_populates="topic",
        passive_deletes=True,
        order_by="StudySession.start_date_time",
    )


class TopicAttendee(Base):
    """Membership of a user in a topic. One row per (topic, user)."""

    __tablename__ = "topic_attendees"
    __table_args__ = (
        UniqueConstraint("topic_id", "user_id", name="unique_topic_attendee"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    topic_id: Mapped[int] = mapped_column(
        ForeignKey("topics.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    topic: Mapped["Topic"] = relationship("Topic", back_populates="attendees")


class StudySession(Base):
    """One scheduled meeting of a topic. Owned (for permissions) by its presenter."""

    __tablename__ = "sessions"
    __table_args__ = (
        Index("idx_sessions_topic_start", "topic_id", "start_date_time"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    topic_id: Mapped[int] = mapped_column(
        ForeignKey("topics.id", ondelete="CASCADE"), nullable=False
    )
    presenter_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    start_date_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    scope: Mapped[str] = mapped_column(String(500), nullable=False)
    outline: Mapped[str] = mapped_column(Text, default="", nullable=False)
    note_links: Mapped[list[str]] = mapped_column(JSONList, default=list, nullable=False)
    # List of {label, description, url, category}
    references: Mapped[list[dict[str, Any]]] = mapped_column(JSONList, default=list, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    topic: Mapped["Topic"] = relationship("Topic", back_populates="sessions")
    attendees: Mapped[list["SessionAttendee"]] = relationship(
        "SessionAttendee",
        back_populates="session",
        passive_deletes=True,
        order_by="SessionAttendee.id",
    )


class SessionAttendee(Base):
    """Attendance of a user at a session."""

    __tablename__ = "session_attendees"
    __table_args__ = (
        UniqueConstraint("session_id", "user_id", name="unique_session_attendee"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[int] = mapped_column(
        ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    session: Mapped["StudySession"] = relationship("StudySession", back_populates="attendees")


class Interaction(Base):
    """
    A typed contribution to a session.

    Single-table storage for every interaction kind. Content kinds use
    `content`; noteLink uses label/description/url; reference additionally
    uses category. Shape validation lives in the schemas.
    """

    __tablename__ = "interactions"
    __table_args__ = (
        Index("idx_interactions_session_created", "session_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[int] = mapped_column(
        ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False
    )
    author_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    type: Mapped[InteractionType] = mapped_column(
        Enum(InteractionType, name="interaction_type", values_callable=_enum_values),
        nullable=False,
    )
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    label: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    url: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    category: Mapped[Optional[ReferenceCategory]] = mapped_column(
        Enum(ReferenceCategory, name="reference_category", values_callable=_enum_values),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )
