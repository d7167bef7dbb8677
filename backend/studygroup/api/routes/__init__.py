"""API routes package."""

from studygroup.api.routes import (
    auth,
    interactions,
    sessions,
    topics,
    users,
)

__all__ = [
    "auth",
    "interactions",
    "sessions",
    "topics",
    "users",
]
