"""User schemas."""

from pydantic import EmailStr, Field

from studygroup.db.models import UserRole
from studygroup.schemas.base import BaseSchema, DayStamp


class UserCreate(BaseSchema):
    """Schema for an admin creating an account. A temporary password is generated."""

    name: str = Field(..., min_length=2, max_length=255)
    email: EmailStr
    role: UserRole = UserRole.USER


class UserRead(BaseSchema):
    """Schema for reading user data."""

    id: int
    name: str
    email: str
    role: UserRole
    is_profile_complete: bool = True
    created_at: DayStamp


class UserCreated(UserRead):
    """Response for admin-created accounts; the password is shown once."""

    temporary_password: str


class UserName(BaseSchema):
    """Name-only projection visible to every authenticated user."""

    id: int
    name: str


class UserUpdate(BaseSchema):
    """Schema for updating a user. Only admins may change `role`."""

    name: str | None = Field(None, min_length=2, max_length=255)
    email: EmailStr | None = None
    role: UserRole | None = None
