"""Authentication schemas."""

from pydantic import EmailStr, Field

from studygroup.schemas.base import BaseSchema
from studygroup.schemas.user import UserRead


class LoginRequest(BaseSchema):
    email: EmailStr
    password: str = Field(..., min_length=6)


class RegisterRequest(BaseSchema):
    name: str = Field(..., min_length=2, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=6)


class GoogleAuthRequest(BaseSchema):
    """Request schema for Google OAuth login."""

    credential: str = Field(..., min_length=1, description="Google OAuth id_token from frontend")


class RefreshRequest(BaseSchema):
    refresh_token: str = Field(..., min_length=1)


class CompleteProfileRequest(BaseSchema):
    """Second step of Google sign-up: pick a display name and a password."""

    name: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=6)


class ForgotPasswordRequest(BaseSchema):
    email: EmailStr


class ResetPasswordRequest(BaseSchema):
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=6)


class TokenResponse(BaseSchema):
    """Response schema for a token refresh."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Access token expiry in seconds")


class AuthResponse(TokenResponse):
    """Response schema for successful authentication."""

    user: UserRead


class GoogleAuthResponse(AuthResponse):
    is_new_user: bool
    requires_profile_completion: bool = False


class ForgotPasswordResponse(BaseSchema):
    message: str
    # Development only
    reset_token: str | None = None
    reset_url: str | None = None
