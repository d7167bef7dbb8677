"""Pydantic schemas for API request/response validation."""

from studygroup.schemas.auth import (
    AuthResponse,
    CompleteProfileRequest,
    ForgotPasswordRequest,
    ForgotPasswordResponse,
    GoogleAuthRequest,
    GoogleAuthResponse,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    ResetPasswordRequest,
    TokenResponse,
)
from studygroup.schemas.base import MessageResponse
from studygroup.schemas.interactions import (
    InteractionCreate,
    InteractionRead,
    InteractionUpdate,
)
from studygroup.schemas.sessions import ReferenceLink, SessionCreate, SessionRead, SessionUpdate
from studygroup.schemas.topics import TopicCreate, TopicRead, TopicUpdate
from studygroup.schemas.user import UserCreate, UserCreated, UserName, UserRead, UserUpdate

__all__ = [
    # Common
    "MessageResponse",
    # User
    "UserCreate",
    "UserCreated",
    "UserName",
    "UserRead",
    "UserUpdate",
    # Auth
    "AuthResponse",
    "CompleteProfileRequest",
    "ForgotPasswordRequest",
    "ForgotPasswordResponse",
    "GoogleAuthRequest",
    "GoogleAuthResponse",
    "LoginRequest",
    "RefreshRequest",
    "RegisterRequest",
    "ResetPasswordRequest",
    "TokenResponse",
    # Topics
    "TopicCreate",
    "TopicRead",
    "TopicUpdate",
    # Sessions
    "ReferenceLink",
    "SessionCreate",
    "SessionRead",
    "SessionUpdate",
    # Interactions
    "InteractionCreate",
    "InteractionRead",
    "InteractionUpdate",
]
