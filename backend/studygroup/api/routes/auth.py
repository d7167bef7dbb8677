"""
Authentication Routes

Endpoints:
- POST /auth/login            - Email + password login
- POST /auth/register         - Create an account (alias: /auth/signup)
- POST /auth/google           - Exchange a Google id_token for a session
- POST /auth/complete-profile - Finish a Google sign-up (name + password)
- POST /auth/refresh          - Trade a refresh token for a new token pair
- POST /auth/forgot-password  - Issue a password-reset token
- POST /auth/reset-password   - Set a new password with a reset token
- GET  /auth/me               - Current user profile
- POST /auth/logout           - Clear the session cookie

Google sign-up flow:
1. Frontend performs the Google OAuth flow and receives an id_token
2. Frontend POSTs it to /auth/google as `credential`
3. Backend verifies it against Google's public keys
4. Known identity or email: normal login. Otherwise a user is created with
   no password and is_profile_complete=False
5. Until /auth/complete-profile runs, resource routes answer 403

Security:
- Every successful login sets the access token as an HttpOnly cookie and
  also returns it in the body (client chooses how to use it)
- We do NOT store Google access/refresh tokens
- Reset tokens are stored hashed and expire
"""

import logging
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Response, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from studygroup.api.deps import AuthenticatedActor, DbSession
from studygroup.config import get_settings
from studygroup.core.errors import BusinessRuleError, NotFoundError, UnauthorizedError
from studygroup.core.google import GoogleTokenError, verify_google_id_token
from studygroup.core.security import (
    TokenPair,
    claims_for_user,
    create_token_pair,
    decode_token,
    generate_reset_token,
    hash_password,
    hash_reset_token,
    verify_password,
)
from studygroup.db.models import AuthIdentity, User, UserRole
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
from studygroup.schemas.user import UserRead

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])
settings = get_settings()

GOOGLE_PROVIDER = "google"
RESET_REQUESTED_MESSAGE = "If this email exists in our system, you will receive a password reset link."


# =============================================================================
# HELPERS
# =============================================================================


def _cookie_options() -> dict:
    # For cross-domain deployments use samesite="none" + secure=True
    return {
        "httponly": True,
        "secure": settings.cookie_cross_domain or settings.environment not in ("development", "test"),
        "samesite": "none" if settings.cookie_cross_domain else "lax",
    }


def set_auth_cookie(response: Response, tokens: TokenPair) -> None:
    response.set_cookie(
        key="access_token",
        value=tokens.access_token,
        max_age=tokens.expires_in,
        **_cookie_options(),
    )


def issue_tokens(user: User, response: Response) -> TokenPair:
    """Sign a fresh token pair for `user` and set the session cookie."""
    tokens = create_token_pair(claims_for_user(user))
    set_auth_cookie(response, tokens)
    return tokens


def auth_response(user: User, tokens: TokenPair) -> AuthResponse:
    return AuthResponse(
        user=UserRead.model_validate(user),
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        expires_in=tokens.expires_in,
    )


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


# =============================================================================
# PASSWORD LOGIN
# =============================================================================


@router.post("/login", response_model=AuthResponse)
async def login(data: LoginRequest, response: Response, db: DbSession) -> AuthResponse:
    """Log in with email and password."""
    user = await get_user_by_email(db, data.email)
    if user is None or not verify_password(data.password, user.password_hash):
        logger.info("Failed login for %s", data.email)
        raise UnauthorizedError("Invalid credentials")

    tokens = issue_tokens(user, response)
    logger.info("User %s logged in", user.id)
    return auth_response(user, tokens)


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(data: RegisterRequest, response: Response, db: DbSession) -> AuthResponse:
    """Create a regular account and log it in."""
    if await get_user_by_email(db, data.email) is not None:
        raise BusinessRuleError("User already exists")

    user = User(
        name=data.name,
        email=data.email.lower(),
        password_hash=hash_password(data.password),
        role=UserRole.USER,
        is_profile_complete=True,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    tokens = issue_tokens(user, response)
    logger.info("Registered user %s", user.id)
    return auth_response(user, tokens)


# =============================================================================
# GOOGLE
# =============================================================================


@router.post("/google", response_model=GoogleAuthResponse)
async def google_login(
    data: GoogleAuthRequest,
    response: Response,
    db: DbSession,
) -> GoogleAuthResponse:
    """
    Exchange a Google id_token for a session.

    Flow:
    1. Verify id_token with Google's public keys
    2. Find auth_identity by (provider='google', provider_user_id=sub)
    3. Otherwise link to an existing user with the same email
    4. Otherwise create an incomplete user (201, profile completion required)
    """
    try:
        identity = await verify_google_id_token(data.credential)
    except GoogleTokenError as e:
        logger.info("Rejected Google credential: %s", e)
        raise UnauthorizedError("Invalid Google token") from None

    # Eagerly load user to avoid async lazy-load
    result = await db.execute(
        select(AuthIdentity)
        .options(selectinload(AuthIdentity.user))
        .where(
            AuthIdentity.provider == GOOGLE_PROVIDER,
            AuthIdentity.provider_user_id == identity.google_id,
        )
    )
    auth_identity = result.scalar_one_or_none()

    is_new_user = False
    if auth_identity is not None:
        auth_identity.last_login_at = datetime.now(timezone.utc)
        auth_identity.email = identity.email
        user = auth_identity.user
    else:
        user = await get_user_by_email(db, identity.email)
        if user is None:
            is_new_user = True
            user = User(
                name=identity.name,
                email=identity.email,
                password_hash=None,
                role=UserRole.USER,
                is_profile_complete=False,
            )
            db.add(user)
            await db.flush()  # Get user.id

        db.add(
            AuthIdentity(
                user_id=user.id,
                provider=GOOGLE_PROVIDER,
                provider_user_id=identity.google_id,
                email=identity.email,
            )
        )

    await db.commit()
    await db.refresh(user)

    tokens = issue_tokens(user, response)
    if is_new_user:
        response.status_code = status.HTTP_201_CREATED
        logger.info("Created user %s from Google sign-in", user.id)
    else:
        logger.info("User %s logged in with Google", user.id)

    return GoogleAuthResponse(
        **dict(auth_response(user, tokens)),
        is_new_user=is_new_user,
        requires_profile_completion=not user.is_profile_complete,
    )


@router.post("/complete-profile", response_model=AuthResponse)
async def complete_profile(
    data: CompleteProfileRequest,
    response: Response,
    actor: AuthenticatedActor,
    db: DbSession,
) -> AuthResponse:
    """Second step of a Google sign-up: choose a display name and password."""
    user = await db.get(User, actor.id)
    if user is None:
        raise NotFoundError("User not found")
    if user.is_profile_complete:
        raise BusinessRuleError("Profile is already complete")

    user.name = data.name
    user.password_hash = hash_password(data.password)
    user.is_profile_complete = True
    await db.commit()
    await db.refresh(user)

    # The old token still says profile_complete=False
    tokens = issue_tokens(user, response)
    logger.info("User %s completed their profile", user.id)
    return auth_response(user, tokens)


# =============================================================================
# TOKENS
# =============================================================================


@router.post("/refresh", response_model=TokenResponse)
async def refresh(data: RefreshRequest, response: Response, db: DbSession) -> TokenResponse:
    """Issue a new access/refresh pair from a valid refresh token."""
    claims = decode_token(data.refresh_token, "refresh")
    if claims is None:
        raise UnauthorizedError("Invalid refresh token")

    user = await db.get(User, claims.id)
    if user is None:
        raise UnauthorizedError("Invalid refresh token")

    tokens = issue_tokens(user, response)
    return TokenResponse(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        expires_in=tokens.expires_in,
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response, actor: AuthenticatedActor) -> MessageResponse:
    """
    Clear the authentication session.

    Note: This only clears the cookie. A JWT the client stored elsewhere
    remains valid until expiry.
    """
    response.delete_cookie(key="access_token", **_cookie_options())
    logger.info("User %s logged out", actor.id)
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=UserRead)
async def get_me(actor: AuthenticatedActor, db: DbSession) -> UserRead:
    """Get the current authenticated user's profile."""
    user = await db.get(User, actor.id)
    if user is None:
        raise NotFoundError("User not found")
    return UserRead.model_validate(user)


# =============================================================================
# PASSWORD RESET
# =============================================================================


@router.post(
    "/forgot-password",
    response_model=ForgotPasswordResponse,
    response_model_exclude_none=True,
)
async def forgot_password(data: ForgotPasswordRequest, db: DbSession) -> ForgotPasswordResponse:
    """
    Start a password reset.

    The answer is the same whether or not the email is known. Outside
    development the token would be emailed; email delivery is not wired up,
    so in development it is returned and logged instead.
    """
    user = await get_user_by_email(db, data.email)
    if user is None:
        return ForgotPasswordResponse(message=RESET_REQUESTED_MESSAGE)

    token, token_hash = generate_reset_token()
    user.reset_token_hash = token_hash
    user.reset_token_expires_at = datetime.now(timezone.utc) + timedelta(
        minutes=settings.password_reset_expire_minutes
    )
    await db.commit()

    if settings.environment != "development":
        logger.info("Password reset requested for user %s", user.id)
        return ForgotPasswordResponse(message=RESET_REQUESTED_MESSAGE)

    reset_url = f"{settings.frontend_url}/reset-password?token={token}"
    logger.info("Password reset link for user %s: %s", user.id, reset_url)
    return ForgotPasswordResponse(
        message=RESET_REQUESTED_MESSAGE,
        reset_token=token,
        reset_url=reset_url,
    )


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(data: ResetPasswordRequest, db: DbSession) -> MessageResponse:
    """Set a new password using a token from /auth/forgot-password."""
    result = await db.execute(select(User).where(User.reset_token_hash == hash_reset_token(data.token)))
    user = result.scalar_one_or_none()

    if user is None or not _reset_token_live(user.reset_token_expires_at):
        raise BusinessRuleError("Invalid or expired reset token")

    user.password_hash = hash_password(data.password)
    user.reset_token_hash = None
    user.reset_token_expires_at = None
    await db.commit()

    logger.info("Password reset for user %s", user.id)
    return MessageResponse(message="Password has been reset successfully")


def _reset_token_live(expires_at: datetime | None) -> bool:
    if expires_at is None:
        return False
    # SQLite hands back naive datetimes; stored values are always UTC
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at > datetime.now(timezone.utc)
