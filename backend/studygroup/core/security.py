"""
Password hashing and JWT utilities.

Two tokens are issued per login:
- access token: short-lived, signed with jwt_secret_key
- refresh token: long-lived, signed with jwt_refresh_secret_key

Both carry the same claims (id, email, role, profile_complete). A `type`
claim stops one from being accepted in place of the other. Verification is a
pure signature + expiry check; the database is not consulted.
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Literal

import bcrypt
from jose import JWTError, jwt

from studygroup.config import get_settings
from studygroup.db.models import User, UserRole

settings = get_settings()

TokenType = Literal["access", "refresh"]


@dataclass(frozen=True)
class TokenClaims:
    """Identity carried inside a verified token."""

    id: int
    email: str
    role: UserRole
    profile_complete: bool


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: int  # access token lifetime in seconds


# =============================================================================
# PASSWORDS
# =============================================================================


def hash_password(password: str) -> str:
    """Hash a password with bcrypt."""
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str | None) -> bool:
    """Check a password against a stored hash. Accounts without one never match."""
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def generate_temporary_password() -> str:
    """Random password handed to admins when they create an account."""
    return secrets.token_urlsafe(9)


# =============================================================================
# PASSWORD RESET TOKENS
# =============================================================================


def generate_reset_token() -> tuple[str, str]:
    """
    Create a password-reset token.

    Returns (token, token_hash). Only the hash is persisted so a leaked
    database cannot be used to reset passwords.
    """
    token = secrets.token_hex(32)
    return token, hash_reset_token(token)


def hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


# =============================================================================
# JWT
# =============================================================================


def _secret_for(token_type: TokenType) -> str:
    return settings.jwt_secret_key if token_type == "access" else settings.jwt_refresh_secret_key


def _lifetime_for(token_type: TokenType) -> timedelta:
    if token_type == "access":
        return timedelta(minutes=settings.jwt_access_expire_minutes)
    return timedelta(minutes=settings.jwt_refresh_expire_minutes)


def claims_for_user(user: User) -> TokenClaims:
    return TokenClaims(
        id=user.id,
        email=user.email,
        role=UserRole(user.role),
        profile_complete=user.is_profile_complete,
    )


def create_token(claims: TokenClaims, token_type: TokenType) -> str:
    """Sign a token of the given type."""
    expire = datetime.now(timezone.utc) + _lifetime_for(token_type)
    payload: dict[str, Any] = {
        "sub": str(claims.id),
        "id": claims.id,
        "email": claims.email,
        "role": claims.role.value,
        "profile_complete": claims.profile_complete,
        "type": token_type,
        "exp": expire,
    }
    return jwt.encode(payload, _secret_for(token_type), algorithm=settings.jwt_algorithm)


def create_token_pair(claims: TokenClaims) -> TokenPair:
    return TokenPair(
        access_token=create_token(claims, "access"),
        refresh_token=create_token(claims, "refresh"),
        expires_in=settings.jwt_access_expire_minutes * 60,
    )


def decode_token(token: str, token_type: TokenType = "access") -> TokenClaims | None:
    """
    Decode and validate a token.

    Returns the claims if valid, None if invalid, expired or of the wrong type.
    """
    try:
        payload = jwt.decode(
            token,
            _secret_for(token_type),
            algorithms=[settings.jwt_algorithm],
        )
        if payload.get("type") != token_type:
            return None
        return TokenClaims(
            id=int(payload["id"]),
            email=payload["email"],
            role=UserRole(payload["role"]),
            profile_complete=bool(payload.get("profile_complete", True)),
        )
    except (JWTError, KeyError, ValueError, TypeError):
        return None
