"""Google ID-token verification."""

import logging
from dataclasses import dataclass

from fastapi.concurrency import run_in_threadpool
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token as google_id_token

from studygroup.config import get_settings

logger = logging.getLogger(__name__)

GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")


class GoogleTokenError(ValueError):
    """The credential could not be verified."""


@dataclass(frozen=True)
class GoogleIdentity:
    """Claims extracted from a verified Google id_token."""

    google_id: str
    email: str
    name: str
    picture: str | None = None


def _verify(credential: str) -> GoogleIdentity:
    settings = get_settings()
    try:
        # Checks signature, expiry and audience against Google's public keys
        idinfo = google_id_token.verify_oauth2_token(
            credential,
            google_requests.Request(),
            settings.google_client_id,
        )
    except ValueError as e:
        raise GoogleTokenError(str(e)) from e

    if idinfo.get("iss") not in GOOGLE_ISSUERS:
        raise GoogleTokenError("Invalid issuer")

    email = idinfo.get("email")
    # Only trust verified emails; an unverified one could hijack an account
    if not email or not idinfo.get("email_verified", False):
        raise GoogleTokenError("Google email is not verified")

    return GoogleIdentity(
        google_id=idinfo["sub"],
        email=email.lower(),
        name=idinfo.get("name") or email,
        picture=idinfo.get("picture"),
    )


async def verify_google_id_token(credential: str) -> GoogleIdentity:
    """
    Verify a Google id_token and return the identity it asserts.

    Key fetching is blocking I/O, so verification runs in the threadpool.
    Raises GoogleTokenError if the token is not acceptable.
    """
    identity = await run_in_threadpool(_verify, credential)
    logger.info("Verified Google identity for %s", identity.email)
    return identity
