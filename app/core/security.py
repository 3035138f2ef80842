"""Verification of identity-provider access tokens.

Tokens are issued elsewhere; this service only checks the signature and
claims and reads the verified subject.
"""

import hmac
from typing import Any
from uuid import UUID

from jose import JWTError, jwt

from app.config import settings
from app.core.exceptions import AuthenticationError


def verify_token(token: str) -> dict[str, Any]:
    """Verify and decode an access token."""
    options = {"verify_aud": settings.jwt_audience is not None}
    try:
        return jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
            options=options,
        )
    except JWTError as e:
        raise AuthenticationError(f"Token validation failed: {str(e)}")


def subject_from_token(token: str) -> UUID:
    """Return the verified user id carried in the token's ``sub`` claim."""
    payload = verify_token(token)
    subject = payload.get("sub")
    if not subject:
        raise AuthenticationError("Invalid token payload")
    try:
        return UUID(str(subject))
    except ValueError:
        raise AuthenticationError("Invalid token subject")


def internal_key_matches(provided: str | None) -> bool:
    """Constant-time comparison against the configured internal API key."""
    if not provided:
        return False
    return hmac.compare_digest(provided.encode(), settings.internal_api_key.encode())
