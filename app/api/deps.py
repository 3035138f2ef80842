"""API dependencies for authentication and service access."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.exceptions import AuthenticationError, ForbiddenError
from app.core.security import internal_key_matches, subject_from_token
from app.services.booking_service import BookingService

# Security scheme
security = HTTPBearer(auto_error=False)


async def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> UUID:
    """Get the verified subject of the bearer token."""
    if credentials is None:
        raise AuthenticationError("Not authenticated")
    return subject_from_token(credentials.credentials)


def get_booking_service(request: Request) -> BookingService:
    """Return the booking service built at startup."""
    return request.app.state.booking_service


async def require_internal_key(
    x_internal_key: Annotated[str | None, Header()] = None,
) -> None:
    """Allow only service-to-service callers holding the internal key."""
    if not internal_key_matches(x_internal_key):
        raise ForbiddenError("Internal access required")
