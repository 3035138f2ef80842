"""Core utilities: errors, security, middleware."""

from app.core.exceptions import (
    AppException,
    AuthenticationError,
    BadRequestError,
    ConflictError,
    DatesNotAvailable,
    ErrorCode,
    ForbiddenError,
    InvalidBookingTransition,
    InvalidStayLength,
    NotFoundError,
    RentalNotAvailable,
)

__all__ = [
    "AppException",
    "AuthenticationError",
    "BadRequestError",
    "ConflictError",
    "DatesNotAvailable",
    "ErrorCode",
    "ForbiddenError",
    "InvalidBookingTransition",
    "InvalidStayLength",
    "NotFoundError",
    "RentalNotAvailable",
]
