"""Custom application exceptions."""

from enum import Enum

from fastapi import HTTPException, status


class ErrorCode(str, Enum):
    """Stable machine-readable error kinds returned to API callers."""

    NOT_FOUND = "NOT_FOUND"
    BAD_REQUEST = "BAD_REQUEST"
    FORBIDDEN = "FORBIDDEN"
    CONFLICT = "CONFLICT"
    UNAUTHORIZED = "UNAUTHORIZED"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    HAS_ACTIVE_BOOKINGS = "HAS_ACTIVE_BOOKINGS"


class AppException(HTTPException):
    """Base application exception."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "An unexpected error occurred",
        headers: dict[str, str] | None = None,
        code: ErrorCode | None = None,
    ) -> None:
        if code is not None:
            self.code = code
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class NotFoundError(AppException):
    """Resource not found exception."""

    code = ErrorCode.NOT_FOUND

    def __init__(self, resource: str = "Resource", identifier: str | None = None) -> None:
        detail = f"{resource} not found"
        if identifier:
            detail = f"{resource} with ID '{identifier}' not found"
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class BadRequestError(AppException):
    """A request precondition was violated."""

    code = ErrorCode.BAD_REQUEST

    def __init__(self, detail: str = "Bad request", code: ErrorCode | None = None) -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail, code=code)


class ForbiddenError(AppException):
    """The caller has no standing on the resource."""

    code = ErrorCode.FORBIDDEN

    def __init__(self, detail: str = "You don't have permission to access this resource") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class ConflictError(AppException):
    """The request conflicts with current state."""

    code = ErrorCode.CONFLICT

    def __init__(self, detail: str = "The request conflicts with an existing resource") -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class AuthenticationError(AppException):
    """Authentication failed exception."""

    code = ErrorCode.UNAUTHORIZED

    def __init__(self, detail: str = "Authentication failed") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class RentalNotAvailable(BadRequestError):
    """Rental is inactive or not approved."""

    def __init__(self, detail: str = "Rental is not available for booking") -> None:
        super().__init__(detail)


class InvalidStayLength(BadRequestError):
    """Date range is shorter than one night."""

    def __init__(self, detail: str = "Booking must be at least 1 night") -> None:
        super().__init__(detail)


class InvalidBookingTransition(BadRequestError):
    """Requested status is not reachable from the current status."""

    def __init__(self, current: str, target: str) -> None:
        self.current = current
        self.target = target
        super().__init__(f"Cannot update booking from {current} to {target}")


class DatesNotAvailable(ConflictError):
    """Dates not available exception."""

    def __init__(self, detail: str = "Rental is not available for these dates") -> None:
        super().__init__(detail)
