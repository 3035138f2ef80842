"""Pydantic schemas for API validation."""

from app.schemas.booking import (
    BookingCalculateRequest,
    BookingCalculateResponse,
    BookingCreate,
    BookingListResponse,
    BookingPriceBreakdown,
    BookingResponse,
    BookingStatusUpdate,
)

__all__ = [
    # Booking
    "BookingCalculateRequest",
    "BookingCalculateResponse",
    "BookingCreate",
    "BookingListResponse",
    "BookingPriceBreakdown",
    "BookingResponse",
    "BookingStatusUpdate",
]
