"""Booking-related Pydantic schemas."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.domain.booking_state import BookingStatus

# Statuses a guest or host may request directly
USER_REQUESTABLE_STATUSES = frozenset(
    {BookingStatus.CONFIRMED, BookingStatus.DECLINED, BookingStatus.CANCELLED}
)


class BookingCreate(BaseModel):
    """Schema for creating a booking.

    Stay length is not validated here; the booking service rejects ranges
    shorter than one night with a 400.
    """

    rental_id: UUID
    check_in_date: date
    check_out_date: date
    number_of_guests: int = Field(default=1, ge=1, le=50)
    guest_message: str | None = Field(None, max_length=1000)


class BookingStatusUpdate(BaseModel):
    """Schema for a guest or host changing a booking's status."""

    status: BookingStatus

    @field_validator("status")
    @classmethod
    def validate_requestable(cls, v: BookingStatus) -> BookingStatus:
        if v not in USER_REQUESTABLE_STATUSES:
            allowed = ", ".join(sorted(s.value for s in USER_REQUESTABLE_STATUSES))
            raise ValueError(f"status must be one of: {allowed}")
        return v


class BookingPriceBreakdown(BaseModel):
    """Schema for booking price breakdown."""

    model_config = ConfigDict(from_attributes=True)

    price_per_night: Decimal
    number_of_nights: int
    subtotal: Decimal
    cleaning_fee: Decimal
    service_fee: Decimal
    total_price: Decimal


class BookingResponse(BaseModel):
    """Schema for booking response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    rental_id: UUID
    host_id: UUID
    guest_id: UUID

    # Dates
    check_in_date: date
    check_out_date: date

    # Guests
    number_of_guests: int
    guest_message: str | None

    # Pricing snapshot
    price_per_night: Decimal
    number_of_nights: int
    subtotal: Decimal
    cleaning_fee: Decimal
    service_fee: Decimal
    total_price: Decimal

    # Status
    status: BookingStatus

    # Timestamps
    created_at: datetime
    cancelled_at: datetime | None


class BookingListResponse(BaseModel):
    """Schema for a user's bookings."""

    bookings: list[BookingResponse]
    total: int


class BookingCalculateRequest(BaseModel):
    """Schema for calculating booking price without creating."""

    rental_id: UUID
    check_in_date: date
    check_out_date: date
    number_of_guests: int = Field(default=1, ge=1, le=50)


class BookingCalculateResponse(BaseModel):
    """Schema for booking price calculation response."""

    model_config = ConfigDict(from_attributes=True)

    available: bool
    price_breakdown: BookingPriceBreakdown | None = None
    security_deposit: Decimal | None = None
    unavailable_reason: str | None = None
