"""Immutable value types exchanged between the booking service and storage."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import Decimal

from app.domain.booking_state import BookingStatus
from app.domain.pricing import PriceBreakdown


@dataclass(frozen=True)
class RentalSnapshot:
    """Rental fields the booking engine reads from the rental directory."""

    id: uuid.UUID
    host_id: uuid.UUID
    price_per_night: Decimal
    cleaning_fee: Decimal | None
    security_deposit: Decimal | None
    max_guests: int
    is_active: bool
    is_approved: bool

    @property
    def is_bookable(self) -> bool:
        return self.is_active and self.is_approved


@dataclass(frozen=True)
class NewBooking:
    """A validated booking ready to be written."""

    rental_id: uuid.UUID
    guest_id: uuid.UUID
    check_in_date: date
    check_out_date: date
    number_of_guests: int
    pricing: PriceBreakdown
    guest_message: str | None = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    status: BookingStatus = BookingStatus.PENDING
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class BookingRecord:
    """A stored booking together with its rental's host."""

    id: uuid.UUID
    rental_id: uuid.UUID
    host_id: uuid.UUID
    guest_id: uuid.UUID
    check_in_date: date
    check_out_date: date
    number_of_guests: int
    status: BookingStatus
    pricing: PriceBreakdown
    guest_message: str | None
    created_at: datetime
    cancelled_at: datetime | None
    version: int

    # Flat accessors used by response schemas
    @property
    def price_per_night(self) -> Decimal:
        return self.pricing.price_per_night

    @property
    def number_of_nights(self) -> int:
        return self.pricing.number_of_nights

    @property
    def subtotal(self) -> Decimal:
        return self.pricing.subtotal

    @property
    def cleaning_fee(self) -> Decimal:
        return self.pricing.cleaning_fee

    @property
    def service_fee(self) -> Decimal:
        return self.pricing.service_fee

    @property
    def total_price(self) -> Decimal:
        return self.pricing.total_price
