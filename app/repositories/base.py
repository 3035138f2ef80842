"""Storage interfaces the booking service depends on.

Implementations must provide two guarantees:
- ``insert_booking`` checks for overlapping blocking bookings and writes the new
  row as one serializable unit, raising ``BookingOverlapError`` when it loses.
- ``update_status`` only applies when the stored version still equals
  ``expected_version``, raising ``StaleBookingError`` otherwise.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from datetime import date, datetime

from app.domain.booking_state import BookingStatus
from app.domain.records import BookingRecord, NewBooking, RentalSnapshot


class StorageError(Exception):
    """Base class for storage-level failures the service translates."""


class BookingOverlapError(StorageError):
    """The requested range overlaps a blocking booking for the same rental."""

    def __init__(self, rental_id: uuid.UUID, check_in: date, check_out: date) -> None:
        self.rental_id = rental_id
        self.check_in = check_in
        self.check_out = check_out
        super().__init__(
            f"Range {check_in.isoformat()}..{check_out.isoformat()} overlaps an existing "
            f"booking for rental {rental_id}"
        )


class RentalUnavailableError(StorageError):
    """The rental vanished or stopped being bookable before the insert committed."""

    def __init__(self, rental_id: uuid.UUID, missing: bool = False) -> None:
        self.rental_id = rental_id
        self.missing = missing
        state = "no longer exists" if missing else "is no longer bookable"
        super().__init__(f"Rental {rental_id} {state}")


class StaleBookingError(StorageError):
    """The booking changed since it was read."""

    def __init__(self, booking_id: uuid.UUID, expected_version: int) -> None:
        self.booking_id = booking_id
        self.expected_version = expected_version
        super().__init__(f"Booking {booking_id} is no longer at version {expected_version}")


class RentalDirectory(ABC):
    """Read-only access to rental listings."""

    @abstractmethod
    async def get_rental(self, rental_id: uuid.UUID) -> RentalSnapshot | None:
        """Return the rental or None if it does not exist."""


class BookingRepository(ABC):
    """Durable storage of bookings."""

    @abstractmethod
    async def get_booking(self, booking_id: uuid.UUID) -> BookingRecord | None:
        """Return the booking (with its rental's host) or None."""

    @abstractmethod
    async def find_overlapping(
        self, rental_id: uuid.UUID, check_in: date, check_out: date
    ) -> list[BookingRecord]:
        """Return PENDING/CONFIRMED bookings for the rental overlapping [check_in, check_out)."""

    @abstractmethod
    async def insert_booking(self, booking: NewBooking) -> BookingRecord:
        """Atomically re-check the rental and overlap, then insert.

        Raises:
            RentalUnavailableError: If the rental is gone, inactive or unapproved
            BookingOverlapError: If a blocking booking overlaps the range
        """

    @abstractmethod
    async def update_status(
        self,
        booking_id: uuid.UUID,
        expected_version: int,
        status: BookingStatus,
        cancelled_at: datetime | None = None,
    ) -> BookingRecord:
        """Set status (and cancellation time) if the version still matches.

        Raises:
            StaleBookingError: If another writer got there first
        """

    @abstractmethod
    async def list_for_guest(
        self, guest_id: uuid.UUID, status: BookingStatus | None = None
    ) -> list[BookingRecord]:
        """Bookings made by the guest, newest first."""

    @abstractmethod
    async def list_for_host(
        self, host_id: uuid.UUID, status: BookingStatus | None = None
    ) -> list[BookingRecord]:
        """Bookings on rentals owned by the host, newest first."""

    @abstractmethod
    async def list_completable(self, today: date) -> list[BookingRecord]:
        """CONFIRMED bookings whose checkout date is on or before today."""

    @abstractmethod
    async def count_active_for_rental(self, rental_id: uuid.UUID, today: date) -> int:
        """PENDING/CONFIRMED bookings for the rental ending on or after today."""
