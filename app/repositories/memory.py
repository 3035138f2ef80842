"""In-memory repositories.

Same contracts as the SQL implementations. The per-rental lock lives inside
the store and is only held for the check-and-insert step, the way a database
holds a row lock for the length of one transaction.
"""

from __future__ import annotations

import asyncio
import dataclasses
import uuid
from collections import defaultdict
from datetime import date, datetime

from app.domain.availability import BLOCKING_STATUSES, find_conflicts
from app.domain.booking_state import BookingStatus
from app.domain.records import BookingRecord, NewBooking, RentalSnapshot
from app.repositories.base import (
    BookingOverlapError,
    BookingRepository,
    RentalDirectory,
    RentalUnavailableError,
    StaleBookingError,
)


class InMemoryRentalDirectory(RentalDirectory):
    """Dict-backed rental directory."""

    def __init__(self, rentals: list[RentalSnapshot] | None = None) -> None:
        self._rentals: dict[uuid.UUID, RentalSnapshot] = {r.id: r for r in rentals or []}

    def add(self, rental: RentalSnapshot) -> RentalSnapshot:
        self._rentals[rental.id] = rental
        return rental

    def update(self, rental_id: uuid.UUID, **changes) -> RentalSnapshot:
        """Replace rental fields (e.g. a host changing the nightly rate)."""
        rental = dataclasses.replace(self._rentals[rental_id], **changes)
        self._rentals[rental_id] = rental
        return rental

    def remove(self, rental_id: uuid.UUID) -> None:
        self._rentals.pop(rental_id, None)

    def lookup(self, rental_id: uuid.UUID) -> RentalSnapshot | None:
        return self._rentals.get(rental_id)

    async def get_rental(self, rental_id: uuid.UUID) -> RentalSnapshot | None:
        await asyncio.sleep(0)
        return self._rentals.get(rental_id)


class InMemoryBookingRepository(BookingRepository):
    """List-backed booking store with constraint-like overlap protection."""

    def __init__(self, rentals: InMemoryRentalDirectory) -> None:
        self._rentals = rentals
        self._bookings: dict[uuid.UUID, BookingRecord] = {}
        self._rental_locks: defaultdict[uuid.UUID, asyncio.Lock] = defaultdict(asyncio.Lock)

    def _newest_first(self, bookings) -> list[BookingRecord]:
        return sorted(bookings, key=lambda b: b.created_at, reverse=True)

    async def get_booking(self, booking_id: uuid.UUID) -> BookingRecord | None:
        await asyncio.sleep(0)
        return self._bookings.get(booking_id)

    async def find_overlapping(
        self, rental_id: uuid.UUID, check_in: date, check_out: date
    ) -> list[BookingRecord]:
        await asyncio.sleep(0)
        candidates = [b for b in self._bookings.values() if b.rental_id == rental_id]
        return find_conflicts(candidates, check_in, check_out)

    async def insert_booking(self, booking: NewBooking) -> BookingRecord:
        async with self._rental_locks[booking.rental_id]:
            rental = self._rentals.lookup(booking.rental_id)
            if rental is None:
                raise RentalUnavailableError(booking.rental_id, missing=True)
            if not rental.is_bookable:
                raise RentalUnavailableError(booking.rental_id)
            candidates = [b for b in self._bookings.values() if b.rental_id == booking.rental_id]
            if find_conflicts(candidates, booking.check_in_date, booking.check_out_date):
                raise BookingOverlapError(
                    booking.rental_id, booking.check_in_date, booking.check_out_date
                )
            record = BookingRecord(
                id=booking.id,
                rental_id=booking.rental_id,
                host_id=rental.host_id,
                guest_id=booking.guest_id,
                check_in_date=booking.check_in_date,
                check_out_date=booking.check_out_date,
                number_of_guests=booking.number_of_guests,
                status=booking.status,
                pricing=booking.pricing,
                guest_message=booking.guest_message,
                created_at=booking.created_at,
                cancelled_at=None,
                version=1,
            )
            # Simulated write latency while the lock is held
            await asyncio.sleep(0)
            self._bookings[record.id] = record
            return record

    async def update_status(
        self,
        booking_id: uuid.UUID,
        expected_version: int,
        status: BookingStatus,
        cancelled_at: datetime | None = None,
    ) -> BookingRecord:
        await asyncio.sleep(0)
        current = self._bookings.get(booking_id)
        if current is None or current.version != expected_version:
            raise StaleBookingError(booking_id, expected_version)
        updated = dataclasses.replace(
            current,
            status=BookingStatus(status),
            cancelled_at=cancelled_at if cancelled_at is not None else current.cancelled_at,
            version=current.version + 1,
        )
        self._bookings[booking_id] = updated
        return updated

    async def list_for_guest(
        self, guest_id: uuid.UUID, status: BookingStatus | None = None
    ) -> list[BookingRecord]:
        await asyncio.sleep(0)
        return self._newest_first(
            b
            for b in self._bookings.values()
            if b.guest_id == guest_id and (status is None or b.status == status)
        )

    async def list_for_host(
        self, host_id: uuid.UUID, status: BookingStatus | None = None
    ) -> list[BookingRecord]:
        await asyncio.sleep(0)
        return self._newest_first(
            b
            for b in self._bookings.values()
            if b.host_id == host_id and (status is None or b.status == status)
        )

    async def list_completable(self, today: date) -> list[BookingRecord]:
        await asyncio.sleep(0)
        return [
            b
            for b in self._bookings.values()
            if b.status == BookingStatus.CONFIRMED and b.check_out_date <= today
        ]

    async def count_active_for_rental(self, rental_id: uuid.UUID, today: date) -> int:
        await asyncio.sleep(0)
        return sum(
            1
            for b in self._bookings.values()
            if b.rental_id == rental_id
            and b.status in BLOCKING_STATUSES
            and b.check_out_date >= today
        )
