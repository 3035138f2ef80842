"""Booking lifecycle service.

Owns booking creation and every status change:
- create: rental checks, stay length, availability, pricing, atomic insert
- status updates: guest/host/system role resolved per booking, then checked
  against the transition table in ``app.domain.booking_state``
- status writes are optimistic; a lost race reloads the booking and
  re-evaluates the transition against the state that won

The service holds no state between calls. Everything lives behind the
injected ``RentalDirectory`` and ``BookingRepository``.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum

from app.core.exceptions import (
    BadRequestError,
    DatesNotAvailable,
    ErrorCode,
    ForbiddenError,
    NotFoundError,
    RentalNotAvailable,
)
from app.domain.booking_state import ActorRole, BookingStatus, assert_booking_transition
from app.domain.pricing import (
    SERVICE_FEE_PERCENT,
    PriceBreakdown,
    calculate_price_breakdown,
    count_nights,
)
from app.domain.records import BookingRecord, NewBooking, RentalSnapshot
from app.repositories.base import (
    BookingOverlapError,
    BookingRepository,
    RentalDirectory,
    RentalUnavailableError,
    StaleBookingError,
)
from app.schemas.booking import BookingCalculateRequest, BookingCreate

logger = logging.getLogger(__name__)


class BookingListRole(str, Enum):
    """Which side of the booking a listing is for."""

    GUEST = "GUEST"
    HOST = "HOST"


@dataclass(frozen=True)
class BookingQuote:
    """Result of pricing a stay without booking it."""

    available: bool
    price_breakdown: PriceBreakdown | None = None
    security_deposit: Decimal | None = None
    unavailable_reason: str | None = None


def _today() -> date:
    return datetime.now(UTC).date()


class BookingService:
    """Booking state machine over injected storage."""

    def __init__(
        self,
        rentals: RentalDirectory,
        bookings: BookingRepository,
        service_fee_percent: Decimal = SERVICE_FEE_PERCENT,
        max_update_attempts: int = 3,
    ) -> None:
        self.rentals = rentals
        self.bookings = bookings
        self.service_fee_percent = service_fee_percent
        self.max_update_attempts = max(1, max_update_attempts)

    # ==================== CREATE ====================

    async def _get_bookable_rental(self, rental_id: uuid.UUID) -> RentalSnapshot:
        rental = await self.rentals.get_rental(rental_id)
        if rental is None:
            raise NotFoundError("Rental", str(rental_id))
        if not rental.is_bookable:
            raise RentalNotAvailable()
        return rental

    def _assert_capacity(self, rental: RentalSnapshot, number_of_guests: int) -> None:
        if number_of_guests > rental.max_guests:
            raise BadRequestError(f"Maximum guests allowed is {rental.max_guests}")

    async def create_booking(self, guest_id: uuid.UUID, data: BookingCreate) -> BookingRecord:
        """Create a PENDING booking for a guest.

        Args:
            guest_id: Verified subject of the requesting guest
            data: Validated booking request

        Returns:
            BookingRecord: The stored booking with its price snapshot

        Raises:
            NotFoundError: Rental does not exist
            BadRequestError: Rental not bookable, self-booking, too many guests,
                or a stay shorter than one night
            ConflictError: Dates overlap a pending or confirmed booking
        """
        rental = await self._get_bookable_rental(data.rental_id)

        if rental.host_id == guest_id:
            raise BadRequestError("You cannot book your own rental")

        self._assert_capacity(rental, data.number_of_guests)

        # Reject zero-night ranges before touching the calendar
        count_nights(data.check_in_date, data.check_out_date)

        conflicts = await self.bookings.find_overlapping(
            rental.id, data.check_in_date, data.check_out_date
        )
        if conflicts:
            raise DatesNotAvailable()

        pricing = calculate_price_breakdown(
            rental.price_per_night,
            rental.cleaning_fee,
            data.check_in_date,
            data.check_out_date,
            service_fee_percent=self.service_fee_percent,
        )

        new_booking = NewBooking(
            rental_id=rental.id,
            guest_id=guest_id,
            check_in_date=data.check_in_date,
            check_out_date=data.check_out_date,
            number_of_guests=data.number_of_guests,
            pricing=pricing,
            guest_message=data.guest_message,
        )

        try:
            booking = await self.bookings.insert_booking(new_booking)
        except BookingOverlapError as exc:
            # Another request took the dates between our check and the insert
            logger.warning(f"Booking create lost overlap race: {exc}")
            raise DatesNotAvailable() from exc
        except RentalUnavailableError as exc:
            # Rental changed between the directory read and the locked insert
            logger.warning(f"Booking create found rental unavailable: {exc}")
            if exc.missing:
                raise NotFoundError("Rental", str(rental.id)) from exc
            raise RentalNotAvailable() from exc

        logger.info(
            f"Booking created: id={booking.id} rental={booking.rental_id} "
            f"guest={guest_id} nights={pricing.number_of_nights} total={pricing.total_price}"
        )
        return booking

    async def quote_booking(self, request: BookingCalculateRequest) -> BookingQuote:
        """Price a stay and report availability without writing anything."""
        rental = await self.rentals.get_rental(request.rental_id)
        if rental is None:
            raise NotFoundError("Rental", str(request.rental_id))
        if not rental.is_bookable:
            return BookingQuote(available=False, unavailable_reason="Rental is not available for booking")

        if request.number_of_guests > rental.max_guests:
            return BookingQuote(
                available=False,
                unavailable_reason=f"Maximum guests allowed is {rental.max_guests}",
            )

        try:
            pricing = calculate_price_breakdown(
                rental.price_per_night,
                rental.cleaning_fee,
                request.check_in_date,
                request.check_out_date,
                service_fee_percent=self.service_fee_percent,
            )
        except BadRequestError as exc:
            return BookingQuote(available=False, unavailable_reason=exc.detail)

        conflicts = await self.bookings.find_overlapping(
            rental.id, request.check_in_date, request.check_out_date
        )
        if conflicts:
            return BookingQuote(
                available=False,
                price_breakdown=pricing,
                unavailable_reason="Rental is not available for these dates",
            )

        return BookingQuote(
            available=True,
            price_breakdown=pricing,
            security_deposit=rental.security_deposit,
        )

    # ==================== READ ====================

    async def _load(self, booking_id: uuid.UUID) -> BookingRecord:
        booking = await self.bookings.get_booking(booking_id)
        if booking is None:
            raise NotFoundError("Booking", str(booking_id))
        return booking

    @staticmethod
    def _role_of(booking: BookingRecord, user_id: uuid.UUID) -> ActorRole:
        if booking.guest_id == user_id:
            return ActorRole.GUEST
        if booking.host_id == user_id:
            return ActorRole.HOST
        raise ForbiddenError("Access denied")

    async def get_booking_by_id(
        self, booking_id: uuid.UUID, requesting_user_id: uuid.UUID
    ) -> BookingRecord:
        """Return a booking visible to its guest or its rental's host."""
        booking = await self._load(booking_id)
        self._role_of(booking, requesting_user_id)
        return booking

    async def list_bookings_for_user(
        self,
        user_id: uuid.UUID,
        role: BookingListRole = BookingListRole.GUEST,
        status: BookingStatus | None = None,
    ) -> list[BookingRecord]:
        """Bookings the user made (GUEST) or received on their rentals (HOST)."""
        if BookingListRole(role) is BookingListRole.HOST:
            return await self.bookings.list_for_host(user_id, status=status)
        return await self.bookings.list_for_guest(user_id, status=status)

    # ==================== TRANSITIONS ====================

    async def _apply_transition(
        self,
        booking_id: uuid.UUID,
        target: BookingStatus,
        resolve_role,
        precondition=None,
    ) -> BookingRecord:
        """Validate and write a transition, re-validating after a lost race."""
        target = BookingStatus(target)
        booking = await self._load(booking_id)

        for attempt in range(1, self.max_update_attempts + 1):
            actor = resolve_role(booking)
            assert_booking_transition(booking.status, target, actor)
            if precondition is not None:
                precondition(booking)

            cancelled_at = datetime.now(UTC) if target is BookingStatus.CANCELLED else None
            try:
                updated = await self.bookings.update_status(
                    booking.id, booking.version, target, cancelled_at=cancelled_at
                )
            except StaleBookingError:
                logger.warning(
                    f"Concurrent update on booking {booking_id} "
                    f"(attempt {attempt}/{self.max_update_attempts}), re-evaluating"
                )
                booking = await self._load(booking_id)
                continue

            logger.info(
                f"Booking {booking_id} status changed: {booking.status.value} -> "
                f"{target.value} by {actor.value}"
            )
            return updated

        # Still losing after every attempt; report against the latest state
        raise BadRequestError(
            f"Booking {booking_id} is being modified concurrently; "
            f"current status is {booking.status.value}"
        )

    async def update_booking_status(
        self,
        booking_id: uuid.UUID,
        acting_user_id: uuid.UUID,
        requested_status: BookingStatus,
    ) -> BookingRecord:
        """Apply a guest- or host-initiated status change.

        Raises:
            NotFoundError: Booking does not exist
            ForbiddenError: Caller is neither the guest nor the rental's host
            InvalidBookingTransition: Edge not allowed for the caller's role
        """
        return await self._apply_transition(
            booking_id,
            requested_status,
            lambda booking: self._role_of(booking, acting_user_id),
        )

    async def complete_booking(
        self, booking_id: uuid.UUID, today: date | None = None
    ) -> BookingRecord:
        """Mark a confirmed, finished stay as COMPLETED (system only).

        Called by the review flow and the scheduled completion sweep.
        """
        today = today or _today()

        def checkout_passed(booking: BookingRecord) -> None:
            if booking.check_out_date > today:
                raise BadRequestError("Booking cannot be completed before its checkout date")

        return await self._apply_transition(
            booking_id,
            BookingStatus.COMPLETED,
            lambda booking: ActorRole.SYSTEM,
            precondition=checkout_passed,
        )

    async def complete_finished_bookings(self, today: date | None = None) -> int:
        """Complete every confirmed booking whose checkout has passed.

        Bookings that change under us are skipped and picked up on the next run.
        """
        today = today or _today()
        completed = 0
        for booking in await self.bookings.list_completable(today):
            try:
                await self.complete_booking(booking.id, today=today)
            except BadRequestError as exc:
                logger.info(f"Skipping completion of booking {booking.id}: {exc.detail}")
                continue
            completed += 1

        logger.info(f"Completion sweep for {today.isoformat()}: {completed} booking(s) completed")
        return completed

    # ==================== RENTAL DIRECTORY SUPPORT ====================

    async def assert_rental_removable(self, rental_id: uuid.UUID, today: date | None = None) -> None:
        """Refuse removal of a rental that still has active or upcoming bookings."""
        active = await self.bookings.count_active_for_rental(rental_id, today or _today())
        if active:
            raise BadRequestError(
                "Cannot delete rental with active or future bookings",
                code=ErrorCode.HAS_ACTIVE_BOOKINGS,
            )
