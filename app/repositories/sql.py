"""SQLAlchemy-backed repositories.

Create is serialized per rental twice over: the rental row is locked
``FOR UPDATE`` for the length of the insert transaction, and the
``ex_bookings_rental_no_overlap`` exclusion constraint rejects any overlapping
PENDING/CONFIRMED row that still gets through. Status updates rely on the
mapper's ``version_id_col`` so a concurrent writer surfaces as ``StaleDataError``.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from app.database import session_scope
from app.domain.availability import BLOCKING_STATUSES
from app.domain.booking_state import BookingStatus
from app.domain.pricing import PriceBreakdown, to_money
from app.domain.records import BookingRecord, NewBooking, RentalSnapshot
from app.models.booking import Booking
from app.models.rental import Rental
from app.repositories.base import (
    BookingOverlapError,
    BookingRepository,
    RentalDirectory,
    RentalUnavailableError,
    StaleBookingError,
)

logger = logging.getLogger(__name__)

# PostgreSQL SQLSTATE codes
EXCLUSION_VIOLATION = "23P01"
UNIQUE_VIOLATION = "23505"

_BLOCKING_VALUES = [s.value for s in BLOCKING_STATUSES]


def _sqlstate(exc: IntegrityError) -> str | None:
    # asyncpg errors arrive wrapped by the DBAPI adapter
    for err in (exc.orig, getattr(exc.orig, "__cause__", None)):
        code = getattr(err, "sqlstate", None) or getattr(err, "pgcode", None)
        if code:
            return code
    return None


def _to_record(booking: Booking, host_id: uuid.UUID) -> BookingRecord:
    return BookingRecord(
        id=booking.id,
        rental_id=booking.rental_id,
        host_id=host_id,
        guest_id=booking.guest_id,
        check_in_date=booking.check_in_date,
        check_out_date=booking.check_out_date,
        number_of_guests=booking.number_of_guests,
        status=BookingStatus(booking.status),
        pricing=PriceBreakdown(
            price_per_night=to_money(booking.price_per_night),
            number_of_nights=booking.number_of_nights,
            subtotal=to_money(booking.subtotal),
            cleaning_fee=to_money(booking.cleaning_fee),
            service_fee=to_money(booking.service_fee),
            total_price=to_money(booking.total_price),
        ),
        guest_message=booking.guest_message,
        created_at=booking.created_at,
        cancelled_at=booking.cancelled_at,
        version=booking.version,
    )


class SqlRentalDirectory(RentalDirectory):
    """Reads rentals from the ``rentals`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_rental(self, rental_id: uuid.UUID) -> RentalSnapshot | None:
        async with self._session_factory() as session:
            result = await session.execute(select(Rental).where(Rental.id == rental_id))
            rental = result.scalar_one_or_none()
            if rental is None:
                return None
            return RentalSnapshot(
                id=rental.id,
                host_id=rental.host_id,
                price_per_night=rental.price_per_night,
                cleaning_fee=rental.cleaning_fee,
                security_deposit=rental.security_deposit,
                max_guests=rental.max_guests,
                is_active=rental.is_active,
                is_approved=rental.is_approved,
            )


class SqlBookingRepository(BookingRepository):
    """Bookings stored in PostgreSQL."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @staticmethod
    def _with_host():
        return select(Booking, Rental.host_id).join(Rental, Booking.rental_id == Rental.id)

    @staticmethod
    def _overlap_query(rental_id: uuid.UUID, check_in: date, check_out: date):
        return select(Booking).where(
            Booking.rental_id == rental_id,
            Booking.status.in_(_BLOCKING_VALUES),
            Booking.check_in_date < check_out,
            Booking.check_out_date > check_in,
        )

    async def get_booking(self, booking_id: uuid.UUID) -> BookingRecord | None:
        async with self._session_factory() as session:
            result = await session.execute(self._with_host().where(Booking.id == booking_id))
            row = result.one_or_none()
            return _to_record(*row) if row else None

    async def find_overlapping(
        self, rental_id: uuid.UUID, check_in: date, check_out: date
    ) -> list[BookingRecord]:
        async with self._session_factory() as session:
            query = (
                self._overlap_query(rental_id, check_in, check_out)
                .add_columns(Rental.host_id)
                .join(Rental, Booking.rental_id == Rental.id)
            )
            result = await session.execute(query)
            return [_to_record(booking, host_id) for booking, host_id in result.all()]

    async def insert_booking(self, booking: NewBooking) -> BookingRecord:
        try:
            async with session_scope(self._session_factory) as session:
                # Serialize creates for this rental until commit
                rental_result = await session.execute(
                    select(Rental.host_id, Rental.is_active, Rental.is_approved)
                    .where(Rental.id == booking.rental_id)
                    .with_for_update()
                )
                rental_row = rental_result.one_or_none()
                if rental_row is None:
                    raise RentalUnavailableError(booking.rental_id, missing=True)
                host_id, is_active, is_approved = rental_row
                if not (is_active and is_approved):
                    raise RentalUnavailableError(booking.rental_id)

                overlap = await session.execute(
                    self._overlap_query(
                        booking.rental_id, booking.check_in_date, booking.check_out_date
                    ).limit(1)
                )
                if overlap.scalar_one_or_none() is not None:
                    raise BookingOverlapError(
                        booking.rental_id, booking.check_in_date, booking.check_out_date
                    )

                row = Booking(
                    id=booking.id,
                    rental_id=booking.rental_id,
                    guest_id=booking.guest_id,
                    check_in_date=booking.check_in_date,
                    check_out_date=booking.check_out_date,
                    number_of_guests=booking.number_of_guests,
                    price_per_night=booking.pricing.price_per_night,
                    number_of_nights=booking.pricing.number_of_nights,
                    subtotal=booking.pricing.subtotal,
                    cleaning_fee=booking.pricing.cleaning_fee,
                    service_fee=booking.pricing.service_fee,
                    total_price=booking.pricing.total_price,
                    status=booking.status.value,
                    guest_message=booking.guest_message,
                    created_at=booking.created_at,
                )
                session.add(row)
                await session.flush()
                return _to_record(row, host_id)
        except IntegrityError as exc:
            if _sqlstate(exc) in (EXCLUSION_VIOLATION, UNIQUE_VIOLATION):
                logger.warning(
                    f"Overlap constraint rejected booking for rental {booking.rental_id} "
                    f"({booking.check_in_date}..{booking.check_out_date})"
                )
                raise BookingOverlapError(
                    booking.rental_id, booking.check_in_date, booking.check_out_date
                ) from exc
            raise

    async def update_status(
        self,
        booking_id: uuid.UUID,
        expected_version: int,
        status: BookingStatus,
        cancelled_at: datetime | None = None,
    ) -> BookingRecord:
        try:
            async with session_scope(self._session_factory) as session:
                result = await session.execute(self._with_host().where(Booking.id == booking_id))
                row = result.one_or_none()
                if row is None or row[0].version != expected_version:
                    raise StaleBookingError(booking_id, expected_version)
                booking, host_id = row

                booking.status = BookingStatus(status).value
                if cancelled_at is not None:
                    booking.cancelled_at = cancelled_at
                # Emits UPDATE ... WHERE version = :expected
                await session.flush()
                return _to_record(booking, host_id)
        except StaleDataError as exc:
            raise StaleBookingError(booking_id, expected_version) from exc

    async def _list(self, *criteria, status: BookingStatus | None = None) -> list[BookingRecord]:
        query = self._with_host().where(*criteria)
        if status is not None:
            query = query.where(Booking.status == BookingStatus(status).value)
        query = query.order_by(Booking.created_at.desc())
        async with self._session_factory() as session:
            result = await session.execute(query)
            return [_to_record(booking, host_id) for booking, host_id in result.all()]

    async def list_for_guest(
        self, guest_id: uuid.UUID, status: BookingStatus | None = None
    ) -> list[BookingRecord]:
        return await self._list(Booking.guest_id == guest_id, status=status)

    async def list_for_host(
        self, host_id: uuid.UUID, status: BookingStatus | None = None
    ) -> list[BookingRecord]:
        return await self._list(Rental.host_id == host_id, status=status)

    async def list_completable(self, today: date) -> list[BookingRecord]:
        return await self._list(
            Booking.status == BookingStatus.CONFIRMED.value,
            Booking.check_out_date <= today,
        )

    async def count_active_for_rental(self, rental_id: uuid.UUID, today: date) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                select(func.count())
                .select_from(Booking)
                .where(
                    Booking.rental_id == rental_id,
                    Booking.status.in_(_BLOCKING_VALUES),
                    Booking.check_out_date >= today,
                )
            )
            return result.scalar() or 0
