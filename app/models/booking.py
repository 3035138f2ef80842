"""Booking database model."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import UUID, ExcludeConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base

if TYPE_CHECKING:
    from app.models.rental import Rental

BOOKING_STATUS_VALUES = ("PENDING", "CONFIRMED", "DECLINED", "CANCELLED", "COMPLETED")

# Columns a booking may change after creation
MUTABLE_BOOKING_COLUMNS = frozenset({"status", "cancelled_at", "version"})


class Booking(Base):
    """Booking model."""

    __tablename__ = "bookings"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    rental_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("rentals.id"), nullable=False, index=True
    )
    guest_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)

    # Dates (check-out is exclusive)
    check_in_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    check_out_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    number_of_guests: Mapped[int] = mapped_column(Integer, nullable=False)

    # Price snapshot taken at creation
    price_per_night: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    number_of_nights: Mapped[int] = mapped_column(Integer, nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    cleaning_fee: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=0)
    service_fee: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    # Status
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDING", index=True)
    guest_message: Mapped[str | None] = mapped_column(Text)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Optimistic concurrency counter
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # Relationships
    rental: Mapped["Rental"] = relationship("Rental", back_populates="bookings")

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint("check_out_date > check_in_date", name="ck_bookings_min_one_night"),
        CheckConstraint("number_of_guests > 0", name="ck_bookings_guests_positive"),
        CheckConstraint(
            f"status IN ({', '.join(repr(s) for s in BOOKING_STATUS_VALUES)})",
            name="ck_bookings_status",
        ),
        # No two holding bookings on the same rental may share a night
        ExcludeConstraint(
            ("rental_id", "="),
            (func.daterange(text("check_in_date"), text("check_out_date"), text("'[)'")), "&&"),
            name="ex_bookings_rental_no_overlap",
            using="gist",
            where=text("status IN ('PENDING', 'CONFIRMED')"),
        ),
    )
