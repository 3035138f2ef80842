"""Booking price calculation.

Rules:
- subtotal = nightly rate * nights
- service fee = 10% of the subtotal (cleaning fee is not charged a service fee)
- total = subtotal + cleaning fee + service fee
- the security deposit is a separate hold and is never part of the total

All amounts are Decimal, rounded to cents at the point each fee is derived.
"""

import math
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal

from app.core.exceptions import InvalidStayLength

SERVICE_FEE_PERCENT = Decimal("10.00")

CENT = Decimal("0.01")
ONE_DAY = timedelta(days=1)


@dataclass(frozen=True)
class PriceBreakdown:
    """Price snapshot taken when a booking is created."""

    price_per_night: Decimal
    number_of_nights: int
    subtotal: Decimal
    cleaning_fee: Decimal
    service_fee: Decimal
    total_price: Decimal


def to_money(value: Decimal | int | str | None) -> Decimal:
    """Coerce a stored money value to a cent-quantized Decimal (None -> 0.00)."""
    if value is None:
        return Decimal("0.00")
    if isinstance(value, float):
        raise TypeError("Money values must not be floats")
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def count_nights(check_in: date, check_out: date) -> int:
    """Number of nights in [check_in, check_out), rounding partial days up.

    Raises:
        InvalidStayLength: If the range is shorter than one night
    """
    nights = math.ceil((check_out - check_in) / ONE_DAY)
    if nights < 1:
        raise InvalidStayLength()
    return nights


def calculate_price_breakdown(
    price_per_night: Decimal,
    cleaning_fee: Decimal | None,
    check_in: date,
    check_out: date,
    service_fee_percent: Decimal = SERVICE_FEE_PERCENT,
) -> PriceBreakdown:
    """Calculate the full price breakdown for a stay.

    Args:
        price_per_night: Rental's current nightly rate
        cleaning_fee: Rental's one-time cleaning fee (None means no fee)
        check_in: First night of the stay
        check_out: Departure date (not a night of the stay)
        service_fee_percent: Platform fee as a percentage of the subtotal

    Returns:
        PriceBreakdown: Immutable snapshot of every amount
    """
    nights = count_nights(check_in, check_out)
    rate = to_money(price_per_night)
    cleaning = to_money(cleaning_fee)

    subtotal = (rate * nights).quantize(CENT, rounding=ROUND_HALF_UP)
    service_fee = (subtotal * service_fee_percent / Decimal("100")).quantize(
        CENT, rounding=ROUND_HALF_UP
    )

    return PriceBreakdown(
        price_per_night=rate,
        number_of_nights=nights,
        subtotal=subtotal,
        cleaning_fee=cleaning,
        service_fee=service_fee,
        total_price=subtotal + cleaning + service_fee,
    )
