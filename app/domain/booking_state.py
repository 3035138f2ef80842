"""Booking state machine.

States:
- PENDING: Requested by a guest, awaiting the host
- CONFIRMED: Accepted by the host
- DECLINED: Rejected by the host (terminal)
- CANCELLED: Withdrawn by the guest, or by either party once confirmed (terminal)
- COMPLETED: Stay finished, set by the system (terminal)
"""

from enum import Enum

from app.core.exceptions import InvalidBookingTransition


class BookingStatus(str, Enum):
    """Booking status values as stored."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    DECLINED = "DECLINED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


class ActorRole(str, Enum):
    """Who is asking for a transition, relative to the booking."""

    GUEST = "GUEST"
    HOST = "HOST"
    SYSTEM = "SYSTEM"


# (from, to) -> roles allowed to take that edge
BOOKING_TRANSITIONS: dict[tuple[BookingStatus, BookingStatus], frozenset[ActorRole]] = {
    (BookingStatus.PENDING, BookingStatus.CONFIRMED): frozenset({ActorRole.HOST}),
    (BookingStatus.PENDING, BookingStatus.DECLINED): frozenset({ActorRole.HOST}),
    # Hosts decline pending requests rather than cancelling them
    (BookingStatus.PENDING, BookingStatus.CANCELLED): frozenset({ActorRole.GUEST}),
    (BookingStatus.CONFIRMED, BookingStatus.CANCELLED): frozenset(
        {ActorRole.GUEST, ActorRole.HOST}
    ),
    (BookingStatus.CONFIRMED, BookingStatus.COMPLETED): frozenset({ActorRole.SYSTEM}),
}

TERMINAL_STATUSES = frozenset(
    {BookingStatus.DECLINED, BookingStatus.CANCELLED, BookingStatus.COMPLETED}
)


def allowed_actors(current: BookingStatus, target: BookingStatus) -> frozenset[ActorRole]:
    """Roles permitted to move a booking from current to target (empty if no edge)."""
    return BOOKING_TRANSITIONS.get((BookingStatus(current), BookingStatus(target)), frozenset())


def can_transition(current: BookingStatus, target: BookingStatus, actor: ActorRole) -> bool:
    return actor in allowed_actors(current, target)


def assert_booking_transition(
    current: BookingStatus, target: BookingStatus, actor: ActorRole
) -> None:
    """Validate a booking state transition for the acting role.

    Args:
        current: Current booking status
        target: Requested booking status
        actor: Role of the caller relative to the booking

    Raises:
        InvalidBookingTransition: If the edge does not exist or the role may not take it
    """
    if not can_transition(current, target, actor):
        raise InvalidBookingTransition(BookingStatus(current).value, BookingStatus(target).value)


def is_terminal(status: BookingStatus) -> bool:
    return BookingStatus(status) in TERMINAL_STATUSES
