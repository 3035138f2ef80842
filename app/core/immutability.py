"""Immutability enforcement for booking records using SQLAlchemy events."""

import logging
from datetime import UTC, datetime

from sqlalchemy import event, inspect

from app.core.exceptions import BadRequestError

logger = logging.getLogger(__name__)

_registered = False


class ImmutabilityViolationError(BadRequestError):
    """Raised when attempting to rewrite frozen booking fields."""

    def __init__(self, model_name: str, operation: str, record_id: str):
        self.model_name = model_name
        self.operation = operation
        self.record_id = record_id
        super().__init__(
            f"Immutability violation: Cannot {operation} {model_name} record {record_id}. "
            "Only the status and cancellation time of a booking may change."
        )


def _log_immutability_violation(model_name: str, operation: str, record_id: str) -> None:
    """Log immutability violation for audit purposes."""
    logger.error(
        f"IMMUTABILITY_VIOLATION: Attempted to {operation} {model_name} "
        f"record_id={record_id} at {datetime.now(UTC).isoformat()}"
    )


def changed_frozen_columns(target, mutable_columns: frozenset[str]) -> list[str]:
    """Names of modified column attributes outside mutable_columns."""
    state = inspect(target)
    return [
        attr.key
        for attr in state.mapper.column_attrs
        if attr.key not in mutable_columns and state.attrs[attr.key].history.has_changes()
    ]


def register_immutability_enforcement() -> None:
    """Register SQLAlchemy event listeners for booking immutability.

    Safe to call more than once; listeners are attached the first time only.
    """
    global _registered
    if _registered:
        return

    from app.models.booking import MUTABLE_BOOKING_COLUMNS, Booking

    # ============ Booking: status-only UPDATE, no DELETE ============

    @event.listens_for(Booking, "before_update")
    def prevent_snapshot_rewrite(mapper, connection, target):
        """Allow only status, cancellation time and version to change."""
        frozen = changed_frozen_columns(target, MUTABLE_BOOKING_COLUMNS)
        if frozen:
            operation = f"UPDATE ({', '.join(frozen)})"
            _log_immutability_violation("Booking", operation, str(target.id))
            raise ImmutabilityViolationError("Booking", operation, str(target.id))

    @event.listens_for(Booking, "before_delete")
    def prevent_booking_delete(mapper, connection, target):
        """Bookings are never hard-deleted."""
        _log_immutability_violation("Booking", "DELETE", str(target.id))
        raise ImmutabilityViolationError("Booking", "DELETE", str(target.id))

    _registered = True
    logger.info("Immutability enforcement registered for bookings")
