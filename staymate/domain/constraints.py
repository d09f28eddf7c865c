"""Domain-level rules for booking status transitions and capacity."""

from __future__ import annotations

from staymate.domain.errors import BookingValidationError, InvalidTransitionError
from staymate.domain.models import BookingStatus


ALLOWED_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.CANCELLED}),
    BookingStatus.CANCELLED: frozenset(),
}


def parse_booking_status(value: str) -> BookingStatus:
    try:
        return BookingStatus(value.strip().lower())
    except ValueError as exc:
        raise BookingValidationError(f"Unknown booking status: {value!r}") from exc


def validate_status_transition(current: BookingStatus, target: BookingStatus) -> None:
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransitionError(
            f"Cannot change booking from {current.value} to {target.value}"
        )


def holds_bed(status: BookingStatus) -> bool:
    """Only a confirmed booking owns a decremented bed."""
    return status is BookingStatus.CONFIRMED


def validate_total_beds(total_beds: int) -> None:
    if total_beds <= 0:
        raise BookingValidationError("total_beds must be > 0")
