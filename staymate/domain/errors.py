"""Booking domain failures shared by the service and controller layers."""

from __future__ import annotations


class BookingError(Exception):
    """Base booking workflow failure."""


class BookingValidationError(BookingError):
    """Raised when request inputs are malformed."""


class NotFoundError(BookingError):
    """Raised when a booking, room, hostel or mess does not exist."""


class NoAvailabilityError(BookingError):
    """Raised when no bed is free for the requested room type."""


class DuplicateSubscriptionError(BookingError):
    """Raised when the student already holds an active subscription to the mess."""


class InvalidTransitionError(BookingError):
    """Raised when a booking status change is not permitted."""


class PermissionDeniedError(BookingError):
    """Raised when the actor may not act on the booking or listing."""


class CapacityConflictError(BookingError):
    """Raised when a capacity edit would drop below beds already held."""
