"""Exceptions raised by the booking core.

Validation and persistence errors reach the caller. External scheduling
errors are caught by the orchestrator and only ever show up in the audit log.
"""

from __future__ import annotations

from typing import Any


class BookingError(Exception):
    """Base class for all booking-core errors."""


# ── Validation ───────────────────────────────────────────────────────


class BookingValidationError(BookingError):
    """A referenced entity is missing or the booking is in the wrong state."""


class CustomerNotFound(BookingValidationError):
    def __init__(self, message: str = "Customer not found") -> None:
        super().__init__(message)


class TattooRequestNotFound(BookingValidationError):
    def __init__(self, message: str = "Tattoo request not found") -> None:
        super().__init__(message)


class TattooRequestMismatch(BookingValidationError):
    def __init__(self, message: str = "Tattoo request belongs to a different customer") -> None:
        super().__init__(message)


class BookingNotFound(BookingValidationError):
    def __init__(self, message: str = "Booking not found") -> None:
        super().__init__(message)


class InvalidBookingState(BookingValidationError):
    """Raised e.g. when cancelling a booking that is already cancelled."""


# ── Persistence ──────────────────────────────────────────────────────


class PersistenceError(BookingError):
    """The local store could not complete a write."""


class ConcurrentUpdateError(PersistenceError):
    """The row changed between read and write (version mismatch)."""

    def __init__(self, appointment_id: Any, expected_version: int) -> None:
        super().__init__(
            f"Booking {appointment_id} was modified concurrently (expected version {expected_version})"
        )
        self.appointment_id = appointment_id
        self.expected_version = expected_version


# ── External scheduling provider ─────────────────────────────────────


class ExternalServiceError(BookingError):
    """Square rejected the call or could not be reached."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        errors: list[dict[str, Any]] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.errors = errors or []


class ExternalTimeoutError(ExternalServiceError):
    """A Square call exceeded its time budget."""
