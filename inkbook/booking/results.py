"""Result types returned by the booking orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from inkbook.integrations.square.schemas import ExternalBooking
from inkbook.models.appointment import Appointment


@dataclass
class ExternalSyncOutcome:
    """What happened on the Square side of a two-step booking write.

    ``attempted`` is False when no external call was made at all.
    """

    attempted: bool = False
    booking: ExternalBooking | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.booking is not None

    @property
    def failed(self) -> bool:
        return self.attempted and self.booking is None

    @classmethod
    def skipped(cls) -> ExternalSyncOutcome:
        return cls()

    @classmethod
    def success(cls, booking: ExternalBooking) -> ExternalSyncOutcome:
        return cls(attempted=True, booking=booking)

    @classmethod
    def failure(cls, error: str) -> ExternalSyncOutcome:
        return cls(attempted=True, error=error)


@dataclass
class BookingResult:
    success: bool
    booking: Appointment
    external_booking: ExternalBooking | None = None


@dataclass
class BookingUpdateResult:
    success: bool
    booking: Appointment
    external_booking_updated: ExternalBooking | None = None


@dataclass
class BookingCancellationResult:
    success: bool
    booking: Appointment
    external_cancelled: bool = False


@dataclass
class AvailabilityResult:
    """Availability for one day. Slot computation is not implemented yet."""

    success: bool
    date: str
    available_slots: list[Any] = field(default_factory=list)
