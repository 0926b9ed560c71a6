"""Square Bookings integration — the external scheduling mirror."""

from inkbook.integrations.square.client import SquareBookingsClient
from inkbook.integrations.square.schemas import (
    BookingChanges,
    ExternalBooking,
    Reservation,
)

__all__ = ["BookingChanges", "ExternalBooking", "Reservation", "SquareBookingsClient"]
