"""Domain enums used across SQLAlchemy models and Pydantic schemas.

All enums use str mixin so values serialize to JSON and store as plain strings.
"""

from __future__ import annotations

from enum import Enum


class BookingType(str, Enum):
    """Kind of studio appointment — drives who may book it."""

    CONSULTATION = "consultation"
    DRAWING_CONSULTATION = "drawing_consultation"
    TATTOO_SESSION = "tattoo_session"

    @classmethod
    def anonymous_allowed(cls) -> frozenset[BookingType]:
        """Types that can be booked without a customer record."""
        return frozenset({cls.CONSULTATION, cls.DRAWING_CONSULTATION})


class BookingStatus(str, Enum):
    """Appointment lifecycle states.

    No transition matrix is enforced: any status may follow any other.
    """

    PENDING = "pending"
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class AuditAction(str, Enum):
    """Action tags written to the audit log by the booking core."""

    BOOKING_CREATED = "booking_created"
    BOOKING_FAILED = "booking_failed"
    BOOKING_UPDATED = "booking_updated"
    BOOKING_UPDATE_FAILED = "booking_update_failed"
    BOOKING_CANCELLED = "booking_cancelled"

    # External mirror
    EXTERNAL_BOOKING_FAILED = "external_booking_failed"
    EXTERNAL_BOOKING_UPDATED = "external_booking_updated"
    EXTERNAL_BOOKING_UPDATE_FAILED = "external_booking_update_failed"
    EXTERNAL_BOOKING_CANCELLED = "external_booking_cancelled"
    EXTERNAL_BOOKING_CANCEL_FAILED = "external_booking_cancel_failed"
    EXTERNAL_BOOKING_SYNCED = "external_booking_synced"


class TattooRequestStatus(str, Enum):
    """Design request pipeline states."""

    NEW = "new"
    REVIEWED = "reviewed"
    APPROVED = "approved"
    REJECTED = "rejected"
    CONVERTED = "converted"


class StaffRole(str, Enum):
    """Studio staff roles."""

    ARTIST = "artist"
    ADMIN = "admin"
    RECEPTION = "reception"
