"""Pydantic schemas for the Square Bookings API."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

# Square accepts "any" for unassigned staff / service in appointment segments
ANY = "any"


def to_rfc3339(value: datetime) -> str:
    """Format an aware datetime the way Square expects (UTC, ``Z`` suffix)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")


class AppointmentSegment(BaseModel):
    """One service block inside a Square booking."""

    model_config = {"extra": "ignore"}

    duration_minutes: int
    team_member_id: str = ANY
    service_variation_id: str = ANY

    def to_payload(self) -> dict[str, Any]:
        return {
            "duration_minutes": self.duration_minutes,
            "team_member_id": self.team_member_id,
            "service_variation_id": self.service_variation_id,
        }


class ExternalBooking(BaseModel):
    """A booking as returned by Square."""

    model_config = {"extra": "ignore"}

    id: str
    version: int = 0
    status: str | None = None
    start_at: datetime | None = None
    location_id: str | None = None
    customer_id: str | None = None
    seller_note: str | None = None
    appointment_segments: list[AppointmentSegment] = Field(default_factory=list)
    raw_response: dict[str, Any] = Field(default_factory=dict)

    @property
    def primary_segment(self) -> AppointmentSegment | None:
        return self.appointment_segments[0] if self.appointment_segments else None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> ExternalBooking:
        """Build from a ``{"booking": {...}}`` response body."""
        booking = dict(payload.get("booking") or {})
        booking["raw_response"] = payload
        return cls.model_validate(booking)


class Reservation(BaseModel):
    """Input for creating a Square booking."""

    start_at: datetime
    duration_minutes: int
    location_id: str
    idempotency_key: str
    customer_id: str | None = None
    team_member_id: str | None = None
    service_variation_id: str | None = None
    seller_note: str | None = None

    def to_payload(self) -> dict[str, Any]:
        booking: dict[str, Any] = {
            "start_at": to_rfc3339(self.start_at),
            "location_id": self.location_id,
            "appointment_segments": [
                AppointmentSegment(
                    duration_minutes=self.duration_minutes,
                    team_member_id=self.team_member_id or ANY,
                    service_variation_id=self.service_variation_id or ANY,
                ).to_payload()
            ],
        }
        if self.customer_id:
            booking["customer_id"] = self.customer_id
        if self.seller_note:
            booking["seller_note"] = self.seller_note
        return {"idempotency_key": self.idempotency_key, "booking": booking}


class BookingChanges(BaseModel):
    """Fields to change on an existing Square booking; None keeps the current value."""

    start_at: datetime | None = None
    duration_minutes: int | None = None
    customer_id: str | None = None
    team_member_id: str | None = None
    seller_note: str | None = None
