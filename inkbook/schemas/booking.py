"""Pydantic request models for the booking core.

Shape rules (durations, anonymous booking limits, timezone handling) are
enforced here, at construction time, before the orchestrator sees a request.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from inkbook.config import settings
from inkbook.models.enums import BookingStatus, BookingType


def _as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _check_duration(value: int) -> int:
    granularity = settings.booking.slot_granularity_minutes
    if value <= 0 or value % granularity != 0:
        msg = f"Duration must be a positive multiple of {granularity} minutes, got {value}"
        raise ValueError(msg)
    return value


def _clean_text(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


class CreateBookingRequest(BaseModel):
    """Input for BookingOrchestrator.create_booking."""

    start_at: datetime
    duration: int = Field(description="Minutes")
    booking_type: BookingType
    customer_id: uuid.UUID | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    artist_id: uuid.UUID | None = None
    tattoo_request_id: uuid.UUID | None = None
    note: str | None = None
    price_quote: Decimal | None = Field(default=None, ge=0)

    @field_validator("start_at")
    @classmethod
    def normalize_start(cls, v: datetime) -> datetime:
        return _as_utc(v)

    @field_validator("duration")
    @classmethod
    def validate_duration(cls, v: int) -> int:
        return _check_duration(v)

    @field_validator("contact_email")
    @classmethod
    def normalize_email(cls, v: str | None) -> str | None:
        """Strip whitespace and lowercase."""
        v = _clean_text(v)
        return v.lower() if v else None

    @field_validator("contact_phone", "note")
    @classmethod
    def strip_text(cls, v: str | None) -> str | None:
        return _clean_text(v)

    @model_validator(mode="after")
    def check_anonymous_rules(self) -> CreateBookingRequest:
        """Anonymous bookings need an e-mail and are limited to consultations."""
        if self.customer_id is not None:
            return self
        if not self.contact_email:
            msg = "Either customer_id or contact_email is required"
            raise ValueError(msg)
        if self.booking_type not in BookingType.anonymous_allowed():
            msg = f"Anonymous bookings cannot be of type {self.booking_type.value}"
            raise ValueError(msg)
        return self

    @property
    def is_anonymous(self) -> bool:
        return self.customer_id is None

    def audit_context(self) -> dict[str, Any]:
        """Request fields worth keeping next to a failure in the audit log."""
        return {
            "booking_type": self.booking_type.value,
            "start_at": self.start_at.isoformat(),
            "duration": self.duration,
            "customer_id": str(self.customer_id) if self.customer_id else None,
            "tattoo_request_id": str(self.tattoo_request_id) if self.tattoo_request_id else None,
            "is_anonymous": self.is_anonymous,
        }


class UpdateBookingRequest(BaseModel):
    """Input for BookingOrchestrator.update_booking. Omitted fields are left unchanged."""

    booking_id: uuid.UUID
    start_at: datetime | None = None
    duration: int | None = None
    status: BookingStatus | None = None
    note: str | None = None
    artist_id: uuid.UUID | None = None
    price_quote: Decimal | None = Field(default=None, ge=0)

    @field_validator("start_at")
    @classmethod
    def normalize_start(cls, v: datetime | None) -> datetime | None:
        return _as_utc(v) if v is not None else None

    @field_validator("duration")
    @classmethod
    def validate_duration(cls, v: int | None) -> int | None:
        return _check_duration(v) if v is not None else None

    def changed_fields(self) -> list[str]:
        """Names of the fields the caller actually supplied."""
        return sorted(self.model_fields_set - {"booking_id"})


class CancelBookingRequest(BaseModel):
    """Input for BookingOrchestrator.cancel_booking."""

    booking_id: uuid.UUID
    reason: str | None = None
    cancelled_by: str | None = None

    @field_validator("reason")
    @classmethod
    def strip_reason(cls, v: str | None) -> str | None:
        return _clean_text(v)
