"""Tests for booking request schemas and slot arithmetic.

Covers:
- Duration granularity
- Anonymous booking rules
- Timezone and text normalisation
- UpdateBookingRequest.changed_fields
- resolve_update_window precedence
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from inkbook.booking.schedule import compute_end_time, minutes_between, resolve_update_window
from inkbook.models.enums import AuditAction, BookingType
from inkbook.schemas.audit import AuditEntry
from inkbook.schemas.booking import CancelBookingRequest, CreateBookingRequest, UpdateBookingRequest

START = datetime(2026, 11, 3, 10, 0, tzinfo=UTC)


# ── CreateBookingRequest ─────────────────────────────────────────────


class TestCreateBookingRequest:
    def test_valid_customer_booking(self):
        req = CreateBookingRequest(
            start_at=START,
            duration=180,
            booking_type=BookingType.TATTOO_SESSION,
            customer_id=uuid.uuid4(),
        )
        assert req.is_anonymous is False

    @pytest.mark.parametrize("duration", [0, -30, 45, 61])
    def test_duration_must_be_multiple_of_granularity(self, duration):
        with pytest.raises(ValidationError, match="positive multiple of 30"):
            CreateBookingRequest(
                start_at=START,
                duration=duration,
                booking_type=BookingType.CONSULTATION,
                customer_id=uuid.uuid4(),
            )

    def test_anonymous_needs_contact_email(self):
        with pytest.raises(ValidationError, match="customer_id or contact_email"):
            CreateBookingRequest(start_at=START, duration=30, booking_type=BookingType.CONSULTATION)

    def test_anonymous_tattoo_session_rejected(self):
        with pytest.raises(ValidationError, match="cannot be of type tattoo_session"):
            CreateBookingRequest(
                start_at=START,
                duration=120,
                booking_type=BookingType.TATTOO_SESSION,
                contact_email="walkin@example.com",
            )

    def test_anonymous_drawing_consultation_allowed(self):
        req = CreateBookingRequest(
            start_at=START,
            duration=60,
            booking_type=BookingType.DRAWING_CONSULTATION,
            contact_email="  Walkin@Example.COM ",
            contact_phone=" +1 555 0100 ",
        )
        assert req.is_anonymous is True
        assert req.contact_email == "walkin@example.com"
        assert req.contact_phone == "+1 555 0100"

    def test_naive_start_is_utc(self):
        req = CreateBookingRequest(
            start_at=datetime(2026, 11, 3, 10, 0),
            duration=30,
            booking_type=BookingType.CONSULTATION,
            customer_id=uuid.uuid4(),
        )
        assert req.start_at.tzinfo is UTC

    def test_blank_note_becomes_none(self):
        req = CreateBookingRequest(
            start_at=START,
            duration=30,
            booking_type=BookingType.CONSULTATION,
            customer_id=uuid.uuid4(),
            note="   ",
        )
        assert req.note is None

    def test_negative_price_rejected(self):
        with pytest.raises(ValidationError):
            CreateBookingRequest(
                start_at=START,
                duration=30,
                booking_type=BookingType.CONSULTATION,
                customer_id=uuid.uuid4(),
                price_quote=-1,
            )


class TestUpdateAndCancelRequests:
    def test_changed_fields_only_lists_supplied(self):
        req = UpdateBookingRequest(booking_id=uuid.uuid4(), duration=60, note=None)
        assert req.changed_fields() == ["duration", "note"]

    def test_update_duration_validated(self):
        with pytest.raises(ValidationError):
            UpdateBookingRequest(booking_id=uuid.uuid4(), duration=20)

    def test_cancel_reason_stripped(self):
        req = CancelBookingRequest(booking_id=uuid.uuid4(), reason="  ")
        assert req.reason is None


class TestAuditEntry:
    def test_details_are_json_safe(self):
        booking_id = uuid.uuid4()
        entry = AuditEntry(
            action=AuditAction.BOOKING_UPDATED,
            resource_id=booking_id,
            details={"start_time": START, "booking": booking_id},
        )
        assert entry.json_details() == {
            "start_time": "2026-11-03T10:00:00Z",
            "booking": str(booking_id),
        }

    def test_entry_is_frozen(self):
        entry = AuditEntry(action=AuditAction.BOOKING_CREATED)
        with pytest.raises(ValidationError):
            entry.actor_id = "someone"


# ── Slot arithmetic ──────────────────────────────────────────────────


class TestResolveUpdateWindow:
    END = START + timedelta(minutes=150)

    def test_start_and_duration(self):
        new_start = START + timedelta(days=1)
        window = resolve_update_window(START, self.END, start_at=new_start, duration=60)
        assert window.end_time == new_start + timedelta(minutes=60)
        assert window.changed is True

    def test_start_only_keeps_existing_length(self):
        new_start = START + timedelta(hours=3)
        window = resolve_update_window(START, self.END, start_at=new_start)
        assert window.end_time - window.start_time == timedelta(minutes=150)
        assert window.duration == 150

    def test_duration_only_keeps_start(self):
        window = resolve_update_window(START, self.END, duration=30)
        assert window.start_time == START
        assert window.end_time == START + timedelta(minutes=30)

    def test_nothing_changes(self):
        window = resolve_update_window(START, self.END)
        assert (window.start_time, window.end_time) == (START, self.END)
        assert window.changed is False

    def test_helpers(self):
        other_tz = START.astimezone(timezone(timedelta(hours=2)))
        assert compute_end_time(other_tz, 90) == START + timedelta(minutes=90)
        assert minutes_between(START, self.END) == 150
