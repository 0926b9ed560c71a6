"""Booking orchestrator — local-first bookings with a best-effort Square mirror.

Every write is a two-step process:

1. Try the Square side (create, reschedule or cancel). This never raises;
   the result is captured as an ExternalSyncOutcome.
2. Write the local appointment, which is the source of truth.

Audit entries are written after the local write so they describe what was
actually committed. When Square fails the appointment is kept with a null
external reference ("local wins") and shows up in find_unmirrored_bookings()
until retry_external_sync() succeeds.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable
from datetime import UTC, date, datetime
from typing import Any, Protocol, TypeVar

from inkbook.booking.audit import AuditSink
from inkbook.booking.errors import (
    BookingNotFound,
    BookingValidationError,
    CustomerNotFound,
    ExternalServiceError,
    ExternalTimeoutError,
    InvalidBookingState,
    PersistenceError,
    TattooRequestMismatch,
    TattooRequestNotFound,
)
from inkbook.booking.results import (
    AvailabilityResult,
    BookingCancellationResult,
    BookingResult,
    BookingUpdateResult,
    ExternalSyncOutcome,
)
from inkbook.booking.schedule import ScheduleWindow, compute_end_time, resolve_update_window
from inkbook.booking.store import AppointmentStore
from inkbook.config import settings
from inkbook.integrations.square.schemas import BookingChanges, ExternalBooking, Reservation
from inkbook.models.appointment import Appointment
from inkbook.models.customer import Customer
from inkbook.models.enums import AuditAction, BookingStatus
from inkbook.schemas.audit import AuditEntry
from inkbook.schemas.booking import (
    CancelBookingRequest,
    CreateBookingRequest,
    UpdateBookingRequest,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

IdempotencyKeyFactory = Callable[[], str]


def new_idempotency_key() -> str:
    return str(uuid.uuid4())


def compose_note(booking_type: str, note: str | None) -> str:
    """Seller note shown in Square: ``"<type>"`` or ``"<type> - <note>"``."""
    return f"{booking_type} - {note}" if note else booking_type


class ExternalScheduler(Protocol):
    """Structural type of the Square client as seen by the orchestrator."""

    async def create_booking(self, reservation: Reservation) -> ExternalBooking: ...

    async def get_booking(self, booking_id: str) -> ExternalBooking: ...

    async def update_booking(
        self, booking_id: str, changes: BookingChanges, idempotency_key: str
    ) -> ExternalBooking: ...

    async def cancel_booking(
        self, booking_id: str, idempotency_key: str | None = None
    ) -> ExternalBooking: ...


class BookingOrchestrator:
    """Creates, reschedules and cancels appointments.

    Collaborators are injected so the orchestrator holds no shared state
    and can run concurrently from any number of request handlers.
    """

    def __init__(
        self,
        store: AppointmentStore,
        scheduler: ExternalScheduler,
        audit: AuditSink,
        *,
        location_id: str,
        idempotency_key_factory: IdempotencyKeyFactory = new_idempotency_key,
        external_timeout: float | None = None,
    ) -> None:
        self._store = store
        self._scheduler = scheduler
        self._audit_sink = audit
        self._location_id = location_id
        self._new_key = idempotency_key_factory
        self._external_timeout = (
            external_timeout if external_timeout is not None else settings.booking.external_call_timeout
        )

    # ── Create ───────────────────────────────────────────────────────

    async def create_booking(self, request: CreateBookingRequest) -> BookingResult:
        """Validate, mirror to Square (best effort), then persist locally.

        Raises:
            CustomerNotFound, TattooRequestNotFound, TattooRequestMismatch:
                nothing is written except a ``booking_failed`` audit entry.
            PersistenceError: the local insert failed.
        """
        try:
            customer = await self._resolve_customer(request.customer_id)
            await self._resolve_tattoo_request(request.tattoo_request_id, request.customer_id)
        except BookingValidationError as exc:
            await self._audit(
                AuditAction.BOOKING_FAILED,
                details={"error": str(exc), **request.audit_context()},
            )
            raise

        end_time = compute_end_time(request.start_at, request.duration)
        team_member_id = await self._team_member_id(request.artist_id)

        outcome = await self._mirror_create(self._reservation(
            start_at=request.start_at,
            duration=request.duration,
            booking_type=request.booking_type.value,
            note=request.note,
            customer=customer,
            team_member_id=team_member_id,
        ))

        fields: dict[str, Any] = {
            "customer_id": request.customer_id,
            "contact_email": request.contact_email,
            "contact_phone": request.contact_phone,
            "artist_id": request.artist_id,
            "tattoo_request_id": request.tattoo_request_id,
            "start_time": request.start_at,
            "end_time": end_time,
            "duration": request.duration,
            "type": request.booking_type.value,
            "status": BookingStatus.SCHEDULED.value,
            "notes": request.note,
            "price_quote": request.price_quote,
            "external_reference_id": outcome.booking.id if outcome.booking else None,
        }

        try:
            appointment = await self._store.create_appointment(fields)
        except PersistenceError as exc:
            if outcome.failed:
                await self._audit_external_create_failure(None, outcome)
            details = {"error": str(exc), **request.audit_context()}
            if outcome.booking is not None:
                # Square holds a booking with no local counterpart
                details["orphaned_external_reference_id"] = outcome.booking.id
            await self._audit(AuditAction.BOOKING_FAILED, details=details)
            raise

        if outcome.failed:
            await self._audit_external_create_failure(appointment.id, outcome)

        await self._audit(
            AuditAction.BOOKING_CREATED,
            appointment.id,
            {
                "booking_type": request.booking_type.value,
                "start_at": request.start_at.isoformat(),
                "duration": request.duration,
                "is_anonymous": request.is_anonymous,
                "external_reference_id": appointment.external_reference_id,
            },
        )

        logger.info(
            "Booking created: id=%s type=%s mirrored=%s",
            appointment.id,
            request.booking_type.value,
            outcome.succeeded,
        )
        return BookingResult(success=True, booking=appointment, external_booking=outcome.booking)

    # ── Update ───────────────────────────────────────────────────────

    async def update_booking(self, request: UpdateBookingRequest) -> BookingUpdateResult:
        """Reschedule or edit a booking, then re-mirror it if it was mirrored.

        The Square side is always a reschedule, whatever ``status`` is set
        to. Setting ``status=cancelled`` here leaves an active booking in
        Square; use cancel_booking() to cancel both sides.

        Raises:
            BookingNotFound: no appointment with that id; nothing is written.
            PersistenceError: the local update failed (ConcurrentUpdateError
                when another writer got there first).
        """
        existing = await self._store.find_appointment(request.booking_id)
        if existing is None:
            raise BookingNotFound()

        window = resolve_update_window(
            existing.start_time,
            existing.end_time,
            start_at=request.start_at,
            duration=request.duration,
        )
        fields = self._update_fields(request, window)

        if existing.external_reference_id:
            outcome = await self._mirror_update(existing, request, window)
        else:
            outcome = ExternalSyncOutcome.skipped()

        if outcome.booking is not None:
            # Square re-creates on reschedule; the new id replaces the old one
            fields["external_reference_id"] = outcome.booking.id

        try:
            updated = await self._store.update_appointment(
                existing.id, fields, expected_version=existing.version
            )
        except PersistenceError as exc:
            details: dict[str, Any] = {"error": str(exc), "changes": request.changed_fields()}
            if outcome.booking is not None:
                details["unsaved_external_reference_id"] = outcome.booking.id
            await self._audit(AuditAction.BOOKING_UPDATE_FAILED, existing.id, details)
            raise

        if outcome.succeeded:
            await self._audit(
                AuditAction.EXTERNAL_BOOKING_UPDATED,
                existing.id,
                {
                    "previous_external_reference_id": existing.external_reference_id,
                    "external_reference_id": outcome.booking.id,
                    "start_at": outcome.booking.start_at,
                },
            )
        elif outcome.failed:
            await self._audit(
                AuditAction.EXTERNAL_BOOKING_UPDATE_FAILED,
                existing.id,
                {"error": outcome.error, "external_reference_id": existing.external_reference_id},
            )

        await self._audit(
            AuditAction.BOOKING_UPDATED,
            existing.id,
            {
                "changes": request.changed_fields(),
                "previous_status": existing.status,
                "new_status": fields.get("status", existing.status),
                "start_time": window.start_time,
                "end_time": window.end_time,
            },
        )

        logger.info("Booking updated: id=%s changes=%s", existing.id, request.changed_fields())
        return BookingUpdateResult(
            success=True,
            booking=updated,
            external_booking_updated=outcome.booking,
        )

    # ── Cancel ───────────────────────────────────────────────────────

    async def cancel_booking(self, request: CancelBookingRequest) -> BookingCancellationResult:
        """Cancel locally, and in Square when the booking is mirrored.

        Raises:
            BookingNotFound: no appointment with that id.
            InvalidBookingState: the appointment is already cancelled.
            PersistenceError: the local update failed.
        """
        existing = await self._store.find_appointment(request.booking_id)
        if existing is None:
            raise BookingNotFound()
        if existing.status == BookingStatus.CANCELLED.value:
            raise InvalidBookingState("Booking is already cancelled")

        if existing.external_reference_id:
            outcome = await self._mirror_cancel(existing.external_reference_id)
        else:
            outcome = ExternalSyncOutcome.skipped()

        reason_line = f"Cancellation reason: {request.reason or 'No reason provided'}"
        fields = {
            "status": BookingStatus.CANCELLED.value,
            "notes": f"{existing.notes}\n\n{reason_line}" if existing.notes else reason_line,
        }

        try:
            cancelled = await self._store.update_appointment(
                existing.id, fields, expected_version=existing.version
            )
        except PersistenceError as exc:
            await self._audit(
                AuditAction.BOOKING_UPDATE_FAILED,
                existing.id,
                {"error": str(exc), "changes": ["status"]},
                actor_id=request.cancelled_by,
            )
            raise

        if outcome.succeeded:
            await self._audit(
                AuditAction.EXTERNAL_BOOKING_CANCELLED,
                existing.id,
                {"external_reference_id": existing.external_reference_id},
                actor_id=request.cancelled_by,
            )
        elif outcome.failed:
            await self._audit(
                AuditAction.EXTERNAL_BOOKING_CANCEL_FAILED,
                existing.id,
                {"error": outcome.error, "external_reference_id": existing.external_reference_id},
                actor_id=request.cancelled_by,
            )

        await self._audit(
            AuditAction.BOOKING_CANCELLED,
            existing.id,
            {"reason": request.reason, "previous_status": existing.status},
            actor_id=request.cancelled_by,
        )

        logger.info("Booking cancelled: id=%s external=%s", existing.id, outcome.succeeded)
        return BookingCancellationResult(
            success=True,
            booking=cancelled,
            external_cancelled=outcome.succeeded,
        )

    # ── Availability ─────────────────────────────────────────────────

    async def get_availability(
        self,
        day: date | datetime,
        artist_id: uuid.UUID | None = None,
    ) -> AvailabilityResult:
        """Free slots for ``day``. Always empty: slot computation does not exist yet."""
        if isinstance(day, datetime):
            if day.tzinfo is not None:
                day = day.astimezone(UTC)
            day = day.date()

        logger.debug("Availability requested: date=%s artist=%s", day, artist_id)
        return AvailabilityResult(success=True, date=day.isoformat(), available_slots=[])

    # ── Reconciliation ───────────────────────────────────────────────

    async def find_unmirrored_bookings(self, limit: int = 50) -> list[Appointment]:
        """Live bookings that have no Square counterpart."""
        return await self._store.list_unmirrored(limit)

    async def retry_external_sync(self, booking_id: uuid.UUID) -> BookingResult:
        """Create the missing Square booking for an unmirrored appointment.

        Mirrored or cancelled appointments are returned untouched.
        """
        appointment = await self._store.find_appointment(booking_id)
        if appointment is None:
            raise BookingNotFound()
        if not appointment.awaiting_external_sync:
            return BookingResult(success=True, booking=appointment)

        artist = appointment.artist
        outcome = await self._mirror_create(self._reservation(
            start_at=appointment.start_time,
            duration=appointment.duration,
            booking_type=appointment.type,
            note=appointment.notes,
            customer=appointment.customer,
            team_member_id=artist.external_team_member_id if artist else None,
        ))

        if outcome.failed:
            await self._audit_external_create_failure(appointment.id, outcome, stage="retry")
            return BookingResult(success=True, booking=appointment)

        try:
            updated = await self._store.update_appointment(
                appointment.id,
                {"external_reference_id": outcome.booking.id},
                expected_version=appointment.version,
            )
        except PersistenceError as exc:
            await self._audit(
                AuditAction.BOOKING_UPDATE_FAILED,
                appointment.id,
                {
                    "error": str(exc),
                    "changes": ["external_reference_id"],
                    "unsaved_external_reference_id": outcome.booking.id,
                },
            )
            raise

        await self._audit(
            AuditAction.EXTERNAL_BOOKING_SYNCED,
            appointment.id,
            {"external_reference_id": outcome.booking.id},
        )
        logger.info("Booking mirrored on retry: id=%s external=%s", appointment.id, outcome.booking.id)
        return BookingResult(success=True, booking=updated, external_booking=outcome.booking)

    # ── Validation helpers ───────────────────────────────────────────

    async def _resolve_customer(self, customer_id: uuid.UUID | None) -> Customer | None:
        if customer_id is None:
            return None
        customer = await self._store.find_customer(customer_id)
        if customer is None:
            raise CustomerNotFound()
        return customer

    async def _resolve_tattoo_request(
        self,
        request_id: uuid.UUID | None,
        customer_id: uuid.UUID | None,
    ) -> None:
        if request_id is None:
            return
        tattoo_request = await self._store.find_tattoo_request(request_id)
        if tattoo_request is None:
            raise TattooRequestNotFound()
        if not tattoo_request.belongs_to(customer_id):
            raise TattooRequestMismatch()

    async def _team_member_id(self, artist_id: uuid.UUID | None) -> str | None:
        if artist_id is None:
            return None
        artist = await self._store.find_staff_member(artist_id)
        return artist.external_team_member_id if artist else None

    @staticmethod
    def _update_fields(request: UpdateBookingRequest, window: ScheduleWindow) -> dict[str, Any]:
        supplied = request.model_fields_set
        fields: dict[str, Any] = {}
        if window.changed:
            fields["start_time"] = window.start_time
            fields["end_time"] = window.end_time
            fields["duration"] = window.duration
        if request.status is not None:
            fields["status"] = request.status.value
        if "note" in supplied:
            fields["notes"] = request.note
        if "artist_id" in supplied:
            fields["artist_id"] = request.artist_id
        if "price_quote" in supplied:
            fields["price_quote"] = request.price_quote
        return fields

    # ── Square side ──────────────────────────────────────────────────

    def _reservation(
        self,
        *,
        start_at: datetime,
        duration: int,
        booking_type: str,
        note: str | None,
        customer: Customer | None,
        team_member_id: str | None,
    ) -> Reservation:
        return Reservation(
            start_at=start_at,
            duration_minutes=duration,
            location_id=self._location_id,
            idempotency_key=self._new_key(),
            customer_id=customer.external_customer_id if customer else None,
            team_member_id=team_member_id,
            seller_note=compose_note(booking_type, note),
        )

    async def _mirror_create(self, reservation: Reservation) -> ExternalSyncOutcome:
        try:
            booking = await self._call_external(self._scheduler.create_booking(reservation))
        except ExternalServiceError as exc:
            logger.warning("Square booking create failed: %s", exc)
            return ExternalSyncOutcome.failure(str(exc))
        return ExternalSyncOutcome.success(booking)

    async def _mirror_update(
        self,
        appointment: Appointment,
        request: UpdateBookingRequest,
        window: ScheduleWindow,
    ) -> ExternalSyncOutcome:
        reference = appointment.external_reference_id
        team_member_id = await self._team_member_id(request.artist_id)
        note = request.note if "note" in request.model_fields_set else appointment.notes

        try:
            current = await self._call_external(self._scheduler.get_booking(reference))
            changes = BookingChanges(
                start_at=window.start_time if request.start_at is not None else None,
                duration_minutes=request.duration,
                customer_id=current.customer_id,
                team_member_id=team_member_id,
                seller_note=compose_note(appointment.type, note),
            )
            booking = await self._call_external(
                self._scheduler.update_booking(reference, changes, self._new_key())
            )
        except ExternalServiceError as exc:
            logger.warning("Square booking update failed for %s: %s", reference, exc)
            return ExternalSyncOutcome.failure(str(exc))
        return ExternalSyncOutcome.success(booking)

    async def _mirror_cancel(self, reference: str) -> ExternalSyncOutcome:
        try:
            booking = await self._call_external(
                self._scheduler.cancel_booking(reference, idempotency_key=self._new_key())
            )
        except ExternalServiceError as exc:
            logger.warning("Square booking cancel failed for %s: %s", reference, exc)
            return ExternalSyncOutcome.failure(str(exc))
        return ExternalSyncOutcome.success(booking)

    async def _call_external(self, call: Awaitable[T]) -> T:
        """Await a Square call under the orchestrator's time budget."""
        try:
            return await asyncio.wait_for(call, timeout=self._external_timeout)
        except TimeoutError as exc:
            msg = f"Square call timed out after {self._external_timeout:g}s"
            raise ExternalTimeoutError(msg) from exc

    # ── Audit ────────────────────────────────────────────────────────

    async def _audit_external_create_failure(
        self,
        appointment_id: uuid.UUID | None,
        outcome: ExternalSyncOutcome,
        stage: str = "create",
    ) -> None:
        await self._audit(
            AuditAction.EXTERNAL_BOOKING_FAILED,
            appointment_id,
            {"error": outcome.error, "stage": stage},
        )

    async def _audit(
        self,
        action: AuditAction,
        resource_id: uuid.UUID | None = None,
        details: dict[str, Any] | None = None,
        actor_id: str | None = None,
    ) -> None:
        """Write an audit entry. Failures are logged, never raised."""
        entry = AuditEntry(
            action=action,
            resource_id=resource_id,
            actor_id=actor_id,
            details=details or {},
        )
        try:
            await self._audit_sink.append(entry)
        except Exception:
            logger.exception(
                "Failed to write audit entry: %s (resource=%s)",
                action.value,
                resource_id,
            )
