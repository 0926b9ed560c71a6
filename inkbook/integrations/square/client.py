"""Async httpx client for the Square Bookings API."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from inkbook.booking.errors import ExternalServiceError, ExternalTimeoutError
from inkbook.config import SquareSettings, settings
from inkbook.integrations.square.schemas import (
    AppointmentSegment,
    BookingChanges,
    ExternalBooking,
    Reservation,
)

logger = logging.getLogger(__name__)

# Used when Square returns a booking without appointment segments
_DEFAULT_DURATION_MINUTES = 60


class SquareBookingsClient:
    """Thin async wrapper around Square's /v2/bookings endpoints.

    Square has no in-place reschedule that keeps every field, so
    ``update_booking`` cancels the current booking and creates a new one.
    Callers must store the id of the booking it returns.

    Every failure (transport, timeout, non-2xx, ``errors`` in the body)
    is raised as ExternalServiceError.
    """

    def __init__(
        self,
        config: SquareSettings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        config = config or settings.square
        self._location_id = config.square_location_id
        self._client = http_client or httpx.AsyncClient(
            base_url=config.base_url,
            headers={
                "Authorization": f"Bearer {config.square_access_token}",
                "Square-Version": config.square_api_version,
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(config.square_timeout, connect=5.0),
        )

    @property
    def location_id(self) -> str:
        return self._location_id

    async def create_booking(self, reservation: Reservation) -> ExternalBooking:
        """POST /bookings and return the created booking."""
        payload = await self._request("POST", "/bookings", json=reservation.to_payload())
        booking = self._parse_booking(payload)
        logger.info("Square booking created: id=%s start=%s", booking.id, booking.start_at)
        return booking

    async def get_booking(self, booking_id: str) -> ExternalBooking:
        payload = await self._request("GET", f"/bookings/{booking_id}")
        return self._parse_booking(payload)

    async def cancel_booking(
        self,
        booking_id: str,
        idempotency_key: str | None = None,
        booking_version: int | None = None,
    ) -> ExternalBooking:
        """Cancel a booking. Fetches the current version first when not given."""
        if booking_version is None:
            booking_version = (await self.get_booking(booking_id)).version

        body: dict[str, Any] = {"booking_version": booking_version}
        if idempotency_key:
            body["idempotency_key"] = idempotency_key

        payload = await self._request("POST", f"/bookings/{booking_id}/cancel", json=body)
        booking = self._parse_booking(payload)
        logger.info("Square booking cancelled: id=%s", booking_id)
        return booking

    async def update_booking(
        self,
        booking_id: str,
        changes: BookingChanges,
        idempotency_key: str,
    ) -> ExternalBooking:
        """Reschedule by cancel + re-create. Returns the NEW booking (new id).

        Unchanged fields are carried over from the current booking.
        """
        existing = await self.get_booking(booking_id)
        segment = existing.primary_segment or AppointmentSegment(
            duration_minutes=_DEFAULT_DURATION_MINUTES
        )

        start_at = changes.start_at or existing.start_at
        if start_at is None:
            msg = f"Square booking {booking_id} has no start time to carry over"
            raise ExternalServiceError(msg)

        await self.cancel_booking(
            booking_id,
            idempotency_key=f"{idempotency_key}-cancel",
            booking_version=existing.version,
        )

        replacement = Reservation(
            start_at=start_at,
            duration_minutes=changes.duration_minutes or segment.duration_minutes,
            location_id=existing.location_id or self._location_id,
            idempotency_key=idempotency_key,
            customer_id=changes.customer_id or existing.customer_id,
            team_member_id=changes.team_member_id or segment.team_member_id,
            service_variation_id=segment.service_variation_id,
            seller_note=changes.seller_note or existing.seller_note,
        )
        try:
            created = await self.create_booking(replacement)
        except ExternalServiceError:
            logger.warning(
                "Square booking %s was cancelled but its replacement could not be created",
                booking_id,
            )
            raise

        logger.info("Square booking rescheduled: %s -> %s", booking_id, created.id)
        return created

    async def close(self) -> None:
        await self._client.aclose()

    # ── Internals ────────────────────────────────────────────────────

    async def _request(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        try:
            response = await self._client.request(method, path, json=json)
        except httpx.TimeoutException as exc:
            logger.warning("Square API timeout: %s %s", method, path)
            msg = f"Square API timeout: {method} {path}"
            raise ExternalTimeoutError(msg) from exc
        except httpx.HTTPError as exc:
            logger.warning("Square API transport error: %s %s (%s)", method, path, exc)
            msg = f"Square API request failed: {exc}"
            raise ExternalServiceError(msg) from exc

        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}

        errors: list[dict[str, Any]] = payload.get("errors") or []
        if response.is_error or errors:
            detail = _error_detail(errors) or response.reason_phrase
            logger.warning("Square API error %s for %s %s: %s", response.status_code, method, path, detail)
            msg = f"Square API error ({response.status_code}): {detail}"
            raise ExternalServiceError(msg, status_code=response.status_code, errors=errors)

        return payload

    @staticmethod
    def _parse_booking(payload: dict[str, Any]) -> ExternalBooking:
        booking = payload.get("booking")
        if not isinstance(booking, dict) or not booking.get("id"):
            msg = "Square response did not include a booking id"
            raise ExternalServiceError(msg)
        try:
            return ExternalBooking.from_payload(payload)
        except ValidationError as exc:
            logger.warning("Unexpected Square booking payload: %s", exc)
            msg = f"Square response did not match the booking schema: {exc.error_count()} error(s)"
            raise ExternalServiceError(msg) from exc


def _error_detail(errors: list[dict[str, Any]]) -> str | None:
    """First human-readable message from a Square ``errors`` array."""
    if not errors:
        return None
    first = errors[0]
    return first.get("detail") or first.get("code") or first.get("category")
