"""Local appointment store — the authoritative booking records.

Each call runs in its own session and commits before returning.
Appointments are always returned with customer, artist and tattoo
request loaded.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Protocol, TypeVar

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from inkbook.booking.errors import BookingNotFound, ConcurrentUpdateError, PersistenceError
from inkbook.models.appointment import Appointment
from inkbook.models.customer import Customer
from inkbook.models.enums import BookingStatus
from inkbook.models.staff import StaffMember
from inkbook.models.tattoo_request import TattooRequest

logger = logging.getLogger(__name__)

_Row = TypeVar("_Row", Customer, TattooRequest, StaffMember)

_EXPANDED = (
    selectinload(Appointment.customer),
    selectinload(Appointment.artist),
    selectinload(Appointment.tattoo_request),
)


class AppointmentStore(Protocol):
    async def find_customer(self, customer_id: uuid.UUID) -> Customer | None: ...

    async def find_tattoo_request(self, request_id: uuid.UUID) -> TattooRequest | None: ...

    async def find_staff_member(self, staff_id: uuid.UUID) -> StaffMember | None: ...

    async def create_appointment(self, fields: dict[str, Any]) -> Appointment: ...

    async def find_appointment(self, appointment_id: uuid.UUID) -> Appointment | None: ...

    async def update_appointment(
        self,
        appointment_id: uuid.UUID,
        fields: dict[str, Any],
        expected_version: int | None = None,
    ) -> Appointment: ...

    async def list_unmirrored(self, limit: int = 50) -> list[Appointment]: ...


class SqlAppointmentStore:
    """AppointmentStore backed by async SQLAlchemy."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    # ── Lookups ──────────────────────────────────────────────────────

    async def find_customer(self, customer_id: uuid.UUID) -> Customer | None:
        return await self._get(Customer, customer_id)

    async def find_tattoo_request(self, request_id: uuid.UUID) -> TattooRequest | None:
        return await self._get(TattooRequest, request_id)

    async def find_staff_member(self, staff_id: uuid.UUID) -> StaffMember | None:
        return await self._get(StaffMember, staff_id)

    async def find_appointment(self, appointment_id: uuid.UUID) -> Appointment | None:
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    select(Appointment).where(Appointment.id == appointment_id).options(*_EXPANDED)
                )
                return result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.exception("Appointment lookup failed: id=%s", appointment_id)
            raise PersistenceError(str(exc)) from exc

    async def list_unmirrored(self, limit: int = 50) -> list[Appointment]:
        """Live appointments with no Square mirror, oldest first."""
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    select(Appointment)
                    .where(
                        Appointment.external_reference_id.is_(None),
                        Appointment.status != BookingStatus.CANCELLED.value,
                    )
                    .options(*_EXPANDED)
                    .order_by(Appointment.created_at.asc())
                    .limit(limit)
                )
                return list(result.scalars().all())
        except SQLAlchemyError as exc:
            logger.exception("Unmirrored appointment listing failed")
            raise PersistenceError(str(exc)) from exc

    async def _get(self, model: type[_Row], row_id: uuid.UUID) -> _Row | None:
        try:
            async with self._session_factory() as db:
                return await db.get(model, row_id)
        except SQLAlchemyError as exc:
            logger.exception("%s lookup failed: id=%s", model.__name__, row_id)
            raise PersistenceError(str(exc)) from exc

    # ── Writes ───────────────────────────────────────────────────────

    async def create_appointment(self, fields: dict[str, Any]) -> Appointment:
        """Insert an appointment.

        A tattoo request without an owner is attached to the booking's
        customer in the same transaction.
        """
        try:
            async with self._session_factory() as db:
                appointment = Appointment(**fields)
                db.add(appointment)
                await db.flush()

                request_id = fields.get("tattoo_request_id")
                customer_id = fields.get("customer_id")
                if request_id is not None and customer_id is not None:
                    await db.execute(
                        update(TattooRequest)
                        .where(TattooRequest.id == request_id, TattooRequest.customer_id.is_(None))
                        .values(customer_id=customer_id)
                    )

                await db.commit()
                appointment_id = appointment.id
        except SQLAlchemyError as exc:
            logger.exception("Appointment insert failed")
            raise PersistenceError(str(exc)) from exc

        created = await self.find_appointment(appointment_id)
        if created is None:
            msg = f"Appointment {appointment_id} vanished after insert"
            raise PersistenceError(msg)

        logger.info("Appointment created: id=%s start=%s", created.id, created.start_time)
        return created

    async def update_appointment(
        self,
        appointment_id: uuid.UUID,
        fields: dict[str, Any],
        expected_version: int | None = None,
    ) -> Appointment:
        """Apply ``fields`` and bump the version.

        With ``expected_version`` the write only matches if nobody else
        updated the row since it was read; otherwise ConcurrentUpdateError.
        """
        stmt = update(Appointment).where(Appointment.id == appointment_id)
        if expected_version is not None:
            stmt = stmt.where(Appointment.version == expected_version)
        stmt = stmt.values(**fields, version=Appointment.version + 1)

        try:
            async with self._session_factory() as db:
                result = await db.execute(stmt)
                if result.rowcount == 0:  # type: ignore[attr-defined]
                    await db.rollback()
                    if expected_version is not None:
                        raise ConcurrentUpdateError(appointment_id, expected_version)
                    raise BookingNotFound()
                await db.commit()
        except SQLAlchemyError as exc:
            logger.exception("Appointment update failed: id=%s", appointment_id)
            raise PersistenceError(str(exc)) from exc

        updated = await self.find_appointment(appointment_id)
        if updated is None:
            raise BookingNotFound()

        logger.info("Appointment updated: id=%s fields=%s", appointment_id, sorted(fields))
        return updated
