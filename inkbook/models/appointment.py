"""Appointment model — the locally authoritative booking record."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inkbook.models.base import Base, TimestampMixin, VersionedMixin
from inkbook.models.enums import BookingStatus, BookingType

if TYPE_CHECKING:
    from inkbook.models.customer import Customer
    from inkbook.models.staff import StaffMember
    from inkbook.models.tattoo_request import TattooRequest


class Appointment(TimestampMixin, VersionedMixin, Base):
    """A studio appointment, optionally mirrored to Square Bookings."""

    __tablename__ = "appointments"

    # Foreign keys
    customer_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("customers.id"), index=True
    )
    artist_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("staff_members.id"), index=True
    )
    tattoo_request_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("tattoo_requests.id")
    )

    # Anonymous contact
    contact_email: Mapped[str | None] = mapped_column(String(255))
    contact_phone: Mapped[str | None] = mapped_column(String(30))

    # Scheduling
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False, comment="Minutes")
    type: Mapped[str] = mapped_column(
        String(30), default=BookingType.CONSULTATION.value, nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20), default=BookingStatus.SCHEDULED.value, nullable=False, index=True
    )

    # External calendar reference
    external_reference_id: Mapped[str | None] = mapped_column(
        String(255), index=True, comment="Square booking ID"
    )

    # Commercial
    price_quote: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    notes: Mapped[str | None] = mapped_column(Text)

    # Relationships
    customer: Mapped[Customer | None] = relationship("Customer", back_populates="appointments")
    artist: Mapped[StaffMember | None] = relationship("StaffMember", back_populates="appointments")
    tattoo_request: Mapped[TattooRequest | None] = relationship(
        "TattooRequest", back_populates="appointments"
    )

    @property
    def is_anonymous(self) -> bool:
        return self.customer_id is None

    @property
    def awaiting_external_sync(self) -> bool:
        """True while the booking has no Square mirror and is still live."""
        return self.external_reference_id is None and self.status != BookingStatus.CANCELLED.value

    def __repr__(self) -> str:
        return f"<Appointment id={self.id} status={self.status} at={self.start_time}>"
