"""TattooRequest model — a design request that may lead to appointments."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inkbook.models.base import Base, TimestampMixin
from inkbook.models.enums import TattooRequestStatus

if TYPE_CHECKING:
    from inkbook.models.appointment import Appointment
    from inkbook.models.customer import Customer


class TattooRequest(TimestampMixin, Base):
    """A tattoo design request.

    Requests submitted from the public form have no customer yet; they are
    attached to one when the first appointment for them is booked.
    """

    __tablename__ = "tattoo_requests"

    customer_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("customers.id"), index=True
    )
    contact_email: Mapped[str | None] = mapped_column(String(255))

    # Design brief
    description: Mapped[str] = mapped_column(Text, nullable=False)
    placement: Mapped[str | None] = mapped_column(String(100))
    size: Mapped[str | None] = mapped_column(String(50))
    style: Mapped[str | None] = mapped_column(String(100))
    status: Mapped[str] = mapped_column(
        String(20), default=TattooRequestStatus.NEW.value, nullable=False
    )

    # Relationships
    customer: Mapped[Customer | None] = relationship("Customer", back_populates="tattoo_requests")
    appointments: Mapped[list[Appointment]] = relationship(
        "Appointment", back_populates="tattoo_request"
    )

    def belongs_to(self, customer_id: uuid.UUID | None) -> bool:
        """Whether this request may be linked to a booking for ``customer_id``."""
        return self.customer_id is None or self.customer_id == customer_id

    def __repr__(self) -> str:
        return f"<TattooRequest id={self.id} status={self.status}>"
