"""Customer model — people with a studio profile."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inkbook.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from inkbook.models.appointment import Appointment
    from inkbook.models.tattoo_request import TattooRequest


class Customer(TimestampMixin, Base):
    """A studio customer."""

    __tablename__ = "customers"

    # Profile
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), unique=True)
    phone: Mapped[str | None] = mapped_column(String(30))
    notes: Mapped[str | None] = mapped_column(Text)

    # External reference
    external_customer_id: Mapped[str | None] = mapped_column(
        String(255), index=True, comment="Square customer ID"
    )

    # Relationships
    appointments: Mapped[list[Appointment]] = relationship("Appointment", back_populates="customer")
    tattoo_requests: Mapped[list[TattooRequest]] = relationship(
        "TattooRequest", back_populates="customer"
    )

    def __repr__(self) -> str:
        return f"<Customer id={self.id} name={self.name}>"
