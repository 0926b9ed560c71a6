"""StaffMember model — artists and studio staff who take appointments."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inkbook.models.base import Base, TimestampMixin
from inkbook.models.enums import StaffRole

if TYPE_CHECKING:
    from inkbook.models.appointment import Appointment


class StaffMember(TimestampMixin, Base):
    """A studio team member."""

    __tablename__ = "staff_members"

    # Profile
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    role: Mapped[str] = mapped_column(String(20), default=StaffRole.ARTIST.value, nullable=False)

    # Scheduling
    external_team_member_id: Mapped[str | None] = mapped_column(
        String(255), comment="Square team member ID"
    )

    # Active flag
    is_active: Mapped[bool] = mapped_column(default=True)

    # Relationships
    appointments: Mapped[list[Appointment]] = relationship("Appointment", back_populates="artist")

    def __repr__(self) -> str:
        return f"<StaffMember name={self.name} role={self.role}>"
