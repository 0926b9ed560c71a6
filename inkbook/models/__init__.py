"""SQLAlchemy ORM models for InkBook.

Import all models here so Alembic and Base.metadata.create_all() discover them.
"""

from __future__ import annotations

from inkbook.models.appointment import Appointment
from inkbook.models.audit import AuditLog
from inkbook.models.base import Base
from inkbook.models.customer import Customer
from inkbook.models.enums import (
    AuditAction,
    BookingStatus,
    BookingType,
    StaffRole,
    TattooRequestStatus,
)
from inkbook.models.staff import StaffMember
from inkbook.models.tattoo_request import TattooRequest

__all__ = [
    # Base
    "Base",
    # Models
    "Appointment",
    "AuditLog",
    "Customer",
    "StaffMember",
    "TattooRequest",
    # Enums
    "AuditAction",
    "BookingStatus",
    "BookingType",
    "StaffRole",
    "TattooRequestStatus",
]
