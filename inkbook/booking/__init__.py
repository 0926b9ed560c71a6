"""Booking core — orchestrator, local store, audit sink, error types."""

from inkbook.booking.audit import SqlAuditSink
from inkbook.booking.orchestrator import BookingOrchestrator
from inkbook.booking.store import SqlAppointmentStore

__all__ = ["BookingOrchestrator", "SqlAppointmentStore", "SqlAuditSink"]
