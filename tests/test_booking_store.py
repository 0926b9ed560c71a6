"""Tests for the SQL appointment store and audit sink (sessions mocked).

Covers:
- create_appointment: insert, tattoo request attach, SQLAlchemy errors wrapped
- Lookups: SQLAlchemy errors wrapped as PersistenceError
- update_appointment: version check, not found, commit/rollback
- SqlAuditSink.append: row contents, errors wrapped
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from inkbook.booking.audit import SqlAuditSink
from inkbook.booking.errors import BookingNotFound, ConcurrentUpdateError, PersistenceError
from inkbook.booking.store import SqlAppointmentStore
from inkbook.models.appointment import Appointment
from inkbook.models.audit import AuditLog
from inkbook.models.customer import Customer
from inkbook.models.enums import AuditAction
from inkbook.schemas.audit import AuditEntry

START = datetime(2026, 11, 3, 10, 0, tzinfo=UTC)


# ── Helpers ──────────────────────────────────────────────────────────


def _make_db(rowcount: int = 1) -> AsyncMock:
    db = AsyncMock()
    db.add = MagicMock()
    db.execute = AsyncMock(return_value=MagicMock(rowcount=rowcount))
    return db


def _make_factory(db: AsyncMock) -> MagicMock:
    """async_sessionmaker stand-in: factory() used as ``async with``."""
    ctx = MagicMock()
    ctx.__aenter__ = AsyncMock(return_value=db)
    ctx.__aexit__ = AsyncMock(return_value=False)
    return MagicMock(return_value=ctx)


def _fields(**overrides) -> dict:
    data = {
        "customer_id": uuid.uuid4(),
        "start_time": START,
        "end_time": START,
        "duration": 60,
        "type": "consultation",
        "status": "scheduled",
    }
    data.update(overrides)
    return data


# ── create_appointment ───────────────────────────────────────────────


class TestCreateAppointment:
    @pytest.mark.asyncio()
    async def test_insert_and_reload(self):
        db = _make_db()
        store = SqlAppointmentStore(_make_factory(db))
        reloaded = MagicMock()

        with patch.object(store, "find_appointment", AsyncMock(return_value=reloaded)):
            result = await store.create_appointment(_fields())

        added = db.add.call_args.args[0]
        assert isinstance(added, Appointment)
        assert added.duration == 60
        db.flush.assert_awaited_once()
        db.commit.assert_awaited_once()
        db.execute.assert_not_awaited()  # no tattoo request
        assert result is reloaded

    @pytest.mark.asyncio()
    async def test_attaches_unowned_tattoo_request(self):
        db = _make_db()
        store = SqlAppointmentStore(_make_factory(db))

        with patch.object(store, "find_appointment", AsyncMock(return_value=MagicMock())):
            await store.create_appointment(_fields(tattoo_request_id=uuid.uuid4()))

        db.execute.assert_awaited_once()
        statement = str(db.execute.await_args.args[0])
        assert "UPDATE tattoo_requests" in statement
        assert "customer_id IS NULL" in statement

    @pytest.mark.asyncio()
    async def test_database_error_wrapped(self):
        db = _make_db()
        db.commit = AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("connection lost")))
        store = SqlAppointmentStore(_make_factory(db))

        with pytest.raises(PersistenceError):
            await store.create_appointment(_fields())


# ── Lookups ──────────────────────────────────────────────────────────


class TestLookups:
    @pytest.mark.asyncio()
    async def test_find_customer_reads_by_primary_key(self):
        customer = MagicMock()
        db = _make_db()
        db.get = AsyncMock(return_value=customer)
        store = SqlAppointmentStore(_make_factory(db))
        customer_id = uuid.uuid4()

        assert await store.find_customer(customer_id) is customer
        db.get.assert_awaited_once_with(Customer, customer_id)

    @pytest.mark.asyncio()
    @pytest.mark.parametrize("method", ["find_customer", "find_tattoo_request", "find_staff_member"])
    async def test_get_error_wrapped(self, method):
        db = _make_db()
        db.get = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("connection lost")))
        store = SqlAppointmentStore(_make_factory(db))

        with pytest.raises(PersistenceError, match="connection lost"):
            await getattr(store, method)(uuid.uuid4())

    @pytest.mark.asyncio()
    async def test_find_appointment_error_wrapped(self):
        db = _make_db()
        db.execute = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("connection lost")))
        store = SqlAppointmentStore(_make_factory(db))

        with pytest.raises(PersistenceError):
            await store.find_appointment(uuid.uuid4())

    @pytest.mark.asyncio()
    async def test_list_unmirrored_error_wrapped(self):
        db = _make_db()
        db.execute = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("connection lost")))
        store = SqlAppointmentStore(_make_factory(db))

        with pytest.raises(PersistenceError):
            await store.list_unmirrored()


# ── update_appointment ───────────────────────────────────────────────


class TestUpdateAppointment:
    @pytest.mark.asyncio()
    async def test_version_match_commits(self):
        db = _make_db(rowcount=1)
        store = SqlAppointmentStore(_make_factory(db))
        appointment_id = uuid.uuid4()

        with patch.object(store, "find_appointment", AsyncMock(return_value=MagicMock())) as mock_find:
            await store.update_appointment(appointment_id, {"status": "confirmed"}, expected_version=3)

        statement = str(db.execute.await_args.args[0])
        assert "appointments.version =" in statement
        db.commit.assert_awaited_once()
        mock_find.assert_awaited_once_with(appointment_id)

    @pytest.mark.asyncio()
    async def test_version_mismatch(self):
        db = _make_db(rowcount=0)
        store = SqlAppointmentStore(_make_factory(db))

        with pytest.raises(ConcurrentUpdateError) as exc_info:
            await store.update_appointment(uuid.uuid4(), {"status": "confirmed"}, expected_version=3)

        assert exc_info.value.expected_version == 3
        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_missing_row_without_version(self):
        db = _make_db(rowcount=0)
        store = SqlAppointmentStore(_make_factory(db))

        with pytest.raises(BookingNotFound):
            await store.update_appointment(uuid.uuid4(), {"notes": "x"})

    @pytest.mark.asyncio()
    async def test_database_error_wrapped(self):
        db = _make_db()
        db.execute = AsyncMock(side_effect=OperationalError("UPDATE", {}, Exception("deadlock")))
        store = SqlAppointmentStore(_make_factory(db))

        with pytest.raises(PersistenceError):
            await store.update_appointment(uuid.uuid4(), {"notes": "x"}, expected_version=1)


# ── Audit sink ───────────────────────────────────────────────────────


class TestSqlAuditSink:
    @pytest.mark.asyncio()
    async def test_append_writes_row(self):
        db = _make_db()
        sink = SqlAuditSink(_make_factory(db))
        booking_id = uuid.uuid4()
        entry = AuditEntry(
            action=AuditAction.EXTERNAL_BOOKING_FAILED,
            resource_id=booking_id,
            actor_id="system",
            details={"error": "Square down", "at": START},
        )

        await sink.append(entry)

        row = db.add.call_args.args[0]
        assert isinstance(row, AuditLog)
        assert row.id == entry.id
        assert row.action == "external_booking_failed"
        assert row.resource_type == "appointment"
        assert row.resource_id == booking_id
        assert row.details == {"error": "Square down", "at": "2026-11-03T10:00:00Z"}
        assert row.occurred_at == entry.timestamp
        db.commit.assert_awaited_once()

    @pytest.mark.asyncio()
    async def test_append_failure_raises_persistence_error(self):
        db = _make_db()
        db.commit = AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("read-only")))
        sink = SqlAuditSink(_make_factory(db))

        with pytest.raises(PersistenceError, match="booking_created"):
            await sink.append(AuditEntry(action=AuditAction.BOOKING_CREATED))
