"""Audit sink — persists AuditEntry records to the audit_log table.

The sink itself raises on failure; the orchestrator decides that audit
failures never change the outcome of a booking operation.
"""

from __future__ import annotations

import logging
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from inkbook.booking.errors import PersistenceError
from inkbook.models.audit import AuditLog
from inkbook.schemas.audit import AuditEntry

logger = logging.getLogger(__name__)


class AuditSink(Protocol):
    async def append(self, entry: AuditEntry) -> None: ...


class SqlAuditSink:
    """Append-only writer backed by the async session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def append(self, entry: AuditEntry) -> None:
        try:
            async with self._session_factory() as db:
                db.add(AuditLog(
                    id=entry.id,
                    action=entry.action.value,
                    resource_type=entry.resource_type,
                    resource_id=entry.resource_id,
                    actor_id=entry.actor_id,
                    details=entry.json_details(),
                    occurred_at=entry.timestamp,
                ))
                await db.commit()
        except SQLAlchemyError as exc:
            msg = f"Failed to persist audit entry {entry.action.value}: {exc}"
            raise PersistenceError(msg) from exc

        logger.debug("Audit entry written: %s (resource=%s)", entry.action.value, entry.resource_id)
