"""AuditEntry schema — one immutable record of an attempted booking change."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

from inkbook.models.enums import AuditAction


class AuditEntry(BaseModel):
    """Immutable once created. Persisted by an AuditSink."""

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    action: AuditAction
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    # Subject (resource_id is None when nothing was created)
    resource_type: str = "appointment"
    resource_id: uuid.UUID | None = None
    actor_id: str | None = None

    # Flexible payload: error message, changes, provider fragment
    details: dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}

    def json_details(self) -> dict[str, Any]:
        """Details with datetimes, UUIDs and Decimals made JSON-safe."""
        return self.model_dump(mode="json", include={"details"})["details"]
