"""InkBook service: FastAPI app, logging setup and orchestrator wiring.

Usage:
    python -m inkbook.main

The HTTP surface is a health check; booking operations are reached
through the orchestrator built by ``build_orchestrator``.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI

from inkbook.booking import BookingOrchestrator, SqlAppointmentStore, SqlAuditSink
from inkbook.config import settings
from inkbook.db.engine import async_session_factory, db_lifespan
from inkbook.integrations.square import SquareBookingsClient

logger = logging.getLogger(__name__)


def configure_logging(level: str | None = None) -> None:
    """Stdlib logging to stdout; structlog renders through the same handlers."""
    logging.basicConfig(
        level=getattr(logging, level or settings.log_level),
        format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
        stream=sys.stdout,
    )
    renderer = (
        structlog.processors.JSONRenderer()
        if settings.is_production
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
    )


def build_orchestrator(square_client: SquareBookingsClient) -> BookingOrchestrator:
    """Compose the orchestrator from the SQL store, SQL audit sink and Square client."""
    return BookingOrchestrator(
        store=SqlAppointmentStore(async_session_factory),
        scheduler=square_client,
        audit=SqlAuditSink(async_session_factory),
        location_id=settings.square.square_location_id,
        external_timeout=settings.booking.external_call_timeout,
    )


# ── FastAPI lifespan ─────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Database, Square client and orchestrator for the life of the app."""
    configure_logging()
    logger.info("Starting %s (env=%s)", settings.studio_name, settings.environment)

    async with db_lifespan():
        logger.info("Database initialized")

        if not settings.square.square_access_token:
            logger.warning("SQUARE_ACCESS_TOKEN not set; bookings will not be mirrored")

        square_client = SquareBookingsClient()
        app.state.orchestrator = build_orchestrator(square_client)
        logger.info("Booking orchestrator ready (square=%s)", settings.square.square_environment)

        try:
            yield
        finally:
            await square_client.close()
            logger.info("Square client closed")

    logger.info("%s shutdown complete", settings.studio_name)


# ── FastAPI app ──────────────────────────────────────────────────────

app = FastAPI(
    title="InkBook API",
    description="Booking core for tattoo studios with a Square Bookings mirror",
    version="0.1.0",
    lifespan=lifespan,
)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Liveness only; does not touch the database or Square."""
    return {
        "status": "ok",
        "environment": settings.environment,
        "studio": settings.studio_name,
    }


# ── Entry point ──────────────────────────────────────────────────────

if __name__ == "__main__":
    configure_logging()
    uvicorn.run(
        "inkbook.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )
